"""Tests for the HTTP model clients, driven through httpx.MockTransport."""

import json

import httpx
import pytest

from exceptions import EmbeddingError
from providers.groq_provider import GroqProvider
from providers.openai_provider import OpenAIProvider
from services.embedding_service import EmbeddingClient


def _embedding_transport(vector, status=200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if status != 200:
            return httpx.Response(status, json={"error": {"message": "nope"}})
        return httpx.Response(200, json={"data": [{"embedding": vector}]})
    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_embed_sends_trimmed_text() -> None:
    seen = []
    client = EmbeddingClient(api_key="sk-test", dimensions=3, transport=_embedding_transport([0.1, 0.2, 0.3], seen=seen))

    vector = await client.embed("  hello world  ")

    assert vector == [0.1, 0.2, 0.3]
    assert len(seen) == 1
    body = json.loads(seen[0].content)
    assert body["input"] == "hello world"
    assert body["model"] == client.model
    assert seen[0].headers["Authorization"] == "Bearer sk-test"


@pytest.mark.asyncio
async def test_embed_empty_text_is_caller_error() -> None:
    seen = []
    client = EmbeddingClient(api_key="sk-test", dimensions=3, transport=_embedding_transport([0.1, 0.2, 0.3], seen=seen))
    with pytest.raises(ValueError):
        await client.embed("   ")
    assert seen == []


@pytest.mark.asyncio
async def test_embed_http_error_raises_embedding_error() -> None:
    seen = []
    client = EmbeddingClient(api_key="sk-test", dimensions=3, transport=_embedding_transport([], status=500, seen=seen))
    with pytest.raises(EmbeddingError, match="HTTP 500"):
        await client.embed("hello")
    # No retry
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_embed_dimension_mismatch() -> None:
    client = EmbeddingClient(api_key="sk-test", dimensions=4, transport=_embedding_transport([0.1, 0.2, 0.3]))
    with pytest.raises(EmbeddingError, match="Expected 4 dimensions"):
        await client.embed("hello")


@pytest.mark.asyncio
async def test_embed_malformed_response() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"data": []}))
    client = EmbeddingClient(api_key="sk-test", dimensions=3, transport=transport)
    with pytest.raises(EmbeddingError, match="Malformed"):
        await client.embed("hello")


@pytest.mark.asyncio
async def test_embed_timeout() -> None:
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)
    client = EmbeddingClient(api_key="sk-test", dimensions=3, transport=httpx.MockTransport(handler))
    with pytest.raises(EmbeddingError, match="timed out"):
        await client.embed("hello")


@pytest.mark.asyncio
async def test_embed_without_key() -> None:
    client = EmbeddingClient(api_key="", dimensions=3)
    with pytest.raises(EmbeddingError, match="No embedding API key"):
        await client.embed("hello")


@pytest.mark.asyncio
async def test_openai_provider_success() -> None:
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"choices": [{"message": {"content": "hi!"}}]})

    provider = OpenAIProvider(api_key="sk-test", transport=httpx.MockTransport(handler))
    result = await provider.chat([{"role": "user", "content": "hi"}], "gpt-4o-mini", max_tokens=50, temperature=0.1)

    assert result["status"] == "success"
    assert result["text"] == "hi!"
    assert result["provider"] == "openai"
    assert seen[0]["model"] == "gpt-4o-mini"
    assert seen[0]["max_tokens"] == 50
    assert seen[0]["temperature"] == 0.1


@pytest.mark.asyncio
async def test_provider_uses_default_model() -> None:
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    provider = GroqProvider(api_key="gsk-test", transport=httpx.MockTransport(handler))
    result = await provider.chat([{"role": "user", "content": "hi"}])

    assert result["model"] == GroqProvider.default_models[0]
    assert seen[0]["model"] == GroqProvider.default_models[0]


@pytest.mark.asyncio
async def test_provider_rate_limit_is_reported() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(429, text="rate limit"))
    provider = OpenAIProvider(api_key="sk-test", transport=transport)
    result = await provider.chat([{"role": "user", "content": "hi"}])

    assert result["status"] == "failed"
    assert result["status_code"] == 429
    assert "429" in result["error"]
