"""
embedding_service.py — Text embeddings over the OpenAI embeddings endpoint.
One request per call; no retry. Failures surface as EmbeddingError so the
caller decides whether to abort or degrade.
"""

import logging

import httpx

from config import OPENAI_API_KEYS, EMBEDDING_MODEL, EMBEDDING_DIMENSIONS, LLM_TIMEOUT_SECONDS
from exceptions import EmbeddingError

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """Turns text into a fixed-length float vector."""

    endpoint = "https://api.openai.com/v1/embeddings"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = EMBEDDING_MODEL,
        dimensions: int = EMBEDDING_DIMENSIONS,
        timeout: float = LLM_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else (OPENAI_API_KEYS[0] if OPENAI_API_KEYS else "")
        self.model = model
        self.dimensions = dimensions
        self.timeout = timeout
        self._transport = transport

    async def embed(self, text: str) -> list[float]:
        """Embed trimmed text. Raises ValueError on empty input, EmbeddingError on failure."""
        text = (text or "").strip()
        if not text:
            raise ValueError("Cannot embed empty text")
        if not self.api_key:
            raise EmbeddingError("No embedding API key configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.endpoint,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={"model": self.model, "input": text},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise EmbeddingError("Embedding request timed out") from e
        except httpx.HTTPStatusError as e:
            raise EmbeddingError(f"Embedding request failed: HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        try:
            vector = [float(x) for x in data["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingError("Malformed embedding response") from e

        if len(vector) != self.dimensions:
            raise EmbeddingError(f"Expected {self.dimensions} dimensions, got {len(vector)}")
        return vector


_client = None


def get_embedding_client() -> EmbeddingClient:
    global _client
    if _client is None:
        _client = EmbeddingClient()
    return _client
