"""Tests for background memory extraction."""

import logging

import pytest

from conftest import USER_ID, FakeEmbedder, FakeLLM, extraction_reply
from exceptions import CompletionError, ExtractionError
from services.memory_extractor import (
    EXTRACTION_MAX_TOKENS,
    EXTRACTION_TEMPERATURE,
    MemoryExtractor,
    parse_extraction,
)
from services.memory_service import MemoryService
from services.semantic_memory_service import SemanticMemoryStore

RUST_FACT = {"key": "favorite_language", "value": "Rust", "category": "preference"}
SUMMARY = "User prefers Rust for systems work"
SUMMARY_VECTOR = [1.0, 0.0, 0.0, 0.0]


def make_extractor(store, llm, embedder=None):
    facts = MemoryService(store)
    semantic = SemanticMemoryStore(store)
    embedder = embedder or FakeEmbedder({SUMMARY: SUMMARY_VECTOR})
    return MemoryExtractor(llm, facts, semantic, embedder), facts, semantic


def test_parse_accepts_code_fenced_json() -> None:
    payload = parse_extraction("```json\n" + extraction_reply([RUST_FACT]) + "\n```")
    assert payload.facts[0].value == "Rust"
    assert payload.should_remember is False


@pytest.mark.parametrize("raw", [
    "",
    "not json at all",
    '{"facts": [{"key": "k", "value": "v", "category": "opinion"}]}',
    '{"facts": [{"key": "", "value": "v", "category": "fact"}]}',
    '{"facts": [{"key": "k", "category": "fact"}]}',
    '{"facts": "nope"}',
    '{"facts": [], "unexpected": true}',
])
def test_parse_rejects_invalid_payloads(raw: str) -> None:
    with pytest.raises(ExtractionError):
        parse_extraction(raw)


def test_parse_coerces_numeric_values() -> None:
    payload = parse_extraction('{"facts": [{"key": "age", "value": 42, "category": "fact"}]}')
    assert payload.facts[0].value == "42"


@pytest.mark.asyncio
async def test_extracts_fact_with_low_temperature(store) -> None:
    llm = FakeLLM(extraction_reply([RUST_FACT]))
    extractor, facts, _ = make_extractor(store, llm)

    await extractor.extract_memories_from_message(USER_ID, "My favorite language is Rust", "user")

    saved = await facts.get_all_memories(USER_ID)
    assert [(f.value, f.category) for f in saved] == [("Rust", "preference")]
    assert llm.calls[0]["temperature"] == EXTRACTION_TEMPERATURE
    assert llm.calls[0]["max_tokens"] == EXTRACTION_MAX_TOKENS
    assert "My favorite language is Rust" in llm.calls[0]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_same_message_twice_keeps_one_fact_row(store) -> None:
    llm = FakeLLM(extraction_reply([RUST_FACT]))
    extractor, _, _ = make_extractor(store, llm)

    for _ in range(2):
        await extractor.extract_memories_from_message(USER_ID, "My favorite language is Rust", "user")

    rows = await store.select("user_memories", filters={"user_id": USER_ID})
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_invalid_payload_abandons_everything(store, caplog) -> None:
    bad = '{"facts": [{"key": "a", "value": "1", "category": "fact"}, {"key": "b", "value": "2", "category": "bogus"}]}'
    extractor, _, _ = make_extractor(store, FakeLLM(bad))

    with caplog.at_level(logging.WARNING):
        await extractor.extract_memories_from_message(USER_ID, "hello", "user")

    assert await store.select("user_memories") == []
    assert "abandoned" in caplog.text


@pytest.mark.asyncio
async def test_completion_failure_is_logged_not_raised(store) -> None:
    extractor, _, _ = make_extractor(store, FakeLLM(CompletionError("all providers down")))
    await extractor.extract_memories_from_message(USER_ID, "hello", "user")
    assert await store.select("user_memories") == []


@pytest.mark.asyncio
async def test_each_fact_is_written_independently(store, monkeypatch) -> None:
    llm = FakeLLM(extraction_reply([
        {"key": "city", "value": "Oslo", "category": "fact"},
        {"key": "editor", "value": "vim", "category": "preference"},
    ]))
    extractor, facts, _ = make_extractor(store, llm)

    original = facts.set_memory

    async def flaky_set(user_id, key, value, category="fact"):
        if key == "city":
            raise RuntimeError("write failed")
        return await original(user_id, key, value, category)

    monkeypatch.setattr(facts, "set_memory", flaky_set)

    await extractor.extract_memories_from_message(USER_ID, "I live in Oslo and use vim", "user")

    assert [f.key for f in await facts.get_all_memories(USER_ID)] == ["editor"]


@pytest.mark.asyncio
async def test_semantic_summary_is_embedded_and_stored(store) -> None:
    llm = FakeLLM(extraction_reply([], should_remember=True, summary=SUMMARY))
    extractor, _, semantic = make_extractor(store, llm)

    await extractor.extract_memories_from_message(USER_ID, "I write Rust", "user", chat_id="chat-9")

    results = await semantic.search(USER_ID, SUMMARY_VECTOR)
    assert [r.content for r in results] == [SUMMARY]
    assert results[0].source_chat_id == "chat-9"


@pytest.mark.asyncio
async def test_near_duplicate_summary_is_skipped(store) -> None:
    llm = FakeLLM(extraction_reply([], should_remember=True, summary=SUMMARY))
    extractor, _, _ = make_extractor(store, llm)

    await extractor.extract_memories_from_message(USER_ID, "I write Rust", "user")
    await extractor.extract_memories_from_message(USER_ID, "I write Rust", "user")

    assert len(await store.select("semantic_memories", filters={"user_id": USER_ID})) == 1


@pytest.mark.asyncio
async def test_summary_ignored_unless_should_remember(store) -> None:
    llm = FakeLLM(extraction_reply([], should_remember=False, summary=SUMMARY))
    embedder = FakeEmbedder()
    extractor, _, _ = make_extractor(store, llm, embedder)

    await extractor.extract_memories_from_message(USER_ID, "I write Rust", "user")

    assert embedder.calls == []
    assert await store.select("semantic_memories") == []


@pytest.mark.asyncio
async def test_embedding_failure_keeps_facts(store) -> None:
    llm = FakeLLM(extraction_reply([RUST_FACT], should_remember=True, summary=SUMMARY))
    extractor, facts, _ = make_extractor(store, llm, FakeEmbedder(fail=True))

    await extractor.extract_memories_from_message(USER_ID, "My favorite language is Rust", "user")

    assert len(await facts.get_all_memories(USER_ID)) == 1
    assert await store.select("semantic_memories") == []


@pytest.mark.asyncio
@pytest.mark.parametrize("message,role", [("My name is Ada", "assistant"), ("   ", "user"), ("", "user")])
async def test_skips_assistant_and_blank_messages(store, message: str, role: str) -> None:
    llm = FakeLLM(extraction_reply([RUST_FACT]))
    extractor, _, _ = make_extractor(store, llm)

    await extractor.extract_memories_from_message(USER_ID, message, role)

    assert llm.calls == []
    assert await store.select("user_memories") == []
