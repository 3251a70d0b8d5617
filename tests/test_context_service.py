"""Tests for the memory block injected into the system prompt."""

from unittest.mock import AsyncMock

import pytest

from conftest import USER_ID, FakeEmbedder
from exceptions import StorageError
from schemas import Fact, SemanticMemoryEntry
from services.context_service import ContextAssembler, render_facts, render_semantic
from services.memory_service import MemoryService
from services.semantic_memory_service import SemanticMemoryStore

RUST = [1.0, 0.0, 0.0, 0.0]


def test_render_facts_groups_by_category_in_first_seen_order() -> None:
    facts = [
        Fact(user_id=USER_ID, key="favorite_language", value="Rust", category="preference"),
        Fact(user_id=USER_ID, key="city", value="Oslo", category="fact"),
        Fact(user_id=USER_ID, key="editor", value="vim", category="preference"),
    ]
    assert render_facts(facts) == (
        "## User Information:\n"
        "**Preferences**: favorite_language: Rust, editor: vim\n"
        "**Facts**: city: Oslo\n"
    )


def test_render_semantic_numbers_entries() -> None:
    entries = [
        SemanticMemoryEntry(user_id=USER_ID, content="Likes Rust"),
        SemanticMemoryEntry(user_id=USER_ID, content="Lives in Oslo"),
    ]
    assert render_semantic(entries) == "## Relevant Context:\n1. Likes Rust\n2. Lives in Oslo\n"


def test_empty_sections_render_nothing() -> None:
    assert render_facts([]) == ""
    assert render_semantic([]) == ""


@pytest.fixture
def facts(store) -> MemoryService:
    return MemoryService(store)


@pytest.fixture
def semantic(store) -> SemanticMemoryStore:
    return SemanticMemoryStore(store)


@pytest.mark.asyncio
async def test_context_is_empty_when_nothing_is_known(facts, semantic) -> None:
    assembler = ContextAssembler(facts, semantic, FakeEmbedder())
    assert await assembler.get_memory_context(USER_ID, "hello") == ""


@pytest.mark.asyncio
async def test_context_combines_both_sections(facts, semantic) -> None:
    await facts.set_memory(USER_ID, "favorite_language", "Rust", "preference")
    await semantic.add(USER_ID, "Building a compiler in Rust", RUST)
    assembler = ContextAssembler(facts, semantic, FakeEmbedder({"what should I build?": RUST}))

    context = await assembler.get_memory_context(USER_ID, "what should I build?")

    assert context.startswith("## User Information:\n**Preferences**: favorite_language: Rust\n")
    assert "## Relevant Context:\n1. Building a compiler in Rust" in context


@pytest.mark.asyncio
async def test_semantic_only_context(facts, semantic) -> None:
    await semantic.add(USER_ID, "Building a compiler in Rust", RUST)
    assembler = ContextAssembler(facts, semantic, FakeEmbedder({"compiler": RUST}))

    context = await assembler.get_memory_context(USER_ID, "compiler")

    assert context == "## Relevant Context:\n1. Building a compiler in Rust\n"


@pytest.mark.asyncio
async def test_semantic_results_are_capped(facts, semantic) -> None:
    for i in range(5):
        await semantic.add(USER_ID, f"rust note {i}", RUST)
    assembler = ContextAssembler(facts, semantic, FakeEmbedder({"rust": RUST}), limit=3)

    context = await assembler.get_memory_context(USER_ID, "rust")

    assert "3. " in context
    assert "4. " not in context


@pytest.mark.asyncio
async def test_no_message_skips_semantic_lookup(facts, semantic) -> None:
    await facts.set_memory(USER_ID, "city", "Oslo")
    embedder = FakeEmbedder()
    assembler = ContextAssembler(facts, semantic, embedder)

    context = await assembler.get_memory_context(USER_ID)

    assert "city: Oslo" in context
    assert embedder.calls == []


@pytest.mark.asyncio
async def test_embedding_failure_degrades_to_facts_only(facts, semantic) -> None:
    await facts.set_memory(USER_ID, "favorite_language", "Rust", "preference")
    await semantic.add(USER_ID, "Building a compiler in Rust", RUST)
    assembler = ContextAssembler(facts, semantic, FakeEmbedder(fail=True))

    context = await assembler.get_memory_context(USER_ID, "what should I build?")

    assert context == "## User Information:\n**Preferences**: favorite_language: Rust\n"


@pytest.mark.asyncio
async def test_store_failure_returns_empty_string(semantic) -> None:
    broken = AsyncMock()
    broken.get_all_memories.side_effect = StorageError("connection refused")
    assembler = ContextAssembler(broken, semantic, FakeEmbedder())

    assert await assembler.get_memory_context(USER_ID, "hello") == ""
