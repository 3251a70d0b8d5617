"""
memory_manager.py — Facade over the memory subsystem
Wires the fact store, semantic store, extractor and context assembler
around one backing store, one completion router and one embedding client.
"""

from fastapi import Depends

from database import get_store
from services.context_service import ContextAssembler
from services.embedding_service import get_embedding_client
from services.llm_router import get_llm_router
from services.memory_extractor import MemoryExtractor
from services.memory_service import MemoryService
from services.semantic_memory_service import SemanticMemoryStore


class MemoryManager:
    def __init__(self, store, llm_router, embedder):
        self.facts = MemoryService(store)
        self.semantic = SemanticMemoryStore(store)
        self.extractor = MemoryExtractor(llm_router, self.facts, self.semantic, embedder)
        self.context = ContextAssembler(self.facts, self.semantic, embedder)

    # Key/value facts
    async def set_memory(self, user_id: str, key: str, value: str, category: str = "fact"):
        return await self.facts.set_memory(user_id, key, value, category)

    async def get_memory(self, user_id: str, key: str):
        return await self.facts.get_memory(user_id, key)

    async def get_all_memories(self, user_id: str):
        return await self.facts.get_all_memories(user_id)

    async def get_memories_by_category(self, user_id: str, category: str):
        return await self.facts.get_memories_by_category(user_id, category)

    async def delete_memory(self, user_id: str, key: str) -> None:
        await self.facts.delete_memory(user_id, key)

    # Extraction and prompt context
    async def extract_memories_from_message(self, user_id: str, message: str, role: str,
                                            chat_id: str | None = None, message_id: str | None = None) -> None:
        await self.extractor.extract_memories_from_message(user_id, message, role, chat_id, message_id)

    async def get_memory_context(self, user_id: str, current_message: str | None = None) -> str:
        return await self.context.get_memory_context(user_id, current_message)


def get_memory_manager(
    store=Depends(get_store),
    llm_router=Depends(get_llm_router),
    embedder=Depends(get_embedding_client),
) -> MemoryManager:
    """FastAPI dependency: a manager bound to the request's collaborators."""
    return MemoryManager(store, llm_router, embedder)
