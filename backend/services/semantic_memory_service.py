"""
semantic_memory_service.py — Embedded free-text memories
Entries are immutable once written: create, similarity search, and the
retention prune are the only operations. Similarity search runs in the
store (pgvector RPC on Supabase) and is scoped to one user there; results
are re-checked against the threshold and owner before they are returned.
"""

import logging

from config import MEMORY_MATCH_THRESHOLD, SEMANTIC_MEMORY_MAX_ENTRIES
from schemas import SemanticMemoryEntry

logger = logging.getLogger(__name__)

TABLE = "semantic_memories"


class SemanticMemoryStore:
    def __init__(self, store, max_entries: int = SEMANTIC_MEMORY_MAX_ENTRIES):
        self.store = store
        self.max_entries = max_entries

    async def add(
        self,
        user_id: str,
        content: str,
        embedding: list[float],
        source_chat_id: str | None = None,
        source_message_id: str | None = None,
    ) -> SemanticMemoryEntry:
        content = (content or "").strip()
        if not content:
            raise ValueError("Semantic memory content is required")
        if not embedding:
            raise ValueError("Semantic memory embedding is required")

        row = await self.store.insert(TABLE, {
            "user_id": user_id,
            "content": content,
            "embedding": embedding,
            "source_chat_id": source_chat_id,
            "source_message_id": source_message_id,
        })
        return SemanticMemoryEntry(**row) if row else SemanticMemoryEntry(
            user_id=user_id,
            content=content,
            embedding=embedding,
            source_chat_id=source_chat_id,
            source_message_id=source_message_id,
        )

    async def search(
        self,
        user_id: str,
        query_embedding: list[float],
        threshold: float = MEMORY_MATCH_THRESHOLD,
        limit: int = 5,
    ) -> list[SemanticMemoryEntry]:
        """Entries at or above `threshold`, most similar first, ties broken by recency."""
        if limit <= 0:
            return []
        rows = await self.store.rpc("search_semantic_memories", {
            "user_id": user_id,
            "query_embedding": query_embedding,
            "match_threshold": threshold,
            "match_count": limit,
        })
        entries = [
            SemanticMemoryEntry(**r) for r in rows
            if r.get("user_id") == user_id and (r.get("similarity") or 0.0) >= threshold
        ]
        entries.sort(key=lambda e: e.created_at or "", reverse=True)
        entries.sort(key=lambda e: e.similarity or 0.0, reverse=True)
        return entries[:limit]

    async def prune(self, user_id: str) -> int:
        """Drop the user's oldest entries beyond the retention cap. Returns how many were removed."""
        if self.max_entries <= 0:
            return 0
        result = await self.store.rpc("prune_semantic_memories", {
            "user_id": user_id,
            "keep_count": self.max_entries,
        })
        removed = int(result[0]) if result and isinstance(result[0], (int, float)) else 0
        if removed:
            logger.info(f"Pruned {removed} semantic memories for user {user_id}")
        return removed
