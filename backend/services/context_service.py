"""
context_service.py — Builds the memory block injected into the system prompt.
Personalization is best-effort: this never raises.
"""

import logging

from config import MEMORY_MATCH_THRESHOLD, MEMORY_CONTEXT_LIMIT

logger = logging.getLogger(__name__)


def render_facts(facts) -> str:
    """'## User Information:' with one line per category, in first-seen order."""
    if not facts:
        return ""
    grouped: dict[str, list[str]] = {}
    for fact in facts:
        grouped.setdefault(fact.category, []).append(f"{fact.key}: {fact.value}")
    lines = ["## User Information:"]
    for category, entries in grouped.items():
        lines.append(f"**{category.capitalize()}s**: {', '.join(entries)}")
    return "\n".join(lines) + "\n"


def render_semantic(entries) -> str:
    if not entries:
        return ""
    lines = ["## Relevant Context:"]
    lines.extend(f"{idx}. {entry.content}" for idx, entry in enumerate(entries, start=1))
    return "\n".join(lines) + "\n"


class ContextAssembler:
    def __init__(
        self,
        memory_service,
        semantic_store,
        embedder,
        threshold: float = MEMORY_MATCH_THRESHOLD,
        limit: int = MEMORY_CONTEXT_LIMIT,
    ):
        self.memory = memory_service
        self.semantic = semantic_store
        self.embedder = embedder
        self.threshold = threshold
        self.limit = limit

    async def _relevant(self, user_id: str, current_message: str | None) -> list:
        if not current_message or not current_message.strip():
            return []
        try:
            query_embedding = await self.embedder.embed(current_message)
            return await self.semantic.search(user_id, query_embedding, threshold=self.threshold, limit=self.limit)
        except Exception as e:
            logger.warning(f"Semantic retrieval skipped for user {user_id}: {e}")
            return []

    async def get_memory_context(self, user_id: str, current_message: str | None = None) -> str:
        """Facts grouped by category plus the top semantic matches; '' when there is nothing to add."""
        try:
            facts = await self.memory.get_all_memories(user_id)
            relevant = await self._relevant(user_id, current_message)
            sections = [s for s in (render_facts(facts), render_semantic(relevant)) if s]
            return "\n".join(sections)
        except Exception as e:
            logger.error(f"Error getting memory context for user {user_id}: {e}")
            return ""
