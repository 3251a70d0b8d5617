"""
memory_service.py — Per-user key/value memory facts
Typed access to the user_memories table. Every query is filtered by user_id
and writes are upserts on (user_id, key) using the store's native conflict
resolution, so concurrent writers resolve last-write-wins.
"""

from datetime import datetime, timezone

from schemas import Fact, MEMORY_CATEGORIES

TABLE = "user_memories"


class MemoryService:
    def __init__(self, store):
        self.store = store

    @staticmethod
    def _validate(key: str, value: str, category: str) -> tuple[str, str]:
        key = (key or "").strip()
        value = (value or "").strip()
        if not key or not value:
            raise ValueError("Key and value are required")
        if category not in MEMORY_CATEGORIES:
            raise ValueError(f"Invalid category: {category}")
        return key, value

    async def set_memory(self, user_id: str, key: str, value: str, category: str = "fact") -> Fact:
        """Upsert a memory fact; the latest write for a key wins."""
        key, value = self._validate(key, value, category)
        row = await self.store.upsert(
            TABLE,
            {
                "user_id": user_id,
                "key": key,
                "value": value,
                "category": category,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
            on_conflict="user_id,key",
        )
        return Fact(**row) if row else Fact(user_id=user_id, key=key, value=value, category=category)

    async def get_memory(self, user_id: str, key: str) -> Fact | None:
        """Get a single fact, or None."""
        rows = await self.store.select(TABLE, filters={"user_id": user_id, "key": key.strip()}, limit=1)
        return Fact(**rows[0]) if rows else None

    async def get_all_memories(self, user_id: str) -> list[Fact]:
        """All facts for the user, most recently updated first."""
        rows = await self.store.select(TABLE, filters={"user_id": user_id}, order="updated_at.desc")
        return [Fact(**r) for r in rows]

    async def get_memories_by_category(self, user_id: str, category: str) -> list[Fact]:
        rows = await self.store.select(
            TABLE,
            filters={"user_id": user_id, "category": category},
            order="updated_at.desc",
        )
        return [Fact(**r) for r in rows]

    async def delete_memory(self, user_id: str, key: str) -> None:
        """Remove a fact. A missing key is not an error."""
        await self.store.delete(TABLE, {"user_id": user_id, "key": key.strip()})
