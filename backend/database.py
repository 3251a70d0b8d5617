import os
import math
import asyncio
import logging
import threading
from datetime import datetime, timezone

from sqlalchemy import create_engine, select, delete, update, DateTime
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy.dialects import postgresql, sqlite

from config import DATABASE_URL, DATA_BACKEND
from exceptions import StorageError

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(url: str = DATABASE_URL):
    """Build an engine; SQLite gets a thread-agnostic connection, Postgres a small pool."""
    engine_args = {}
    if url.startswith("sqlite"):
        engine_args["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            engine_args["poolclass"] = StaticPool
    else:
        engine_args.update({
            "pool_size": 5,
            "max_overflow": 10,
            "pool_timeout": 30,
            "pool_recycle": 1800,
        })
    return create_engine(url, echo=False, **engine_args)


try:
    engine = make_engine(DATABASE_URL)
except Exception as e:
    logger.error(f"Failed to create engine: {e}")
    raise e


def init_db(bind=None):
    """Create the data/ directory if needed, then create all tables."""
    bind = bind or engine
    if str(bind.url).startswith("sqlite:///./"):
        os.makedirs("data", exist_ok=True)

    # Import all models so they register with Base.metadata
    import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=bind)
        logger.info("Database initialized successfully.")
    except Exception as e:
        logger.error(f"Error during database initialization: {e}")


def cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


def _jsonable(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class SqlStore:
    """The backing-store interface over SQLAlchemy, for local development and tests.

    Mirrors SupabaseRest: equality filters (None means IS NULL), PostgREST-style
    order strings, native ON CONFLICT upserts, and the two memory RPCs that the
    hosted database implements as SQL functions.
    """

    def __init__(self, bind=None):
        self.engine = bind or engine
        # SQLite shares one connection across threads; serialise access to it
        self._lock = threading.Lock() if self.engine.dialect.name == "sqlite" else None

    # ------------------------------------------------------------------
    def _table(self, name: str):
        import models  # noqa: F401
        table = Base.metadata.tables.get(name)
        if table is None:
            raise StorageError(f"Unknown table: {name}")
        return table

    @staticmethod
    def _where(table, filters: dict | None) -> list:
        clauses = []
        for key, value in (filters or {}).items():
            if key not in table.c:
                raise StorageError(f"Unknown column {table.name}.{key}")
            column = table.c[key]
            clauses.append(column.is_(None) if value is None else column == value)
        return clauses

    @staticmethod
    def _order(table, order: str | None) -> list:
        if not order:
            return []
        clauses = []
        for part in order.split(","):
            tokens = part.strip().split(".")
            column = table.c[tokens[0]]
            clause = column.desc() if "desc" in tokens[1:] else column.asc()
            if "nullslast" in tokens[1:]:
                clause = clause.nullslast()
            elif "nullsfirst" in tokens[1:]:
                clause = clause.nullsfirst()
            clauses.append(clause)
        return clauses

    @staticmethod
    def _coerce(table, row: dict) -> dict:
        """ISO timestamps arrive as strings (the PostgREST wire format); bind them as datetimes."""
        coerced = dict(row)
        for key, value in row.items():
            if isinstance(value, str) and key in table.c and isinstance(table.c[key].type, DateTime):
                coerced[key] = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return coerced

    @staticmethod
    def _row(row) -> dict:
        return {k: _jsonable(v) for k, v in row._mapping.items()}

    def _insert_for_dialect(self, table):
        if self.engine.dialect.name == "postgresql":
            return postgresql.insert(table)
        if self.engine.dialect.name == "sqlite":
            return sqlite.insert(table)
        raise StorageError(f"Upsert not supported on {self.engine.dialect.name}")

    # ------------------------------------------------------------------
    def _select(self, table: str, filters: dict | None = None, order: str | None = None,
                limit: int | None = None, columns: str = "*") -> list[dict]:
        t = self._table(table)
        stmt = select(t).where(*self._where(t, filters)).order_by(*self._order(t, order))
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            with self.engine.connect() as conn:
                return [self._row(r) for r in conn.execute(stmt)]
        except SQLAlchemyError as e:
            raise StorageError(f"select {table} failed: {e}") from e

    def _insert(self, table: str, row: dict) -> dict:
        t = self._table(table)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(t.insert().values(**self._coerce(t, row)))
                pk = dict(zip([c.name for c in t.primary_key.columns], result.inserted_primary_key))
                created = conn.execute(select(t).where(*self._where(t, pk))).first()
                return self._row(created) if created else {}
        except SQLAlchemyError as e:
            raise StorageError(f"insert {table} failed: {e}") from e

    def _upsert(self, table: str, row: dict, on_conflict: str) -> dict:
        t = self._table(table)
        keys = [k.strip() for k in on_conflict.split(",")]
        stmt = self._insert_for_dialect(t).values(**self._coerce(t, row))
        changes = {k: stmt.excluded[k] for k in row if k not in keys}
        if "updated_at" in t.c and "updated_at" not in changes:
            changes["updated_at"] = datetime.now(timezone.utc)
        stmt = stmt.on_conflict_do_update(index_elements=keys, set_=changes)
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
                saved = conn.execute(select(t).where(*self._where(t, {k: row[k] for k in keys}))).first()
                return self._row(saved) if saved else {}
        except SQLAlchemyError as e:
            raise StorageError(f"upsert {table} failed: {e}") from e

    def _update(self, table: str, filters: dict, data: dict) -> list[dict]:
        if not filters:
            raise StorageError("update requires at least one filter")
        t = self._table(table)
        pk = list(t.primary_key.columns)[0]
        try:
            with self.engine.begin() as conn:
                ids = [r[0] for r in conn.execute(select(pk).where(*self._where(t, filters)))]
                if not ids:
                    return []
                conn.execute(update(t).where(pk.in_(ids)).values(**self._coerce(t, data)))
                return [self._row(r) for r in conn.execute(select(t).where(pk.in_(ids)))]
        except SQLAlchemyError as e:
            raise StorageError(f"update {table} failed: {e}") from e

    def _delete(self, table: str, filters: dict) -> None:
        if not filters:
            raise StorageError("delete requires at least one filter")
        t = self._table(table)
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(t).where(*self._where(t, filters)))
        except SQLAlchemyError as e:
            raise StorageError(f"delete {table} failed: {e}") from e

    def _rpc(self, name: str, args: dict) -> list:
        if name == "search_semantic_memories":
            return self._search_semantic_memories(**args)
        if name == "prune_semantic_memories":
            return [self._prune_semantic_memories(**args)]
        raise StorageError(f"Unknown rpc: {name}")

    # ------------------------------------------------------------------
    # Async interface: queries run on a worker thread so the event loop keeps serving.
    def _locked(self, fn, *args, **kwargs):
        if self._lock is None:
            return fn(*args, **kwargs)
        with self._lock:
            return fn(*args, **kwargs)

    async def _run(self, fn, *args, **kwargs):
        return await asyncio.to_thread(self._locked, fn, *args, **kwargs)

    async def select(self, table: str, filters: dict | None = None, order: str | None = None,
                     limit: int | None = None, columns: str = "*") -> list[dict]:
        return await self._run(self._select, table, filters, order, limit, columns)

    async def insert(self, table: str, row: dict) -> dict:
        return await self._run(self._insert, table, row)

    async def upsert(self, table: str, row: dict, on_conflict: str) -> dict:
        return await self._run(self._upsert, table, row, on_conflict)

    async def update(self, table: str, filters: dict, data: dict) -> list[dict]:
        return await self._run(self._update, table, filters, data)

    async def delete(self, table: str, filters: dict) -> None:
        return await self._run(self._delete, table, filters)

    async def rpc(self, name: str, args: dict) -> list:
        return await self._run(self._rpc, name, args)

    # ------------------------------------------------------------------
    def _search_semantic_memories(self, user_id: str, query_embedding: list[float],
                                  match_threshold: float, match_count: int) -> list[dict]:
        t = self._table("semantic_memories")
        try:
            with self.engine.connect() as conn:
                rows = [self._row(r) for r in conn.execute(select(t).where(t.c.user_id == user_id))]
        except SQLAlchemyError as e:
            raise StorageError(f"search_semantic_memories failed: {e}") from e

        matches = []
        for row in rows:
            embedding = row.pop("embedding")
            similarity = cosine_similarity(query_embedding, embedding)
            if similarity >= match_threshold:
                matches.append({**row, "similarity": similarity})
        matches.sort(key=lambda r: r["created_at"] or "", reverse=True)
        matches.sort(key=lambda r: r["similarity"], reverse=True)
        return matches[:match_count]

    def _prune_semantic_memories(self, user_id: str, keep_count: int) -> int:
        t = self._table("semantic_memories")
        try:
            with self.engine.begin() as conn:
                stale = select(t.c.id).where(t.c.user_id == user_id) \
                    .order_by(t.c.created_at.desc()).offset(keep_count)
                ids = [r.id for r in conn.execute(stale)]
                if ids:
                    conn.execute(delete(t).where(t.c.user_id == user_id, t.c.id.in_(ids)))
                return len(ids)
        except SQLAlchemyError as e:
            raise StorageError(f"prune_semantic_memories failed: {e}") from e


_store = None


def get_store():
    """FastAPI dependency: the backing store selected by DATA_BACKEND."""
    global _store
    if _store is None:
        if DATA_BACKEND == "sql":
            _store = SqlStore(engine)
        else:
            from supabase_rest import SupabaseRest
            _store = SupabaseRest()
    return _store
