"""
supabase_rest.py — HTTP-based data store using Supabase's PostgREST API.
Async httpx client with the service-role key; every call carries a bounded
timeout and surfaces failures as StorageError.
"""
import logging
from urllib.parse import quote

import httpx

from config import SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY, STORE_TIMEOUT_SECONDS
from exceptions import StorageError

logger = logging.getLogger(__name__)


def _encode(value) -> str:
    """Render a filter value as a PostgREST operator expression."""
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{quote(str(value), safe='')}"


class SupabaseRest:
    """Row-store operations over PostgREST: select, insert, upsert, update, delete, rpc."""

    def __init__(
        self,
        url: str = SUPABASE_URL,
        service_key: str = SUPABASE_SERVICE_ROLE_KEY,
        timeout: float = STORE_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = f"{url.rstrip('/')}/rest/v1"
        self.service_key = service_key
        self.timeout = timeout
        self._transport = transport

    def _headers(self, prefer: str = "return=representation") -> dict:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
            "Prefer": prefer,
        }

    @staticmethod
    def _query(filters: dict | None) -> list[str]:
        return [f"{key}={_encode(value)}" for key, value in (filters or {}).items()]

    async def _request(self, method: str, url: str, *, prefer: str = "return=representation", json=None):
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.request(method, url, headers=self._headers(prefer), json=json)
                resp.raise_for_status()
                if not resp.content:
                    return []
                return resp.json()
        except httpx.TimeoutException as e:
            raise StorageError(f"{method} {url.split('?')[0]} timed out") from e
        except httpx.HTTPStatusError as e:
            raise StorageError(f"{method} {url.split('?')[0]} failed: {e.response.status_code} {e.response.text}") from e
        except httpx.HTTPError as e:
            raise StorageError(f"{method} {url.split('?')[0]} failed: {e}") from e

    async def select(
        self,
        table: str,
        filters: dict | None = None,
        order: str | None = None,
        limit: int | None = None,
        columns: str = "*",
    ) -> list[dict]:
        """Select rows matching equality filters. `order` uses PostgREST syntax, e.g. 'updated_at.desc'."""
        parts = [f"select={columns}", *self._query(filters)]
        if order:
            parts.append(f"order={order}")
        if limit is not None:
            parts.append(f"limit={int(limit)}")
        url = f"{self.base_url}/{table}?{'&'.join(parts)}"
        return await self._request("GET", url)

    async def insert(self, table: str, row: dict) -> dict:
        """Insert a row and return the created record."""
        result = await self._request("POST", f"{self.base_url}/{table}", json=row)
        return result[0] if isinstance(result, list) and result else {}

    async def upsert(self, table: str, row: dict, on_conflict: str) -> dict:
        """Insert or merge on the given unique columns (native ON CONFLICT)."""
        url = f"{self.base_url}/{table}?on_conflict={on_conflict}"
        result = await self._request(
            "POST", url,
            prefer="resolution=merge-duplicates,return=representation",
            json=row,
        )
        return result[0] if isinstance(result, list) and result else {}

    async def update(self, table: str, filters: dict, data: dict) -> list[dict]:
        """Update rows matching the filters; returns the updated rows."""
        if not filters:
            raise StorageError("update requires at least one filter")
        url = f"{self.base_url}/{table}?{'&'.join(self._query(filters))}"
        return await self._request("PATCH", url, json=data)

    async def delete(self, table: str, filters: dict) -> None:
        """Delete rows matching the filters."""
        if not filters:
            raise StorageError("delete requires at least one filter")
        url = f"{self.base_url}/{table}?{'&'.join(self._query(filters))}"
        await self._request("DELETE", url, prefer="return=minimal")

    async def rpc(self, name: str, args: dict) -> list[dict]:
        """Call a Postgres function exposed by PostgREST."""
        result = await self._request("POST", f"{self.base_url}/rpc/{name}", json=args)
        if result is None:
            return []
        return result if isinstance(result, list) else [result]
