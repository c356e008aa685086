"""
Persistent key-value store.

Every collection is a set of JSON-compatible records addressed by one
key field. The cache and the custom label persister only talk to the
store through this contract:

    get_all(collection) -> list[dict]
    get(collection, key) -> dict | None
    put(collection, record)
    delete(collection, key)

All calls are coroutines. Failures surface as DatabaseError (the
operation failed) or StoreUnavailableError (the backend is disabled or
unreachable); nothing here retries.
"""

import asyncio
import copy
from abc import ABC, abstractmethod
from typing import Any, Optional
import structlog

from config import settings
from exceptions import DatabaseError, StoreUnavailableError

logger = structlog.get_logger(__name__)

ORDERS_COLLECTION = "orders"
SETTINGS_COLLECTION = "settings"

# Key field per collection
KEY_FIELDS = {
    ORDERS_COLLECTION: "order_number",
    SETTINGS_COLLECTION: "key",
}

SUPABASE_PAGE_SIZE = 1000


def key_field_for(collection: str) -> str:
    """Return the key field for a collection (defaults to "key")."""
    return KEY_FIELDS.get(collection, "key")


class PersistentStore(ABC):
    """Asynchronous key-value store contract."""

    @abstractmethod
    async def get_all(self, collection: str) -> list[dict]:
        ...

    @abstractmethod
    async def get(self, collection: str, key: str) -> Optional[dict]:
        ...

    @abstractmethod
    async def put(self, collection: str, record: dict) -> None:
        ...

    @abstractmethod
    async def delete(self, collection: str, key: str) -> None:
        ...

    def _key_of(self, collection: str, record: dict) -> str:
        field = key_field_for(collection)
        key = record.get(field)
        if key is None or str(key) == "":
            raise DatabaseError("put", f"record has no '{field}'", {"collection": collection})
        return str(key)


class InMemoryStore(PersistentStore):
    """
    Process-local store.

    Records are deep-copied on the way in and out so callers never share
    mutable state with the store. `available` can be switched off to
    simulate a disabled storage backend.
    """

    def __init__(self, available: bool = True):
        self._collections: dict[str, dict[str, dict]] = {}
        self.available = available

    def _check_available(self) -> None:
        if not self.available:
            raise StoreUnavailableError("memory", "Storage is disabled")

    async def get_all(self, collection: str) -> list[dict]:
        self._check_available()
        records = self._collections.get(collection, {})
        return [copy.deepcopy(r) for r in records.values()]

    async def get(self, collection: str, key: str) -> Optional[dict]:
        self._check_available()
        record = self._collections.get(collection, {}).get(str(key))
        return copy.deepcopy(record) if record is not None else None

    async def put(self, collection: str, record: dict) -> None:
        self._check_available()
        key = self._key_of(collection, record)
        self._collections.setdefault(collection, {})[key] = copy.deepcopy(record)

    async def delete(self, collection: str, key: str) -> None:
        self._check_available()
        self._collections.get(collection, {}).pop(str(key), None)


class SupabaseStore(PersistentStore):
    """
    Supabase-backed store: one table per collection.

    The supabase client is blocking, so each call runs in a worker thread.
    """

    def __init__(self, client: Any = None):
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            # Imported lazily so the memory backend never needs credentials
            from config.database import get_supabase_client
            self._client = get_supabase_client()
        return self._client

    async def _run(self, operation: str, collection: str, fn, *args) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except StoreUnavailableError:
            raise
        except Exception as e:
            logger.error(
                "store_operation_failed",
                operation=operation,
                collection=collection,
                error=str(e),
                error_type=type(e).__name__
            )
            raise DatabaseError(operation, str(e), {"collection": collection}) from e

    def _select_all(self, collection: str) -> list[dict]:
        rows: list[dict] = []
        start = 0
        while True:
            result = (
                self.client.table(collection)
                .select("*")
                .range(start, start + SUPABASE_PAGE_SIZE - 1)
                .execute()
            )
            batch = result.data or []
            rows.extend(batch)
            if len(batch) < SUPABASE_PAGE_SIZE:
                return rows
            start += SUPABASE_PAGE_SIZE

    def _select_one(self, collection: str, key: str) -> Optional[dict]:
        result = (
            self.client.table(collection)
            .select("*")
            .eq(key_field_for(collection), key)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def _upsert(self, collection: str, record: dict) -> None:
        (
            self.client.table(collection)
            .upsert(record, on_conflict=key_field_for(collection))
            .execute()
        )

    def _delete(self, collection: str, key: str) -> None:
        (
            self.client.table(collection)
            .delete()
            .eq(key_field_for(collection), key)
            .execute()
        )

    async def get_all(self, collection: str) -> list[dict]:
        logger.debug("store_get_all", collection=collection)
        return await self._run("select", collection, self._select_all, collection)

    async def get(self, collection: str, key: str) -> Optional[dict]:
        return await self._run("select", collection, self._select_one, collection, str(key))

    async def put(self, collection: str, record: dict) -> None:
        self._key_of(collection, record)
        await self._run("upsert", collection, self._upsert, collection, record)

    async def delete(self, collection: str, key: str) -> None:
        await self._run("delete", collection, self._delete, collection, str(key))


# Singleton instance
_store: Optional[PersistentStore] = None


def get_store() -> PersistentStore:
    """Get or create the configured store."""
    global _store
    if _store is None:
        if settings.storage_backend == "supabase":
            _store = SupabaseStore()
        else:
            _store = InMemoryStore()
        logger.info("store_created", backend=settings.storage_backend)
    return _store
