"""
Order cache.

Write-through, in-memory mirror of the `orders` collection. This is the
only code path that reads or writes order records. Reads are synchronous
snapshots; mutations persist first and notify subscribers afterwards, so a
subscriber never sees an uncommitted change.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, Union
import structlog

from config import settings
from models.order import OrderRecord
from services.store import PersistentStore, ORDERS_COLLECTION, get_store

logger = structlog.get_logger(__name__)

KeyExtractor = Callable[[Mapping[str, Any]], Any]
Listener = Callable[[list[OrderRecord]], Any]


def normalize_order_number(value: Any) -> str:
    """Coerce to string and trim. None becomes ""."""
    if value is None:
        return ""
    return str(value).strip()


def column_extractor(column: str) -> KeyExtractor:
    """Key extractor reading one named column from a row."""
    def extract(row: Mapping[str, Any]) -> Any:
        return row.get(column) if row else None
    return extract


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class OrderCache:
    """
    Single source of truth for order records.

    Call `await init()` before trusting reads to reflect persisted state.
    Mutations are serialized with an asyncio lock because store calls are
    suspension points where other requests can interleave.
    """

    def __init__(self, store: PersistentStore):
        self.store = store
        self._records: dict[str, OrderRecord] = {}
        self._listeners: dict[int, Listener] = {}
        self._next_listener_id = 0
        self._lock = asyncio.Lock()
        self.initialized = False

    # ===================
    # LIFECYCLE
    # ===================

    async def init(self) -> None:
        """
        Load every persisted order once.

        Later calls are no-ops. A store failure propagates and leaves the
        cache uninitialized so the next call retries.
        """
        if self.initialized:
            return
        async with self._lock:
            if self.initialized:
                return
            stored = await self.store.get_all(ORDERS_COLLECTION)
            loaded: dict[str, OrderRecord] = {}
            for raw in stored:
                key = normalize_order_number(raw.get("order_number") if raw else None)
                if not key:
                    continue
                loaded[key] = OrderRecord(
                    order_number=key,
                    row=raw.get("row"),
                    created_at=raw.get("created_at") or _now_iso(),
                    printed_at=raw.get("printed_at") or None,
                )
            self._records = loaded
            self.initialized = True
            logger.info("order_cache_initialized", count=len(loaded))

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(self) -> list[OrderRecord]:
        """Snapshot of every record, in insertion order."""
        return [record.model_copy() for record in self._records.values()]

    def get(self, order_number: Any) -> Optional[OrderRecord]:
        record = self._records.get(normalize_order_number(order_number))
        return record.model_copy() if record is not None else None

    def printed_order_numbers(self) -> list[str]:
        return [key for key, record in self._records.items() if record.is_printed]

    def __len__(self) -> int:
        return len(self._records)

    # ===================
    # MUTATIONS
    # ===================

    async def bulk_upsert(
        self,
        rows: Iterable[Mapping[str, Any]],
        key_extractor: Optional[KeyExtractor] = None
    ) -> int:
        """
        Insert new orders and refresh the row payload of known ones.

        Only newly created records count towards the returned total, and
        subscribers are notified once, only when that total is non-zero.
        A changed payload on an existing order is persisted silently.

        Args:
            rows: Imported row payloads
            key_extractor: Returns the raw order number of a row
                (defaults to the configured order number column)

        Returns:
            Number of newly created records
        """
        extract = key_extractor or column_extractor(settings.order_number_column)
        created = 0
        updated = 0
        received = 0

        async with self._lock:
            try:
                for row in rows:
                    received += 1
                    key = normalize_order_number(extract(row) if row is not None else None)
                    if not key:
                        continue

                    existing = self._records.get(key)
                    if existing is None:
                        record = OrderRecord(
                            order_number=key,
                            row=dict(row),
                            created_at=_now_iso(),
                            printed_at=None,
                        )
                        await self.store.put(ORDERS_COLLECTION, record.to_store())
                        self._records[key] = record
                        created += 1
                    elif existing.row != dict(row):
                        replaced = existing.model_copy(update={"row": dict(row)})
                        await self.store.put(ORDERS_COLLECTION, replaced.to_store())
                        self._records[key] = replaced
                        updated += 1
            finally:
                # Records committed before a failing put are still announced
                logger.info(
                    "orders_upserted",
                    received=received,
                    created=created,
                    updated=updated,
                    total_cached=len(self._records)
                )
                if created > 0:
                    self._emit()

        return created

    async def mark_printed(
        self,
        order_number: Any,
        timestamp: Union[datetime, str, None] = None
    ) -> bool:
        """Set printed_at (default now). False when the order is unknown."""
        if isinstance(timestamp, datetime):
            printed_at = timestamp.isoformat()
        else:
            printed_at = timestamp or _now_iso()
        return await self._set_printed_at(order_number, printed_at)

    async def clear_printed(self, order_number: Any) -> bool:
        """Clear printed_at. False when the order is unknown."""
        return await self._set_printed_at(order_number, None)

    async def _set_printed_at(self, order_number: Any, printed_at: Optional[str]) -> bool:
        key = normalize_order_number(order_number)
        async with self._lock:
            existing = self._records.get(key)
            if existing is None:
                logger.debug("order_not_cached", order_number=key)
                return False
            updated = existing.model_copy(update={"printed_at": printed_at})
            await self.store.put(ORDERS_COLLECTION, updated.to_store())
            self._records[key] = updated
            logger.info("order_print_status_changed", order_number=key, printed_at=printed_at)
            self._emit()
            return True

    async def bulk_delete(self, order_numbers: Iterable[Any]) -> int:
        """
        Delete orders by number. Unknown numbers are ignored.

        Returns:
            Number of records removed
        """
        deleted = 0
        async with self._lock:
            for raw in order_numbers:
                key = normalize_order_number(raw)
                if key not in self._records:
                    continue
                await self.store.delete(ORDERS_COLLECTION, key)
                del self._records[key]
                deleted += 1

            logger.info("orders_deleted", deleted=deleted, total_cached=len(self._records))
            if deleted > 0:
                self._emit()
        return deleted

    # ===================
    # SUBSCRIBERS
    # ===================

    def on_update(self, callback: Listener) -> Callable[[], None]:
        """
        Register a subscriber called with a get_all() snapshot after every
        committed mutation.

        Returns:
            Function that removes the subscriber
        """
        listener_id = self._next_listener_id
        self._next_listener_id += 1
        self._listeners[listener_id] = callback

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return unsubscribe

    def _emit(self) -> None:
        for callback in list(self._listeners.values()):
            try:
                callback(self.get_all())
            except Exception as e:
                logger.warning(
                    "order_cache_listener_failed",
                    error=str(e),
                    error_type=type(e).__name__
                )


# Singleton instance
_order_cache: Optional[OrderCache] = None


def get_order_cache() -> OrderCache:
    """Get or create OrderCache instance."""
    global _order_cache
    if _order_cache is None:
        _order_cache = OrderCache(get_store())
    return _order_cache
