"""
Debounced, change-detecting persistence for an editable ordered list.

The persister mirrors the list being edited (one slot per item, addressed
by index), coalesces bursts of edits with a single-slot scheduler, and
writes only when the serialized list differs from what was last saved.

    persister.mark_dirty(0, {"count": 3})      # schedule save in 1000 ms
    persister.mark_dirty(0, {"count": 1})      # reschedule, back to original
    # timer fires -> serialization equals last save -> no write
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Generic, Iterable, Optional, TypeVar, Union
from pydantic import BaseModel, ValidationError
import structlog

from config import settings
from services.scheduler import AsyncioScheduler, Scheduler
from services.store import PersistentStore, SETTINGS_COLLECTION

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


class DiffSavePersister(Generic[T]):
    """
    Mirror + debounce + diff-save for a list of pydantic items.

    The list is stored as one JSON string under `key` in `collection`.
    """

    def __init__(
        self,
        store: PersistentStore,
        key: str,
        item_model: type[T],
        scheduler: Optional[Scheduler] = None,
        collection: str = SETTINGS_COLLECTION,
        save_delay_ms: Optional[int] = None,
        fast_flush_ms: Optional[int] = None
    ):
        self.store = store
        self.key = key
        self.item_model = item_model
        self.scheduler = scheduler or AsyncioScheduler()
        self.collection = collection
        self.save_delay_ms = (
            settings.custom_label_save_delay_ms if save_delay_ms is None else save_delay_ms
        )
        self.fast_flush_ms = (
            settings.custom_label_fast_flush_ms if fast_flush_ms is None else fast_flush_ms
        )

        self._mirror: list[T] = []
        self._last_saved: Optional[str] = None
        self.dirty = False
        self.writes = 0
        self._save_lock = asyncio.Lock()

    # ===================
    # MIRROR
    # ===================

    def __len__(self) -> int:
        return len(self._mirror)

    def items(self) -> list[T]:
        """Copy of the exported mirror, in list order."""
        return [item.model_copy() for item in self._mirror]

    def _coerce(self, item: Union[T, dict]) -> T:
        if isinstance(item, self.item_model):
            return item.model_copy()
        return self.item_model.model_validate(item)

    def _ensure_slot(self, index: int) -> None:
        """Default-populate every slot up to `index`."""
        while len(self._mirror) <= index:
            self._mirror.append(self.item_model())

    def mark_dirty(self, index: int, patch: dict[str, Any], fast: bool = False) -> T:
        """
        Merge `patch` into the slot at `index` and schedule a save.

        Args:
            index: Slot position (slots are created on first touch)
            patch: Field values to merge, validated through the item model
            fast: Use the shorter flush delay (blur/commit events)

        Returns:
            The updated item
        """
        if index < 0:
            raise IndexError(f"negative slot index {index}")
        self._ensure_slot(index)
        current = self._mirror[index]
        updated = self.item_model.model_validate({**current.model_dump(), **patch})
        self._mirror[index] = updated
        self.dirty = True
        self.schedule_save(self.fast_flush_ms if fast else self.save_delay_ms)
        return updated.model_copy()

    def seed(self, items: Iterable[Union[T, dict]]) -> None:
        """Replace the mirror without marking it dirty or scheduling a save."""
        self._mirror = [self._coerce(item) for item in items]

    def rebuild_from_source(self, items: Iterable[Union[T, dict]]) -> None:
        """
        Replace the mirror with the current editable state.

        Used when the list length changed outside mark_dirty (add, remove,
        replace). The rebuilt state is not known to match the last save,
        so it is always marked dirty.
        """
        self._mirror = [self._coerce(item) for item in items]
        self.dirty = True
        self.schedule_save(self.save_delay_ms)

    # ===================
    # PERSISTENCE
    # ===================

    def serialize(self) -> str:
        return json.dumps(
            [item.model_dump(mode="json") for item in self._mirror],
            sort_keys=True,
            ensure_ascii=False,
        )

    def schedule_save(self, delay_ms: int) -> None:
        """Cancel any pending save and start a new countdown."""
        self.scheduler.schedule(delay_ms, self.save)

    async def save(self) -> bool:
        """
        Persist the mirror if it differs from the last saved state.

        Saves run one at a time. Edits made while a write is in flight
        keep the persister dirty so the next save picks them up.

        Returns:
            True when a write happened
        """
        async with self._save_lock:
            serialized = self.serialize()
            if serialized == self._last_saved:
                self.dirty = False
                logger.debug("diff_save_skipped", key=self.key, items=len(self._mirror))
                return False

            await self.store.put(self.collection, {
                "key": self.key,
                "value": serialized,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            self._last_saved = serialized
            self.dirty = self.serialize() != serialized
            self.writes += 1
            logger.info(
                "diff_save_written",
                key=self.key,
                items=len(self._mirror),
                still_dirty=self.dirty
            )
            return True

    async def flush(self) -> bool:
        """Save now instead of waiting for the debounce timer."""
        self.scheduler.cancel()
        return await self.save()

    async def load(self) -> list[T]:
        """
        Seed the mirror and the last-saved snapshot from the store.

        A missing or malformed value loads as an empty list; entries that
        fail validation are skipped.
        """
        record = await self.store.get(self.collection, self.key)
        raw_items: list = []
        if record and record.get("value"):
            try:
                parsed = json.loads(record["value"])
                raw_items = parsed if isinstance(parsed, list) else []
            except (TypeError, ValueError):
                logger.warning("diff_save_value_malformed", key=self.key)

        items = []
        for position, raw in enumerate(raw_items):
            if not isinstance(raw, dict):
                continue
            try:
                items.append(self.item_model.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    "diff_save_entry_malformed",
                    key=self.key,
                    position=position,
                    error=str(e)
                )
        self._mirror = items
        self._last_saved = self.serialize()
        self.dirty = False
        logger.info("diff_save_loaded", key=self.key, items=len(items))
        return self.items()
