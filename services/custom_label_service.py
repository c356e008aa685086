"""
Custom label service.

Owns the editable list of custom labels printed after the order labels.
Edits go through DiffSavePersister, so a burst of keystrokes becomes one
write and an edit that is undone before the timer fires writes nothing.
"""

from typing import Iterable, Optional, Union
import structlog

from models.custom_label import CustomLabelEntry, CustomLabelPatch, CustomLabelSummary
from exceptions import CustomLabelIndexError, LastCustomLabelError
from services.diff_save_persister import DiffSavePersister
from services.label_sheet_allocator import summarize_distribution
from services.scheduler import Scheduler
from services.store import PersistentStore, get_store

logger = structlog.get_logger(__name__)

CUSTOM_LABELS_KEY = "customLabels"


class CustomLabelService:
    """Editable custom label list with debounced persistence."""

    def __init__(
        self,
        store: PersistentStore,
        scheduler: Optional[Scheduler] = None,
        save_delay_ms: Optional[int] = None,
        fast_flush_ms: Optional[int] = None
    ):
        self.persister: DiffSavePersister[CustomLabelEntry] = DiffSavePersister(
            store,
            CUSTOM_LABELS_KEY,
            CustomLabelEntry,
            scheduler=scheduler,
            save_delay_ms=save_delay_ms,
            fast_flush_ms=fast_flush_ms,
        )
        self.loaded = False

    # ===================
    # READ
    # ===================

    async def load(self) -> list[CustomLabelEntry]:
        """
        Load the saved list.

        An empty list still shows one blank entry to edit; the blank entry
        is not written until it is edited.
        """
        entries = await self.persister.load()
        if not entries:
            self.persister.seed([CustomLabelEntry()])
        self.loaded = True
        logger.info("custom_labels_loaded", count=len(self.persister))
        return self.entries()

    def entries(self) -> list[CustomLabelEntry]:
        return self.persister.items()

    def enabled_entries(self) -> list[CustomLabelEntry]:
        return [entry for entry in self.persister.items() if entry.enabled]

    def total_enabled_count(self) -> int:
        """Copies printed for all enabled entries."""
        return sum(entry.count for entry in self.enabled_entries())

    @property
    def dirty(self) -> bool:
        return self.persister.dirty

    # ===================
    # EDIT
    # ===================

    def update(
        self,
        index: int,
        patch: Union[CustomLabelPatch, dict],
        fast: bool = False
    ) -> CustomLabelEntry:
        """Edit one entry in place and schedule a save."""
        if isinstance(patch, CustomLabelPatch):
            fast = fast or patch.fast
            patch = patch.changes()
        if index < 0 or index >= len(self.persister):
            raise CustomLabelIndexError(index)
        return self.persister.mark_dirty(index, patch, fast=fast)

    def add(self, entry: Optional[Union[CustomLabelEntry, dict]] = None) -> CustomLabelEntry:
        """Append an entry (blank by default)."""
        if entry is None:
            entry = CustomLabelEntry()
        elif isinstance(entry, dict):
            entry = CustomLabelEntry.model_validate(entry)
        entries = self.persister.items()
        entries.append(entry)
        self.persister.rebuild_from_source(entries)
        logger.info("custom_label_added", index=len(entries) - 1)
        return entry.model_copy()

    def remove(self, index: int) -> CustomLabelEntry:
        """
        Remove one entry.

        Raises:
            CustomLabelIndexError: No entry at index
            LastCustomLabelError: Only one entry left
        """
        entries = self.persister.items()
        if index < 0 or index >= len(entries):
            raise CustomLabelIndexError(index)
        if len(entries) <= 1:
            raise LastCustomLabelError()
        removed = entries.pop(index)
        self.persister.rebuild_from_source(entries)
        logger.info("custom_label_removed", index=index, remaining=len(entries))
        return removed

    def clear(self) -> list[CustomLabelEntry]:
        """Reset to a single blank entry."""
        self.persister.rebuild_from_source([CustomLabelEntry()])
        logger.info("custom_labels_cleared")
        return self.entries()

    def replace_all(self, entries: Iterable[Union[CustomLabelEntry, dict]]) -> list[CustomLabelEntry]:
        self.persister.rebuild_from_source(entries)
        return self.entries()

    def adjust_for_total(self, max_total: int) -> list[CustomLabelEntry]:
        """
        Clip enabled counts so their total never exceeds `max_total`.

        Enabled entries are walked in list order. The entry that crosses
        the budget keeps what is left of it; entries after the budget is
        used up are disabled.
        """
        entries = self.persister.items()
        budget = max(max_total, 0)
        changed = False

        for entry in entries:
            if not entry.enabled:
                continue
            if budget <= 0:
                entry.enabled = False
                changed = True
            elif entry.count > budget:
                entry.count = budget
                budget = 0
                changed = True
            else:
                budget -= entry.count

        if changed:
            self.persister.rebuild_from_source(entries)
            logger.info(
                "custom_labels_adjusted",
                max_total=max_total,
                enabled_total=sum(e.count for e in entries if e.enabled)
            )
        return self.entries()

    async def flush(self) -> bool:
        """Write pending edits now."""
        return await self.persister.flush()

    # ===================
    # SUMMARY
    # ===================

    def summary(self, order_label_count: int, skip_count: int = 0) -> CustomLabelSummary:
        """Sheet usage for the order labels plus every enabled custom label."""
        custom_count = self.total_enabled_count()
        total = order_label_count + custom_count
        plan = summarize_distribution(total, skip_count)

        if total == 0:
            message = "No labels to print."
        else:
            message = (
                f"{custom_count} custom + {order_label_count} order labels"
                f" = {total} labels on {plan.total_sheets} sheet(s),"
                f" {plan.last_sheet_remaining} slots left on the last sheet"
            )

        return CustomLabelSummary(
            custom_label_count=custom_count,
            order_label_count=order_label_count,
            skip_count=skip_count,
            total_labels=total,
            total_sheets=plan.total_sheets,
            last_sheet_remaining=plan.last_sheet_remaining,
            message=message,
        )


# Singleton instance
_custom_label_service: Optional[CustomLabelService] = None


def get_custom_label_service() -> CustomLabelService:
    """Get or create custom label service instance."""
    global _custom_label_service
    if _custom_label_service is None:
        _custom_label_service = CustomLabelService(get_store())
    return _custom_label_service
