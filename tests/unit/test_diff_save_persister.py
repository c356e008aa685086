"""
Unit tests for DiffSavePersister and the schedulers.

Run: pytest tests/unit/test_diff_save_persister.py -v
"""

import asyncio
import json
import pytest

from models.custom_label import CustomLabelEntry
from services.diff_save_persister import DiffSavePersister
from services.scheduler import VirtualScheduler
from services.store import InMemoryStore, SETTINGS_COLLECTION


class GatedStore(InMemoryStore):
    """Memory store whose first put waits until `gate` is set."""

    def __init__(self):
        super().__init__()
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()
        self._held = False

    async def put(self, collection: str, record: dict) -> None:
        if not self._held:
            self._held = True
            self.entered.set()
            await self.gate.wait()
        await super().put(collection, record)


def _persister(store, scheduler) -> DiffSavePersister:
    return DiffSavePersister(
        store,
        "customLabels",
        CustomLabelEntry,
        scheduler=scheduler,
        save_delay_ms=1000,
        fast_flush_ms=300
    )


class TestVirtualScheduler:
    """Tests for VirtualScheduler"""

    @pytest.mark.asyncio
    async def test_only_latest_schedule_fires(self):
        scheduler = VirtualScheduler()
        calls = []

        scheduler.schedule(1000, lambda: calls.append("first"))
        await scheduler.advance(500)
        scheduler.schedule(1000, lambda: calls.append("second"))
        await scheduler.advance(999)
        assert calls == []

        await scheduler.advance(1)
        assert calls == ["second"]
        assert scheduler.pending is False

    @pytest.mark.asyncio
    async def test_cancel(self):
        scheduler = VirtualScheduler()
        calls = []
        scheduler.schedule(10, lambda: calls.append(1))

        scheduler.cancel()
        await scheduler.advance(100)

        assert calls == []


class TestDiffSavePersisterSave:
    """Tests for debounced, diffed saving"""

    @pytest.mark.asyncio
    async def test_edit_then_revert_writes_nothing(self, memory_store, virtual_scheduler):
        """Change a count and change it back inside one window → zero writes."""
        persister = _persister(memory_store, virtual_scheduler)
        persister.rebuild_from_source([CustomLabelEntry(content="A", count=1)])
        await persister.flush()
        assert persister.writes == 1

        persister.mark_dirty(0, {"count": 5})
        await virtual_scheduler.advance(500)
        persister.mark_dirty(0, {"count": 1})
        await virtual_scheduler.advance(1000)

        assert virtual_scheduler.fired == 1
        assert persister.writes == 1
        assert persister.dirty is False

    @pytest.mark.asyncio
    async def test_burst_of_edits_is_one_write(self, memory_store, virtual_scheduler):
        persister = _persister(memory_store, virtual_scheduler)
        await persister.load()

        for count in range(1, 6):
            persister.mark_dirty(0, {"content": "Hello", "count": count})
            await virtual_scheduler.advance(200)
        await virtual_scheduler.advance(1000)

        assert persister.writes == 1
        stored = await memory_store.get(SETTINGS_COLLECTION, "customLabels")
        assert json.loads(stored["value"])[0]["count"] == 5

    @pytest.mark.asyncio
    async def test_fast_flush_uses_short_delay(self, memory_store, virtual_scheduler):
        persister = _persister(memory_store, virtual_scheduler)
        await persister.load()

        persister.mark_dirty(0, {"content": "Hi"}, fast=True)
        await virtual_scheduler.advance(300)

        assert persister.writes == 1

    @pytest.mark.asyncio
    async def test_sparse_index_fills_default_slots(self, memory_store, virtual_scheduler):
        persister = _persister(memory_store, virtual_scheduler)

        persister.mark_dirty(2, {"content": "third"})

        items = persister.items()
        assert len(items) == 3
        assert items[0].content == ""
        assert items[2].content == "third"

    @pytest.mark.asyncio
    async def test_patch_is_validated(self, memory_store, virtual_scheduler):
        persister = _persister(memory_store, virtual_scheduler)

        updated = persister.mark_dirty(0, {"count": 0, "font_size": "14"})

        assert updated.count == 1
        assert updated.font_size == "14pt"

    @pytest.mark.asyncio
    async def test_rebuild_always_marks_dirty(self, memory_store, virtual_scheduler):
        persister = _persister(memory_store, virtual_scheduler)
        await persister.load()

        persister.rebuild_from_source([])

        assert persister.dirty is True
        assert virtual_scheduler.pending is True

    @pytest.mark.asyncio
    async def test_flush_cancels_timer(self, memory_store, virtual_scheduler):
        persister = _persister(memory_store, virtual_scheduler)
        persister.mark_dirty(0, {"content": "now"})

        written = await persister.flush()
        await virtual_scheduler.advance(5000)

        assert written is True
        assert virtual_scheduler.fired == 0
        assert persister.writes == 1


class TestDiffSavePersisterLoad:
    """Tests for load()"""

    @pytest.mark.asyncio
    async def test_load_seeds_mirror_and_snapshot(self, memory_store, virtual_scheduler):
        await memory_store.put(SETTINGS_COLLECTION, {
            "key": "customLabels",
            "value": json.dumps([{"content": "Saved", "count": 2}]),
        })
        persister = _persister(memory_store, virtual_scheduler)

        items = await persister.load()

        assert [(i.content, i.count) for i in items] == [("Saved", 2)]
        assert await persister.save() is False

    @pytest.mark.asyncio
    async def test_load_reads_stored_shape(self, memory_store, virtual_scheduler):
        await memory_store.put(SETTINGS_COLLECTION, {
            "key": "customLabels",
            "value": json.dumps([{"text": "plain", "html": "<b>rich</b>", "fontSize": "10", "count": 3}]),
        })
        persister = _persister(memory_store, virtual_scheduler)

        items = await persister.load()

        assert items[0].content == "<b>rich</b>"
        assert items[0].font_size == "10pt"

    @pytest.mark.asyncio
    async def test_malformed_value_loads_empty(self, memory_store, virtual_scheduler):
        await memory_store.put(SETTINGS_COLLECTION, {"key": "customLabels", "value": "{not json"})
        persister = _persister(memory_store, virtual_scheduler)

        items = await persister.load()

        assert items == []

    @pytest.mark.asyncio
    async def test_missing_value_loads_empty(self, memory_store, virtual_scheduler):
        persister = _persister(memory_store, virtual_scheduler)

        assert await persister.load() == []

    @pytest.mark.asyncio
    async def test_bad_entry_is_skipped(self, memory_store, virtual_scheduler):
        """One invalid entry should not fail the whole load."""
        await memory_store.put(SETTINGS_COLLECTION, {
            "key": "customLabels",
            "value": json.dumps([{"text": "ok"}, {"enabled": "maybe"}]),
        })
        persister = _persister(memory_store, virtual_scheduler)

        items = await persister.load()

        assert [i.content for i in items] == ["ok"]


class TestDiffSavePersisterOverlap:
    """Tests for saves that overlap an in-flight write"""

    @pytest.mark.asyncio
    async def test_flush_during_write_keeps_newest(self, virtual_scheduler):
        """A flush issued while an older save is writing must land last."""
        store = GatedStore()
        persister = _persister(store, virtual_scheduler)
        persister.mark_dirty(0, {"content": "first"})
        pending = asyncio.create_task(persister.save())
        await store.entered.wait()

        persister.mark_dirty(0, {"content": "second"})
        flushing = asyncio.create_task(persister.flush())
        await asyncio.sleep(0)
        store.gate.set()
        await asyncio.gather(pending, flushing)

        stored = await store.get(SETTINGS_COLLECTION, "customLabels")
        assert json.loads(stored["value"])[0]["content"] == "second"
        assert persister.dirty is False
        assert persister.writes == 2

    @pytest.mark.asyncio
    async def test_edit_during_write_stays_dirty(self, virtual_scheduler):
        store = GatedStore()
        persister = _persister(store, virtual_scheduler)
        persister.mark_dirty(0, {"content": "first"})
        pending = asyncio.create_task(persister.save())
        await store.entered.wait()

        persister.mark_dirty(0, {"content": "second"})
        store.gate.set()
        await pending

        assert persister.dirty is True
        await virtual_scheduler.advance(1000)
        stored = await store.get(SETTINGS_COLLECTION, "customLabels")
        assert json.loads(stored["value"])[0]["content"] == "second"
        assert persister.dirty is False
