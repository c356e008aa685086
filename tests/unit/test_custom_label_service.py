"""
Unit tests for CustomLabelService.

Run: pytest tests/unit/test_custom_label_service.py -v
"""

import json
import pytest

from models.custom_label import CustomLabelEntry, CustomLabelPatch
from services.custom_label_service import CustomLabelService, CUSTOM_LABELS_KEY
from services.store import SETTINGS_COLLECTION
from exceptions import CustomLabelIndexError, LastCustomLabelError
from tests.factories import CustomLabelFactory


async def _service(store, scheduler, labels=None) -> CustomLabelService:
    if labels is not None:
        await store.put(SETTINGS_COLLECTION, {"key": CUSTOM_LABELS_KEY, "value": json.dumps(labels)})
    service = CustomLabelService(store, scheduler=scheduler, save_delay_ms=1000, fast_flush_ms=300)
    await service.load()
    return service


class TestCustomLabelServiceLoad:
    """Tests for load()"""

    @pytest.mark.asyncio
    async def test_empty_store_shows_one_blank_entry(self, memory_store, virtual_scheduler):
        service = await _service(memory_store, virtual_scheduler)

        entries = service.entries()

        assert len(entries) == 1
        assert entries[0].content == ""
        assert service.dirty is False
        assert await memory_store.get(SETTINGS_COLLECTION, CUSTOM_LABELS_KEY) is None

    @pytest.mark.asyncio
    async def test_loads_saved_entries(self, memory_store, virtual_scheduler):
        labels = [CustomLabelFactory.create("A", 2), CustomLabelFactory.create("B", 1, enabled=False)]
        service = await _service(memory_store, virtual_scheduler, labels)

        assert [e.content for e in service.entries()] == ["A", "B"]
        assert [e.content for e in service.enabled_entries()] == ["A"]
        assert service.total_enabled_count() == 2


class TestCustomLabelServiceEdit:
    """Tests for update/add/remove/clear"""

    @pytest.mark.asyncio
    async def test_update_is_debounced(self, memory_store, virtual_scheduler):
        service = await _service(memory_store, virtual_scheduler)

        service.update(0, CustomLabelPatch(content="Hello", count=3))
        assert service.dirty is True

        await virtual_scheduler.advance(1000)
        stored = await memory_store.get(SETTINGS_COLLECTION, CUSTOM_LABELS_KEY)
        assert json.loads(stored["value"])[0]["content"] == "Hello"
        assert service.dirty is False

    @pytest.mark.asyncio
    async def test_update_fast_flag(self, memory_store, virtual_scheduler):
        service = await _service(memory_store, virtual_scheduler)

        service.update(0, CustomLabelPatch(content="Hi", fast=True))
        await virtual_scheduler.advance(300)

        assert service.persister.writes == 1

    @pytest.mark.asyncio
    async def test_update_unknown_index(self, memory_store, virtual_scheduler):
        service = await _service(memory_store, virtual_scheduler)

        with pytest.raises(CustomLabelIndexError):
            service.update(5, {"content": "x"})

    @pytest.mark.asyncio
    async def test_add_appends(self, memory_store, virtual_scheduler):
        service = await _service(memory_store, virtual_scheduler)

        service.add(CustomLabelFactory.create("Second", 2))

        assert [e.content for e in service.entries()] == ["", "Second"]
        assert service.dirty is True

    @pytest.mark.asyncio
    async def test_remove(self, memory_store, virtual_scheduler):
        labels = [CustomLabelFactory.create("A"), CustomLabelFactory.create("B")]
        service = await _service(memory_store, virtual_scheduler, labels)

        removed = service.remove(0)

        assert removed.content == "A"
        assert [e.content for e in service.entries()] == ["B"]

    @pytest.mark.asyncio
    async def test_remove_last_entry_refused(self, memory_store, virtual_scheduler):
        service = await _service(memory_store, virtual_scheduler)

        with pytest.raises(LastCustomLabelError):
            service.remove(0)

    @pytest.mark.asyncio
    async def test_remove_unknown_index(self, memory_store, virtual_scheduler):
        labels = [CustomLabelFactory.create("A"), CustomLabelFactory.create("B")]
        service = await _service(memory_store, virtual_scheduler, labels)

        with pytest.raises(CustomLabelIndexError):
            service.remove(2)

    @pytest.mark.asyncio
    async def test_clear_resets_to_one_blank(self, memory_store, virtual_scheduler):
        labels = [CustomLabelFactory.create("A"), CustomLabelFactory.create("B")]
        service = await _service(memory_store, virtual_scheduler, labels)

        entries = service.clear()

        assert len(entries) == 1
        assert entries[0].content == ""

    @pytest.mark.asyncio
    async def test_replace_all(self, memory_store, virtual_scheduler):
        service = await _service(memory_store, virtual_scheduler)

        service.replace_all([CustomLabelEntry(content="X", count=4)])
        await service.flush()

        stored = json.loads((await memory_store.get(SETTINGS_COLLECTION, CUSTOM_LABELS_KEY))["value"])
        assert [(e["content"], e["count"]) for e in stored] == [("X", 4)]


class TestCustomLabelServiceAdjust:
    """Tests for adjust_for_total()"""

    @pytest.mark.asyncio
    async def test_clips_crossing_entry_and_disables_rest(self, memory_store, virtual_scheduler):
        labels = [
            CustomLabelFactory.create("A", 3),
            CustomLabelFactory.create("B", 4),
            CustomLabelFactory.create("C", 2),
        ]
        service = await _service(memory_store, virtual_scheduler, labels)

        entries = service.adjust_for_total(5)

        assert [(e.count, e.enabled) for e in entries] == [(3, True), (2, True), (2, False)]
        assert service.total_enabled_count() == 5

    @pytest.mark.asyncio
    async def test_within_budget_is_unchanged(self, memory_store, virtual_scheduler):
        labels = [CustomLabelFactory.create("A", 3)]
        service = await _service(memory_store, virtual_scheduler, labels)

        service.adjust_for_total(10)

        assert service.dirty is False
        assert service.total_enabled_count() == 3

    @pytest.mark.asyncio
    async def test_disabled_entries_ignored(self, memory_store, virtual_scheduler):
        labels = [CustomLabelFactory.create("A", 9, enabled=False), CustomLabelFactory.create("B", 2)]
        service = await _service(memory_store, virtual_scheduler, labels)

        entries = service.adjust_for_total(2)

        assert [(e.count, e.enabled) for e in entries] == [(9, False), (2, True)]


class TestCustomLabelServiceSummary:
    """Tests for summary()"""

    @pytest.mark.asyncio
    async def test_summary_counts_enabled_labels(self, memory_store, virtual_scheduler):
        labels = [CustomLabelFactory.create("A", 10), CustomLabelFactory.create("B", 5, enabled=False)]
        service = await _service(memory_store, virtual_scheduler, labels)

        summary = service.summary(order_label_count=40, skip_count=4)

        assert summary.custom_label_count == 10
        assert summary.total_labels == 50
        assert summary.total_sheets == 2
        assert summary.last_sheet_remaining == 44 - 10

    @pytest.mark.asyncio
    async def test_summary_nothing_to_print(self, memory_store, virtual_scheduler):
        labels = [CustomLabelFactory.create("A", 1, enabled=False)]
        service = await _service(memory_store, virtual_scheduler, labels)

        summary = service.summary(order_label_count=0)

        assert summary.total_sheets == 1
        assert summary.message == "No labels to print."
