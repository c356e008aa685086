"""
Processed orders panel.

PaginatedOrderView keeps the panel state (sort, page, "unprinted only"
filter, selection) for one panel instance and derives the visible page
from OrderCache snapshots. Selection survives refreshes and page changes;
keys that disappear from the cache are pruned on the next refresh.
"""

import inspect
from functools import cmp_to_key
from typing import Any, Awaitable, Callable, Optional, Union
import structlog

from config import settings
from models.order import (
    OrderRecord,
    OrderViewRow,
    PanelRow,
    PanelSnapshot,
    PaginationState,
    SelectAllState,
    SortDirection,
    SortKey,
)
from models.print_settings import PreviewConfig
from exceptions import PreviewRenderError
from services.order_cache import OrderCache, get_order_cache
from services.print_plan_service import get_print_plan_service
from utils.text_utils import compare_natural, parse_timestamp

logger = structlog.get_logger(__name__)

Renderer = Callable[[PanelSnapshot], Any]
PreviewRenderer = Callable[[list[str], PreviewConfig], Awaitable[Any]]
PreviewConfigFactory = Callable[[], PreviewConfig]
Notifier = Callable[[str], Any]
Confirm = Callable[[list[str]], Union[bool, Awaitable[bool]]]

NEGATIVE_INFINITY = float("-inf")


def _timestamp_or_floor(value: Optional[float]) -> float:
    """Unparsable timestamps sort as the earliest possible value."""
    return NEGATIVE_INFINITY if value is None else value


def _three_way(a: float, b: float) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def default_direction(key: SortKey) -> SortDirection:
    """Identifiers start ascending, timestamps start newest first."""
    return SortDirection.ASC if key == SortKey.ORDER_NUMBER else SortDirection.DESC


class PaginatedOrderView:
    """
    Sortable, filterable, paged view over the order cache with multi-select.

    All state lives on the instance, so several panels can coexist.
    """

    def __init__(
        self,
        cache: OrderCache,
        page_size: Optional[int] = None,
        renderer: Optional[Renderer] = None,
        render_preview: Optional[PreviewRenderer] = None,
        preview_config_factory: Optional[PreviewConfigFactory] = None,
        notifier: Optional[Notifier] = None,
        payment_date_column: Optional[str] = None
    ):
        self.cache = cache
        self.page_size = page_size or settings.orders_page_size
        self.renderer = renderer
        self.render_preview = render_preview
        self.preview_config_factory = preview_config_factory or PreviewConfig
        self.notifier = notifier
        self.payment_date_column = payment_date_column or settings.payment_date_column

        self.sort_key = SortKey.PAYMENT_DATE
        self.sort_direction = SortDirection.DESC
        self.current_page = 1
        self.unprinted_only = False
        self.total_items = 0
        self.total_pages = 1
        self.page_items: list[OrderViewRow] = []

        # dict keeps selection order for preview
        self._selection: dict[str, None] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None

        self.last_notice: Optional[str] = None
        self.last_error: Optional[Exception] = None
        self.snapshot: Optional[PanelSnapshot] = None

    # ===================
    # LIFECYCLE
    # ===================

    def attach(self) -> PanelSnapshot:
        """Refresh on every committed cache change, then render once now."""
        self.detach()
        self._unsubscribe = self.cache.on_update(lambda _records: self.refresh())
        return self.refresh()

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ===================
    # PROJECTION
    # ===================

    def _project(self, record: OrderRecord) -> OrderViewRow:
        payment_raw = ""
        if record.row:
            payment_raw = str(record.row.get(self.payment_date_column) or "")
        printed_raw = record.printed_at or ""
        return OrderViewRow(
            order_number=record.order_number,
            payment_date_raw=payment_raw,
            payment_date_value=parse_timestamp(payment_raw),
            printed_at_raw=printed_raw,
            printed_at_value=parse_timestamp(printed_raw),
            printed=bool(printed_raw),
        )

    def _compare(self, a: OrderViewRow, b: OrderViewRow) -> int:
        """
        Primary comparison flipped by direction; ties always fall back to
        order number ascending.
        """
        if self.sort_key == SortKey.PAYMENT_DATE:
            result = _three_way(
                _timestamp_or_floor(a.payment_date_value),
                _timestamp_or_floor(b.payment_date_value),
            )
        elif self.sort_key == SortKey.PRINTED_AT:
            result = _three_way(
                _timestamp_or_floor(a.printed_at_value),
                _timestamp_or_floor(b.printed_at_value),
            )
        else:
            result = compare_natural(a.order_number, b.order_number)

        if result != 0:
            return result if self.sort_direction == SortDirection.ASC else -result
        return compare_natural(a.order_number, b.order_number)

    def refresh(self) -> PanelSnapshot:
        """Recompute the visible page from the cache and render it."""
        rows = [self._project(record) for record in self.cache.get_all()]
        rows = [row for row in rows if row.order_number]

        ordered = sorted(rows, key=cmp_to_key(self._compare))
        visible = [row for row in ordered if not row.printed] if self.unprinted_only else ordered

        self.total_items = len(visible)
        self.total_pages = max(1, -(-self.total_items // self.page_size))
        if self.current_page > self.total_pages:
            self.current_page = self.total_pages
        if self.current_page < 1 or self.total_items == 0:
            self.current_page = 1

        start = (self.current_page - 1) * self.page_size
        self.page_items = visible[start:start + self.page_size]

        valid_keys = {row.order_number for row in rows}
        for key in [k for k in self._selection if k not in valid_keys]:
            del self._selection[key]

        return self._render()

    # ===================
    # DERIVED STATE
    # ===================

    @property
    def selection(self) -> list[str]:
        """Selected order numbers, in the order they were selected."""
        return list(self._selection)

    def is_selected(self, order_number: str) -> bool:
        return order_number in self._selection

    def select_all_state(self) -> SelectAllState:
        if not self.page_items:
            return SelectAllState(checked=False, indeterminate=False, disabled=True)
        selected = sum(1 for row in self.page_items if row.order_number in self._selection)
        return SelectAllState(
            checked=selected == len(self.page_items),
            indeterminate=0 < selected < len(self.page_items),
            disabled=False,
        )

    def pagination_state(self) -> PaginationState:
        empty = self.total_items == 0
        if empty:
            page_info = "0 items"
        else:
            page_info = f"{self.current_page} / {self.total_pages} pages ({self.total_items} items)"
        return PaginationState(
            current_page=self.current_page,
            total_pages=self.total_pages,
            total_items=self.total_items,
            prev_disabled=self.current_page <= 1 or empty,
            next_disabled=self.current_page >= self.total_pages or empty,
            page_info=page_info,
        )

    def _render(self) -> PanelSnapshot:
        empty_message = None
        if self.total_items == 0:
            empty_message = "No unprinted orders." if self.unprinted_only else "No saved orders."

        selected = self.selection
        snapshot = PanelSnapshot(
            sort_key=self.sort_key,
            sort_direction=self.sort_direction,
            unprinted_only=self.unprinted_only,
            rows=[
                PanelRow(**row.model_dump(), selected=row.order_number in self._selection)
                for row in self.page_items
            ],
            select_all=self.select_all_state(),
            pagination=self.pagination_state(),
            selected_count=len(selected),
            selected_order_numbers=selected,
            delete_enabled=bool(selected),
            preview_enabled=bool(selected),
            empty_message=empty_message,
            notice=self.last_notice,
        )
        self.snapshot = snapshot
        if self.renderer is not None:
            self.renderer(snapshot)
        return snapshot

    # ===================
    # SORT / FILTER / PAGING
    # ===================

    def handle_sort(self, key: Union[SortKey, str]) -> PanelSnapshot:
        """Flip direction on the active column, otherwise switch columns."""
        key = SortKey(key)
        if key == self.sort_key:
            self.sort_direction = (
                SortDirection.DESC if self.sort_direction == SortDirection.ASC else SortDirection.ASC
            )
        else:
            self.sort_key = key
            self.sort_direction = default_direction(key)
        self.current_page = 1
        return self.refresh()

    def set_unprinted_only(self, unprinted_only: bool) -> PanelSnapshot:
        self.unprinted_only = bool(unprinted_only)
        self.current_page = 1
        return self.refresh()

    def prev_page(self) -> PanelSnapshot:
        if self.current_page <= 1:
            return self._render()
        self.current_page -= 1
        return self.refresh()

    def next_page(self) -> PanelSnapshot:
        if self.current_page >= self.total_pages:
            return self._render()
        self.current_page += 1
        return self.refresh()

    # ===================
    # SELECTION
    # ===================

    def toggle_select_all(self, checked: bool) -> PanelSnapshot:
        """Select or clear every row on the current page only."""
        for row in self.page_items:
            if checked:
                self._selection[row.order_number] = None
            else:
                self._selection.pop(row.order_number, None)
        return self._render()

    def toggle_row(self, order_number: str, checked: bool) -> PanelSnapshot:
        if not order_number:
            return self._render()
        if checked:
            self._selection[order_number] = None
        else:
            self._selection.pop(order_number, None)
        return self._render()

    def clear_selection(self) -> PanelSnapshot:
        self._selection.clear()
        return self._render()

    # ===================
    # BULK ACTIONS
    # ===================

    def _notify(self, message: str) -> None:
        self.last_notice = message
        if self.notifier is not None:
            self.notifier(message)

    async def preview(self) -> Any:
        """
        Hand the selection and a settings snapshot to the preview renderer.

        Empty selection is a no-op. Renderer failures are logged and
        surfaced to the operator, never retried.

        Returns:
            Whatever the renderer returned, or None
        """
        self.last_error = None
        if not self._selection or self.render_preview is None:
            return None

        order_numbers = self.selection
        config = self.preview_config_factory()
        try:
            return await self.render_preview(order_numbers, config)
        except Exception as e:
            logger.error(
                "order_preview_failed",
                order_count=len(order_numbers),
                error=str(e),
                error_type=type(e).__name__
            )
            self.last_error = PreviewRenderError(str(e), len(order_numbers))
            self._notify(f"Failed to build preview: {e}")
            return None

    async def delete_selected(self, confirm: Confirm) -> int:
        """
        Delete the selected orders after operator confirmation.

        Empty selection and a declined confirmation are no-ops. On success
        the selection is cleared. The panel refreshes either way once a
        delete was attempted.

        Returns:
            Number of orders deleted
        """
        self.last_error = None
        if not self._selection:
            return 0

        order_numbers = self.selection
        accepted = confirm(order_numbers)
        if inspect.isawaitable(accepted):
            accepted = await accepted
        if not accepted:
            logger.info("order_delete_declined", order_count=len(order_numbers))
            return 0

        deleted = 0
        try:
            deleted = await self.cache.bulk_delete(order_numbers)
            self._selection.clear()
            self._notify(f"Deleted {deleted} selected orders")
        except Exception as e:
            logger.error(
                "order_delete_failed",
                order_count=len(order_numbers),
                error=str(e),
                error_type=type(e).__name__
            )
            self.last_error = e
            self._notify(f"Failed to delete orders: {e}")

        self.refresh()
        return deleted


# Singleton instance
_order_view: Optional[PaginatedOrderView] = None


def get_order_view() -> PaginatedOrderView:
    """Get or create the app-wide panel, wired to print settings and plans."""
    global _order_view
    if _order_view is None:
        plan_service = get_print_plan_service()
        _order_view = PaginatedOrderView(
            get_order_cache(),
            render_preview=plan_service.render_preview,
            preview_config_factory=plan_service.build_preview_config,
        )
    return _order_view
