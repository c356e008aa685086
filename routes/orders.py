"""
Order API routes.

Import, print status and deletion for cached orders, plus the processed
orders panel (sort, paging, filter, selection, preview, bulk delete).
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.base import PaginatedResponse
from models.order import (
    MarkPrintedRequest,
    OrderDeleteRequest,
    OrderDeleteResponse,
    OrderImportRequest,
    OrderImportResponse,
    OrderRecord,
    PanelDeleteRequest,
    PanelDeleteResponse,
    PanelFilterRequest,
    PanelPageRequest,
    PanelPreviewResponse,
    PanelSelectAllRequest,
    PanelSelectRequest,
    PanelSnapshot,
    PanelSortRequest,
)
from services.order_cache import OrderCache, column_extractor, get_order_cache
from services.order_view import get_order_view
from exceptions import AppError, DeleteNotConfirmedError, OrderNotFoundError, PreviewRenderError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


async def _ready_cache() -> OrderCache:
    cache = get_order_cache()
    await cache.init()
    return cache


# ===================
# PANEL ROUTES
# ===================

@router.get("/panel", response_model=PanelSnapshot)
async def get_panel():
    """
    Current panel state.

    Recomputed from the cache on every call.
    """
    try:
        await _ready_cache()
        return get_order_view().refresh()

    except Exception as e:
        return handle_error(e)


@router.post("/panel/sort", response_model=PanelSnapshot)
async def sort_panel(data: PanelSortRequest):
    """Click a column header: flip direction or switch column."""
    try:
        await _ready_cache()
        return get_order_view().handle_sort(data.key)

    except Exception as e:
        return handle_error(e)


@router.post("/panel/page", response_model=PanelSnapshot)
async def page_panel(data: PanelPageRequest):
    """Move one page back or forward (no-op at either end)."""
    try:
        await _ready_cache()
        view = get_order_view()
        return view.prev_page() if data.direction == "prev" else view.next_page()

    except Exception as e:
        return handle_error(e)


@router.post("/panel/filter", response_model=PanelSnapshot)
async def filter_panel(data: PanelFilterRequest):
    """Toggle the "unprinted only" filter."""
    try:
        await _ready_cache()
        return get_order_view().set_unprinted_only(data.unprinted_only)

    except Exception as e:
        return handle_error(e)


@router.post("/panel/select", response_model=PanelSnapshot)
async def select_row(data: PanelSelectRequest):
    try:
        await _ready_cache()
        return get_order_view().toggle_row(data.order_number, data.checked)

    except Exception as e:
        return handle_error(e)


@router.post("/panel/select-all", response_model=PanelSnapshot)
async def select_all(data: PanelSelectAllRequest):
    """Select or clear every row on the current page."""
    try:
        await _ready_cache()
        return get_order_view().toggle_select_all(data.checked)

    except Exception as e:
        return handle_error(e)


@router.post("/panel/preview", response_model=PanelPreviewResponse)
async def preview_selection():
    """
    Build a print plan for the selected orders.

    Returns plan=None when nothing is selected.
    """
    try:
        await _ready_cache()
        view = get_order_view()
        plan = await view.preview()
        if isinstance(view.last_error, PreviewRenderError):
            raise view.last_error

        return PanelPreviewResponse(plan=plan, panel=view.snapshot or view.refresh())

    except Exception as e:
        return handle_error(e)


@router.post("/panel/delete", response_model=PanelDeleteResponse)
async def delete_selection(data: PanelDeleteRequest):
    """
    Delete the selected orders.

    Requires confirm=true when anything is selected.
    """
    try:
        await _ready_cache()
        view = get_order_view()
        if view.selection and not data.confirm:
            raise DeleteNotConfirmedError(len(view.selection))

        deleted = await view.delete_selected(lambda order_numbers: data.confirm)
        if view.last_error is not None:
            raise view.last_error

        return PanelDeleteResponse(deleted=deleted, panel=view.snapshot or view.refresh())

    except Exception as e:
        return handle_error(e)


# ===================
# ORDER ROUTES
# ===================

@router.get("", response_model=PaginatedResponse)
async def list_orders(
    unprinted_only: bool = Query(False, description="Only orders without a print timestamp"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(100, ge=1, le=1000, description="Items per page")
):
    """
    List cached orders in import order.

    Returns paginated list of order records.
    """
    try:
        cache = await _ready_cache()
        records = cache.get_all()
        if unprinted_only:
            records = [record for record in records if not record.is_printed]

        start = (page - 1) * page_size
        return PaginatedResponse.create(
            data=records[start:start + page_size],
            total=len(records),
            page=page,
            page_size=page_size
        )

    except Exception as e:
        return handle_error(e)


@router.post("/import", response_model=OrderImportResponse)
async def import_orders(data: OrderImportRequest):
    """
    Upsert imported rows into the cache.

    `created` counts only orders seen for the first time; re-imported
    orders have their row replaced without being counted.
    """
    try:
        cache = await _ready_cache()
        extractor = column_extractor(data.key_column) if data.key_column else None
        created = await cache.bulk_upsert(data.rows, key_extractor=extractor)

        return OrderImportResponse(
            received=len(data.rows),
            created=created,
            total_cached=len(cache)
        )

    except Exception as e:
        return handle_error(e)


@router.post("/delete", response_model=OrderDeleteResponse)
async def delete_orders(data: OrderDeleteRequest):
    """Delete orders by number. Requires confirm=true."""
    try:
        if data.order_numbers and not data.confirm:
            raise DeleteNotConfirmedError(len(data.order_numbers))

        cache = await _ready_cache()
        deleted = await cache.bulk_delete(data.order_numbers)
        return OrderDeleteResponse(deleted=deleted)

    except Exception as e:
        return handle_error(e)


@router.get("/{order_number}", response_model=OrderRecord)
async def get_order(order_number: str):
    """Get one cached order."""
    try:
        cache = await _ready_cache()
        record = cache.get(order_number)
        if record is None:
            raise OrderNotFoundError(order_number)
        return record

    except OrderNotFoundError as e:
        return handle_error(e)
    except Exception as e:
        return handle_error(e)


@router.post("/{order_number}/printed", response_model=OrderRecord)
async def mark_printed(order_number: str, data: Optional[MarkPrintedRequest] = None):
    """Record that an order was printed (timestamp defaults to now)."""
    try:
        cache = await _ready_cache()
        timestamp = data.printed_at if data else None
        if not await cache.mark_printed(order_number, timestamp):
            raise OrderNotFoundError(order_number)
        return cache.get(order_number)

    except OrderNotFoundError as e:
        return handle_error(e)
    except Exception as e:
        return handle_error(e)


@router.delete("/{order_number}/printed", response_model=OrderRecord)
async def clear_printed(order_number: str):
    """Mark an order as not printed."""
    try:
        cache = await _ready_cache()
        if not await cache.clear_printed(order_number):
            raise OrderNotFoundError(order_number)
        return cache.get(order_number)

    except OrderNotFoundError as e:
        return handle_error(e)
    except Exception as e:
        return handle_error(e)
