"""
Custom label API routes.

Edits are debounced: PATCH returns immediately and the list is written
after the save delay (or the fast-flush delay when `fast` is set).
POST /flush writes pending edits now.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.custom_label import (
    CustomLabelEntry,
    CustomLabelListResponse,
    CustomLabelPatch,
    CustomLabelSummary,
)
from services.custom_label_service import CustomLabelService, get_custom_label_service
from services.print_settings_service import get_print_settings_service
from exceptions import AppError, CustomLabelIndexError, LastCustomLabelError

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


async def _ready_service() -> CustomLabelService:
    service = get_custom_label_service()
    if not service.loaded:
        await service.load()
    return service


def _list_response(service: CustomLabelService) -> CustomLabelListResponse:
    entries = service.entries()
    return CustomLabelListResponse(
        data=entries,
        total=len(entries),
        enabled_count=service.total_enabled_count(),
        dirty=service.dirty
    )


# ===================
# ROUTES
# ===================

@router.get("", response_model=CustomLabelListResponse)
async def list_custom_labels():
    """List every custom label in print order."""
    try:
        return _list_response(await _ready_service())

    except Exception as e:
        return handle_error(e)


@router.get("/summary", response_model=CustomLabelSummary)
async def get_summary(
    order_label_count: int = Query(0, ge=0, description="Order labels in the run"),
    skip_count: Optional[int] = Query(None, ge=0, description="Skipped slots (defaults to print settings)")
):
    """Sheets needed for the order labels plus enabled custom labels."""
    try:
        service = await _ready_service()
        if skip_count is None:
            print_settings = get_print_settings_service()
            if not print_settings.loaded:
                await print_settings.load()
            skip_count = print_settings.current().labelskip
        return service.summary(order_label_count, skip_count)

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=CustomLabelListResponse, status_code=201)
async def add_custom_label(data: Optional[CustomLabelEntry] = None):
    """Append a custom label (blank when no body is sent)."""
    try:
        service = await _ready_service()
        service.add(data)
        return _list_response(service)

    except Exception as e:
        return handle_error(e)


@router.put("", response_model=CustomLabelListResponse)
async def replace_custom_labels(data: list[CustomLabelEntry]):
    """Replace the whole list."""
    try:
        service = await _ready_service()
        service.replace_all(data if data else [CustomLabelEntry()])
        return _list_response(service)

    except Exception as e:
        return handle_error(e)


@router.post("/flush")
async def flush_custom_labels():
    """Write pending edits now."""
    try:
        service = await _ready_service()
        written = await service.flush()
        return {"written": written}

    except Exception as e:
        return handle_error(e)


@router.post("/adjust", response_model=CustomLabelListResponse)
async def adjust_custom_labels(
    max_total: int = Query(..., ge=0, description="Most custom labels allowed")
):
    """Clip enabled counts so they fit in `max_total` labels."""
    try:
        service = await _ready_service()
        service.adjust_for_total(max_total)
        return _list_response(service)

    except Exception as e:
        return handle_error(e)


@router.patch("/{index}", response_model=CustomLabelEntry)
async def update_custom_label(index: int, data: CustomLabelPatch):
    """Edit one custom label."""
    try:
        service = await _ready_service()
        return service.update(index, data)

    except CustomLabelIndexError as e:
        return handle_error(e)
    except Exception as e:
        return handle_error(e)


@router.delete("/{index}", response_model=CustomLabelListResponse)
async def remove_custom_label(index: int):
    """Remove one custom label. The last entry cannot be removed."""
    try:
        service = await _ready_service()
        service.remove(index)
        return _list_response(service)

    except (CustomLabelIndexError, LastCustomLabelError) as e:
        return handle_error(e)
    except Exception as e:
        return handle_error(e)


@router.delete("", response_model=CustomLabelListResponse)
async def clear_custom_labels():
    """Reset to a single blank custom label."""
    try:
        service = await _ready_service()
        service.clear()
        return _list_response(service)

    except Exception as e:
        return handle_error(e)
