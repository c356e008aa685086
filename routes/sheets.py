"""
Sheet layout API routes.

Read-only view of the label sheet allocator.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.sheet import SheetPlanResponse
from services.label_sheet_allocator import summarize_distribution
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


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


@router.get("/distribution", response_model=SheetPlanResponse)
async def get_distribution(
    total_labels: int = Query(..., ge=0, description="Labels to place"),
    skip_count: int = Query(0, ge=0, description="Blank slots before the first label"),
    capacity: Optional[int] = Query(None, ge=1, description="Slots per sheet (defaults to configured capacity)")
):
    """
    Lay a run of labels out over sheets.

    Always returns at least one sheet.
    """
    try:
        return summarize_distribution(total_labels, skip_count, capacity)

    except Exception as e:
        return handle_error(e)
