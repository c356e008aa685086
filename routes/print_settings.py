"""
Print settings API routes.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from models.print_settings import PrintSettings, PrintSettingsUpdate
from services.print_settings_service import get_print_settings_service
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


@router.get("", response_model=PrintSettings)
async def get_print_settings():
    try:
        service = get_print_settings_service()
        if not service.loaded:
            await service.load()
        return service.current()

    except Exception as e:
        return handle_error(e)


@router.patch("", response_model=PrintSettings)
async def update_print_settings(data: PrintSettingsUpdate):
    """
    Update print settings.

    Only the fields sent are changed and persisted.
    """
    try:
        service = get_print_settings_service()
        if not service.loaded:
            await service.load()
        return await service.update(data)

    except Exception as e:
        return handle_error(e)
