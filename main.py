"""
Label Sheet Backend: Main Application

FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import structlog
from datetime import datetime, timezone

from config import settings, check_connection
from services.order_cache import get_order_cache
from services.order_view import get_order_view
from services.print_settings_service import get_print_settings_service
from services.custom_label_service import get_custom_label_service

# Configure structured logging
logging.basicConfig(format="%(message)s", level=settings.log_level)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if settings.is_production
            else structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: Load orders, print settings and custom labels; attach the panel
    Shutdown: Flush pending custom label edits
    """
    # Startup
    logger.info(
        "application_starting",
        environment=settings.environment,
        storage_backend=settings.storage_backend,
        debug=settings.debug
    )

    # A store that cannot be read stops startup; no empty-cache fallback
    cache = get_order_cache()
    await cache.init()
    await get_print_settings_service().load()
    custom_labels = get_custom_label_service()
    await custom_labels.load()
    view = get_order_view()
    view.attach()

    logger.info("application_ready", orders=len(cache))

    yield

    # Shutdown
    view.detach()
    if custom_labels.dirty:
        await custom_labels.flush()
    logger.info("application_shutting_down")


# Create FastAPI app
app = FastAPI(
    title="Label Sheet Backend",
    description="Order cache, processed orders panel and label sheet planning",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===================
# ROUTES
# ===================

@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Basic health status and store connection state
    """
    store_status = check_connection()

    return {
        "status": "healthy" if store_status["status"] == "healthy" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "store": store_status
    }


@app.get("/")
async def root():
    """
    Root endpoint.

    Returns:
        API information and available endpoints
    """
    return {
        "name": "Label Sheet Backend API",
        "version": "0.1.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": {
            "orders": "/api/orders",
            "panel": "/api/orders/panel",
            "sheets": "/api/sheets",
            "custom_labels": "/api/custom-labels",
            "print_settings": "/api/print-settings"
        }
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Catches unhandled exceptions and returns standard error format.
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        }
    )


# ===================
# INCLUDE ROUTERS
# ===================
from routes.orders import router as orders_router
from routes.sheets import router as sheets_router
from routes.custom_labels import router as custom_labels_router
from routes.print_settings import router as print_settings_router

app.include_router(orders_router, prefix="/api/orders", tags=["Orders"])
app.include_router(sheets_router, prefix="/api/sheets", tags=["Sheets"])
app.include_router(custom_labels_router, prefix="/api/custom-labels", tags=["Custom Labels"])
app.include_router(print_settings_router, prefix="/api/print-settings", tags=["Print Settings"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
