"""
Database connection management.

Provides the Supabase client singleton used by the supabase store backend.
The default in-memory backend never touches this module's client.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings
from exceptions.errors import StoreUnavailableError

logger = structlog.get_logger(__name__)


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Uses lru_cache to ensure only one client is created.
    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        StoreUnavailableError: If credentials are missing or connection fails
    """
    if not settings.supabase_configured:
        logger.error("supabase_not_configured")
        raise StoreUnavailableError(
            "supabase",
            "SUPABASE_URL and SUPABASE_KEY must be set for the supabase backend"
        )

    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        client = create_client(
            settings.supabase_url,
            settings.supabase_key
        )

        # Test connection with simple query
        client.table("orders").select("order_number").limit(1).execute()

        logger.info(
            "supabase_connected",
            status="success"
        )

        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise StoreUnavailableError("supabase", f"Failed to connect to Supabase: {e}") from e


# Convenience alias
db = get_supabase_client


# ===================
# HELPER FUNCTIONS
# ===================

def check_connection() -> dict:
    """
    Check store connection health.

    Returns:
        dict: Connection status with details
    """
    if settings.storage_backend == "memory":
        return {
            "status": "healthy",
            "backend": "memory"
        }

    try:
        client = get_supabase_client()
        orders = client.table("orders").select("order_number", count="exact").execute()

        return {
            "status": "healthy",
            "backend": "supabase",
            "orders_count": orders.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "backend": settings.storage_backend,
            "error": str(e)
        }


def reset_connection():
    """
    Reset the cached database connection.

    Call this if connection becomes stale or after config changes.
    """
    get_supabase_client.cache_clear()
    logger.info("database_connection_reset")
