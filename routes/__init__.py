"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.orders import router as orders_router
from routes.sheets import router as sheets_router
from routes.custom_labels import router as custom_labels_router
from routes.print_settings import router as print_settings_router

__all__ = [
    "orders_router",
    "sheets_router",
    "custom_labels_router",
    "print_settings_router",
]
