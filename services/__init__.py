"""
Business logic services.

Each service handles one domain area.
"""

from services.store import PersistentStore, InMemoryStore, SupabaseStore, get_store
from services.order_cache import OrderCache, get_order_cache, normalize_order_number
from services.scheduler import Scheduler, AsyncioScheduler, VirtualScheduler
from services.diff_save_persister import DiffSavePersister
from services.custom_label_service import CustomLabelService, get_custom_label_service
from services.print_settings_service import PrintSettingsService, get_print_settings_service
from services.print_plan_service import PrintPlanService, get_print_plan_service
from services.order_view import PaginatedOrderView, get_order_view

__all__ = [
    "PersistentStore",
    "InMemoryStore",
    "SupabaseStore",
    "get_store",
    "OrderCache",
    "get_order_cache",
    "normalize_order_number",
    "Scheduler",
    "AsyncioScheduler",
    "VirtualScheduler",
    "DiffSavePersister",
    "CustomLabelService",
    "get_custom_label_service",
    "PrintSettingsService",
    "get_print_settings_service",
    "PrintPlanService",
    "get_print_plan_service",
    "PaginatedOrderView",
    "get_order_view",
]
