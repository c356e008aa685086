"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    PaginatedResponse
)
from models.order import (
    OrderRecord,
    SortKey,
    SortDirection,
    OrderViewRow,
    PanelRow,
    PanelSnapshot,
    OrderImportRequest,
    OrderImportResponse,
    PanelPreviewResponse,
    PanelDeleteResponse,
)
from models.sheet import (
    SheetDescriptor,
    SheetPlanResponse,
)
from models.custom_label import (
    CustomLabelEntry,
    CustomLabelPatch,
    CustomLabelSummary,
)
from models.print_settings import (
    PrintSettings,
    PrintSettingsUpdate,
    PreviewConfig,
    PrintPlan,
)

__all__ = [
    # Base
    "BaseSchema",
    "PaginatedResponse",

    # Orders
    "OrderRecord",
    "SortKey",
    "SortDirection",
    "OrderViewRow",
    "PanelRow",
    "PanelSnapshot",
    "OrderImportRequest",
    "OrderImportResponse",
    "PanelPreviewResponse",
    "PanelDeleteResponse",

    # Sheets
    "SheetDescriptor",
    "SheetPlanResponse",

    # Custom labels
    "CustomLabelEntry",
    "CustomLabelPatch",
    "CustomLabelSummary",

    # Print settings
    "PrintSettings",
    "PrintSettingsUpdate",
    "PreviewConfig",
    "PrintPlan",
]
