"""
Order models.

Represents imported marketplace orders, their print status, and the
projections the processed orders panel renders.
"""

from typing import Any, Optional, Literal
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

from models.base import BaseSchema
from models.print_settings import PrintPlan


class OrderRecord(BaseSchema):
    """
    Cached order record.

    Mirrors one entry of the `orders` collection. `row` is the opaque
    import payload and is replaced wholesale on re-import; its keys and
    values are stored exactly as imported.
    """

    model_config = ConfigDict(str_strip_whitespace=False)

    order_number: str = Field(..., min_length=1, description="Normalized order number (primary key)")
    row: Optional[dict[str, Any]] = Field(None, description="Last imported row payload")
    created_at: str = Field(..., description="ISO-8601 first-import timestamp")
    printed_at: Optional[str] = Field(None, description="ISO-8601 print timestamp, None when unprinted")

    @property
    def is_printed(self) -> bool:
        return bool(self.printed_at)

    def to_store(self) -> dict:
        """Persisted shape, keyed by order_number."""
        return self.model_dump()


class SortKey(str, Enum):
    """Sortable panel columns."""
    ORDER_NUMBER = "orderNumber"
    PAYMENT_DATE = "paymentDate"
    PRINTED_AT = "printedAt"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class OrderViewRow(BaseModel):
    """One order projected for sorting and display."""

    order_number: str
    payment_date_raw: str = ""
    payment_date_value: Optional[float] = Field(None, description="Epoch seconds, None when unparsable")
    printed_at_raw: str = ""
    printed_at_value: Optional[float] = Field(None, description="Epoch seconds, None when unparsable")
    printed: bool = False


class PanelRow(OrderViewRow):
    """Rendered panel row with its checkbox state."""

    selected: bool = False


class SelectAllState(BaseModel):
    checked: bool = False
    indeterminate: bool = False
    disabled: bool = True


class PaginationState(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    prev_disabled: bool
    next_disabled: bool
    page_info: str


class PanelSnapshot(BaseModel):
    """
    Everything the processed orders panel shows after a refresh.

    Produced by PaginatedOrderView.refresh() and handed to the renderer.
    """

    sort_key: SortKey
    sort_direction: SortDirection
    unprinted_only: bool
    rows: list[PanelRow]
    select_all: SelectAllState
    pagination: PaginationState
    selected_count: int
    selected_order_numbers: list[str]
    delete_enabled: bool
    preview_enabled: bool
    empty_message: Optional[str] = None
    notice: Optional[str] = Field(None, description="Last message shown to the operator")


# ===================
# REQUEST / RESPONSE
# ===================

class OrderImportRequest(BaseSchema):
    """Rows handed over by the import collaborator."""

    rows: list[dict[str, Any]] = Field(..., description="Imported row payloads")
    key_column: Optional[str] = Field(
        None,
        description="Column holding the order number (defaults to configured column)"
    )


class OrderImportResponse(BaseModel):
    received: int
    created: int
    total_cached: int


class MarkPrintedRequest(BaseSchema):
    printed_at: Optional[str] = Field(None, description="ISO-8601 timestamp, defaults to now")


class OrderDeleteRequest(BaseSchema):
    order_numbers: list[str] = Field(..., description="Orders to delete")
    confirm: bool = Field(False, description="Operator confirmation")


class OrderDeleteResponse(BaseModel):
    deleted: int


class PanelSortRequest(BaseModel):
    key: SortKey


class PanelPageRequest(BaseModel):
    direction: Literal["prev", "next"]


class PanelFilterRequest(BaseModel):
    unprinted_only: bool


class PanelSelectRequest(BaseModel):
    order_number: str
    checked: bool


class PanelSelectAllRequest(BaseModel):
    checked: bool


class PanelDeleteRequest(BaseModel):
    confirm: bool = False


class PanelPreviewResponse(BaseModel):
    """Preview result; plan is None when nothing was selected."""

    plan: Optional[PrintPlan] = None
    panel: PanelSnapshot


class PanelDeleteResponse(BaseModel):
    deleted: int
    panel: PanelSnapshot
