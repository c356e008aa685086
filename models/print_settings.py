"""
Print settings schemas.

Operator preferences stored as key-value pairs in the `settings`
collection, plus the preview configuration snapshot built from them.
"""

from typing import Optional
from pydantic import BaseModel, Field

from models.base import BaseSchema
from models.custom_label import CustomLabelEntry
from models.sheet import SheetDescriptor


class PrintSettings(BaseSchema):
    """Current print preferences."""

    labelyn: bool = Field(True, description="Print one label per order")
    labelskip: int = Field(0, ge=0, description="Blank slots at the start of the first sheet")
    sort_by_payment_date: bool = Field(False, description="Order labels by payment date")
    custom_label_enable: bool = Field(False, description="Append custom labels")


class PrintSettingsUpdate(BaseSchema):
    """Partial update; unset fields keep their value."""

    labelyn: Optional[bool] = None
    labelskip: Optional[int] = Field(None, ge=0)
    sort_by_payment_date: Optional[bool] = None
    custom_label_enable: Optional[bool] = None


class PreviewConfig(BaseModel):
    """
    Serializable snapshot handed to the preview renderer.

    custom_labels only holds enabled entries, and only when
    custom_label_enable is on.
    """

    labelyn: bool = True
    labelskip: int = 0
    sort_by_payment_date: bool = False
    custom_label_enable: bool = False
    custom_labels: list[CustomLabelEntry] = Field(default_factory=list)


class PrintLabel(BaseModel):
    """One filled slot in a print plan."""

    type: str = Field(..., description="order or custom")
    order_number: Optional[str] = None
    content: Optional[str] = None
    font_size: Optional[str] = None


class PrintPlan(BaseModel):
    """Result of the default preview renderer."""

    order_numbers: list[str]
    missing_order_numbers: list[str]
    labels: list[PrintLabel]
    order_label_count: int
    custom_label_count: int
    skip_count: int
    total_sheets: int
    last_sheet_remaining: int
    sheets: list[SheetDescriptor] = Field(default_factory=list)
