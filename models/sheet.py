"""
Label sheet models.

A sheet is one physical page with a fixed number of label slots.
"""

from pydantic import BaseModel, Field, computed_field


class SheetDescriptor(BaseModel):
    """How one sheet's slots are used. Derived, never persisted."""

    sheet_number: int = Field(..., ge=1)
    skip_count: int = Field(..., ge=0, description="Blank slots at sheet start")
    label_count: int = Field(..., ge=0, description="Filled slots")
    remaining_count: int = Field(..., ge=0, description="Unused slots at sheet end")

    @computed_field
    @property
    def total_in_sheet(self) -> int:
        return self.skip_count + self.label_count


class SheetPlanResponse(BaseModel):
    """Distribution of a label run across sheets."""

    total_labels: int
    skip_count: int
    capacity: int
    total_sheets: int
    last_sheet_remaining: int
    sheets: list[SheetDescriptor]
