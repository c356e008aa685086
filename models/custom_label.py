"""
Custom label models.

Operator-authored extra labels printed after the order labels.
List position is print order and the only identity an entry has.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from models.base import BaseSchema

DEFAULT_FONT_SIZE = "12pt"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CustomLabelEntry(BaseSchema):
    """One custom label line in the editable list."""

    enabled: bool = Field(True, description="Include this label when printing")
    count: int = Field(1, ge=1, description="Number of copies")
    content: str = Field("", description="Rich text (HTML) or plain text payload")
    font_size: str = Field(DEFAULT_FONT_SIZE, description="CSS font size, e.g. 12pt")
    created_at: str = Field(default_factory=_now_iso)

    @model_validator(mode="before")
    @classmethod
    def accept_stored_shape(cls, data: Any) -> Any:
        """Read entries saved as {text, html, fontSize, createdAt}."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "content" not in data:
            data["content"] = data.pop("html", None) or data.pop("text", None) or ""
        data.pop("html", None)
        data.pop("text", None)
        if "font_size" not in data and "fontSize" in data:
            data["font_size"] = data.pop("fontSize")
        if "created_at" not in data and "createdAt" in data:
            data["created_at"] = data.pop("createdAt")
        return data

    @field_validator("count", mode="before")
    @classmethod
    def clamp_count(cls, v: Any) -> int:
        """Counts below one, or unparsable counts, become one."""
        try:
            value = int(v)
        except (TypeError, ValueError):
            return 1
        return max(value, 1)

    @field_validator("font_size", mode="before")
    @classmethod
    def normalize_font_size(cls, v: Any) -> str:
        if v is None or str(v).strip() == "":
            return DEFAULT_FONT_SIZE
        text = str(v).strip()
        return text if "pt" in text or "px" in text else f"{text}pt"

    @property
    def has_content(self) -> bool:
        return self.content.strip() != ""


class CustomLabelPatch(BaseModel):
    """Partial update for one entry; unset fields are left alone."""

    enabled: Optional[bool] = None
    count: Optional[int] = None
    content: Optional[str] = None
    font_size: Optional[str] = None
    fast: bool = Field(False, description="Use the fast-flush debounce (blur/commit)")

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True, exclude={"fast"})


class CustomLabelListResponse(BaseModel):
    data: list[CustomLabelEntry]
    total: int
    enabled_count: int
    dirty: bool


class CustomLabelSummary(BaseModel):
    """Sheet usage for order labels plus enabled custom labels."""

    custom_label_count: int
    order_label_count: int
    skip_count: int
    total_labels: int
    total_sheets: int
    last_sheet_remaining: int
    message: str
