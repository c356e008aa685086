"""
Label sheet allocation.

Pure functions that lay a run of labels out over fixed-capacity sheets,
starting after `skip_count` blank slots on the first sheet.

Example (capacity 44): 100 labels with 5 skipped
    sheet 1: skip 5,  labels 39, remaining 0
    sheet 2: skip 0,  labels 44, remaining 0
    sheet 3: skip 0,  labels 17, remaining 27
"""

from typing import Optional

from config import settings
from models.sheet import SheetDescriptor, SheetPlanResponse


def _capacity(capacity: Optional[int]) -> int:
    return settings.sheet_capacity if capacity is None else capacity


def calculate_multi_sheet_distribution(
    total_labels: int,
    skip_count: int,
    capacity: Optional[int] = None
) -> list[SheetDescriptor]:
    """
    Distribute labels across sheets.

    Always returns at least one sheet: with zero labels the single sheet
    reports how much room is left after the skipped slots. A skip larger
    than one sheet fills whole sheets with skipped slots and carries the
    excess onto the next sheet.

    Inputs must be non-negative integers; the caller validates them.

    Args:
        total_labels: Labels to place
        skip_count: Blank slots at the start of the first sheet
        capacity: Slots per sheet (defaults to configured sheet capacity)

    Returns:
        One descriptor per sheet, in print order
    """
    capacity = _capacity(capacity)

    if total_labels == 0:
        skipped = min(skip_count, capacity)
        return [
            SheetDescriptor(
                sheet_number=1,
                skip_count=skipped,
                label_count=0,
                remaining_count=capacity - skipped,
            )
        ]

    sheets: list[SheetDescriptor] = []
    remaining = total_labels
    current_skip = skip_count
    sheet_number = 1

    while remaining > 0:
        skipped = min(current_skip, capacity)
        available = capacity - skipped
        labels_in_sheet = min(remaining, available)
        sheets.append(
            SheetDescriptor(
                sheet_number=sheet_number,
                skip_count=skipped,
                label_count=labels_in_sheet,
                remaining_count=available - labels_in_sheet,
            )
        )
        remaining -= labels_in_sheet
        current_skip -= skipped
        sheet_number += 1

    return sheets


def get_last_sheet_info(
    total_labels: int,
    skip_count: int,
    capacity: Optional[int] = None
) -> SheetDescriptor:
    """Descriptor of the final sheet in the run."""
    return calculate_multi_sheet_distribution(total_labels, skip_count, capacity)[-1]


def calculate_total_sheets(
    total_labels: int,
    skip_count: int,
    capacity: Optional[int] = None
) -> int:
    """Number of sheets the run occupies."""
    return len(calculate_multi_sheet_distribution(total_labels, skip_count, capacity))


def summarize_distribution(
    total_labels: int,
    skip_count: int,
    capacity: Optional[int] = None
) -> SheetPlanResponse:
    """Distribution plus the totals the UI summary shows."""
    capacity = _capacity(capacity)
    sheets = calculate_multi_sheet_distribution(total_labels, skip_count, capacity)
    return SheetPlanResponse(
        total_labels=total_labels,
        skip_count=skip_count,
        capacity=capacity,
        total_sheets=len(sheets),
        last_sheet_remaining=sheets[-1].remaining_count,
        sheets=sheets,
    )
