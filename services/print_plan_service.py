"""
Print plan service.

Default preview renderer for the processed orders panel. Given the
selected order numbers and a PreviewConfig it lays out the label run:

    [skip placeholders] [one label per order] [custom labels x count]

and asks the allocator how that run lands on sheets.
"""

from typing import Optional
import structlog

from config import settings
from models.order import OrderRecord
from models.print_settings import PreviewConfig, PrintLabel, PrintPlan
from services.custom_label_service import CustomLabelService, get_custom_label_service
from services.label_sheet_allocator import calculate_multi_sheet_distribution
from services.order_cache import OrderCache, get_order_cache, normalize_order_number
from services.print_settings_service import PrintSettingsService, get_print_settings_service

logger = structlog.get_logger(__name__)


class PrintPlanService:
    """Builds preview configs and print plans for a selection of orders."""

    def __init__(
        self,
        cache: OrderCache,
        print_settings: PrintSettingsService,
        custom_labels: CustomLabelService
    ):
        self.cache = cache
        self.print_settings = print_settings
        self.custom_labels = custom_labels

    def build_preview_config(self) -> PreviewConfig:
        """Snapshot of the current print settings and enabled custom labels."""
        current = self.print_settings.current()
        custom = self.custom_labels.enabled_entries() if current.custom_label_enable else []
        return PreviewConfig(
            labelyn=current.labelyn,
            labelskip=current.labelskip,
            sort_by_payment_date=current.sort_by_payment_date,
            custom_label_enable=current.custom_label_enable,
            custom_labels=custom,
        )

    def _payment_date(self, record: OrderRecord) -> str:
        if not record.row:
            return ""
        return str(record.row.get(settings.payment_date_column) or "")

    async def render_preview(
        self,
        order_numbers: list[str],
        config: Optional[PreviewConfig] = None
    ) -> PrintPlan:
        """
        Lay out labels for the given orders.

        Orders no longer in the cache are reported in
        `missing_order_numbers` and left out of the run.

        Args:
            order_numbers: Selected order numbers, in selection order
            config: Settings snapshot (defaults to the current settings)

        Returns:
            PrintPlan with the label run and its sheet layout
        """
        config = config or self.build_preview_config()

        records: list[OrderRecord] = []
        missing: list[str] = []
        for order_number in order_numbers:
            record = self.cache.get(order_number)
            if record is None:
                missing.append(normalize_order_number(order_number))
            else:
                records.append(record)

        if config.sort_by_payment_date:
            records.sort(key=self._payment_date)

        labels: list[PrintLabel] = []
        order_count = 0
        custom_count = 0
        skip = config.labelskip if config.labelyn else 0

        if config.labelyn:
            labels.extend(PrintLabel(type="skip") for _ in range(skip))
            for record in records:
                labels.append(PrintLabel(type="order", order_number=record.order_number))
            order_count = len(records)

            if config.custom_label_enable:
                for entry in config.custom_labels:
                    if not entry.enabled:
                        continue
                    for _ in range(entry.count):
                        labels.append(
                            PrintLabel(type="custom", content=entry.content, font_size=entry.font_size)
                        )
                    custom_count += entry.count

        sheets = calculate_multi_sheet_distribution(order_count + custom_count, skip)

        if missing:
            logger.warning("print_plan_orders_missing", missing=len(missing))
        logger.info(
            "print_plan_built",
            orders=order_count,
            custom_labels=custom_count,
            skip=skip,
            sheets=len(sheets)
        )

        return PrintPlan(
            order_numbers=[record.order_number for record in records],
            missing_order_numbers=missing,
            labels=labels,
            order_label_count=order_count,
            custom_label_count=custom_count,
            skip_count=skip,
            total_sheets=len(sheets),
            last_sheet_remaining=sheets[-1].remaining_count,
            sheets=sheets,
        )


# Singleton instance
_print_plan_service: Optional[PrintPlanService] = None


def get_print_plan_service() -> PrintPlanService:
    """Get or create print plan service instance."""
    global _print_plan_service
    if _print_plan_service is None:
        _print_plan_service = PrintPlanService(
            get_order_cache(),
            get_print_settings_service(),
            get_custom_label_service(),
        )
    return _print_plan_service
