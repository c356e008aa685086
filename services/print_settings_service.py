"""
Print settings service.

Keeps the operator's print preferences in memory and persists each one
as its own record in the `settings` collection:

    {"key": "labelskip", "value": 5, "updated_at": "..."}
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from models.print_settings import PrintSettings, PrintSettingsUpdate
from services.store import PersistentStore, SETTINGS_COLLECTION, get_store

logger = structlog.get_logger(__name__)

# Model field -> stored key
SETTING_KEYS = {
    "labelyn": "labelyn",
    "labelskip": "labelskip",
    "sort_by_payment_date": "sortByPaymentDate",
    "custom_label_enable": "customLabelEnable",
}


def _coerce_stored(field: str, value):
    """Stored values may be strings ("true", "5") from older saves."""
    if isinstance(value, str):
        text = value.strip().lower()
        if field == "labelskip":
            try:
                return max(int(text), 0)
            except ValueError:
                return 0
        return text in ("true", "1", "yes", "on")
    if field == "labelskip" and isinstance(value, (int, float)):
        return max(int(value), 0)
    return value


class PrintSettingsService:
    """Cached print preferences backed by the store."""

    def __init__(self, store: PersistentStore):
        self.store = store
        self._settings = PrintSettings()
        self.loaded = False

    async def load(self) -> PrintSettings:
        """Read every preference, falling back to defaults for missing keys."""
        values = {}
        for field, key in SETTING_KEYS.items():
            record = await self.store.get(SETTINGS_COLLECTION, key)
            if record is not None and record.get("value") is not None:
                values[field] = _coerce_stored(field, record["value"])

        self._settings = PrintSettings(**values)
        self.loaded = True
        logger.info("print_settings_loaded", **self._settings.model_dump())
        return self.current()

    def current(self) -> PrintSettings:
        return self._settings.model_copy()

    async def update(self, data: PrintSettingsUpdate) -> PrintSettings:
        """
        Apply a partial update and persist the changed keys.

        Args:
            data: Fields to change; unset fields keep their value

        Returns:
            The updated settings
        """
        changes = data.model_dump(exclude_none=True)
        if not changes:
            return self.current()

        updated = self._settings.model_copy(update=changes)
        now = datetime.now(timezone.utc).isoformat()
        for field, value in changes.items():
            await self.store.put(SETTINGS_COLLECTION, {
                "key": SETTING_KEYS[field],
                "value": value,
                "updated_at": now,
            })

        self._settings = PrintSettings.model_validate(updated.model_dump())
        logger.info("print_settings_updated", changed=sorted(changes))
        return self.current()


# Singleton instance
_print_settings_service: Optional[PrintSettingsService] = None


def get_print_settings_service() -> PrintSettingsService:
    """Get or create print settings service instance."""
    global _print_settings_service
    if _print_settings_service is None:
        _print_settings_service = PrintSettingsService(get_store())
    return _print_settings_service
