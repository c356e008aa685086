"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # STORAGE
    # ===================
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|supabase)$",
        description="Persistent store implementation"
    )
    supabase_url: Optional[str] = Field(
        None,
        description="Supabase project URL (supabase backend only)"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase anon/public key (supabase backend only)"
    )

    # ===================
    # LABEL SHEETS
    # ===================
    sheet_capacity: int = Field(
        default=44,
        ge=1,
        le=200,
        description="Label slots per physical print sheet"
    )

    # ===================
    # ORDER IMPORT
    # ===================
    order_number_column: str = Field(
        default="注文番号",
        description="Import column holding the order number"
    )
    payment_date_column: str = Field(
        default="支払い日時",
        description="Import column holding the payment timestamp"
    )

    # ===================
    # ORDERS PANEL
    # ===================
    orders_page_size: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Rows per page in the processed orders panel"
    )

    # ===================
    # CUSTOM LABELS
    # ===================
    custom_label_save_delay_ms: int = Field(
        default=1000,
        ge=0,
        le=60000,
        description="Debounce delay before persisting custom label edits"
    )
    custom_label_fast_flush_ms: int = Field(
        default=300,
        ge=0,
        le=60000,
        description="Shorter debounce used on blur/commit events"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def supabase_configured(self) -> bool:
        """Check if Supabase credentials are present."""
        return bool(self.supabase_url and self.supabase_key)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
