"""
Shared configuration management for the Storefront Catalog core.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CatalogConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CATALOG_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Metadata cache (TMDB details)
    metadata_cache_ttl_seconds: float = Field(default=24 * 60 * 60, ge=0)
    metadata_key_namespace: str = Field(default="tmdb")
    default_locale: str = Field(default="ar")
    metadata_fetch_timeout_seconds: float = Field(default=10.0, gt=0)

    # Code validation
    inclusive_date_bounds: bool = Field(
        default=True,
        description="Treat now == valid_from / valid_until as inside the window"
    )
    currency_label: str = Field(default="SAR")


@lru_cache
def get_config() -> CatalogConfig:
    """Get the process-wide configuration."""
    return CatalogConfig()
