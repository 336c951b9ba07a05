"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Document store
    database_url: str | None = None

    # Fallback cache
    redis_url: str | None = None
    fallback_key_prefix: str = "itinerary:fallback:"

    # Auto-save debounce windows (seconds)
    short_debounce_seconds: float = 2.0
    long_debounce_seconds: float = 10.0

    # New itinerary defaults
    default_markup_percentage: float = 15.0
    default_currency: str = "USD"

    # Child accommodation surcharges
    child_surcharge_extra_bed_rate: float = 0.30
    child_surcharge_nightly_rate: float = 0.25


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
