"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly. Per-location knobs (modifier
multipliers, prep-stock flags) are not settings; they are stored in the
``inventory_settings`` table.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Database - relative path by default, override via env
    database_url: str = "sqlite:///./data/inventory.db"

    # Server
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Recipe explosion memoization (FIFO bound, per cache object)
    explosion_cache_max_entries: int = 1000

    # Liquor pours fall back to this size (oz) when neither the recipe line
    # nor the bottle product defines one
    default_pour_size_oz: Decimal = Decimal("1.5")

    # Fire-and-forget deduction dispatcher
    deduction_workers: int = 2
    # Finished tasks kept for status lookups; oldest are dropped first
    dispatcher_max_history: int = 1000

    @field_validator("explosion_cache_max_entries", "deduction_workers", "dispatcher_max_history")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"must be positive, got {v}")
        return v

    @field_validator("default_pour_size_oz")
    @classmethod
    def validate_pour_size(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError(f"default_pour_size_oz must be positive, got {v}")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
