"""
Configuration Management for ZenLedger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from datetime import tzinfo
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """
    Ledger engine settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="ZENLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Persistence
    data_dir: Path = Field(
        default=Path.home() / ".zenledger",
        description="Directory holding the key-value slots"
    )

    # Snapshot format
    snapshot_version: str = Field(
        default="1.2",
        description="Version tag written into backup documents"
    )

    # Budget thresholds
    budget_warning_percent: float = Field(
        default=80.0,
        gt=0.0,
        lt=100.0,
        description="Spend percentage at which a budget shows a near-limit warning"
    )

    # Calendar
    timezone: str = Field(
        default="",
        description="IANA timezone for day/month bucketing (empty = system local)"
    )

    # Assistant context
    recent_transactions_window: int = Field(
        default=10,
        ge=0,
        le=100,
        description="How many recent transactions the assistant may see"
    )

    default_sort: str = Field(
        default="date-desc",
        pattern="^(date-desc|date-asc|amount-desc|amount-asc)$",
        description="Sort order used when no preference is stored"
    )

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject unknown IANA names early."""
        v = v.strip()
        if v:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError):
                raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def tzinfo(self) -> Optional[tzinfo]:
        """Timezone for calendar math; None means the system local zone."""
        return ZoneInfo(self.timezone) if self.timezone else None


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for the bookkeeping assistant."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration
    # (the ledger works without any assistant credentials).

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.ledger
        results["ledger"] = True
    except Exception as e:
        results["ledger"] = False
        results["ledger_error"] = str(e)

    try:
        _ = settings.gemini
        results["gemini"] = True
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    return results
