"""Configuration package."""

from zenledger.config.settings import (
    GeminiSettings,
    LedgerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "GeminiSettings",
    "LedgerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
