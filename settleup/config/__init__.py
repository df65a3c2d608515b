"""Configuration package."""

from settleup.config.settings import (
    GoogleSheetsSettings,
    SettlementSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "GoogleSheetsSettings",
    "SettlementSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
