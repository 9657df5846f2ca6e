"""Configuration package."""

from smartmoney.config.settings import (
    AppSettings,
    Settings,
    StoreSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "Settings",
    "StoreSettings",
    "get_settings",
    "validate_all_settings",
]
