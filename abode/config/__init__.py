"""Configuration package."""

from abode.config.settings import (
    AppSettings,
    SessionSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "SessionSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
