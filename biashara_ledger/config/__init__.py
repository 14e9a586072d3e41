"""Configuration package."""

from biashara_ledger.config.settings import (
    AppSettings,
    CloudinarySettings,
    GeminiSettings,
    GoogleSheetsSettings,
    MindeeSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CloudinarySettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "MindeeSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
