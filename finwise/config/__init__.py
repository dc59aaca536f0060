"""Configuration package."""

from finwise.config.settings import (
    AppSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    QuizSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "QuizSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
