"""Configuration package."""

from budgetsync.config.settings import (
    ApiSettings,
    AppSettings,
    EditorSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "ApiSettings",
    "AppSettings",
    "EditorSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
