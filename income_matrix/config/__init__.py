"""Configuration package."""

from income_matrix.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    LocalStorageSettings,
    RestApiSettings,
    Settings,
    StorageBackend,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "LocalStorageSettings",
    "RestApiSettings",
    "Settings",
    "StorageBackend",
    "get_settings",
    "validate_all_settings",
]
