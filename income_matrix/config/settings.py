"""
Configuration Management for the Income Matrix

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here, one settings
class per concern. Sections for backends that are not selected are never
loaded, so their required fields only matter when that backend is used.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


StorageBackend = Literal["local", "rest", "sheets"]


class LocalStorageSettings(BaseSettings):
    """Key-value file storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOCAL_STORAGE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path("./data"),
        description="Directory holding one JSON blob per storage key"
    )
    key_prefix: str = Field(
        default="finance_income",
        pattern=r"^[A-Za-z0-9_.-]+$",
        description="Prefix for every storage key"
    )


class RestApiSettings(BaseSettings):
    """Remote income API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="INCOME_API_",
        extra="ignore"
    )

    base_url: str = Field(
        default="http://127.0.0.1:8000/api/income",
        description="Base URL of the income API"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Bearer token sent with every request"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Per-request timeout"
    )
    # Retry policy for transport failures
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per request, including the first"
    )
    retry_wait_min: float = Field(
        default=2.0,
        ge=0,
        description="Minimum backoff between attempts (seconds)"
    )
    retry_wait_max: float = Field(
        default=10.0,
        ge=0,
        description="Maximum backoff between attempts (seconds)"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def check_wait_bounds(self) -> "RestApiSettings":
        if self.retry_wait_max < self.retry_wait_min:
            raise ValueError("retry_wait_max cannot be below retry_wait_min")
        return self


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    categories_sheet_name: str = Field(
        default="IncomeCategories",
        description="Name of the sheet for income categories"
    )
    matrix_sheet_name: str = Field(
        default="IncomeMatrix",
        description="Name of the sheet for monthly amounts"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ...)"
    )

    # Storage
    storage_backend: StorageBackend = Field(
        default="local",
        description="Which storage adapter backs the income matrix"
    )
    seed_demo_data: bool = Field(
        default=True,
        description="Seed demo categories into an empty store on initialize"
    )

    # Accepted years for the HTTP API
    min_year: int = Field(default=2000, ge=1)
    max_year: int = Field(default=2100, ge=1)

    # HTTP server
    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=8000, ge=1, le=65535)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def check_year_bounds(self) -> "AppSettings":
        if self.max_year < self.min_year:
            raise ValueError("max_year cannot be below min_year")
        return self


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

    # Sub-settings are loaded lazily so an unused backend
    # does not need its variables set.

    @property
    def app(self) -> AppSettings:
        return AppSettings()

    @property
    def local_storage(self) -> LocalStorageSettings:
        return LocalStorageSettings()

    @property
    def rest_api(self) -> RestApiSettings:
        return RestApiSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings sections.

    Returns a dict of {section: is_valid}, plus {section}_error entries
    for sections that failed. Useful for startup checks.
    """
    results: dict[str, object] = {}
    settings = get_settings()

    for section in ("app", "local_storage", "rest_api", "google_sheets"):
        try:
            getattr(settings, section)
            results[section] = True
        except Exception as e:
            results[section] = False
            results[f"{section}_error"] = str(e)

    return results
