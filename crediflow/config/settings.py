"""
Configuration Management for CrediFlow

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


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
    cards_sheet_name: str = Field(default="Cards")
    payments_sheet_name: str = Field(default="Payments")
    readiness_sheet_name: str = Field(default="Readiness")
    audit_sheet_name: str = Field(default="AuditLog")

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


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration (payment extraction and funding advice)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
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


class StorageSettings(BaseSettings):
    """Which persistence backend holds cards, payments and readiness."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    backend: str = Field(
        default="json",
        pattern="^(memory|json|google_sheets)$",
        description="Persistence backend"
    )
    json_path: str = Field(
        default="crediflow_data.json",
        description="Document path for the json backend"
    )


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

    app_environment: str = Field(default="development")
    debug_mode: bool = Field(default=False)

    # Aggregation
    aggregation_window_months: int = Field(
        default=2,
        ge=1,
        le=2,
        description="Months covered by funding summaries (reference month, plus next when 2)"
    )

    # Defaults for new cards
    default_owner: str = Field(
        default="self",
        min_length=1,
        description="Card user assigned when a draft leaves owner empty"
    )

    # Advice
    advice_language: str = Field(
        default="Japanese",
        description="Language the funding advice is written in"
    )

    # Validation thresholds
    max_payment_amount: int = Field(
        default=10_000_000,
        ge=1,
        description="Amounts above this are flagged for a second look (never rejected)"
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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

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

    checks = {
        "gemini": lambda: settings.gemini,
        "storage": lambda: settings.storage,
        "app": lambda: settings.app,
    }
    # Sheets credentials are only required when that backend is selected.
    if _storage_backend(settings) == "google_sheets":
        checks["google_sheets"] = lambda: settings.google_sheets

    for name, load in checks.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results


def _storage_backend(settings: Settings) -> str:
    try:
        return settings.storage.backend
    except Exception:
        return ""
