"""
Configuration Management for My Halal Flow

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which storage backend is in use and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Rules of the ledger engine that a deployment may tune."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    projection_months: int = Field(
        default=12,
        ge=1,
        le=60,
        description="Number of upcoming months in the balance projection"
    )
    settlement_tolerance: float = Field(
        default=0.01,
        ge=0.0,
        description="Largest balance difference accepted without an adjustment"
    )
    adjustment_label: str = Field(
        default="Ajustement Solde Mensuel",
        min_length=1,
        description="Label of the transaction created by a monthly settlement"
    )
    strict_single_link: bool = Field(
        default=False,
        description="Reject transactions linked to more than one entity"
    )
    default_user_name: str = Field(
        default="Utilisateur",
        min_length=1,
        description="Name used until the user completes onboarding"
    )


class StorageSettings(BaseSettings):
    """Storage backend selection."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["memory", "json", "google_sheets"] = Field(
        default="json",
        description="Which storage backend holds the ledger"
    )
    json_path: Path = Field(
        default=Path("data/halalFlow_db_v4.json"),
        description="File used by the JSON backend"
    )

    @field_validator("json_path")
    @classmethod
    def expand_json_path(cls, v: Path) -> Path:
        """Expand '~' so the path can come straight from a .env file."""
        return v.expanduser()


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
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

    # Worksheet names within the spreadsheet
    settings_sheet_name: str = Field(default="Settings")
    transactions_sheet_name: str = Field(default="Transactions")
    goals_sheet_name: str = Field(default="Goals")
    assets_sheet_name: str = Field(default="Assets")
    future_operations_sheet_name: str = Field(default="FutureOperations")

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
        description="Enable debug mode (human readable logs)"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for the structured logs"
    )

    @field_validator("log_level")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Google Sheets is only checked when it is the selected backend.
    """
    results = {}

    settings = get_settings()

    sections = ["app", "ledger", "storage"]
    try:
        if settings.storage.backend == "google_sheets":
            sections.append("google_sheets")
    except Exception:
        pass

    for name in sections:
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
