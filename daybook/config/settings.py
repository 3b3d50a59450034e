"""
Configuration Management for Daybook

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
    """Google Sheets remote store configuration."""

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


class CollectionSettings(BaseSettings):
    """
    Names of the remote collections.

    The "-v1" suffix matches the documents already written by the
    mobile client, so both can share one backend.
    """

    model_config = SettingsConfigDict(
        env_prefix="DAYBOOK_COLLECTION_",
        extra="ignore"
    )

    profiles: str = Field(default="profiles-v1", min_length=1)
    tasks: str = Field(default="todos-v1", min_length=1)
    ledger: str = Field(default="transactions-v1", min_length=1)
    reminders: str = Field(default="reminders-v1", min_length=1)
    audit: str = Field(default="audit-v1", min_length=1)


class SchedulerSettings(BaseSettings):
    """Reminder and undo timing configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DAYBOOK_SCHEDULER_",
        extra="ignore"
    )

    undo_grace_period_seconds: float = Field(
        default=5.0,
        ge=0.0,
        le=60.0,
        description="How long a deleted task can still be restored"
    )
    default_title: str = Field(
        default="Reminder",
        description="Notification title used when a reminder has none"
    )
    default_body: str = Field(
        default="You have a reminder!",
        description="Notification body used when a reminder has none"
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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Backends
    storage_backend: str = Field(
        default="google_sheets",
        pattern="^(google_sheets|memory)$",
        description="Remote collection backend"
    )
    persist_audit_events: bool = Field(
        default=True,
        description="Also write audit events to the remote audit collection"
    )

    # Local preferences (theme)
    preferences_path: str = Field(
        default="~/.daybook/preferences.json",
        description="Where the local preference file lives"
    )

    @property
    def preferences_file(self) -> Path:
        """Get the preference file as an expanded path."""
        return Path(self.preferences_path).expanduser()


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def collections(self) -> CollectionSettings:
        return CollectionSettings()

    @property
    def scheduler(self) -> SchedulerSettings:
        return SchedulerSettings()

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

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for every section that failed.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()
    sections = {
        "google_sheets": lambda: settings.google_sheets,
        "collections": lambda: settings.collections,
        "scheduler": lambda: settings.scheduler,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
