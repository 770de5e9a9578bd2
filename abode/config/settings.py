"""
Configuration Management for Abode

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Storage location, session file and auth rules are read once and
validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DATA_DIR = Path.home() / ".abode"


class StorageSettings(BaseSettings):
    """Local collection store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ABODE_STORAGE_",
        extra="ignore"
    )

    database_path: Path = Field(
        default=DEFAULT_DATA_DIR / "abode.db",
        description="SQLite file holding the collections"
    )
    schema_version: int = Field(
        default=3,
        ge=1,
        description="Schema version recorded at boot (only ever raised)"
    )
    echo_sql: bool = Field(
        default=False,
        description="Echo SQL statements (debugging)"
    )

    @field_validator("database_path")
    @classmethod
    def expand_database_path(cls, v: Path) -> Path:
        """Expand '~' so env values like ~/abode.db work."""
        return v.expanduser()


class SessionSettings(BaseSettings):
    """Session identity store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ABODE_SESSION_",
        extra="ignore"
    )

    session_file: Path = Field(
        default=DEFAULT_DATA_DIR / "session",
        description="File holding the username of the logged-in user"
    )

    @field_validator("session_file")
    @classmethod
    def expand_session_file(cls, v: Path) -> Path:
        return v.expanduser()


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
        description="Minimum level for the structured log"
    )

    # Auth rules
    min_password_length: int = Field(
        default=6,
        ge=1,
        le=128,
        description="Minimum length for a new password on profile update"
    )

    # Demo data
    seed_demo_data: bool = Field(
        default=False,
        description="Fill empty collections with demo records at startup"
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
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

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def session(self) -> SessionSettings:
        return SessionSettings()

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

    for name in ("storage", "session", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
