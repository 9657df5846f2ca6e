"""
Configuration Management for SmartMoney

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here. Components accept explicit settings
objects and only fall back to get_settings() when none are given, which
keeps tests isolated from the real data directory.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Local tenant storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTMONEY_STORE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding one database file per tenant"
    )
    name_prefix: str = Field(
        default="store_",
        min_length=1,
        description="Prefix of every tenant storage name"
    )
    file_suffix: str = Field(
        default=".db",
        description="File extension of tenant database files"
    )
    staging_suffix: str = Field(
        default=".staging",
        min_length=1,
        description="Suffix of the staging file written during a rename"
    )
    busy_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=120,
        description="How long SQLite waits on a locked database"
    )

    @field_validator('name_prefix')
    @classmethod
    def validate_name_prefix(cls, v: str) -> str:
        """The prefix becomes part of a file name."""
        if "/" in v or "\\" in v:
            raise ValueError("name_prefix cannot contain path separators")
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
        description="Minimum level for local logs"
    )
    seed_new_tenants: bool = Field(
        default=False,
        description="Populate default accounts and budgets on a tenant's first login"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
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
    def store(self) -> StoreSettings:
        return StoreSettings()

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

    Returns a dict of {setting_name: is_valid}, plus a
    {setting_name}_error entry for every invalid section.
    """
    results = {}

    settings = get_settings()

    for name in ("store", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
