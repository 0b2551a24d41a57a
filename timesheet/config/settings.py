"""
Configuration Management for the Timesheet Reconciler

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Engine defaults, storage location and logging options can all be changed
through TIMESHEET_* environment variables or a .env file.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Calculation defaults and redistribution limits."""

    model_config = SettingsConfigDict(
        env_prefix="TIMESHEET_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_daily_rate: float = Field(
        default=600.0,
        gt=0,
        description="Daily rate given to new projects"
    )
    default_hours_per_day: float = Field(
        default=8.0,
        gt=0,
        le=24,
        description="Working hours per day given to new projects"
    )
    import_history_limit: int = Field(
        default=20,
        ge=1,
        description="Maximum import history entries kept per month"
    )
    excess_cap: float = Field(
        default=1.0,
        gt=0,
        description="Day-equivalents above which an activity is in excess"
    )


class StorageSettings(BaseSettings):
    """File storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TIMESHEET_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["data_file", "workspace"] = Field(
        default="data_file",
        description="Single JSON data file, or a workspace directory with one folder per project"
    )
    data_path: Path = Field(
        default=Path("timesheet_data.json"),
        description="Data file path, or workspace directory for the workspace backend"
    )
    backup_on_save: bool = Field(
        default=True,
        description="Copy the previous document to <file>.bak before overwriting"
    )
    project_file_name: str = Field(
        default="project.json",
        description="Document name inside each workspace project folder"
    )

    @field_validator("project_file_name")
    @classmethod
    def validate_project_file_name(cls, v: str) -> str:
        if not v.endswith(".json") or "/" in v:
            raise ValueError("project_file_name must be a plain .json file name")
        return v


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TIMESHEET_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(default="INFO", description="Minimum log level")
    json_output: bool = Field(
        default=True,
        description="Render JSON lines (False = console renderer)"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return v


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
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings groups.

    Returns a dict of {setting_name: is_valid}, plus <name>_error entries.
    """
    results: dict = {}
    settings = get_settings()

    for name in ("engine", "storage", "logging"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
