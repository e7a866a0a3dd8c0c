"""
Quiesce Configuration Module.

Settings for the ambient layers (logging) come from the environment through
Pydantic Settings; the watch itself is configured from the command line and
validated by WatchOptions.
Requires Python 3.11+.
"""

import re
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Quiescence window between the last observed change and the next run.
REBUILD_DELAY_MS = 200


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="QUIESCE_LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="console")  # "console" or "json"

    @field_validator("format")
    @classmethod
    def check_format(cls, v: str) -> str:
        """Only the two structlog renderers are supported."""
        v = v.lower()
        if v not in ("console", "json"):
            raise ValueError(f"unknown log format {v!r}")
        return v


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    app_name: str = Field(default="quiesce")
    app_version: str = Field(default="0.1.0")

    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


class WatchOptions(BaseModel):
    """Validated command-line options for one watch session."""

    root: Path = Field(default=Path("."), description="Path to watch")
    exclude: re.Pattern[str] | None = Field(
        default=None,
        description="Paths matching this expression are neither watched nor traversed",
    )
    terminal: bool = Field(default=False, description="Write to stdout instead of the console UI")
    verbose: bool = Field(default=False)
    command: list[str] = Field(min_length=1)

    @field_validator("exclude", mode="before")
    @classmethod
    def compile_exclude(cls, v: str | re.Pattern[str] | None) -> re.Pattern[str] | None:
        """Compile the exclusion expression; an empty string disables it."""
        if v is None or isinstance(v, re.Pattern):
            return v
        if v == "":
            return None
        try:
            return re.compile(v)
        except re.error as e:
            raise ValueError(f"bad regexp {v!r}: {e}") from e

    @property
    def rebuild_delay_ms(self) -> int:
        """Quiescence window in milliseconds."""
        return REBUILD_DELAY_MS
