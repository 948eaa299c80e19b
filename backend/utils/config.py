"""
GoDev Configuration Module.

Centralizes all configuration settings using Pydantic Settings.
Requires Python 3.11+.
"""

import shlex
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Load .env file into os.environ at module import time
# This ensures nested BaseSettings classes can read the values
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    # Try current working directory
    load_dotenv()


def _split_csv(v: str | list[str]) -> list[str]:
    """Parse a comma-separated string or pass a list through."""
    if isinstance(v, str):
        return [p.strip() for p in v.split(",") if p.strip()]
    return v


class WatcherSettings(BaseSettings):
    """File watcher configuration settings."""

    model_config = SettingsConfigDict(env_prefix="WATCHER_")

    debounce_ms: int = Field(default=100, ge=0, le=5000, description="Quiet interval between rebuilds")
    extensions: Annotated[list[str], NoDecode] = Field(
        default=[".go", ".html", ".css", ".js"],
        description="File extensions that trigger a rebuild",
    )
    ignore_dirs: Annotated[list[str], NoDecode] = Field(
        default=[],
        description="Directory names never registered with the watcher",
    )

    @field_validator("extensions", "ignore_dirs", mode="before")
    @classmethod
    def parse_lists(cls, v: str | list[str]) -> list[str]:
        """Parse lists from comma-separated string or list."""
        return _split_csv(v)


class BuildSettings(BaseSettings):
    """Compiler invocation settings."""

    model_config = SettingsConfigDict(env_prefix="BUILD_")

    command: Annotated[list[str], NoDecode] = Field(
        default=["go", "build", "-o", "{artifact}", "{source}"],
        description="Build command template; {artifact} and {source} are substituted",
    )
    artifact_name: str | None = Field(
        default=None,
        description="Fixed artifact file name (default: godev-<source stem>)",
    )

    @field_validator("command", mode="before")
    @classmethod
    def parse_command(cls, v: str | list[str]) -> list[str]:
        """Parse a shell-style command string or list."""
        if isinstance(v, str):
            return shlex.split(v)
        return v


class SupervisorSettings(BaseSettings):
    """Process supervisor settings."""

    model_config = SettingsConfigDict(env_prefix="SUPERVISOR_")

    grace_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="How long each termination step waits for the process to exit",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="console")  # "json" or "console"


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="GoDev")
    app_version: str = Field(default="0.1.0")

    # Sub-settings
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)
    supervisor: SupervisorSettings = Field(default_factory=SupervisorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings for performance.
    Components accept an explicit Settings to allow per-test instances.
    """
    return Settings()
