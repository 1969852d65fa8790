"""Library configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


def _build_limiter_settings() -> "LimiterSettings":
    """Build limiter settings from environment."""

    return LimiterSettings()


def _build_log_settings() -> "LogSettings":
    """Build log settings from environment."""

    return LogSettings()


class LimiterSettings(BaseSettings):
    """Rate limiter configuration.

    Values are range-checked by the limiter constructors so that an invalid
    value always surfaces as ConfigurationError, whichever way the limiter is
    built.
    """

    # Plain str: unknown names are rejected by the factory as ConfigurationError
    algorithm: str = Field(
        "token_bucket",
        description="Admission algorithm: token_bucket or sliding_window",
    )
    capacity: int = Field(
        10,
        description="Token bucket capacity (maximum burst)",
    )
    refill_tokens_per_second: float = Field(
        1.0,
        description="Token bucket refill rate in tokens per second",
    )
    window_size: int = Field(
        5,
        description="Maximum admitted events per sliding window horizon",
    )
    time_limit_ms: int = Field(
        10_000,
        description="Sliding window horizon length in milliseconds",
    )
    max_keys: int | None = Field(
        None,
        description="Maximum number of tracked keys (LRU eviction); unlimited when unset",
    )
    idle_ttl_ms: int | None = Field(
        None,
        description="Evict keys idle for longer than this many milliseconds; never when unset",
    )

    model_config = SettingsConfigDict(
        env_prefix="LIMITER_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(
        "INFO",
        description="Root log level (DEBUG, INFO, WARNING, ...)",
    )
    format: Literal["json", "plain"] = Field(
        "json",
        description="Log line format",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Where log records are written",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    """

    app_env: str = APP_ENV
    limiter: LimiterSettings = Field(default_factory=_build_limiter_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """Build the settings on first use, loading the .env file if present.

    Nothing is read at import time, so importing keyrate never fails on a
    bad environment. Call get_settings.cache_clear() to pick up changes.
    """

    # Nested BaseSettings don't inherit env_file, so populate os.environ first
    if _env_file:
        from dotenv import load_dotenv
        load_dotenv(_env_file, override=True)

    return Settings()
