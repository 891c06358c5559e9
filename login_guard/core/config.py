"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
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


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_gateway_settings() -> "GatewaySettings":
    """Build gateway settings from environment.

    Pydantic Settings (v2) populates values from environment variables, but
    static type checkers treat required fields as constructor arguments.
    """

    return GatewaySettings()  # type: ignore[call-arg]


def _build_limiter_settings() -> "LimiterSettings":
    return LimiterSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class GatewaySettings(BaseSettings):
    """Reverse proxy and rate-limit pipeline configuration."""

    upstream_url: str = Field(
        "http://localhost:8087",
        description="Base URL of the protected authentication backend",
    )
    upstream_timeout_seconds: float = Field(
        30.0,
        description="Timeout for requests forwarded to the backend",
        gt=0,
    )
    client_ip_header: str = Field(
        "cf-connecting-ip",
        description="Trusted header carrying the originating client IP",
    )
    limiter_timeout_seconds: float = Field(
        5.0,
        description="Upper bound for a limiter check; 0 disables the bound",
        ge=0,
    )
    scheduled_interval_seconds: float | None = Field(
        None,
        description="Interval of the periodic scheduled trigger; unset disables it",
        gt=0,
    )
    scheduled_cron: str = Field(
        "*/5 * * * *",
        description="Cron label attached to scheduled events",
    )
    scheduled_path: str = Field(
        "/__scheduled",
        description="Backend path receiving scheduled events",
    )

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        case_sensitive=False,
    )


class LimiterSettings(BaseSettings):
    """Limiter capability bindings.

    ``bindings`` is a comma-separated list of ``NAME=URI`` entries, e.g.
    ``LOGIN_RATE_LIMITER=memory://5/60`` or
    ``LOGIN_RATE_LIMITER=http://limiter:8080/limit``.
    """

    bindings: str | None = Field(
        "LOGIN_RATE_LIMITER=memory://5/60",
        description="Comma-separated NAME=URI limiter bindings",
    )

    model_config = SettingsConfigDict(
        env_prefix="LIMITER_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Number of rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    gateway: GatewaySettings = Field(default_factory=_build_gateway_settings)
    limiter: LimiterSettings = Field(default_factory=_build_limiter_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance composed from domain-specific settings
settings = Settings()
