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


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_backend_settings() -> "BackendSettings":
    """Build backend settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return BackendSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    See _build_backend_settings() for rationale about the type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class BackendSettings(BaseSettings):
    """Managed backend configuration (auth provider and record stores).

    ``memory`` keeps everything in-process and is meant for development and
    tests. ``supabase`` talks to the GoTrue and PostgREST endpoints of a
    Supabase project.
    """

    provider: str = Field(
        "memory",
        description="Backend provider name (memory, supabase)",
    )
    url: str | None = Field(
        None,
        description="Project base URL (required for supabase)",
    )
    anon_key: str | None = Field(
        None,
        description="Public anon key sent as the apikey header (required for supabase)",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="BACKEND_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    landing_path: str = Field(
        "/",
        description="Destination after sign-out",
    )
    auth_redirect_path: str = Field(
        "/survey",
        description="Destination for unauthenticated visitors of protected routes",
    )
    checkout_base_url: str = Field(
        "https://checkout.stripe.com/demo",
        description="Mock checkout URL returned by subscription upgrades",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable rate limiting on mutating endpoints",
    )
    rate_limit_requests: int = Field(
        10,
        description="Maximum number of requests allowed per window (per caller)",
        ge=0,
    )
    rate_limit_window_ms: int = Field(
        60000,
        description="Rate limit window size in milliseconds",
        ge=1,
    )
    rate_limit_sweep_interval_seconds: float = Field(
        60.0,
        description="Interval between sweeps of expired rate limit entries",
        gt=0,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Output format: json or plain")
    output: str = Field("stdout", description="Output target: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the correlation id",
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
    backend: BackendSettings = Field(default_factory=_build_backend_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
