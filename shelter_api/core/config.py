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


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether mutating endpoints require an X-API-Key header",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class CacheSettings(BaseSettings):
    """Cache store connection and per-entity TTLs."""

    backend: str = Field(
        "redis",
        description="Cache backend: 'redis' or 'memory' (process-local, for development)",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Connection URL of the shared key-value store",
    )
    connect_timeout_seconds: float = Field(
        5.0,
        description="Timeout for establishing the store connection",
        gt=0,
    )
    operation_timeout_seconds: float = Field(
        2.0,
        description="Upper bound for any single store call before it counts as a failure",
        gt=0,
    )
    retry_interval_seconds: float = Field(
        1.0,
        description="While the store is down, how long calls short-circuit before retrying",
        gt=0,
    )
    health_check_interval_seconds: float = Field(
        5.0,
        description="Background liveness probe interval for the remote store",
        gt=0,
    )

    shelters_ttl_seconds: int = Field(3600, ge=1)
    animals_ttl_seconds: int = Field(3600, ge=1)
    animal_search_ttl_seconds: int = Field(600, ge=1)
    users_ttl_seconds: int = Field(600, ge=1)
    applications_ttl_seconds: int = Field(300, ge=1)
    votes_ttl_seconds: int = Field(300, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Admission control for the global API surface and the auth endpoints."""

    enabled: bool = Field(
        True,
        description="Enable the global rate limit on /api",
    )
    window_seconds: int = Field(
        60,
        description="Global window size in seconds",
        ge=1,
    )
    max_requests: int = Field(
        100,
        description="Maximum requests per global window and client",
        ge=1,
    )
    auth_enabled: bool | None = Field(
        None,
        description="Enable the auth rate limit; defaults to the global flag",
    )
    auth_window_seconds: int = Field(
        300,
        description="Auth window size in seconds",
        ge=1,
    )
    auth_max_requests: int = Field(
        10,
        description="Maximum requests per auth window and client",
        ge=1,
    )
    bypass: bool = Field(
        False,
        description="Skip every policy (test and benchmark runs)",
    )
    trust_forwarded_for: bool = Field(
        False,
        description="Use the first X-Forwarded-For hop as the client identity",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers on admitted responses",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )

    @property
    def auth_is_enabled(self) -> bool:
        if self.auth_enabled is None:
            return self.enabled
        return self.auth_enabled


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10 * 1024 * 1024, description="Rotate after this size; 0 disables rotation")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field("X-Request-ID", description="Correlation header name")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


def _build_app_settings() -> AppSettings:
    # BaseSettings populates fields from the environment; the ignore keeps
    # static checkers from treating them as required constructor arguments.
    return AppSettings()  # type: ignore[call-arg]


def _build_cache_settings() -> CacheSettings:
    return CacheSettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> RateLimitSettings:
    return RateLimitSettings()  # type: ignore[call-arg]


def _build_log_settings() -> LogSettings:
    return LogSettings()  # type: ignore[call-arg]


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    cache: CacheSettings = Field(default_factory=_build_cache_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
