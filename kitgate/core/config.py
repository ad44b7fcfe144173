"""Settings for the kit access service, read from the environment.

``APP_ENV`` (development, testing, staging, production) picks the
``.env.<APP_ENV>`` file at the project root. The file is optional; deployed
instances usually receive plain environment variables instead.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENV = os.getenv("APP_ENV", "development")

PROJECT_ROOT = Path(__file__).resolve().parents[2]

KNOWN_ENVIRONMENTS = ("development", "testing", "staging", "production")


def _env_file_for(environment: str) -> Path | None:
    name = environment if environment in KNOWN_ENVIRONMENTS else "development"
    path = PROJECT_ROOT / f".env.{name}"
    return path if path.is_file() else None


# Group settings below are separate BaseSettings, so the file goes into os.environ
_env_file = _env_file_for(APP_ENV)
if _env_file is not None:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _default_kit_documents() -> dict[str, dict[str, str]]:
    """Storage paths per kit slug and orientation for the current campaign."""

    return {
        slug: {
            orientation: f"{slug}/camp_q1_26_v1.1_{slug}_{orientation}.pdf"
            for orientation in ("hor", "ver")
        }
        for slug in ("startup", "oro", "zafiro")
    }


# Required fields come from env vars, not constructor arguments
def _build_supabase_settings() -> "SupabaseSettings":
    return SupabaseSettings()  # type: ignore[call-arg]


def _build_token_settings() -> "TokenSettings":
    return TokenSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class SupabaseSettings(BaseSettings):
    """Remote record store (PostgREST) and blob store configuration."""

    url: str = Field(
        ...,
        description="Base URL of the backend project (e.g., https://xyz.supabase.co)",
    )
    service_role_key: str = Field(
        ...,
        description="Service key sent as apikey and bearer token on every call",
    )
    storage_bucket: str = Field(
        "kit-pdfs",
        description="Storage bucket holding the kit PDF documents",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Timeout for each remote store round-trip in seconds",
        gt=0,
    )
    page_size: int = Field(
        1000,
        description="Rows per page on full scans; keep at or below PostgREST max-rows",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        case_sensitive=False,
    )


class TokenSettings(BaseSettings):
    """PDF access token signing configuration."""

    secret: str | None = Field(
        None,
        description="HMAC secret for access tokens; falls back to the service key",
    )
    algorithm: str = Field(
        "HS256",
        description="JWT signing algorithm",
    )
    ttl_seconds: int = Field(
        600,
        description="Lifetime of a PDF access token in seconds",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="TOKEN_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required on admin routes",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid admin API keys",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-IP rate limiting on code redemption",
    )
    rate_limit_requests: int = Field(
        5,
        description="Maximum number of redemption attempts per window (per client IP)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        60,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_sweep_interval_seconds: float = Field(
        60.0,
        description="How often expired rate limit entries are purged",
        gt=0,
    )

    pdf_cache_max_age: int = Field(
        600,
        description="Cache-Control max-age for served PDF documents",
        ge=0,
    )
    kit_documents: dict[str, dict[str, str]] = Field(
        default_factory=_default_kit_documents,
        description="Storage path per kit slug and orientation (JSON in env)",
    )

    max_generate_count: int = Field(
        500,
        description="Upper bound on codes generated in one admin request",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10 * 1024 * 1024, description="Rotate after this many bytes (0 disables)")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field("X-Request-ID", description="Correlation header name")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """All settings groups; missing required values fail at import time."""

    app_env: str = APP_ENV
    supabase: SupabaseSettings = Field(default_factory=_build_supabase_settings)
    token: TokenSettings = Field(default_factory=_build_token_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
