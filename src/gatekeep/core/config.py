"""Configuration management for Gatekeep.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded at application
startup and is immutable during runtime.
"""

import re
from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*(ms|s|m|h|d|w)?\s*$")
_DURATION_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}


def parse_duration(value: str) -> timedelta:
    """Parse a duration string such as ``15m``, ``1h`` or ``900s``.

    A bare number is read as seconds.

    Args:
        value: Duration string.

    Returns:
        The parsed duration.

    Raises:
        ValueError: If the string is not a positive duration.
    """
    match = _DURATION_PATTERN.match(value)
    if match is None:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    duration = int(amount) * _DURATION_UNITS[unit or "s"]
    if duration <= timedelta(0):
        raise ValueError(f"Duration must be positive: {value!r}")
    return duration


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables and .env files.
    All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GATEKEEP_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "Gatekeep"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"
    app_url: str = Field(
        default="http://localhost:3000",
        description="Public URL of the frontend, used in email links",
    )

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1

    # Database Settings
    database_url: str = "sqlite+aiosqlite:///./gk_data/gatekeep.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600
    db_echo: bool = False
    db_sqlite_busy_timeout: int = 5000  # milliseconds
    store_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound for one unit of work against the store",
    )

    # Signing Keys
    jwt_private_key_pem: str | None = None
    jwt_public_key_pem: str | None = None
    jwt_private_key_path: str | None = None
    jwt_public_key_path: str | None = None
    jwt_issuer: str = "gatekeep"

    # Token Lifetimes
    access_token_ttl: str = "15m"
    refresh_token_ttl_days: int = Field(default=14, ge=1)
    password_reset_ttl_minutes: int = Field(default=30, ge=1)
    email_verification_ttl_hours: int = Field(default=24, ge=1)

    # Password Hashing
    password_hash_time_cost: int = Field(
        default=3,
        ge=1,
        description="Argon2 time cost (iterations)",
    )

    # Email Settings
    email_provider: Literal["console", "smtp", "resend"] = "console"
    email_from: str = "no-reply@localhost"
    email_from_name: str | None = None
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    smtp_use_ssl: bool = False
    resend_api_key: str | None = None
    email_send_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Upper bound for handing one message to the email provider",
    )

    # Rate Limiting Settings (auth endpoints, per client address)
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = Field(default=10, ge=1)
    rate_limit_burst: int = Field(default=10, ge=1)

    # Security Headers
    security_headers_enabled: bool = True
    hsts_max_age: int = 31536000
    csp_policy: str = "default-src 'none'; frame-ancestors 'none'"
    permissions_policy: str = "geolocation=(), camera=(), microphone=()"

    # CORS Settings
    cors_origins: list[str] = Field(default=["http://localhost:3000", "http://localhost:5173"])
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = Field(default=["*"])
    cors_allow_headers: list[str] = Field(default=["*"])

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("access_token_ttl")
    @classmethod
    def validate_access_token_ttl(cls, v: str) -> str:
        """Reject access token lifetimes that cannot be parsed."""
        parse_duration(v)
        return v

    @model_validator(mode="after")
    def validate_sqlite_workers(self) -> "Settings":
        """Validate that SQLite is not used with multiple workers."""
        if self.workers > 1 and self.database_url.startswith("sqlite"):
            raise ValueError(
                "SQLite does not support multiple worker processes. "
                f"Requested {self.workers} workers, but SQLite requires workers=1. "
                "Either use --workers 1 or switch to PostgreSQL."
            )
        return self

    @model_validator(mode="after")
    def validate_email_provider(self) -> "Settings":
        """Validate that the selected email provider is configured."""
        if self.email_provider == "smtp" and not self.smtp_host:
            raise ValueError("GATEKEEP_SMTP_HOST is required when email_provider is 'smtp'")
        if self.email_provider == "resend" and not self.resend_api_key:
            raise ValueError(
                "GATEKEEP_RESEND_API_KEY is required when email_provider is 'resend'"
            )
        return self

    @property
    def access_token_lifetime(self) -> timedelta:
        """Access token lifetime as a timedelta."""
        return parse_duration(self.access_token_ttl)

    @property
    def refresh_token_lifetime(self) -> timedelta:
        """Refresh token lifetime as a timedelta."""
        return timedelta(days=self.refresh_token_ttl_days)

    @property
    def password_reset_lifetime(self) -> timedelta:
        """Password reset token lifetime as a timedelta."""
        return timedelta(minutes=self.password_reset_ttl_minutes)

    @property
    def email_verification_lifetime(self) -> timedelta:
        """Email verification token lifetime as a timedelta."""
        return timedelta(hours=self.email_verification_ttl_hours)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"

    @property
    def database_url_sync(self) -> str:
        """Get synchronous database URL for migrations."""
        url = self.database_url
        if url.startswith("sqlite+aiosqlite"):
            return url.replace("sqlite+aiosqlite", "sqlite")
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql")
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    This function caches the settings instance to avoid reloading
    configuration on every call. Settings are loaded once at startup.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
