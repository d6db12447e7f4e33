import os
from datetime import timedelta
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from gatekeep.core.config import Settings, get_settings, parse_duration


def test_settings_defaults():
    """Test that settings load with correct defaults."""
    get_settings.cache_clear()

    settings = Settings(_env_file=None)

    assert settings.app_name == "Gatekeep"
    assert settings.api_prefix == "/api/v1"
    assert settings.access_token_lifetime == timedelta(minutes=15)
    assert settings.refresh_token_lifetime == timedelta(days=14)
    assert settings.password_reset_lifetime == timedelta(minutes=30)
    assert settings.email_verification_lifetime == timedelta(hours=24)
    assert settings.password_hash_time_cost == 3
    assert settings.email_provider == "console"


def test_settings_env_override():
    """Test that environment variables override defaults."""
    with patch.dict(os.environ, {
        "GATEKEEP_ENVIRONMENT": "production",
        "GATEKEEP_ACCESS_TOKEN_TTL": "1h",
        "GATEKEEP_REFRESH_TOKEN_TTL_DAYS": "7",
        "GATEKEEP_STORE_TIMEOUT_SECONDS": "2.5",
    }):
        settings = Settings(_env_file=None)

        assert settings.is_production is True
        assert settings.access_token_lifetime == timedelta(hours=1)
        assert settings.refresh_token_lifetime == timedelta(days=7)
        assert settings.store_timeout_seconds == 2.5


def test_cors_origins_parsing():
    """Test CORS origins parsing from a comma-separated string."""
    settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test")

    assert settings.cors_origins == ["http://a.test", "http://b.test"]


def test_invalid_access_token_ttl_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, access_token_ttl="soon")


def test_sqlite_rejects_multiple_workers():
    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None, workers=4, database_url="sqlite+aiosqlite:///./x.db")

    assert "workers=1" in str(exc_info.value)


def test_smtp_provider_requires_host():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, email_provider="smtp", smtp_host=None)


def test_resend_provider_requires_api_key():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, email_provider="resend")


def test_database_url_sync():
    settings = Settings(
        _env_file=None, database_url="postgresql+asyncpg://u:p@localhost/gatekeep"
    )
    assert settings.database_url_sync == "postgresql://u:p@localhost/gatekeep"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("15m", timedelta(minutes=15)),
        ("900", timedelta(seconds=900)),
        ("2h", timedelta(hours=2)),
        ("1d", timedelta(days=1)),
        ("500ms", timedelta(milliseconds=500)),
        (" 30s ", timedelta(seconds=30)),
    ],
)
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["", "abc", "-5m", "0s", "10y"])
def test_parse_duration_rejects_invalid(value):
    with pytest.raises(ValueError):
        parse_duration(value)
