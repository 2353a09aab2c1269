"""
Tests for application and database settings.
"""

import pytest
from pydantic import ValidationError

from config.database import DatabaseSettings
from config.settings import (
    EmailSettings,
    ModerationSettings,
    RedisSettings,
    Settings,
    StartupConfigError,
    validate_startup_config,
)


class TestEmailSettings:
    """Tests for EMAIL_* settings."""

    def test_provider_is_normalized(self):
        assert EmailSettings(provider=" SendGrid ").provider == "sendgrid"

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            EmailSettings(provider="carrier-pigeon")

    def test_provider_from_environment(self, monkeypatch):
        monkeypatch.setenv("EMAIL_PROVIDER", "smtp")

        assert EmailSettings().provider == "smtp"


class TestRedisSettings:
    """Tests for Redis URLs."""

    def test_url(self):
        assert RedisSettings(host="cache", port=6380, db=3).url == "redis://cache:6380/3"

    def test_url_for_db_with_password_and_ssl(self):
        settings = RedisSettings(host="cache", password="secret", ssl=True)

        assert settings.url_for_db(1) == "rediss://:secret@cache:6379/1"


class TestModerationSettings:
    """Tests for MODERATION_* settings."""

    def test_defaults(self):
        settings = ModerationSettings()

        assert settings.reviewer_header == "X-Reviewer-Id"
        assert settings.max_batch_size == 500

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MODERATION_MAX_BATCH_SIZE", "25")

        assert ModerationSettings().max_batch_size == 25


class TestProductionValidation:
    """Tests for startup configuration checks."""

    def test_non_production_always_passes(self):
        settings = Settings(environment="development", debug=True)

        assert settings.validate_production_config() == []
        assert validate_startup_config(settings, exit_on_failure=False) is True

    def test_production_flags_debug_and_null_provider(self, monkeypatch):
        monkeypatch.setenv("EMAIL_PROVIDER", "null")
        settings = Settings(environment="production", debug=True)

        errors = settings.validate_production_config()

        assert any(e.startswith("APP_DEBUG") for e in errors)
        assert any(e.startswith("EMAIL_PROVIDER") for e in errors)

    def test_sendgrid_needs_api_key(self, monkeypatch):
        monkeypatch.setenv("EMAIL_PROVIDER", "sendgrid")
        monkeypatch.delenv("SENDGRID_API_KEY", raising=False)

        errors = Settings(environment="production").validate_production_config()

        assert errors == ["SENDGRID_API_KEY: Required when EMAIL_PROVIDER=sendgrid"]

    def test_smtp_with_host_passes(self, monkeypatch):
        monkeypatch.setenv("EMAIL_PROVIDER", "smtp")
        monkeypatch.setenv("SMTP_HOST", "smtp.example.org")

        assert Settings(environment="staging").validate_production_config() == []

    def test_startup_raises_without_exit(self, monkeypatch):
        monkeypatch.setenv("EMAIL_PROVIDER", "null")

        with pytest.raises(StartupConfigError, match="EMAIL_PROVIDER"):
            validate_startup_config(Settings(environment="production"), exit_on_failure=False)


class TestDatabaseSettings:
    """Tests for DB_* settings."""

    def test_sqlite_url_creates_parent(self, tmp_path):
        path = tmp_path / "nested" / "moderation.db"
        settings = DatabaseSettings(driver="sqlite+aiosqlite", sqlite_path=path)

        assert settings.is_sqlite
        assert settings.async_url == f"sqlite+aiosqlite:///{path.absolute()}"
        assert path.parent.exists()

    def test_postgres_url(self):
        settings = DatabaseSettings(
            driver="postgresql+asyncpg", host="db", port=5433, name="mod", user="svc", password="pw"
        )

        assert not settings.is_sqlite
        assert settings.async_url == "postgresql+asyncpg://svc:pw@db:5433/mod"
