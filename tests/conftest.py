"""Pytest configuration and fixtures for test suite."""

import os
import sys
from pathlib import Path

import pytest

# Set test environment BEFORE any other imports
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("APP_ENABLE_BACKGROUND_TASKS", "false")
os.environ.setdefault("EMAIL_PROVIDER", "null")
os.environ.setdefault("DB_DRIVER", "sqlite+aiosqlite")

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


def _reset_db_modules():
    """Reset database module globals to ensure clean state."""
    try:
        import database.async_engine as module
        module._async_engine = None
        module._async_session_factory = None
    except ImportError:
        pass


def _reset_cached_settings():
    from config.database import get_database_settings
    from config.settings import get_settings

    get_settings.cache_clear()
    get_database_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_database_globals():
    """Reset database module globals before and after each test."""
    _reset_db_modules()
    yield
    _reset_db_modules()


@pytest.fixture(autouse=True)
def reset_email_provider():
    """Drop any provider a test installed."""
    from notifications.email_provider import set_email_provider

    set_email_provider(None)
    yield
    set_email_provider(None)


@pytest.fixture
def sqlite_database(tmp_path, monkeypatch):
    """Point the database layer at a fresh SQLite file."""
    db_file = tmp_path / "moderation.db"
    monkeypatch.setenv("DB_SQLITE_PATH", str(db_file))
    _reset_cached_settings()
    _reset_db_modules()
    yield db_file
    _reset_cached_settings()


@pytest.fixture
def mock_async_session():
    """Provide a mock async session for testing."""
    from unittest.mock import AsyncMock
    return AsyncMock()
