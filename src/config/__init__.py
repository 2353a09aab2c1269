"""Configuration module for the moderation console."""

from .database import DatabaseSettings, get_database_settings
from .settings import (
    EmailSettings,
    ModerationSettings,
    Settings,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "get_database_settings",
    "EmailSettings",
    "ModerationSettings",
    "Settings",
    "get_settings",
]
