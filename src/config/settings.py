"""Application settings using Pydantic Settings.

Centralized configuration for the moderation console.

Production requires the following environment variables:
- EMAIL_PROVIDER: "sendgrid" or "smtp" (defaults to "null", which drops mail)
- SENDGRID_API_KEY: when EMAIL_PROVIDER=sendgrid
- EMAIL_FROM_ADDRESS: verified sender address
"""

import os
import sys
import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class RedisSettings(BaseSettings):
    """Redis configuration for the Celery broker."""

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    db: int = Field(default=0, description="Redis database number")
    password: Optional[str] = Field(default=None, description="Redis password")
    ssl: bool = Field(default=False, description="Use SSL for Redis connection")

    @property
    def url(self) -> str:
        """Get Redis URL."""
        auth = f":{self.password}@" if self.password else ""
        protocol = "rediss" if self.ssl else "redis"
        return f"{protocol}://{auth}{self.host}:{self.port}/{self.db}"

    def url_for_db(self, db: int) -> str:
        auth = f":{self.password}@" if self.password else ""
        protocol = "rediss" if self.ssl else "redis"
        return f"{protocol}://{auth}{self.host}:{self.port}/{db}"


class CelerySettings(BaseSettings):
    """Celery task queue configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CELERY_",
        extra="ignore",
    )

    broker_db: int = Field(default=1, description="Redis DB for Celery broker")
    result_db: int = Field(default=2, description="Redis DB for Celery results")

    task_serializer: str = Field(default="json", description="Task serialization format")
    result_serializer: str = Field(default="json", description="Result serialization format")
    accept_content: list = Field(default=["json"], description="Accepted content types")

    task_acks_late: bool = Field(default=True, description="Acknowledge tasks after completion")
    worker_prefetch_multiplier: int = Field(default=1, description="Tasks to prefetch per worker")
    task_time_limit: int = Field(default=60, description="Hard task time limit in seconds")
    task_soft_time_limit: int = Field(default=45, description="Soft task time limit")

    # Email delivery retries belong to the worker, never to the review request
    email_max_retries: int = Field(default=3, description="Retries for a failed email delivery")
    email_retry_delay: int = Field(default=60, description="Seconds between email retries")


class EmailSettings(BaseSettings):
    """Outgoing review notification settings."""

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        extra="ignore",
    )

    provider: str = Field(default="null", description="Email provider: sendgrid, smtp or null")
    from_address: str = Field(default="noreply@plasticclever.org", description="Sender address")
    from_name: str = Field(default="Plastic Clever Schools", description="Sender display name")
    default_rejection_feedback: str = Field(
        default="Please review and resubmit",
        description="Feedback sent when a rejection carries no notes",
    )

    @field_validator("provider")
    @classmethod
    def normalize_provider(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("sendgrid", "smtp", "null"):
            raise ValueError(f"Unknown email provider: {value}")
        return value


class ModerationSettings(BaseSettings):
    """Review workflow configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MODERATION_",
        extra="ignore",
    )

    store_base_url: str = Field(
        default="http://localhost:8000/api/admin",
        description="Base URL of the admin submission API",
    )
    request_timeout: float = Field(default=30.0, description="Store request timeout in seconds")
    reviewer_header: str = Field(default="X-Reviewer-Id", description="Header carrying the reviewer id")
    max_batch_size: int = Field(default=500, description="Max submissions per batch action")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application info
    name: str = Field(default="Moderation Console", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment name")

    # API settings
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=False, description="Emit JSON log lines")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    # CORS
    cors_origins: list = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins"
    )

    frontend_url: str = Field(default="http://localhost:3000", description="Console URL used in emails")

    # Feature flags
    enable_background_tasks: bool = Field(default=True, description="Send email through Celery")

    # Nested settings (loaded separately)
    @property
    def redis(self) -> RedisSettings:
        return RedisSettings()

    @property
    def celery(self) -> CelerySettings:
        return CelerySettings()

    @property
    def email(self) -> EmailSettings:
        return EmailSettings()

    @property
    def moderation(self) -> ModerationSettings:
        return ModerationSettings()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment in ("production", "prod", "staging")

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration requirements for production.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.is_production:
            return errors

        if self.debug:
            errors.append("APP_DEBUG: Must be False in production")

        email = self.email
        if email.provider == "null":
            errors.append("EMAIL_PROVIDER: Review notifications are disabled; set sendgrid or smtp")
        elif email.provider == "sendgrid" and not os.environ.get("SENDGRID_API_KEY"):
            errors.append("SENDGRID_API_KEY: Required when EMAIL_PROVIDER=sendgrid")
        elif email.provider == "smtp" and not os.environ.get("SMTP_HOST"):
            errors.append("SMTP_HOST: Required when EMAIL_PROVIDER=smtp")

        return errors


# =============================================================================
# STARTUP VALIDATION
# =============================================================================

class StartupConfigError(Exception):
    """Raised when configuration validation fails at startup."""
    pass


def validate_startup_config(settings: Settings, exit_on_failure: bool = True) -> bool:
    """
    Validate settings at application startup.

    Args:
        settings: Application settings instance
        exit_on_failure: If True, exit the process on failure (default)

    Returns:
        True if validation passes

    Raises:
        StartupConfigError: If validation fails and exit_on_failure is False
    """
    errors = settings.validate_production_config()

    if not errors:
        if settings.is_production:
            logger.info("Production configuration validation PASSED")
        return True

    error_msg = "Invalid production configuration:\n" + "".join(
        f"  {i}. {err}\n" for i, err in enumerate(errors, 1)
    )
    logger.critical(error_msg)

    if exit_on_failure:
        print(error_msg, file=sys.stderr)
        sys.exit(1)
    raise StartupConfigError(error_msg)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Returns:
        Settings: Cached settings loaded from environment.
    """
    return Settings()
