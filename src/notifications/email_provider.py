"""
Email Provider Abstraction

Unified interface for delivering review notifications.

Supports:
- SendGrid (production)
- SMTP (self-hosted)
- Null (development and tests; logs instead of sending)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class DeliveryStatus(str, Enum):
    """Email delivery status."""
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class EmailMessage:
    """Email message to be sent."""
    to: str
    subject: str
    body_html: Optional[str] = None
    body_text: Optional[str] = None
    from_email: Optional[str] = None
    from_name: Optional[str] = None
    reply_to: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> bool:
        """Validate message has required fields."""
        if not self.to:
            raise ValueError("Recipient email (to) is required")
        if not self.subject:
            raise ValueError("Subject is required")
        if not self.body_html and not self.body_text:
            raise ValueError("Either body_html or body_text is required")
        return True


@dataclass
class DeliveryResult:
    """Result of email delivery attempt."""
    success: bool
    status: DeliveryStatus
    message_id: Optional[str] = None
    provider: Optional[str] = None
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "status": self.status.value,
            "message_id": self.message_id,
            "provider": self.provider,
            "error_message": self.error_message,
            "timestamp": self.timestamp.isoformat(),
        }


class EmailProvider(ABC):
    """Abstract base class for email providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return provider name for logging."""
        pass

    @abstractmethod
    def send(self, message: EmailMessage) -> DeliveryResult:
        """
        Send an email message.

        Args:
            message: Email message to send

        Returns:
            DeliveryResult with success/failure status
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if provider is properly configured."""
        pass


class NullEmailProvider(EmailProvider):
    """
    Null provider for testing/development.

    Logs emails but doesn't send them.
    """

    @property
    def provider_name(self) -> str:
        return "null"

    def send(self, message: EmailMessage) -> DeliveryResult:
        message.validate()
        logger.info(
            f"[NULL PROVIDER] Would send email to {message.to}: {message.subject}"
        )
        return DeliveryResult(
            success=True,
            status=DeliveryStatus.SENT,
            message_id=f"null-{datetime.utcnow().timestamp()}",
            provider=self.provider_name,
        )

    def is_configured(self) -> bool:
        return True


# Global provider instance
_email_provider: Optional[EmailProvider] = None


def get_email_provider() -> EmailProvider:
    """
    Get the configured email provider.

    EMAIL_PROVIDER selects sendgrid, smtp or null. A provider that reports
    itself unconfigured falls back to the null provider.

    Returns:
        Configured EmailProvider instance
    """
    global _email_provider

    if _email_provider is not None:
        return _email_provider

    from config.settings import EmailSettings

    choice = EmailSettings().provider
    provider: EmailProvider

    if choice == "sendgrid":
        from .sendgrid_provider import SendGridProvider
        provider = SendGridProvider()
    elif choice == "smtp":
        from .smtp_provider import SMTPProvider
        provider = SMTPProvider()
    else:
        provider = NullEmailProvider()

    if not provider.is_configured():
        logger.warning(
            f"Email provider '{choice}' is not configured. "
            "Review notifications will be logged but not sent."
        )
        provider = NullEmailProvider()

    logger.info(f"Email provider: {provider.provider_name}")
    _email_provider = provider
    return _email_provider


def set_email_provider(provider: Optional[EmailProvider]):
    """
    Set a custom email provider (for testing). None resets to configuration.

    Args:
        provider: EmailProvider instance to use
    """
    global _email_provider
    _email_provider = provider
    if provider is not None:
        logger.info(f"Email provider set to: {provider.provider_name}")


def send_email(
    to: str,
    subject: str,
    body_html: Optional[str] = None,
    body_text: Optional[str] = None,
    tags: Optional[List[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> DeliveryResult:
    """
    Send an email through the configured provider.

    The sender defaults to EMAIL_FROM_ADDRESS / EMAIL_FROM_NAME.

    Returns:
        DeliveryResult with status
    """
    from config.settings import EmailSettings

    email_settings = EmailSettings()
    message = EmailMessage(
        to=to,
        subject=subject,
        body_html=body_html,
        body_text=body_text,
        from_email=email_settings.from_address,
        from_name=email_settings.from_name,
        tags=tags or [],
        metadata=metadata or {},
    )

    return get_email_provider().send(message)
