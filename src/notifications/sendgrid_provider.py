"""
SendGrid Email Provider

Production delivery of review notifications through SendGrid.

Configuration:
    SENDGRID_API_KEY: SendGrid API key (required)
    EMAIL_FROM_ADDRESS / EMAIL_FROM_NAME: default sender
"""

import logging
import os
from typing import Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Category, Content, Email, Mail, ReplyTo, To

from .email_provider import (
    EmailProvider,
    EmailMessage,
    DeliveryResult,
    DeliveryStatus,
)

logger = logging.getLogger(__name__)


class SendGridProvider(EmailProvider):
    """SendGrid email provider."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        """
        Initialize SendGrid provider.

        Args:
            api_key: SendGrid API key (or SENDGRID_API_KEY env var)
            from_email: Default sender email
            from_name: Default sender name
        """
        from config.settings import EmailSettings

        email_settings = EmailSettings()
        self.api_key = api_key or os.environ.get("SENDGRID_API_KEY")
        self.from_email = from_email or email_settings.from_address
        self.from_name = from_name or email_settings.from_name
        self._client: Optional[SendGridAPIClient] = None

    @property
    def provider_name(self) -> str:
        return "sendgrid"

    def _get_client(self) -> SendGridAPIClient:
        if self._client is None:
            self._client = SendGridAPIClient(api_key=self.api_key)
        return self._client

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def build_mail(self, message: EmailMessage) -> Mail:
        mail = Mail(
            from_email=Email(message.from_email or self.from_email, message.from_name or self.from_name),
            to_emails=To(message.to),
            subject=message.subject,
        )
        if message.body_text:
            mail.add_content(Content("text/plain", message.body_text))
        if message.body_html:
            mail.add_content(Content("text/html", message.body_html))
        if message.reply_to:
            mail.reply_to = ReplyTo(message.reply_to)
        for tag in message.tags[:10]:  # SendGrid max 10 categories
            mail.add_category(Category(tag))
        return mail

    def send(self, message: EmailMessage) -> DeliveryResult:
        """
        Send email via SendGrid.

        Returns:
            DeliveryResult with SendGrid message ID
        """
        if not self.is_configured():
            return DeliveryResult(
                success=False,
                status=DeliveryStatus.FAILED,
                provider=self.provider_name,
                error_message="SendGrid API key not configured",
            )

        message.validate()

        try:
            response = self._get_client().send(self.build_mail(message))
        except Exception as e:
            logger.exception(f"SendGrid send error: {e}")
            return DeliveryResult(
                success=False,
                status=DeliveryStatus.FAILED,
                provider=self.provider_name,
                error_message=str(e),
            )

        if response.status_code in (200, 201, 202):
            message_id = response.headers.get("X-Message-Id", "")
            logger.info(f"SendGrid: Email sent to {message.to}, message_id={message_id}")
            return DeliveryResult(
                success=True,
                status=DeliveryStatus.SENT,
                message_id=message_id,
                provider=self.provider_name,
            )

        error_msg = f"SendGrid returned status {response.status_code}"
        logger.error(f"SendGrid error: {error_msg}, body={response.body}")
        return DeliveryResult(
            success=False,
            status=DeliveryStatus.FAILED,
            provider=self.provider_name,
            error_message=error_msg,
        )
