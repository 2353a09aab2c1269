"""
SMTP Email Provider

Delivery through a self-hosted mail server.

Configuration:
    SMTP_HOST: SMTP server hostname
    SMTP_PORT: SMTP server port (default: 587)
    SMTP_USERNAME / SMTP_PASSWORD: optional authentication
    SMTP_USE_TLS: Use STARTTLS (default: true)
"""

import logging
import os
import smtplib
import ssl
from email.message import EmailMessage as MimeMessage
from email.utils import formataddr, make_msgid
from typing import Optional

from .email_provider import (
    EmailProvider,
    EmailMessage,
    DeliveryResult,
    DeliveryStatus,
)

logger = logging.getLogger(__name__)


class SMTPProvider(EmailProvider):
    """SMTP email provider using STARTTLS when enabled."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None,
    ):
        from config.settings import EmailSettings

        email_settings = EmailSettings()
        self.host = host or os.environ.get("SMTP_HOST")
        self.port = port or int(os.environ.get("SMTP_PORT", "587"))
        self.username = username or os.environ.get("SMTP_USERNAME")
        self.password = password or os.environ.get("SMTP_PASSWORD")
        if use_tls is None:
            use_tls = os.environ.get("SMTP_USE_TLS", "true").lower() == "true"
        self.use_tls = use_tls
        self.from_email = email_settings.from_address
        self.from_name = email_settings.from_name

    @property
    def provider_name(self) -> str:
        return "smtp"

    def is_configured(self) -> bool:
        return bool(self.host)

    def build_mime(self, message: EmailMessage) -> MimeMessage:
        mime = MimeMessage()
        mime["From"] = formataddr((message.from_name or self.from_name, message.from_email or self.from_email))
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime["Message-ID"] = make_msgid()
        if message.reply_to:
            mime["Reply-To"] = message.reply_to

        mime.set_content(message.body_text or "")
        if message.body_html:
            mime.add_alternative(message.body_html, subtype="html")
        return mime

    def send(self, message: EmailMessage) -> DeliveryResult:
        if not self.is_configured():
            return DeliveryResult(
                success=False,
                status=DeliveryStatus.FAILED,
                provider=self.provider_name,
                error_message="SMTP not configured (missing SMTP_HOST)",
            )

        message.validate()
        mime = self.build_mime(message)

        try:
            with smtplib.SMTP(self.host, self.port) as server:
                if self.use_tls:
                    server.starttls(context=ssl.create_default_context())
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(mime)
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {e}")
            return DeliveryResult(
                success=False,
                status=DeliveryStatus.FAILED,
                provider=self.provider_name,
                error_message=str(e),
            )
        except OSError as e:
            logger.error(f"SMTP connection error: {e}")
            return DeliveryResult(
                success=False,
                status=DeliveryStatus.FAILED,
                provider=self.provider_name,
                error_message=f"Cannot reach {self.host}:{self.port}: {e}",
            )

        logger.info(f"SMTP: Email sent to {message.to}")
        return DeliveryResult(
            success=True,
            status=DeliveryStatus.SENT,
            message_id=mime["Message-ID"],
            provider=self.provider_name,
        )
