"""
Pytest fixtures for notification tests.

Provides:
- RecordingProvider capturing sent messages
- Installed provider fixtures (succeeding and failing)
"""

from typing import List

import pytest

from notifications.email_provider import (
    DeliveryResult,
    DeliveryStatus,
    EmailMessage,
    EmailProvider,
    set_email_provider,
)


class RecordingProvider(EmailProvider):
    """Provider that stores messages instead of sending them."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[EmailMessage] = []

    @property
    def provider_name(self) -> str:
        return "recording"

    def is_configured(self) -> bool:
        return True

    def send(self, message: EmailMessage) -> DeliveryResult:
        message.validate()
        self.sent.append(message)
        if self.fail:
            return DeliveryResult(
                success=False,
                status=DeliveryStatus.FAILED,
                provider=self.provider_name,
                error_message="mailbox unavailable",
            )
        return DeliveryResult(
            success=True,
            status=DeliveryStatus.SENT,
            message_id=f"rec-{len(self.sent)}",
            provider=self.provider_name,
        )


@pytest.fixture
def recording_provider():
    provider = RecordingProvider()
    set_email_provider(provider)
    return provider


@pytest.fixture
def failing_provider():
    provider = RecordingProvider(fail=True)
    set_email_provider(provider)
    return provider
