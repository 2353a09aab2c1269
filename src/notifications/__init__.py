"""
Notification Delivery System

Email delivery for review outcomes.

Provides:
- Multi-provider email delivery (SendGrid, SMTP, null)
- Review email templates for evidence and audits
- Dispatcher that queues or sends one email per reviewed submission

Usage:
    from notifications import NotificationDispatcher

    queued = await NotificationDispatcher().dispatch_review(
        SubmissionKind.AUDIT,
        SubmissionStatus.REJECTED,
        submission_id=audit.id,
        recipient_email="teacher@school.org",
        school_name="Oak Primary",
        review_notes="Part 2 totals are missing",
    )
"""

from .email_provider import (
    EmailProvider,
    EmailMessage,
    DeliveryResult,
    DeliveryStatus,
    NullEmailProvider,
    get_email_provider,
    set_email_provider,
    send_email,
)

from .review_emails import (
    ReviewEmailTemplate,
    RenderedEmail,
    render_review_email,
    send_review_email,
)

from .dispatcher import NotificationDispatcher, ReviewEmailPayload

__all__ = [
    # Core interfaces
    "EmailProvider",
    "EmailMessage",
    "DeliveryResult",
    "DeliveryStatus",
    "NullEmailProvider",
    "get_email_provider",
    "set_email_provider",
    "send_email",
    # Review emails
    "ReviewEmailTemplate",
    "RenderedEmail",
    "render_review_email",
    "send_review_email",
    # Dispatch
    "NotificationDispatcher",
    "ReviewEmailPayload",
]
