"""
Review Notification Dispatcher

Sends one email per reviewed submission after its status change has been
committed. Dispatch is a separate step from the status change:
- the caller learns whether the notification was queued
- a dispatch failure is logged and reported, never raised
- nothing here can roll back a review

With background tasks enabled the email is handed to the Celery task
`notifications.send_review_email`; otherwise it is sent inline.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple

from config.settings import Settings, get_settings
from moderation.models import SubmissionKind, SubmissionStatus

from .email_provider import DeliveryResult
from .review_emails import RenderedEmail, render_review_email, send_review_email

logger = logging.getLogger(__name__)


@dataclass
class ReviewEmailPayload:
    """Serializable description of one review email."""
    recipient_email: str
    kind: str
    status: str
    submission_id: str
    school_name: str
    title: Optional[str] = None
    review_notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewEmailPayload":
        return cls(**data)


def deliver_review_email(
    payload: ReviewEmailPayload,
    settings: Optional[Settings] = None,
) -> Tuple[RenderedEmail, DeliveryResult]:
    """Render and send one review email. Used by both the worker and inline dispatch."""
    settings = settings or get_settings()
    rendered = render_review_email(
        SubmissionKind(payload.kind),
        SubmissionStatus(payload.status),
        school_name=payload.school_name,
        title=payload.title,
        review_notes=payload.review_notes,
        frontend_url=settings.frontend_url,
        default_feedback=settings.email.default_rejection_feedback,
    )
    result = send_review_email(
        payload.recipient_email,
        rendered,
        metadata={"submission_id": payload.submission_id, "kind": payload.kind},
    )
    return rendered, result


async def record_delivery(
    payload: ReviewEmailPayload,
    rendered: RenderedEmail,
    result: DeliveryResult,
) -> None:
    """Write an email log row. Failures are logged only."""
    from database.async_engine import get_async_session
    from database.models import EmailLogRecord

    try:
        async with get_async_session() as session:
            session.add(EmailLogRecord(
                recipient_email=payload.recipient_email,
                subject=rendered.subject,
                template=rendered.template.value,
                status=result.status.value,
                error=result.error_message,
                provider_message_id=result.message_id,
                submission_kind=payload.kind,
                submission_id=payload.submission_id,
            ))
    except Exception as e:
        logger.warning(f"Failed to record email log for {payload.submission_id}: {e}")


class NotificationDispatcher:
    """
    Dispatches review notifications.

    Example:
        dispatcher = NotificationDispatcher()
        queued = await dispatcher.dispatch_review(
            SubmissionKind.EVIDENCE, SubmissionStatus.APPROVED,
            submission_id="e-1", recipient_email="teacher@school.org",
            school_name="Oak Primary", title="Assembly photos",
        )
    """

    def __init__(self, settings: Optional[Settings] = None, use_background_tasks: Optional[bool] = None):
        self.settings = settings or get_settings()
        if use_background_tasks is None:
            use_background_tasks = self.settings.enable_background_tasks
        self.use_background_tasks = use_background_tasks

    async def dispatch_review(
        self,
        kind: SubmissionKind,
        status: SubmissionStatus,
        submission_id: str,
        recipient_email: Optional[str],
        school_name: Optional[str],
        title: Optional[str] = None,
        review_notes: Optional[str] = None,
    ) -> bool:
        """
        Queue or send the email for one reviewed submission.

        Returns:
            True if the notification was queued (or sent inline successfully)
        """
        if not recipient_email:
            logger.info(
                f"No recipient for {kind.value} {submission_id}; notification skipped",
                extra={"submission_id": submission_id},
            )
            return False

        payload = ReviewEmailPayload(
            recipient_email=recipient_email,
            kind=kind.value,
            status=status.value,
            submission_id=submission_id,
            school_name=school_name or "your school",
            title=title,
            review_notes=review_notes,
        )

        try:
            if self.use_background_tasks:
                return await self._enqueue(payload)
            return await self._send_inline(payload)
        except Exception as e:
            logger.error(
                f"Failed to dispatch review notification for {kind.value} {submission_id}: {e}",
                extra={"submission_id": submission_id, "kind": kind.value},
            )
            return False

    async def _enqueue(self, payload: ReviewEmailPayload) -> bool:
        from tasks.notification_tasks import send_review_email_task

        async_result = await asyncio.to_thread(send_review_email_task.delay, payload.to_dict())
        logger.info(
            f"Queued review email for {payload.kind} {payload.submission_id}",
            extra={"task_id": async_result.id, "submission_id": payload.submission_id},
        )
        return True

    async def _send_inline(self, payload: ReviewEmailPayload) -> bool:
        rendered, result = await asyncio.to_thread(deliver_review_email, payload, self.settings)
        await record_delivery(payload, rendered, result)
        return result.success
