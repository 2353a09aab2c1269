"""
Notification Tasks - Celery delivery of review emails.

Every attempt is written to the email log. A failed delivery is retried by
the worker; the review that triggered it is already committed and is never
affected.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from celery.exceptions import MaxRetriesExceededError

from config.settings import get_settings
from notifications.dispatcher import ReviewEmailPayload, deliver_review_email, record_delivery
from tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised inside the worker when the provider reports a failed delivery."""


def _run_async(coro):
    """
    Run an async coroutine from the worker's sync context.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    import concurrent.futures
    with concurrent.futures.ThreadPoolExecutor() as executor:
        return executor.submit(asyncio.run, coro).result(timeout=30)


@celery_app.task(
    bind=True,
    name="notifications.send_review_email",
    max_retries=get_settings().celery.email_max_retries,
)
def send_review_email_task(self, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deliver one review email.

    Args:
        payload: ReviewEmailPayload as a dict

    Returns:
        DeliveryResult as a dict
    """
    review_email = ReviewEmailPayload.from_dict(payload)
    rendered, result = deliver_review_email(review_email)
    _run_async(record_delivery(review_email, rendered, result))

    if not result.success:
        try:
            raise self.retry(exc=EmailDeliveryError(result.error_message or "delivery failed"))
        except MaxRetriesExceededError:
            logger.error(
                f"Giving up on review email for {review_email.kind} {review_email.submission_id}",
                extra={"submission_id": review_email.submission_id},
            )
            raise

    return result.to_dict()
