"""
Background Tasks Module - Celery-based async task processing.

Provides:
- Celery app configuration with Redis broker
- Review notification delivery with worker-side retries
"""

from .celery_app import celery_app, create_celery_app
from .notification_tasks import send_review_email_task

__all__ = [
    "celery_app",
    "create_celery_app",
    "send_review_email_task",
]
