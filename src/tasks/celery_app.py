"""
Celery App Configuration - Background task processing with Redis broker.

Configures Celery for:
- Review notification delivery

Usage:
    # Run worker
    celery -A tasks.celery_app worker --loglevel=info -Q notifications
"""

from __future__ import annotations

import logging
from typing import Optional

from celery import Celery, Task
from celery.signals import task_failure, worker_ready, worker_shutdown

from config.settings import get_settings, CelerySettings, RedisSettings

logger = logging.getLogger(__name__)

NOTIFICATIONS_QUEUE = "notifications"


def create_celery_app(
    redis_settings: Optional[RedisSettings] = None,
    celery_settings: Optional[CelerySettings] = None,
) -> Celery:
    """
    Create and configure a Celery application.

    Args:
        redis_settings: Redis connection settings
        celery_settings: Celery configuration settings

    Returns:
        Configured Celery application
    """
    settings = get_settings()
    redis_settings = redis_settings or settings.redis
    celery_settings = celery_settings or settings.celery

    app = Celery(
        "moderation",
        broker=redis_settings.url_for_db(celery_settings.broker_db),
        backend=redis_settings.url_for_db(celery_settings.result_db),
        include=[
            "tasks.notification_tasks",
        ],
    )

    app.conf.update(
        # Serialization
        task_serializer=celery_settings.task_serializer,
        result_serializer=celery_settings.result_serializer,
        accept_content=celery_settings.accept_content,
        result_accept_content=celery_settings.accept_content,

        # Task acknowledgment
        task_acks_late=celery_settings.task_acks_late,
        worker_prefetch_multiplier=celery_settings.worker_prefetch_multiplier,

        # Time limits
        task_time_limit=celery_settings.task_time_limit,
        task_soft_time_limit=celery_settings.task_soft_time_limit,

        result_expires=3600,
        broker_connection_timeout=5,
        task_publish_retry_policy={"max_retries": 2, "interval_start": 0, "interval_step": 1},
        task_default_retry_delay=celery_settings.email_retry_delay,

        task_routes={
            "notifications.*": {"queue": NOTIFICATIONS_QUEUE},
        },

        timezone="UTC",
        enable_utc=True,
    )

    return app


# Global Celery app instance
celery_app = create_celery_app()


class TaskBase(Task):
    """
    Base task class with logging hooks.
    """

    abstract = True

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(
            f"Task {self.name}[{task_id}] failed: {exc}",
            extra={
                "task_id": task_id,
                "task_name": self.name,
                "exception": str(exc),
            },
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)

    def on_success(self, retval, task_id, args, kwargs):
        logger.info(
            f"Task {self.name}[{task_id}] succeeded",
            extra={"task_id": task_id, "task_name": self.name},
        )
        super().on_success(retval, task_id, args, kwargs)

    def on_retry(self, exc, task_id, args, kwargs, einfo):
        logger.warning(
            f"Task {self.name}[{task_id}] retrying: {exc}",
            extra={
                "task_id": task_id,
                "task_name": self.name,
                "retry_count": self.request.retries,
            },
        )
        super().on_retry(exc, task_id, args, kwargs, einfo)


# Register base task class
celery_app.Task = TaskBase


@worker_ready.connect
def on_worker_ready(sender, **kwargs):
    logger.info(f"Celery worker ready: {sender}")


@worker_shutdown.connect
def on_worker_shutdown(sender, **kwargs):
    logger.info(f"Celery worker shutting down: {sender}")


@task_failure.connect
def on_task_failure(task_id, exception, args, kwargs, traceback, einfo, **other):
    """Log notification tasks that exhausted their retries."""
    task = other.get("sender")
    if task is None or not hasattr(task, "request"):
        return
    if task.request.retries >= getattr(task, "max_retries", 0):
        logger.error(
            f"Task {task.name}[{task_id}] gave up after {task.request.retries} retries: {exception}",
            extra={"task_id": task_id, "task_name": task.name},
        )
