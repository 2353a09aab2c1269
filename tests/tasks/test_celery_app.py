"""
Tests for Celery app configuration.
"""

from config.settings import CelerySettings, RedisSettings
from tasks.celery_app import NOTIFICATIONS_QUEUE, create_celery_app


class TestCreateCeleryApp:
    """Tests for broker, backend and routing setup."""

    def test_broker_and_backend_use_separate_dbs(self):
        app = create_celery_app(
            redis_settings=RedisSettings(host="cache", port=6379),
            celery_settings=CelerySettings(broker_db=4, result_db=5),
        )

        assert app.conf.broker_url == "redis://cache:6379/4"
        assert app.conf.result_backend == "redis://cache:6379/5"

    def test_notification_tasks_routed_to_queue(self):
        app = create_celery_app(celery_settings=CelerySettings(email_retry_delay=15))

        assert app.conf.task_routes["notifications.*"] == {"queue": NOTIFICATIONS_QUEUE}
        assert app.conf.task_default_retry_delay == 15
        assert app.conf.task_acks_late is True

    def test_review_email_task_registered(self):
        from tasks.celery_app import celery_app
        import tasks.notification_tasks  # noqa: F401

        assert "notifications.send_review_email" in celery_app.tasks
