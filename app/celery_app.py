"""Celery application configuration."""

from celery import Celery

from app.core.config import settings

# Create Celery app
app = Celery("shiftboard")

# Configure Celery
app.conf.update(
    # Broker configuration
    broker_url=settings.celery_broker_url,
    broker_connection_retry_on_startup=True,
    broker_connection_retry=True,
    broker_connection_max_retries=10,
    # Result backend - disabled, delivery state lives in the notification outbox
    result_backend=None,
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Task execution
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    # Task routing
    task_routes={
        "app.tasks.notifications.*": {"queue": "notifications"},
    },
    # Periodic sweep picks up rows whose dispatch was never scheduled
    beat_schedule={
        "drain-notification-outbox": {
            "task": "app.tasks.notifications.dispatch_notifications",
            "schedule": settings.notification_sweep_seconds,
        },
    },
)

# Auto-discover tasks from app.tasks module
app.autodiscover_tasks(["app.tasks"], related_name="notifications")
