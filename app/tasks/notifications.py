"""Notification outbox Celery task."""

import logging

from app.celery_app import app
from app.services.notifications import NotificationService

logger = logging.getLogger(__name__)


@app.task(
    bind=True,
    name="app.tasks.notifications.dispatch_notifications",
    autoretry_for=(Exception,),
    max_retries=3,
    retry_backoff=5,
    retry_jitter=True,
)
def dispatch_notifications(self, batch_size: int | None = None):
    """Drain pending rows from the notification outbox.

    This is a thin Celery wrapper around NotificationService. Per-row send
    failures are recorded on the row itself; only store errors reach here
    and trigger a retry.

    Args:
        batch_size: Maximum number of notifications to send in this run
    """
    try:
        counts = NotificationService.dispatch_pending(batch_size=batch_size)
    except Exception as exc:
        logger.error(f"Error draining notification outbox: {exc}")
        raise exc

    if any(counts.values()):
        logger.info(
            f"Notification outbox drained: {counts['sent']} sent, "
            f"{counts['retry']} to retry, {counts['failed']} failed"
        )
    return counts
