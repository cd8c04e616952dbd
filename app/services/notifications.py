"""Notification outbox: enqueue with the state change, deliver later."""

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy import update as sa_update
from sqlalchemy.orm import Session
from sqlmodel import col, select

from app.core.config import settings
from app.core.database import get_session
from app.models import (
    Client,
    NotificationEvent,
    NotificationOutbox,
    NotificationStatus,
    Project,
)
from app.services.email import EmailSender

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for the client notification outbox."""

    @staticmethod
    def client_email_for_project(
        session: Session, project_id: UUID
    ) -> tuple[str | None, Project | None]:
        """Look up the contact email of a project's client."""
        project = session.execute(
            select(Project).where(Project.id == project_id)
        ).scalar_one_or_none()
        if project is None or project.client_id is None:
            return None, project

        client = session.execute(
            select(Client).where(Client.id == project.client_id)
        ).scalar_one_or_none()
        if client is None or not client.email:
            return None, project
        return client.email, project

    @staticmethod
    def enqueue(
        session: Session,
        event_type: NotificationEvent,
        recipient_email: str,
        payload: dict,
    ) -> NotificationOutbox:
        """Add a pending notification to the caller's transaction."""
        notification = NotificationOutbox(
            event_type=event_type.value,
            recipient_email=recipient_email,
            payload=payload,
            status=NotificationStatus.PENDING.value,
        )
        session.add(notification)
        session.flush()
        return notification

    @staticmethod
    def schedule_dispatch() -> None:
        """Ask a worker to drain the outbox."""
        from app.tasks.notifications import dispatch_notifications

        dispatch_notifications.delay()

    @staticmethod
    def get_notification(notification_id: UUID) -> NotificationOutbox | None:
        with get_session() as session:
            return session.execute(
                select(NotificationOutbox).where(NotificationOutbox.id == notification_id)
            ).scalar_one_or_none()

    @staticmethod
    def list_notifications(
        status: NotificationStatus | None = None,
    ) -> list[NotificationOutbox]:
        with get_session() as session:
            statement = select(NotificationOutbox).order_by(
                col(NotificationOutbox.created_at).asc()
            )
            if status is not None:
                statement = statement.where(
                    NotificationOutbox.status == NotificationStatus(status).value
                )
            return list(session.execute(statement).scalars().all())

    @staticmethod
    def _deliverable(now: datetime):
        """Rows a drainer may take: pending ones, and sends whose lease expired."""
        lease_expired = now - timedelta(seconds=settings.notification_lease_seconds)
        return or_(
            col(NotificationOutbox.status) == NotificationStatus.PENDING.value,
            and_(
                col(NotificationOutbox.status) == NotificationStatus.SENDING.value,
                or_(
                    col(NotificationOutbox.sending_started_at).is_(None),
                    col(NotificationOutbox.sending_started_at) < lease_expired,
                ),
            ),
        )

    @staticmethod
    def _claim_for_sending(notification_id: UUID) -> bool:
        """Move a row to sending; only one drainer can win."""
        now = datetime.now(UTC)
        with get_session() as session:
            result = session.execute(
                sa_update(NotificationOutbox)
                .where(
                    col(NotificationOutbox.id) == notification_id,
                    NotificationService._deliverable(now),
                )
                .values(status=NotificationStatus.SENDING.value, sending_started_at=now)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    @staticmethod
    def _release(notification_id: UUID) -> bool:
        """Hand a row we hold in sending back to pending."""
        with get_session() as session:
            result = session.execute(
                sa_update(NotificationOutbox)
                .where(
                    col(NotificationOutbox.id) == notification_id,
                    col(NotificationOutbox.status) == NotificationStatus.SENDING.value,
                )
                .values(status=NotificationStatus.PENDING.value, sending_started_at=None)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    @staticmethod
    def _record_attempt(
        notification: NotificationOutbox,
        success: bool,
        error: str | None,
        message_id: str | None,
    ) -> NotificationStatus:
        attempts = notification.attempts + 1
        if success:
            status = NotificationStatus.SENT
        elif attempts >= settings.notification_max_attempts:
            status = NotificationStatus.FAILED
        else:
            status = NotificationStatus.PENDING

        values: dict = {
            "status": status.value,
            "attempts": attempts,
            "last_error": error,
            "sending_started_at": None,
        }
        if success:
            values["sent_at"] = datetime.now(UTC)
            values["provider_message_id"] = message_id

        with get_session() as session:
            session.execute(
                sa_update(NotificationOutbox)
                .where(col(NotificationOutbox.id) == notification.id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
        return status

    @staticmethod
    def dispatch_pending(batch_size: int | None = None) -> dict[str, int]:
        """Deliver up to ``batch_size`` pending notifications.

        Send failures stay in the outbox for a later drain until
        ``notification_max_attempts`` is reached. A row whose result could
        not be recorded goes back to pending; if even that fails, the row is
        taken over by a later drain once ``notification_lease_seconds`` have
        passed. Delivery is therefore at least once. Task and requirement
        state is never touched here.

        Returns:
            Counts of sent, retried and failed notifications
        """
        batch_size = batch_size or settings.notification_batch_size
        with get_session() as session:
            pending = list(
                session.execute(
                    select(NotificationOutbox)
                    .where(NotificationService._deliverable(datetime.now(UTC)))
                    .order_by(col(NotificationOutbox.created_at).asc())
                    .limit(batch_size)
                )
                .scalars()
                .all()
            )

        counts = {"sent": 0, "retry": 0, "failed": 0}
        for notification in pending:
            if not NotificationService._claim_for_sending(notification.id):
                continue

            try:
                result = EmailSender.send(
                    notification.recipient_email,
                    notification.event_type,
                    notification.payload or {},
                )
                success, error, message_id = result.success, result.error, result.message_id
            except Exception as e:
                logger.error(f"Error sending notification {notification.id}: {e}")
                success, error, message_id = False, str(e), None

            try:
                status = NotificationService._record_attempt(
                    notification, success, error, message_id
                )
            except Exception as e:
                logger.error(
                    f"Could not record attempt for notification {notification.id}: {e}"
                )
                try:
                    NotificationService._release(notification.id)
                except Exception as release_error:
                    logger.error(
                        f"Could not release notification {notification.id}, "
                        f"leaving it to expire: {release_error}"
                    )
                counts["retry"] += 1
                continue

            if status == NotificationStatus.SENT:
                counts["sent"] += 1
                logger.info(
                    f"Sent {notification.event_type} notification to "
                    f"{notification.recipient_email}"
                )
            elif status == NotificationStatus.FAILED:
                counts["failed"] += 1
                logger.warning(
                    f"Giving up on notification {notification.id} after "
                    f"{notification.attempts + 1} attempts: {error}"
                )
            else:
                counts["retry"] += 1

        return counts
