"""Notification outbox model."""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlmodel import Field, SQLModel


class NotificationEvent(str, Enum):
    TASK_SHIPPED = "task_shipped"
    REQUIREMENT_REVIEW = "requirement_review"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"


class NotificationOutbox(SQLModel, table=True):
    """Pending client notification, written in the same transaction as the
    status change that triggered it and drained by a Celery worker."""

    __tablename__ = "notification_outbox"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True), index=True),
    )
    event_type: NotificationEvent = Field(sa_column=Column(String, nullable=False))
    recipient_email: str
    payload: dict = Field(default_factory=dict, sa_column=Column(JSON))
    status: NotificationStatus = Field(
        default=NotificationStatus.PENDING,
        sa_column=Column(String, index=True, nullable=False),
    )
    attempts: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    last_error: str | None = Field(default=None, sa_column=Column(Text))
    provider_message_id: str | None = None
    sent_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True))
    )
    sending_started_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True)),
        description="When a drainer took the row; stale claims are taken over",
    )
