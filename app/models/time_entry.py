"""Time entry model for the append-only work ledger."""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, String, Text
from sqlmodel import Field, SQLModel


class TimeEntryType(str, Enum):
    """Kind of interval recorded against a task."""

    WORK = "work"
    REVIEW = "review"
    BLOCKED = "blocked"


class TimeEntry(SQLModel, table=True):
    """Work interval logged against a task. Never updated once written."""

    __tablename__ = "time_entries"

    # Primary key and timestamps
    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique identifier for the time entry",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
        description="Timestamp when the entry was written",
    )

    # Foreign keys
    task_id: UUID = Field(
        sa_column=Column(ForeignKey("tasks.id", ondelete="CASCADE"), index=True),
        description="ID of the task this entry belongs to",
    )
    agent_id: UUID | None = Field(
        default=None,
        sa_column=Column(ForeignKey("agents.id", ondelete="SET NULL"), index=True),
        description="Agent that logged the entry, null for human entries",
    )

    # Interval
    entry_type: TimeEntryType = Field(
        default=TimeEntryType.WORK,
        sa_column=Column(String, nullable=False),
        description="Entry type: work, review, blocked",
    )
    started_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), index=True, nullable=False),
    )
    ended_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True))
    )
    duration_minutes: float | None = Field(
        default=None,
        sa_column=Column(Float),
        description="Non-negative duration, null for open markers",
    )

    # Details
    notes: str | None = Field(default=None, sa_column=Column(Text))
    files_modified: list[str] | None = Field(default=None, sa_column=Column(JSON))
    commit_hash: str | None = Field(default=None)
    entry_metadata: dict | None = Field(
        default=None,
        sa_column=Column("metadata", JSON),
        description="Structured extras such as session or completion metadata",
    )
