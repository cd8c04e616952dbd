"""Task model for agent-claimable work items."""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text
from sqlmodel import Field, SQLModel


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    BACKLOG = "backlog"
    ACTIVE = "active"
    REVIEW = "review"
    SHIPPED = "shipped"
    ICEBOX = "icebox"


class TaskPriority(str, Enum):
    """Task priority, most urgent first."""

    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Lower rank sorts first
PRIORITY_RANK = {
    TaskPriority.URGENT: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.MEDIUM: 3,
    TaskPriority.LOW: 4,
}


class WorkType(str, Enum):
    """Whether a task may be picked up by an agent."""

    HUMAN_ONLY = "human_only"
    AI_SUITABLE = "ai_suitable"
    HYBRID = "hybrid"


class Task(SQLModel, table=True):
    """Project task that agents claim, log work against and hand to review."""

    __tablename__ = "tasks"

    # Primary key and timestamps
    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique identifier for the task",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True), index=True),
        description="Timestamp when the task was created",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
        description="Timestamp when the task was last updated",
    )

    # Task fields
    project_id: UUID = Field(
        sa_column=Column(ForeignKey("projects.id", ondelete="CASCADE"), index=True),
        description="Owning project",
    )
    title: str = Field(description="Short task title")
    description: str | None = Field(default=None, sa_column=Column(Text))
    status: TaskStatus = Field(
        default=TaskStatus.BACKLOG,
        sa_column=Column(String, index=True, nullable=False),
        description="Task status: backlog, active, review, shipped, icebox",
    )
    priority: TaskPriority = Field(
        default=TaskPriority.MEDIUM,
        sa_column=Column(String, index=True, nullable=False),
        description="Task priority: urgent, high, medium, low",
    )
    work_type: WorkType | None = Field(
        default=None,
        sa_column=Column(String, index=True),
        description="Work classification: human_only, ai_suitable, hybrid",
    )
    requirements: dict | None = Field(default=None, sa_column=Column(JSON))
    acceptance_criteria: list[str] | None = Field(default=None, sa_column=Column(JSON))

    # Agent ownership
    agent_id: UUID | None = Field(
        default=None,
        sa_column=Column(ForeignKey("agents.id", ondelete="SET NULL"), index=True),
        description="Agent holding the claim, null when unclaimed",
    )
    agent_claimed_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True)),
        description="When the current claim was taken",
    )
    agent_notes: str | None = Field(
        default=None,
        sa_column=Column(Text),
        description="Notes appended by agents on claim and completion",
    )
    files_modified: list[str] | None = Field(
        default=None,
        sa_column=Column(JSON),
        description="Union of files touched across all logged work",
    )
    shipped_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True)),
        description="Set while status is shipped",
    )
