"""Agent model for registered worker processes."""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, Text
from sqlmodel import Field, SQLModel


class AgentStatus(str, Enum):
    ACTIVE = "active"
    IDLE = "idle"
    OFFLINE = "offline"


class Agent(SQLModel, table=True):
    """Autonomous worker that claims and performs tasks."""

    __tablename__ = "agents"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique identifier for the agent",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True), index=True),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )

    name: str = Field(description="Agent name or identifier")
    description: str | None = Field(default=None, sa_column=Column(Text))
    capabilities: list[str] | None = Field(default=None, sa_column=Column(JSON))
    status: AgentStatus = Field(
        default=AgentStatus.IDLE,
        sa_column=Column(String, index=True, nullable=False),
        description="Agent status: active, idle, offline",
    )
    # Back-reference only; tasks.agent_id is authoritative for ownership
    current_task_id: UUID | None = Field(default=None, index=True)
    session_id: str | None = Field(default=None)
    last_heartbeat: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True))
    )
    total_tasks_completed: int = Field(
        default=0, sa_column=Column(Integer, nullable=False, default=0)
    )
    total_hours_logged: float = Field(
        default=0.0, sa_column=Column(Float, nullable=False, default=0.0)
    )
    agent_metadata: dict | None = Field(
        default=None, sa_column=Column("metadata", JSON)
    )
