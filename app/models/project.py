"""Project and client records read by the coordination core."""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Text
from sqlmodel import Field, SQLModel


class Client(SQLModel, table=True):
    """Client contact that receives delivery notifications."""

    __tablename__ = "clients"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )
    name: str
    company: str | None = None
    email: str | None = None


class Project(SQLModel, table=True):
    """Client project that owns tasks and requirement documents."""

    __tablename__ = "projects"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )
    name: str
    client_name: str | None = None
    description: str | None = Field(default=None, sa_column=Column(Text))
    status: str = Field(default="active")
    client_id: UUID | None = Field(
        default=None,
        sa_column=Column(ForeignKey("clients.id", ondelete="SET NULL"), index=True),
    )
