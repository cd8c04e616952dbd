"""Requirement document model."""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlmodel import Field, SQLModel


class RequirementStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    IMPLEMENTED = "implemented"


class RequirementDoc(SQLModel, table=True):
    """Requirements document awaiting client signoff."""

    __tablename__ = "requirements_docs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )
    project_id: UUID = Field(
        sa_column=Column(ForeignKey("projects.id", ondelete="CASCADE"), index=True),
    )
    title: str
    phase: str | None = None
    summary: str | None = Field(default=None, sa_column=Column(Text))
    status: RequirementStatus = Field(
        default=RequirementStatus.DRAFT,
        sa_column=Column(String, index=True, nullable=False),
    )
