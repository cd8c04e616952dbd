"""Append-only time ledger."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlmodel import col, select

from app.core.database import get_session
from app.models import TimeEntry, TimeEntryType

logger = logging.getLogger(__name__)


class TimeLedgerService:
    """Service for recording and reading work intervals.

    Entries are only ever inserted. A task's total time is always summed
    from its entries and never cached on the task.
    """

    @staticmethod
    def append_entry(
        task_id: UUID,
        agent_id: UUID | None,
        started_at: datetime,
        ended_at: datetime | None = None,
        duration_minutes: float | None = None,
        entry_type: TimeEntryType = TimeEntryType.WORK,
        notes: str | None = None,
        files_modified: list[str] | None = None,
        commit_hash: str | None = None,
        metadata: dict | None = None,
        session: Session | None = None,
    ) -> TimeEntry:
        """Append a time entry.

        When ``session`` is given the entry joins the caller's transaction,
        otherwise it is committed on its own.
        """
        entry = TimeEntry(
            task_id=task_id,
            agent_id=agent_id,
            entry_type=entry_type,
            started_at=started_at,
            ended_at=ended_at,
            duration_minutes=duration_minutes,
            notes=notes,
            files_modified=files_modified or None,
            commit_hash=commit_hash,
            entry_metadata=metadata,
        )

        if session is not None:
            session.add(entry)
            session.flush()
            return entry

        with get_session() as own_session:
            own_session.add(entry)
            own_session.commit()
            own_session.refresh(entry)
            return entry

    @staticmethod
    def list_entries(task_id: UUID) -> list[TimeEntry]:
        """All entries for a task, newest first."""
        with get_session() as session:
            statement = (
                select(TimeEntry)
                .where(TimeEntry.task_id == task_id)
                .order_by(
                    col(TimeEntry.started_at).desc(), col(TimeEntry.created_at).desc()
                )
            )
            return list(session.execute(statement).scalars().all())

    @staticmethod
    def total_minutes(task_id: UUID) -> float:
        """Sum of ``duration_minutes`` across a task's entries."""
        with get_session() as session:
            statement = select(
                func.coalesce(func.sum(TimeEntry.duration_minutes), 0)
            ).where(TimeEntry.task_id == task_id)
            total = session.execute(statement).scalar()
            return float(total or 0)
