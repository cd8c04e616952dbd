"""Task service: reads and conditional writes against the tasks table."""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import case, func, or_
from sqlalchemy import update as sa_update
from sqlalchemy.orm import Session
from sqlmodel import col, select

from app.core.config import settings
from app.core.database import get_session
from app.core.errors import NotFoundError, ValidationError
from app.models import PRIORITY_RANK, Project, Task, TaskPriority, TaskStatus, WorkType
from app.services.state_machine import UNCLAIMABLE_STATUSES

logger = logging.getLogger(__name__)

NOTES_SEPARATOR = "\n\n"


@dataclass
class AvailableTask:
    """A claimable task together with its project context."""

    task: Task
    project: Project | None


def merge_files(existing: list[str] | None, new: list[str] | None) -> list[str]:
    """Union of two file lists, keeping first-seen order and dropping duplicates."""
    merged: list[str] = []
    for path in (existing or []) + (new or []):
        if path not in merged:
            merged.append(path)
    return merged


def append_notes(existing: str | None, addition: str | None) -> str | None:
    """Append ``addition`` to ``existing`` notes without overwriting them."""
    if not addition:
        return existing
    if not existing:
        return addition
    return f"{existing}{NOTES_SEPARATOR}{addition}"


class TaskService:
    """Service for task reads and ownership-guarded writes.

    ``agent_id`` is only ever written through ``conditional_claim`` (set) and
    ``transition`` (release). No caller gets a read-modify-write path to it.
    """

    @staticmethod
    def get_task_by_id(task_id: UUID) -> Task:
        """Get task by ID."""
        with get_session() as session:
            statement = select(Task).where(Task.id == task_id)
            result = session.execute(statement)
            task = result.scalar_one_or_none()

            if task is None:
                raise NotFoundError(f"Task with id {task_id} not found")

            return task

    @staticmethod
    def list_available_tasks(
        project_id: UUID | None = None,
        priority: TaskPriority | None = None,
        limit: int | None = None,
    ) -> list[AvailableTask]:
        """List tasks an agent may claim, most urgent and oldest first.

        A task is available when it is unclaimed, not shipped or iceboxed,
        and either marked ``ai_suitable`` or still in the backlog.

        Args:
            project_id: Only return tasks from this project
            priority: Only return tasks with this priority
            limit: Maximum number of results, clamped to the configured max

        Returns:
            List of AvailableTask with the owning project attached

        Raises:
            ValidationError: If limit is below 1
        """
        if limit is None:
            limit = settings.available_tasks_default_limit
        if limit < 1:
            raise ValidationError("limit must be a positive integer")
        limit = min(limit, settings.available_tasks_max_limit)

        priority_rank = case(
            *[
                (col(Task.priority) == level.value, rank)
                for level, rank in PRIORITY_RANK.items()
            ],
            else_=len(PRIORITY_RANK) + 1,
        )

        statement = (
            select(Task, Project)
            .outerjoin(Project, col(Project.id) == col(Task.project_id))
            .where(
                col(Task.agent_id).is_(None),
                col(Task.status).not_in([s.value for s in UNCLAIMABLE_STATUSES]),
                or_(
                    col(Task.work_type) == WorkType.AI_SUITABLE.value,
                    col(Task.status) == TaskStatus.BACKLOG.value,
                ),
            )
            .order_by(priority_rank, col(Task.created_at).asc())
            .limit(limit)
        )
        if project_id is not None:
            statement = statement.where(col(Task.project_id) == project_id)
        if priority is not None:
            statement = statement.where(col(Task.priority) == TaskPriority(priority).value)

        with get_session() as session:
            rows = session.execute(statement).all()
            return [AvailableTask(task=task, project=project) for task, project in rows]

    @staticmethod
    def conditional_claim(
        task_id: UUID, agent_id: UUID, claimed_at: datetime, notes: str | None = None
    ) -> Task | None:
        """Set the claim on a task only if nobody holds it.

        This single UPDATE is the synchronization point between racing
        agents: the store applies it to at most one of them.

        Returns:
            The claimed task, or None when the row was already claimed or
            is in a status that cannot be claimed
        """
        values: dict = {
            "agent_id": agent_id,
            "agent_claimed_at": claimed_at,
            "status": TaskStatus.ACTIVE.value,
            "updated_at": claimed_at,
        }
        if notes:
            # Appended in SQL so the note lands on whatever the row holds now
            values["agent_notes"] = (
                func.coalesce(col(Task.agent_notes) + NOTES_SEPARATOR, "") + notes
            )

        with get_session() as session:
            result = session.execute(
                sa_update(Task)
                .where(
                    col(Task.id) == task_id,
                    col(Task.agent_id).is_(None),
                    col(Task.status).not_in([s.value for s in UNCLAIMABLE_STATUSES]),
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                return None

            return session.execute(select(Task).where(Task.id == task_id)).scalar_one()

    @staticmethod
    def lock_owned_task(
        session: Session,
        task_id: UUID,
        agent_id: UUID,
        now: datetime,
        allowed_statuses: list[TaskStatus] | None = None,
        **values,
    ) -> Task | None:
        """Conditionally update a task the agent owns and return it locked.

        The UPDATE doubles as the ownership check and takes the row's write
        lock, so later reads in ``session`` see a row no one else can change
        until commit.

        Returns:
            The task as seen inside the transaction, or None when the agent
            no longer owns it or its status is not in ``allowed_statuses``
        """
        statement = sa_update(Task).where(
            col(Task.id) == task_id, col(Task.agent_id) == agent_id
        )
        if allowed_statuses is not None:
            statement = statement.where(
                col(Task.status).in_([TaskStatus(s).value for s in allowed_statuses])
            )

        result = session.execute(
            statement.values(updated_at=now, **values).execution_options(
                synchronize_session=False
            )
        )
        if result.rowcount != 1:
            return None

        return session.execute(select(Task).where(Task.id == task_id)).scalar_one()

    @staticmethod
    def set_fields(session: Session, task_id: UUID, **values) -> None:
        """Write fields on a task already locked in ``session``."""
        session.execute(
            sa_update(Task)
            .where(col(Task.id) == task_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def transition(
        session: Session,
        task_id: UUID,
        expected_status: TaskStatus,
        now: datetime,
        **values,
    ) -> Task | None:
        """Compare-and-swap a task out of ``expected_status``.

        Returns:
            The updated task, or None if its status changed underneath us
        """
        result = session.execute(
            sa_update(Task)
            .where(
                col(Task.id) == task_id,
                col(Task.status) == TaskStatus(expected_status).value,
            )
            .values(updated_at=now, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None

        return session.execute(select(Task).where(Task.id == task_id)).scalar_one()
