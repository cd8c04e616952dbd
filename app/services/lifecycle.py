"""Lifecycle engine: work logging, completion and review transitions."""

import logging
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID

from app.core.config import settings
from app.core.database import get_session
from app.core.errors import ConflictError, ForbiddenError, ValidationError
from app.models import NotificationEvent, Task, TaskStatus, TimeEntry, TimeEntryType
from app.services.agent_registry import AgentRegistryService
from app.services.effects import run_follow_ups
from app.services.notifications import NotificationService
from app.services.state_machine import (
    OPERATION_FOR_TARGET,
    UNOWNED_STATUSES,
    TaskOperation,
    next_status,
    sources_for,
)
from app.services.task import TaskService, append_notes, merge_files
from app.services.time_ledger import TimeLedgerService

logger = logging.getLogger(__name__)

# One week; a single entry covers one stretch of work
MAX_DURATION_MINUTES = 7 * 24 * 60


@dataclass
class WorkLogResult:
    time_entry: TimeEntry
    duration_minutes: float
    hours_logged: float


@dataclass
class CompletionResult:
    task: Task
    completion_time_entry_id: UUID | None
    total_time_minutes: float
    files_modified: list[str]
    completion_metadata: dict = field(default_factory=dict)

    @property
    def total_time_hours(self) -> float:
        return self.total_time_minutes / 60


@dataclass
class WorkLog:
    entries: list[TimeEntry]
    total_minutes: float

    @property
    def total_hours(self) -> float:
        return self.total_minutes / 60


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class LifecycleService:
    """Service driving a claimed task through logging, completion and review."""

    @staticmethod
    def _ensure_owner(task: Task, agent_id: UUID) -> None:
        if task.agent_id != agent_id:
            raise ForbiddenError("Task is not claimed by this agent")

    @staticmethod
    def _raise_write_rejection(
        task_id: UUID, agent_id: UUID, operation: TaskOperation
    ) -> None:
        """Explain why a conditional write on an owned task matched no row."""
        current = TaskService.get_task_by_id(task_id)
        LifecycleService._ensure_owner(current, agent_id)
        next_status(current.status, operation)
        raise ConflictError(
            "Task changed while the request was in flight", code="task_changed"
        )

    @staticmethod
    def log_work(
        task_id: UUID,
        agent_id: UUID,
        duration_minutes: float,
        notes: str | None = None,
        files_modified: list[str] | None = None,
        commit_hash: str | None = None,
        entry_type: TimeEntryType = TimeEntryType.WORK,
    ) -> WorkLogResult:
        """Record one interval of work on a task the agent owns.

        Each call appends a new entry ending now and starting
        ``duration_minutes`` earlier; earlier entries are never touched.

        Raises:
            ValidationError: If duration_minutes is missing, negative, not
                finite or longer than MAX_DURATION_MINUTES
            NotFoundError: If the task does not exist
            ForbiddenError: If the agent does not own the task
            InvalidStateError: If the task is shipped
        """
        if duration_minutes is None or duration_minutes < 0:
            raise ValidationError(
                "duration_minutes is required and must be a non-negative number"
            )
        if not math.isfinite(duration_minutes) or duration_minutes > MAX_DURATION_MINUTES:
            raise ValidationError(
                f"duration_minutes must be a finite number no greater than "
                f"{MAX_DURATION_MINUTES}"
            )
        entry_type = TimeEntryType(entry_type)

        task = TaskService.get_task_by_id(task_id)
        LifecycleService._ensure_owner(task, agent_id)
        next_status(task.status, TaskOperation.LOG)

        now = datetime.now(UTC)
        started_at = now - timedelta(minutes=duration_minutes)

        with get_session() as session:
            locked = TaskService.lock_owned_task(
                session,
                task_id,
                agent_id,
                now,
                allowed_statuses=sources_for(TaskOperation.LOG),
            )
            if locked is not None:
                entry = TimeLedgerService.append_entry(
                    task_id=task_id,
                    agent_id=agent_id,
                    entry_type=entry_type,
                    started_at=started_at,
                    ended_at=now,
                    duration_minutes=duration_minutes,
                    notes=notes or None,
                    files_modified=files_modified,
                    commit_hash=commit_hash or None,
                    session=session,
                )
                if files_modified:
                    TaskService.set_fields(
                        session,
                        task_id,
                        files_modified=merge_files(locked.files_modified, files_modified),
                    )

        if locked is None:
            LifecycleService._raise_write_rejection(task_id, agent_id, TaskOperation.LOG)

        hours_logged = duration_minutes / 60
        run_follow_ups(
            f"work log on task {task_id}",
            [
                (
                    "agent",
                    lambda: AgentRegistryService.record_work(agent_id, hours_logged, now),
                ),
            ],
        )

        return WorkLogResult(
            time_entry=entry,
            duration_minutes=duration_minutes,
            hours_logged=hours_logged,
        )

    @staticmethod
    def get_work_log(task_id: UUID) -> WorkLog:
        """All time entries for a task, newest first, with the summed total."""
        TaskService.get_task_by_id(task_id)
        entries = TimeLedgerService.list_entries(task_id)
        total = sum(entry.duration_minutes or 0 for entry in entries)
        return WorkLog(entries=entries, total_minutes=float(total))

    @staticmethod
    def complete_task(
        task_id: UUID,
        agent_id: UUID,
        notes: str | None = None,
        files_modified: list[str] | None = None,
        commit_hash: str | None = None,
        pull_request_url: str | None = None,
    ) -> CompletionResult:
        """Hand a task the agent owns to human review.

        The task moves to ``review``, never straight to ``shipped``. The
        claim is kept so reviewers can see who did the work.

        Raises:
            NotFoundError: If the task does not exist
            ForbiddenError: If the agent does not own the task
            InvalidStateError: If the task is already in review or shipped
        """
        task = TaskService.get_task_by_id(task_id)
        LifecycleService._ensure_owner(task, agent_id)
        target = next_status(task.status, TaskOperation.COMPLETE)

        completed_at = datetime.now(UTC)
        new_files = list(files_modified or [])

        with get_session() as session:
            locked = TaskService.lock_owned_task(
                session,
                task_id,
                agent_id,
                completed_at,
                allowed_statuses=sources_for(TaskOperation.COMPLETE),
                status=target.value,
            )
            if locked is not None:
                all_files = merge_files(locked.files_modified, new_files)
                agent_notes = append_notes(
                    locked.agent_notes, f"Completion: {notes}" if notes else None
                )
                TaskService.set_fields(
                    session, task_id, files_modified=all_files, agent_notes=agent_notes
                )
                session.refresh(locked)

        if locked is None:
            LifecycleService._raise_write_rejection(
                task_id, agent_id, TaskOperation.COMPLETE
            )

        completion_metadata = {
            "completed_by_agent": str(agent_id),
            "completion_notes": notes or None,
            "commit_hash": commit_hash or None,
            "pull_request_url": pull_request_url or None,
            "claimed_at": _isoformat(locked.agent_claimed_at),
            "completed_at": completed_at.isoformat(),
        }

        logger.info(f"Agent {agent_id} completed task {task_id}, sent to review")

        results = run_follow_ups(
            f"completion of task {task_id}",
            [
                (
                    "time_entry",
                    lambda: TimeLedgerService.append_entry(
                        task_id=task_id,
                        agent_id=agent_id,
                        entry_type=TimeEntryType.WORK,
                        started_at=completed_at,
                        ended_at=completed_at,
                        duration_minutes=0,
                        notes=f"Task completed: {notes or 'No notes provided'}",
                        files_modified=new_files,
                        commit_hash=commit_hash or None,
                        metadata=completion_metadata,
                    ),
                ),
                (
                    "agent",
                    lambda: AgentRegistryService.record_completion(agent_id, completed_at),
                ),
            ],
        )

        time_entry = results["time_entry"]
        return CompletionResult(
            task=locked,
            completion_time_entry_id=time_entry.id if time_entry is not None else None,
            total_time_minutes=TimeLedgerService.total_minutes(task_id),
            files_modified=all_files,
            completion_metadata=completion_metadata,
        )

    @staticmethod
    def transition_status(task_id: UUID, new_status: TaskStatus | str) -> Task:
        """Apply a human review transition such as shipping or parking a task.

        Entering ``shipped`` stamps ``shipped_at`` and queues exactly one
        client notification in the same transaction; leaving it clears the
        stamp. Entering ``backlog`` or ``icebox`` releases any agent claim.

        Raises:
            NotFoundError: If the task does not exist
            InvalidStateError: If the transition is not allowed
            ConflictError: If the status changed concurrently
        """
        target = TaskStatus(new_status)
        operation = OPERATION_FOR_TARGET[target]

        task = TaskService.get_task_by_id(task_id)
        current = TaskStatus(task.status)
        next_status(current, operation)

        now = datetime.now(UTC)
        values: dict = {"status": target.value}
        if target == TaskStatus.SHIPPED:
            values["shipped_at"] = now
        elif current == TaskStatus.SHIPPED:
            values["shipped_at"] = None
        if target in UNOWNED_STATUSES:
            values["agent_id"] = None
            values["agent_claimed_at"] = None

        notification = None
        with get_session() as session:
            updated = TaskService.transition(session, task_id, current, now, **values)
            if updated is not None and target == TaskStatus.SHIPPED:
                notification = LifecycleService._enqueue_shipped(session, updated, now)

        if updated is None:
            raise ConflictError(
                "Task status changed concurrently", code="status_changed"
            )

        logger.info(f"Task {task_id} moved from {current.value} to {target.value}")

        follow_ups = []
        if target in UNOWNED_STATUSES and task.agent_id is not None:
            follow_ups.append(
                (
                    "release_agent",
                    lambda: AgentRegistryService.release_task(task.agent_id, task_id, now),
                )
            )
        if notification is not None:
            follow_ups.append(("dispatch", NotificationService.schedule_dispatch))
        run_follow_ups(f"transition of task {task_id}", follow_ups)

        return updated

    @staticmethod
    def _enqueue_shipped(session, task: Task, shipped_at: datetime):
        recipient, project = NotificationService.client_email_for_project(
            session, task.project_id
        )
        if recipient is None:
            logger.info(f"No client email for task {task.id}, skipping notification")
            return None

        return NotificationService.enqueue(
            session,
            NotificationEvent.TASK_SHIPPED,
            recipient,
            {
                "task_id": str(task.id),
                "task_title": task.title,
                "project_name": project.name if project else None,
                "completed_at": shipped_at.isoformat(),
                "description": task.description,
                "portal_url": settings.portal_url,
            },
        )
