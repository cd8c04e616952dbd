"""Claim coordinator: hands a task to exactly one agent."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from app.core.config import settings
from app.core.errors import ConflictError, InvalidStateError
from app.models import Task, TaskStatus, TimeEntryType
from app.services.agent_registry import AgentRegistryService
from app.services.effects import run_follow_ups
from app.services.state_machine import TaskOperation, next_status
from app.services.task import TaskService
from app.services.time_ledger import TimeLedgerService

logger = logging.getLogger(__name__)


@dataclass
class ClaimResult:
    task: Task
    time_entry_id: UUID | None
    claimed_at: datetime


class ClaimService:
    """Service for claiming tasks on behalf of agents."""

    @staticmethod
    def claim_task(
        task_id: UUID,
        agent_id: UUID,
        session_id: str | None = None,
        notes: str | None = None,
    ) -> ClaimResult:
        """Claim a task for an agent.

        Preconditions are checked read-only first so that obvious rejections
        never touch the store. The claim itself is a single conditional
        update; the losing side of a race gets a ConflictError naming the
        winner and must not retry blindly.

        The opening time entry and the agent's bookkeeping are follow-ups.
        If they fail the claim still stands.

        Args:
            task_id: Task to claim
            agent_id: Claiming agent
            session_id: Optional agent session identifier
            notes: Optional note appended to the task's agent notes

        Returns:
            ClaimResult with the claimed task, the opening time entry id
            (None if it could not be written) and the claim timestamp

        Raises:
            NotFoundError: If the task or agent does not exist
            ConflictError: If the task is already claimed (including by this
                agent) or the agent already holds another active task
            InvalidStateError: If the task is shipped or iceboxed
        """
        task = TaskService.get_task_by_id(task_id)

        if task.agent_id is not None:
            raise ConflictError(
                "Task already claimed by another agent",
                claimed_by=str(task.agent_id),
            )

        next_status(task.status, TaskOperation.CLAIM)

        AgentRegistryService.get_agent(agent_id)

        if not settings.allow_multiple_claims:
            held = AgentRegistryService.active_claims(agent_id, exclude_task_id=task_id)
            if held:
                raise ConflictError(
                    "Agent already holds an active task",
                    code="agent_busy",
                    current_task_id=str(held[0]),
                )

        claimed_at = datetime.now(UTC)
        claimed = TaskService.conditional_claim(task_id, agent_id, claimed_at, notes)

        if claimed is None:
            # Lost the race, or the status changed since the read above
            current = TaskService.get_task_by_id(task_id)
            if current.agent_id is not None:
                logger.info(
                    f"Agent {agent_id} lost claim race on task {task_id} "
                    f"to agent {current.agent_id}"
                )
                raise ConflictError(
                    "Task was claimed by another agent",
                    claimed_by=str(current.agent_id),
                )
            next_status(current.status, TaskOperation.CLAIM)
            raise InvalidStateError(
                f"Task cannot be claimed - status is {TaskStatus(current.status).value}"
            )

        logger.info(f"Agent {agent_id} claimed task {task_id}")

        results = run_follow_ups(
            f"claim of task {task_id}",
            [
                (
                    "time_entry",
                    lambda: TimeLedgerService.append_entry(
                        task_id=task_id,
                        agent_id=agent_id,
                        entry_type=TimeEntryType.WORK,
                        started_at=claimed_at,
                        notes=f"Claimed: {notes}" if notes else "Task claimed",
                        metadata={"session_id": session_id} if session_id else None,
                    ),
                ),
                (
                    "agent",
                    lambda: AgentRegistryService.record_claim(
                        agent_id, task_id, claimed_at, session_id
                    ),
                ),
            ],
        )

        time_entry = results["time_entry"]
        return ClaimResult(
            task=claimed,
            time_entry_id=time_entry.id if time_entry is not None else None,
            claimed_at=claimed_at,
        )
