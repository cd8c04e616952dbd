"""Agent registry service."""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import update as sa_update
from sqlmodel import col, select

from app.core.database import get_session
from app.core.errors import NotFoundError, ValidationError
from app.models import Agent, AgentStatus, Task, TaskStatus

logger = logging.getLogger(__name__)


class AgentRegistryService:
    """Service for agent identity, heartbeat and cumulative stats.

    Counter updates are single SQL statements so that concurrent calls for the
    same agent add up instead of overwriting each other.
    """

    @staticmethod
    def register_agent(
        name: str,
        description: str | None = None,
        capabilities: list[str] | None = None,
        session_id: str | None = None,
        metadata: dict | None = None,
    ) -> Agent:
        """Register a new agent in the idle state."""
        if not name or not name.strip():
            raise ValidationError("name is required and must be a non-empty string")

        now = datetime.now(UTC)
        with get_session() as session:
            agent = Agent(
                name=name.strip(),
                description=(description or "").strip() or None,
                capabilities=capabilities or None,
                session_id=session_id or None,
                status=AgentStatus.IDLE,
                last_heartbeat=now,
                agent_metadata=metadata or None,
            )
            session.add(agent)
            session.commit()
            session.refresh(agent)

        logger.info(f"Registered agent {agent.id} ({agent.name})")
        return agent

    @staticmethod
    def get_agent(agent_id: UUID) -> Agent:
        """Get agent by ID."""
        with get_session() as session:
            statement = select(Agent).where(Agent.id == agent_id)
            agent = session.execute(statement).scalar_one_or_none()

            if agent is None:
                raise NotFoundError(f"Agent with id {agent_id} not found")

            return agent

    @staticmethod
    def list_agents() -> list[Agent]:
        """List all agents, newest first."""
        with get_session() as session:
            statement = select(Agent).order_by(col(Agent.created_at).desc())
            return list(session.execute(statement).scalars().all())

    @staticmethod
    def active_claims(agent_id: UUID, exclude_task_id: UUID | None = None) -> list[UUID]:
        """IDs of active tasks currently owned by the agent.

        Reads ``tasks.agent_id``, which is authoritative, rather than the
        agent's ``current_task_id`` back-reference.
        """
        with get_session() as session:
            statement = select(Task.id).where(
                Task.agent_id == agent_id, Task.status == TaskStatus.ACTIVE.value
            )
            if exclude_task_id is not None:
                statement = statement.where(Task.id != exclude_task_id)
            return list(session.execute(statement).scalars().all())

    @staticmethod
    def heartbeat(
        agent_id: UUID,
        status: AgentStatus | None = None,
        current_task_id: UUID | None = None,
        clear_current_task: bool = False,
        session_id: str | None = None,
    ) -> Agent:
        """Record a heartbeat and optionally update status, task and session."""
        now = datetime.now(UTC)
        values: dict = {"last_heartbeat": now, "updated_at": now}
        if status is not None:
            values["status"] = AgentStatus(status).value
        if current_task_id is not None or clear_current_task:
            values["current_task_id"] = current_task_id
        if session_id is not None:
            values["session_id"] = session_id or None

        with get_session() as session:
            result = session.execute(
                sa_update(Agent).where(col(Agent.id) == agent_id).values(**values)
            )
            if result.rowcount != 1:
                raise NotFoundError(f"Agent with id {agent_id} not found")

            return session.execute(
                select(Agent).where(Agent.id == agent_id)
            ).scalar_one()

    @staticmethod
    def record_claim(
        agent_id: UUID, task_id: UUID, claimed_at: datetime, session_id: str | None
    ) -> bool:
        """Point the agent at its newly claimed task and mark it active."""
        with get_session() as session:
            result = session.execute(
                sa_update(Agent)
                .where(col(Agent.id) == agent_id)
                .values(
                    current_task_id=task_id,
                    session_id=session_id or None,
                    last_heartbeat=claimed_at,
                    status=AgentStatus.ACTIVE.value,
                    updated_at=claimed_at,
                )
            )
            return result.rowcount == 1

    @staticmethod
    def record_work(agent_id: UUID, hours: float, logged_at: datetime) -> bool:
        """Refresh the heartbeat and add ``hours`` to the logged total."""
        with get_session() as session:
            result = session.execute(
                sa_update(Agent)
                .where(col(Agent.id) == agent_id)
                .values(
                    total_hours_logged=col(Agent.total_hours_logged) + hours,
                    last_heartbeat=logged_at,
                    updated_at=logged_at,
                )
            )
            return result.rowcount == 1

    @staticmethod
    def record_completion(agent_id: UUID, completed_at: datetime) -> bool:
        """Clear the current task, go idle and count one completed task."""
        with get_session() as session:
            result = session.execute(
                sa_update(Agent)
                .where(col(Agent.id) == agent_id)
                .values(
                    current_task_id=None,
                    status=AgentStatus.IDLE.value,
                    total_tasks_completed=col(Agent.total_tasks_completed) + 1,
                    last_heartbeat=completed_at,
                    updated_at=completed_at,
                )
            )
            return result.rowcount == 1

    @staticmethod
    def release_task(agent_id: UUID, task_id: UUID, released_at: datetime) -> bool:
        """Drop the back-reference to a task the agent no longer owns."""
        with get_session() as session:
            result = session.execute(
                sa_update(Agent)
                .where(col(Agent.id) == agent_id, col(Agent.current_task_id) == task_id)
                .values(
                    current_task_id=None,
                    status=AgentStatus.IDLE.value,
                    updated_at=released_at,
                )
            )
            return result.rowcount == 1
