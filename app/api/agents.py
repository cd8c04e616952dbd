"""Agent registry API endpoints."""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from app.core.auth import verify_api_key
from app.core.validation import parse_choice, parse_optional_uuid, parse_uuid
from app.models import Agent, AgentStatus
from app.services import AgentRegistryService

router = APIRouter()


class RegisterAgentRequest(BaseModel):
    """Request model for registering an agent."""

    name: str | None = None
    description: str | None = None
    capabilities: list[str] | None = None
    session_id: str | None = None
    metadata: dict[str, Any] | None = None


class HeartbeatRequest(BaseModel):
    """Request model for an agent heartbeat."""

    agent_id: str | None = None
    status: str | None = None
    current_task_id: str | None = None
    session_id: str | None = None


class AgentResponse(BaseModel):
    """Response model for agent data."""

    id: UUID
    name: str
    description: str | None
    capabilities: list[str] | None
    status: str
    current_task_id: UUID | None
    session_id: str | None
    last_heartbeat: datetime | None
    total_tasks_completed: int
    total_hours_logged: float
    metadata: dict | None
    created_at: datetime
    updated_at: datetime


class RegisterData(BaseModel):
    agent_id: UUID
    agent: AgentResponse


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    data: RegisterData


class AgentListResponse(BaseModel):
    success: bool = True
    data: list[AgentResponse]


class AgentEnvelope(BaseModel):
    success: bool = True
    data: AgentResponse


class HeartbeatData(BaseModel):
    agent_id: UUID
    status: str
    current_task_id: UUID | None
    last_heartbeat: datetime | None


class HeartbeatResponse(BaseModel):
    success: bool = True
    message: str
    data: HeartbeatData


def _agent_response(agent: Agent) -> AgentResponse:
    return AgentResponse(
        id=agent.id,
        name=agent.name,
        description=agent.description,
        capabilities=agent.capabilities,
        status=agent.status,
        current_task_id=agent.current_task_id,
        session_id=agent.session_id,
        last_heartbeat=agent.last_heartbeat,
        total_tasks_completed=agent.total_tasks_completed or 0,
        total_hours_logged=agent.total_hours_logged or 0.0,
        metadata=agent.agent_metadata,
        created_at=agent.created_at,
        updated_at=agent.updated_at,
    )


@router.post(
    "/agents/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
def register_agent(body: RegisterAgentRequest, api_key: str = Depends(verify_api_key)):
    """Register a new agent."""
    agent = AgentRegistryService.register_agent(
        name=body.name,
        description=body.description,
        capabilities=body.capabilities,
        session_id=body.session_id,
        metadata=body.metadata,
    )

    return RegisterResponse(
        message="Agent registered successfully",
        data=RegisterData(agent_id=agent.id, agent=_agent_response(agent)),
    )


@router.get("/agents/register", response_model=AgentListResponse)
def list_agents(api_key: str = Depends(verify_api_key)):
    """List all registered agents."""
    agents = AgentRegistryService.list_agents()
    return AgentListResponse(data=[_agent_response(agent) for agent in agents])


@router.post("/agents/heartbeat", response_model=HeartbeatResponse)
def heartbeat(body: HeartbeatRequest, api_key: str = Depends(verify_api_key)):
    """Record an agent heartbeat.

    An explicit empty ``current_task_id`` clears the agent's current task.
    """
    agent_uuid = parse_uuid(body.agent_id, "agent_id")
    agent_status = parse_choice(body.status or None, AgentStatus, "status")
    current_task_id = parse_optional_uuid(body.current_task_id, "current_task_id")

    agent = AgentRegistryService.heartbeat(
        agent_uuid,
        status=agent_status,
        current_task_id=current_task_id,
        clear_current_task="current_task_id" in body.model_fields_set
        and current_task_id is None,
        session_id=body.session_id,
    )

    return HeartbeatResponse(
        message="Heartbeat received",
        data=HeartbeatData(
            agent_id=agent.id,
            status=agent.status,
            current_task_id=agent.current_task_id,
            last_heartbeat=agent.last_heartbeat,
        ),
    )


@router.get("/agents/{agent_id}", response_model=AgentEnvelope)
def get_agent(agent_id: str, api_key: str = Depends(verify_api_key)):
    """Get an agent by ID."""
    agent = AgentRegistryService.get_agent(parse_uuid(agent_id, "agent ID"))
    return AgentEnvelope(data=_agent_response(agent))
