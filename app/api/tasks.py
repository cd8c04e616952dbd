"""Task API endpoints used by agents and reviewers."""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.core.auth import verify_api_key
from app.core.errors import ValidationError
from app.core.validation import parse_choice, parse_optional_uuid, parse_uuid
from app.models import Project, Task, TaskPriority, TaskStatus, TimeEntry, TimeEntryType
from app.services import ClaimService, LifecycleService, TaskService

router = APIRouter()


class ClaimRequest(BaseModel):
    """Request model for claiming a task."""

    agent_id: str | None = None
    session_id: str | None = None
    notes: str | None = None


class LogWorkRequest(BaseModel):
    """Request model for logging work time."""

    agent_id: str | None = None
    duration_minutes: float | None = None
    notes: str | None = None
    files_modified: list[str] | None = None
    commit_hash: str | None = None
    entry_type: str = TimeEntryType.WORK.value


class CompleteRequest(BaseModel):
    """Request model for completing a task."""

    agent_id: str | None = None
    notes: str | None = None
    files_modified: list[str] | None = None
    commit_hash: str | None = None
    pull_request_url: str | None = None


class StatusChangeRequest(BaseModel):
    """Request model for a human review status change."""

    status: str | None = None


class ProjectSummary(BaseModel):
    id: UUID
    name: str
    client_name: str | None
    description: str | None
    status: str | None


class TaskResponse(BaseModel):
    """Response model for task data."""

    id: UUID
    project_id: UUID
    title: str
    description: str | None
    status: str
    priority: str
    work_type: str | None
    requirements: Any | None
    acceptance_criteria: list[Any] | None
    agent_id: UUID | None
    agent_claimed_at: datetime | None
    agent_notes: str | None
    files_modified: list[str]
    shipped_at: datetime | None
    created_at: datetime
    updated_at: datetime


class AvailableTaskResponse(TaskResponse):
    project: ProjectSummary | None


class TimeEntryResponse(BaseModel):
    """Response model for a time ledger entry."""

    id: UUID
    task_id: UUID
    agent_id: UUID | None
    entry_type: str
    started_at: datetime
    ended_at: datetime | None
    duration_minutes: float | None
    notes: str | None
    files_modified: list[str] | None
    commit_hash: str | None
    metadata: dict | None
    created_at: datetime


class AvailableTasksResponse(BaseModel):
    success: bool = True
    count: int
    data: list[AvailableTaskResponse]


class TaskEnvelope(BaseModel):
    success: bool = True
    message: str | None = None
    data: TaskResponse


class ClaimData(BaseModel):
    task: TaskResponse
    time_entry_id: UUID | None
    claimed_at: datetime


class ClaimResponse(BaseModel):
    success: bool = True
    message: str
    data: ClaimData


class LogWorkData(BaseModel):
    time_entry: TimeEntryResponse
    duration_minutes: float
    hours_logged: float


class LogWorkResponse(BaseModel):
    success: bool = True
    message: str
    data: LogWorkData


class WorkLogData(BaseModel):
    entries: list[TimeEntryResponse]
    total_minutes: float
    total_hours: float


class WorkLogResponse(BaseModel):
    success: bool = True
    data: WorkLogData


class CompleteData(BaseModel):
    task: TaskResponse
    completion_time_entry_id: UUID | None
    total_time_minutes: float
    total_time_hours: float
    files_modified: list[str]
    completion_metadata: dict


class CompleteResponse(BaseModel):
    success: bool = True
    message: str
    data: CompleteData


def _task_response(task: Task) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        project_id=task.project_id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        work_type=task.work_type,
        requirements=task.requirements,
        acceptance_criteria=task.acceptance_criteria,
        agent_id=task.agent_id,
        agent_claimed_at=task.agent_claimed_at,
        agent_notes=task.agent_notes,
        files_modified=task.files_modified or [],
        shipped_at=task.shipped_at,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


def _project_summary(project: Project | None) -> ProjectSummary | None:
    if project is None:
        return None
    return ProjectSummary(
        id=project.id,
        name=project.name,
        client_name=project.client_name,
        description=project.description,
        status=project.status,
    )


def _time_entry_response(entry: TimeEntry) -> TimeEntryResponse:
    return TimeEntryResponse(
        id=entry.id,
        task_id=entry.task_id,
        agent_id=entry.agent_id,
        entry_type=entry.entry_type,
        started_at=entry.started_at,
        ended_at=entry.ended_at,
        duration_minutes=entry.duration_minutes,
        notes=entry.notes,
        files_modified=entry.files_modified,
        commit_hash=entry.commit_hash,
        metadata=entry.entry_metadata,
        created_at=entry.created_at,
    )


@router.get("/tasks/available", response_model=AvailableTasksResponse)
def list_available_tasks(
    project_id: str | None = None,
    priority: str | None = None,
    limit: int | None = None,
    api_key: str = Depends(verify_api_key),
):
    """List tasks that agents may claim, most urgent first."""
    available = TaskService.list_available_tasks(
        project_id=parse_optional_uuid(project_id, "project_id"),
        priority=parse_choice(priority or None, TaskPriority, "priority"),
        limit=limit,
    )

    data = [
        AvailableTaskResponse(
            **_task_response(item.task).model_dump(),
            project=_project_summary(item.project),
        )
        for item in available
    ]
    return AvailableTasksResponse(count=len(data), data=data)


@router.get("/tasks/{task_id}", response_model=TaskEnvelope)
def get_task(task_id: str, api_key: str = Depends(verify_api_key)):
    """Get a task by ID."""
    task = TaskService.get_task_by_id(parse_uuid(task_id, "task ID"))
    return TaskEnvelope(data=_task_response(task))


@router.post("/tasks/{task_id}/claim", response_model=ClaimResponse)
def claim_task(
    task_id: str, body: ClaimRequest, api_key: str = Depends(verify_api_key)
):
    """Claim a task for an agent."""
    task_uuid = parse_uuid(task_id, "task ID")
    agent_uuid = parse_uuid(body.agent_id, "agent_id")

    result = ClaimService.claim_task(
        task_uuid, agent_uuid, session_id=body.session_id, notes=body.notes
    )

    return ClaimResponse(
        message="Task claimed successfully",
        data=ClaimData(
            task=_task_response(result.task),
            time_entry_id=result.time_entry_id,
            claimed_at=result.claimed_at,
        ),
    )


@router.post("/tasks/{task_id}/log", response_model=LogWorkResponse)
def log_work(
    task_id: str, body: LogWorkRequest, api_key: str = Depends(verify_api_key)
):
    """Log a block of work time against a claimed task."""
    task_uuid = parse_uuid(task_id, "task ID")
    agent_uuid = parse_uuid(body.agent_id, "agent_id")
    entry_type = parse_choice(body.entry_type, TimeEntryType, "entry_type")

    result = LifecycleService.log_work(
        task_uuid,
        agent_uuid,
        duration_minutes=body.duration_minutes,
        notes=body.notes,
        files_modified=body.files_modified,
        commit_hash=body.commit_hash,
        entry_type=entry_type,
    )

    return LogWorkResponse(
        message="Work logged successfully",
        data=LogWorkData(
            time_entry=_time_entry_response(result.time_entry),
            duration_minutes=result.duration_minutes,
            hours_logged=result.hours_logged,
        ),
    )


@router.get("/tasks/{task_id}/log", response_model=WorkLogResponse)
def get_work_log(task_id: str, api_key: str = Depends(verify_api_key)):
    """Get all time entries for a task with the total time spent."""
    work_log = LifecycleService.get_work_log(parse_uuid(task_id, "task ID"))

    return WorkLogResponse(
        data=WorkLogData(
            entries=[_time_entry_response(entry) for entry in work_log.entries],
            total_minutes=work_log.total_minutes,
            total_hours=work_log.total_hours,
        )
    )


@router.post("/tasks/{task_id}/complete", response_model=CompleteResponse)
def complete_task(
    task_id: str, body: CompleteRequest, api_key: str = Depends(verify_api_key)
):
    """Mark a task complete and send it to human review."""
    task_uuid = parse_uuid(task_id, "task ID")
    agent_uuid = parse_uuid(body.agent_id, "agent_id")

    result = LifecycleService.complete_task(
        task_uuid,
        agent_uuid,
        notes=body.notes,
        files_modified=body.files_modified,
        commit_hash=body.commit_hash,
        pull_request_url=body.pull_request_url,
    )

    return CompleteResponse(
        message="Task completed and sent to review",
        data=CompleteData(
            task=_task_response(result.task),
            completion_time_entry_id=result.completion_time_entry_id,
            total_time_minutes=result.total_time_minutes,
            total_time_hours=result.total_time_hours,
            files_modified=result.files_modified,
            completion_metadata=result.completion_metadata,
        ),
    )


@router.patch("/tasks/{task_id}/status", response_model=TaskEnvelope)
def change_task_status(
    task_id: str, body: StatusChangeRequest, api_key: str = Depends(verify_api_key)
):
    """Apply a reviewer's status change, e.g. ship a task out of review."""
    task_uuid = parse_uuid(task_id, "task ID")
    if not body.status:
        raise ValidationError("status is required")
    new_status = parse_choice(body.status, TaskStatus, "status")

    task = LifecycleService.transition_status(task_uuid, new_status)
    return TaskEnvelope(
        message=f"Task moved to {new_status.value}", data=_task_response(task)
    )
