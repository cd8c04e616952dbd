"""Requirement document API endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.core.auth import verify_api_key
from app.core.errors import ValidationError
from app.core.validation import parse_choice, parse_uuid
from app.models import RequirementStatus
from app.services import RequirementService

router = APIRouter()


class RequirementStatusRequest(BaseModel):
    status: str | None = None


class RequirementResponse(BaseModel):
    """Response model for requirement document data."""

    id: UUID
    project_id: UUID
    title: str
    phase: str | None
    summary: str | None
    status: str
    created_at: datetime
    updated_at: datetime


class RequirementEnvelope(BaseModel):
    success: bool = True
    message: str | None = None
    data: RequirementResponse


@router.patch("/requirements/{requirement_id}/status", response_model=RequirementEnvelope)
def change_requirement_status(
    requirement_id: str,
    body: RequirementStatusRequest,
    api_key: str = Depends(verify_api_key),
):
    """Change a requirement document's status.

    Moving a document into review notifies the client that signoff is needed.
    """
    requirement_uuid = parse_uuid(requirement_id, "requirement ID")
    if not body.status:
        raise ValidationError("status is required")
    new_status = parse_choice(body.status, RequirementStatus, "status")

    requirement = RequirementService.transition_status(requirement_uuid, new_status)

    return RequirementEnvelope(
        message=f"Requirement moved to {new_status.value}",
        data=RequirementResponse(
            id=requirement.id,
            project_id=requirement.project_id,
            title=requirement.title,
            phase=requirement.phase,
            summary=requirement.summary,
            status=requirement.status,
            created_at=requirement.created_at,
            updated_at=requirement.updated_at,
        ),
    )
