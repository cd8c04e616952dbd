"""Requirement document status changes."""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import update as sa_update
from sqlmodel import col, select

from app.core.config import settings
from app.core.database import get_session
from app.core.errors import ConflictError, NotFoundError
from app.models import NotificationEvent, RequirementDoc, RequirementStatus
from app.services.effects import run_follow_ups
from app.services.notifications import NotificationService

logger = logging.getLogger(__name__)


class RequirementService:
    """Service for requirement document signoff status."""

    @staticmethod
    def get_requirement(requirement_id: UUID) -> RequirementDoc:
        with get_session() as session:
            statement = select(RequirementDoc).where(RequirementDoc.id == requirement_id)
            requirement = session.execute(statement).scalar_one_or_none()

            if requirement is None:
                raise NotFoundError(f"Requirement with id {requirement_id} not found")

            return requirement

    @staticmethod
    def transition_status(
        requirement_id: UUID, new_status: RequirementStatus | str
    ) -> RequirementDoc:
        """Move a requirement document to ``new_status``.

        Entering ``review`` from any other status queues one signoff
        notification to the project's client in the same transaction.
        Setting the status it already has is a no-op.

        Raises:
            NotFoundError: If the requirement does not exist
            ConflictError: If the status changed concurrently
        """
        target = RequirementStatus(new_status)
        requirement = RequirementService.get_requirement(requirement_id)
        current = RequirementStatus(requirement.status)

        if current == target:
            return requirement

        now = datetime.now(UTC)
        notification = None
        with get_session() as session:
            result = session.execute(
                sa_update(RequirementDoc)
                .where(
                    col(RequirementDoc.id) == requirement_id,
                    col(RequirementDoc.status) == current.value,
                )
                .values(status=target.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                updated = session.execute(
                    select(RequirementDoc).where(RequirementDoc.id == requirement_id)
                ).scalar_one()
                if target == RequirementStatus.REVIEW:
                    notification = RequirementService._enqueue_review(session, updated)
            else:
                updated = None

        if updated is None:
            raise ConflictError(
                "Requirement status changed concurrently", code="status_changed"
            )

        logger.info(
            f"Requirement {requirement_id} moved from {current.value} to {target.value}"
        )

        if notification is not None:
            run_follow_ups(
                f"transition of requirement {requirement_id}",
                [("dispatch", NotificationService.schedule_dispatch)],
            )

        return updated

    @staticmethod
    def _enqueue_review(session, requirement: RequirementDoc):
        recipient, project = NotificationService.client_email_for_project(
            session, requirement.project_id
        )
        if recipient is None:
            logger.info(
                f"No client email for requirement {requirement.id}, "
                "skipping notification"
            )
            return None

        return NotificationService.enqueue(
            session,
            NotificationEvent.REQUIREMENT_REVIEW,
            recipient,
            {
                "requirement_id": str(requirement.id),
                "requirement_title": requirement.title,
                "project_name": project.name if project else None,
                "phase": requirement.phase,
                "summary": requirement.summary,
                "portal_url": settings.portal_url,
            },
        )
