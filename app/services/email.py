"""Transactional email sender backed by the Resend HTTP API."""

import html
import logging
from dataclasses import dataclass

import httpx

from app.core.config import settings
from app.models import NotificationEvent

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    success: bool
    error: str | None = None
    message_id: str | None = None


def render_notification(
    event_type: NotificationEvent | str, payload: dict
) -> tuple[str, str]:
    """Build the subject line and HTML body for a notification event."""
    event_type = NotificationEvent(event_type)
    portal = html.escape(payload.get("portal_url") or settings.portal_url)
    project = html.escape(payload.get("project_name") or "Your Project")

    if event_type == NotificationEvent.TASK_SHIPPED:
        title = payload.get("task_title", "")
        subject = f"Task Completed: {title}"
        body = (
            "<h2>Task Completed</h2>"
            "<p>Great news! A task on your project has been completed.</p>"
            f"<p><strong>Task:</strong> {html.escape(title)}</p>"
            f"<p><strong>Project:</strong> {project}</p>"
            f"<p><strong>Completed:</strong> {html.escape(payload.get('completed_at', ''))}</p>"
        )
        if payload.get("description"):
            body += f"<p>{html.escape(payload['description'])}</p>"
        body += f'<p><a href="{portal}">View in Portal</a></p>'
    else:
        title = payload.get("requirement_title", "")
        subject = f"Signoff Required: {title}"
        body = (
            "<h2>Approval Required</h2>"
            "<p>A requirements document is ready for your review and signoff.</p>"
            f"<p><strong>Document:</strong> {html.escape(title)}</p>"
            f"<p><strong>Project:</strong> {project}</p>"
            f"<p><strong>Phase:</strong> {html.escape(payload.get('phase') or '')}</p>"
        )
        if payload.get("summary"):
            body += f"<p>{html.escape(payload['summary'])}</p>"
        body += f'<p><a href="{portal}">Review &amp; Sign Off</a></p>'

    return subject, f"<!DOCTYPE html><html><body>{body}</body></html>"


class EmailSender:
    """Sends rendered notifications through Resend."""

    @staticmethod
    def get_client() -> httpx.Client:
        return httpx.Client(
            base_url=settings.resend_api_url,
            headers={"Authorization": f"Bearer {settings.resend_api_key}"},
            timeout=30.0,
        )

    @staticmethod
    def send(
        recipient_email: str,
        event_type: NotificationEvent | str,
        payload: dict,
        client: httpx.Client | None = None,
    ) -> SendResult:
        """Send one notification email.

        Never raises: transport and API failures come back as an
        unsuccessful SendResult so the outbox can schedule a retry.
        """
        if not settings.resend_api_key:
            return SendResult(success=False, error="RESEND_API_KEY is not configured")

        subject, body = render_notification(event_type, payload)

        should_close = client is None
        if client is None:
            client = EmailSender.get_client()

        try:
            response = client.post(
                "/emails",
                json={
                    "from": settings.notification_from_email,
                    "to": recipient_email,
                    "subject": subject,
                    "html": body,
                },
            )
            response.raise_for_status()
            return SendResult(success=True, message_id=response.json().get("id"))
        except httpx.HTTPError as e:
            logger.warning(f"Failed to send {event_type} email to {recipient_email}: {e}")
            return SendResult(success=False, error=str(e))
        finally:
            if should_close:
                client.close()
