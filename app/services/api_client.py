"""API client service for agents talking to the ShiftBoard API."""

import logging
import os
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ApiClientService:
    """Service for ShiftBoard API client operations.

    Every call accepts an optional ``client``; when omitted a new one is
    created from the environment and closed afterwards.
    """

    @staticmethod
    def get_client(
        base_url: str | None = None, api_key: str | None = None
    ) -> httpx.Client:
        """Get configured HTTP client.

        Args:
            base_url: API base URL (defaults to SHIFTBOARD_URL env var or http://localhost:8000)
            api_key: API key for authentication (defaults to API_SECRET_KEY env var)

        Returns:
            Configured httpx.Client with base_url, headers, and timeout
        """
        if base_url is None:
            base_url = os.getenv("SHIFTBOARD_URL", "http://localhost:8000")
        if api_key is None:
            api_key = os.getenv("API_SECRET_KEY", "")

        return httpx.Client(
            base_url=base_url,
            headers={"X-API-Key": api_key},
            timeout=30.0,
        )

    @staticmethod
    def _request(
        method: str,
        path: str,
        client: httpx.Client | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        should_close = client is None
        if client is None:
            client = ApiClientService.get_client()

        try:
            response = client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        finally:
            if should_close:
                client.close()

    @staticmethod
    def register_agent(
        name: str,
        description: str | None = None,
        capabilities: list[str] | None = None,
        session_id: str | None = None,
        client: httpx.Client | None = None,
    ) -> dict[str, Any]:
        """Register a new agent.

        Returns:
            Response body; ``data.agent_id`` holds the new agent's id

        Raises:
            httpx.HTTPStatusError: If API request fails
        """
        payload: dict[str, Any] = {"name": name}
        if description is not None:
            payload["description"] = description
        if capabilities is not None:
            payload["capabilities"] = capabilities
        if session_id is not None:
            payload["session_id"] = session_id

        return ApiClientService._request(
            "POST", "/agents/register", client=client, json=payload
        )

    @staticmethod
    def heartbeat(
        agent_id: str,
        status: str | None = None,
        current_task_id: str | None = None,
        client: httpx.Client | None = None,
    ) -> dict[str, Any]:
        """Send a heartbeat for an agent."""
        payload: dict[str, Any] = {"agent_id": agent_id}
        if status is not None:
            payload["status"] = status
        if current_task_id is not None:
            payload["current_task_id"] = current_task_id

        return ApiClientService._request(
            "POST", "/agents/heartbeat", client=client, json=payload
        )

    @staticmethod
    def get_available_tasks(
        project_id: str | None = None,
        priority: str | None = None,
        limit: int | None = None,
        client: httpx.Client | None = None,
    ) -> dict[str, Any]:
        """List tasks available for claiming.

        Raises:
            httpx.HTTPStatusError: If API request fails (e.g., 400 for a bad filter)
        """
        params: dict[str, Any] = {}
        if project_id is not None:
            params["project_id"] = project_id
        if priority is not None:
            params["priority"] = priority
        if limit is not None:
            params["limit"] = limit

        return ApiClientService._request(
            "GET", "/tasks/available", client=client, params=params
        )

    @staticmethod
    def get_task(task_id: str, client: httpx.Client | None = None) -> dict[str, Any]:
        """Get task by ID.

        Raises:
            httpx.HTTPStatusError: If API request fails (e.g., 404 for not found)
        """
        return ApiClientService._request("GET", f"/tasks/{task_id}", client=client)

    @staticmethod
    def claim_task(
        task_id: str,
        agent_id: str,
        session_id: str | None = None,
        notes: str | None = None,
        client: httpx.Client | None = None,
    ) -> dict[str, Any]:
        """Claim a task.

        Raises:
            httpx.HTTPStatusError: If API request fails (409 when another agent holds it)
            httpx.TimeoutException: If the request times out; the claim may
                still have been applied, see ``claim_task_safely``
        """
        payload: dict[str, Any] = {"agent_id": agent_id}
        if session_id is not None:
            payload["session_id"] = session_id
        if notes is not None:
            payload["notes"] = notes

        return ApiClientService._request(
            "POST", f"/tasks/{task_id}/claim", client=client, json=payload
        )

    @staticmethod
    def claim_task_safely(
        task_id: str,
        agent_id: str,
        session_id: str | None = None,
        notes: str | None = None,
        client: httpx.Client | None = None,
    ) -> dict[str, Any] | None:
        """Claim a task, resolving timeouts by re-reading the task.

        A timed out claim may or may not have been applied. Retrying would
        conflict with our own claim, so the task is read back instead and
        the claim counts only if this agent now owns it.

        Returns:
            The claimed task data, or None if another agent holds the task

        Raises:
            httpx.HTTPStatusError: For failures other than a claim conflict
        """
        try:
            response = ApiClientService.claim_task(
                task_id, agent_id, session_id=session_id, notes=notes, client=client
            )
            return response["data"]["task"]
        except httpx.TimeoutException:
            logger.warning(f"Claim of task {task_id} timed out, re-reading task")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 409:
                return None
            raise

        task = ApiClientService.get_task(task_id, client=client)["data"]
        if task.get("agent_id") == agent_id:
            return task
        return None

    @staticmethod
    def log_work(
        task_id: str,
        agent_id: str,
        duration_minutes: float,
        notes: str | None = None,
        files_modified: list[str] | None = None,
        commit_hash: str | None = None,
        entry_type: str = "work",
        client: httpx.Client | None = None,
    ) -> dict[str, Any]:
        """Log work time against a claimed task.

        Raises:
            httpx.HTTPStatusError: If API request fails (403 when not the owner)
        """
        payload: dict[str, Any] = {
            "agent_id": agent_id,
            "duration_minutes": duration_minutes,
            "entry_type": entry_type,
        }
        if notes is not None:
            payload["notes"] = notes
        if files_modified is not None:
            payload["files_modified"] = files_modified
        if commit_hash is not None:
            payload["commit_hash"] = commit_hash

        return ApiClientService._request(
            "POST", f"/tasks/{task_id}/log", client=client, json=payload
        )

    @staticmethod
    def get_work_log(task_id: str, client: httpx.Client | None = None) -> dict[str, Any]:
        """Get time entries and totals for a task."""
        return ApiClientService._request("GET", f"/tasks/{task_id}/log", client=client)

    @staticmethod
    def complete_task(
        task_id: str,
        agent_id: str,
        notes: str | None = None,
        files_modified: list[str] | None = None,
        commit_hash: str | None = None,
        pull_request_url: str | None = None,
        client: httpx.Client | None = None,
    ) -> dict[str, Any]:
        """Complete a task and send it to review.

        Raises:
            httpx.HTTPStatusError: If API request fails
        """
        payload: dict[str, Any] = {"agent_id": agent_id}
        if notes is not None:
            payload["notes"] = notes
        if files_modified is not None:
            payload["files_modified"] = files_modified
        if commit_hash is not None:
            payload["commit_hash"] = commit_hash
        if pull_request_url is not None:
            payload["pull_request_url"] = pull_request_url

        return ApiClientService._request(
            "POST", f"/tasks/{task_id}/complete", client=client, json=payload
        )
