"""Tests for task API endpoints."""

from uuid import uuid4

import pytest

from app.models import TaskPriority, TaskStatus, WorkType
from app.services import ClaimService, NotificationService, TaskService
from tests.conftest import (
    create_test_agent,
    create_test_client,
    create_test_project,
    create_test_task,
)


def test_requires_api_key(test_client):
    """Requests without an X-API-Key header are rejected."""
    response = test_client.get("/tasks/available")

    assert response.status_code == 403
    assert response.json() == {
        "success": False,
        "error": "Invalid API key",
        "code": "unauthorized",
    }


def test_rejects_wrong_api_key(test_client):
    response = test_client.get("/tasks/available", headers={"X-API-Key": "nope"})

    assert response.status_code == 403
    assert response.json()["code"] == "unauthorized"


def test_health_check(test_client, auth_headers):
    response = test_client.get("/health", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_list_available_tasks(test_client, auth_headers):
    """Test GET /tasks/available orders by priority and embeds the project."""
    project = create_test_project(name="Website")
    low = create_test_task(project, title="Low", priority=TaskPriority.LOW)
    urgent = create_test_task(project, title="Urgent", priority=TaskPriority.URGENT)
    create_test_task(project, title="Shipped", status=TaskStatus.SHIPPED)

    response = test_client.get("/tasks/available", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["count"] == 2
    assert [task["id"] for task in data["data"]] == [str(urgent.id), str(low.id)]
    assert data["data"][0]["project"]["name"] == "Website"
    assert data["data"][0]["files_modified"] == []


def test_list_available_tasks_filters(test_client, auth_headers):
    project = create_test_project()
    other = create_test_project(name="Other")
    high = create_test_task(project, priority=TaskPriority.HIGH)
    create_test_task(project, priority=TaskPriority.LOW)
    create_test_task(other, priority=TaskPriority.HIGH)

    response = test_client.get(
        "/tasks/available",
        params={"project_id": str(project.id), "priority": "high", "limit": 10},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert [task["id"] for task in response.json()["data"]] == [str(high.id)]


def test_list_available_tasks_invalid_priority(test_client, auth_headers):
    response = test_client.get(
        "/tasks/available", params={"priority": "critical"}, headers=auth_headers
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "validation_error"
    assert data["error"].startswith("Invalid priority. Must be one of: urgent")


def test_list_available_tasks_invalid_project_id(test_client, auth_headers):
    response = test_client.get(
        "/tasks/available", params={"project_id": "not-a-uuid"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid project_id format"


def test_list_available_tasks_invalid_limit(test_client, auth_headers):
    response = test_client.get(
        "/tasks/available", params={"limit": 0}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "limit must be a positive integer"


def test_list_available_tasks_non_numeric_limit(test_client, auth_headers):
    response = test_client.get(
        "/tasks/available", params={"limit": "many"}, headers=auth_headers
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "validation_error"
    assert data["details"]


def test_get_task(test_client, auth_headers):
    """Test GET /tasks/{task_id} endpoint."""
    task = create_test_task(title="Task to retrieve via API")

    response = test_client.get(f"/tasks/{task.id}", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["data"]["id"] == str(task.id)
    assert data["data"]["title"] == "Task to retrieve via API"
    assert data["data"]["status"] == "backlog"
    assert data["data"]["agent_id"] is None


def test_get_task_not_found(test_client, auth_headers):
    """Test GET /tasks/{task_id} with non-existent ID."""
    response = test_client.get(f"/tasks/{uuid4()}", headers=auth_headers)

    assert response.status_code == 404
    data = response.json()
    assert data["success"] is False
    assert data["code"] == "not_found"
    assert "not found" in data["error"]


def test_get_task_invalid_id(test_client, auth_headers):
    response = test_client.get("/tasks/12345", headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Invalid task ID format",
        "code": "validation_error",
    }


def test_claim_task(test_client, auth_headers, agent):
    """Test POST /tasks/{task_id}/claim endpoint."""
    task = create_test_task()

    response = test_client.post(
        f"/tasks/{task.id}/claim",
        json={"agent_id": str(agent.id), "notes": "on it"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Task claimed successfully"
    assert data["data"]["task"]["status"] == "active"
    assert data["data"]["task"]["agent_id"] == str(agent.id)
    assert data["data"]["task"]["agent_notes"] == "on it"
    assert data["data"]["time_entry_id"] is not None
    assert data["data"]["claimed_at"] is not None


def test_claim_task_missing_agent_id(test_client, auth_headers):
    task = create_test_task()

    response = test_client.post(f"/tasks/{task.id}/claim", json={}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "agent_id is required"


def test_claim_task_invalid_json(test_client, auth_headers):
    task = create_test_task()

    response = test_client.post(
        f"/tasks/{task.id}/claim",
        content="{not json",
        headers={**auth_headers, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Invalid JSON in request body",
        "code": "invalid_json",
    }


def test_claim_task_already_claimed(test_client, auth_headers, claimed_task, agent):
    """A second agent gets a 409 naming the current owner."""
    other = create_test_agent(name="other-agent")

    response = test_client.post(
        f"/tasks/{claimed_task.id}/claim",
        json={"agent_id": str(other.id)},
        headers=auth_headers,
    )

    assert response.status_code == 409
    data = response.json()
    assert data["success"] is False
    assert data["code"] == "already_claimed"
    assert data["claimed_by"] == str(agent.id)


def test_claim_task_shipped(test_client, auth_headers, agent):
    task = create_test_task(status=TaskStatus.SHIPPED)

    response = test_client.post(
        f"/tasks/{task.id}/claim",
        json={"agent_id": str(agent.id)},
        headers=auth_headers,
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "invalid_state"
    assert data["error"] == "Task cannot be claimed - status is shipped"


def test_claim_task_unknown_agent(test_client, auth_headers):
    task = create_test_task()

    response = test_client.post(
        f"/tasks/{task.id}/claim",
        json={"agent_id": str(uuid4())},
        headers=auth_headers,
    )

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_log_work(test_client, auth_headers, claimed_task, agent):
    """Test POST /tasks/{task_id}/log endpoint."""
    response = test_client.post(
        f"/tasks/{claimed_task.id}/log",
        json={
            "agent_id": str(agent.id),
            "duration_minutes": 90,
            "notes": "wired the form",
            "files_modified": ["src/form.py"],
            "commit_hash": "abc123",
        },
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Work logged successfully"
    assert data["data"]["duration_minutes"] == 90
    assert data["data"]["hours_logged"] == 1.5
    assert data["data"]["time_entry"]["entry_type"] == "work"
    assert data["data"]["time_entry"]["commit_hash"] == "abc123"
    assert TaskService.get_task_by_id(claimed_task.id).files_modified == ["src/form.py"]


def test_log_work_not_owner(test_client, auth_headers, claimed_task):
    other = create_test_agent(name="other-agent")

    response = test_client.post(
        f"/tasks/{claimed_task.id}/log",
        json={"agent_id": str(other.id), "duration_minutes": 10},
        headers=auth_headers,
    )

    assert response.status_code == 403
    assert response.json() == {
        "success": False,
        "error": "Task is not claimed by this agent",
        "code": "not_owner",
    }


def test_log_work_negative_duration(test_client, auth_headers, claimed_task, agent):
    response = test_client.post(
        f"/tasks/{claimed_task.id}/log",
        json={"agent_id": str(agent.id), "duration_minutes": -5},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


@pytest.mark.parametrize("raw_minutes", ["NaN", "Infinity", "1e13"])
def test_log_work_out_of_range_duration(
    test_client, auth_headers, claimed_task, agent, raw_minutes
):
    response = test_client.post(
        f"/tasks/{claimed_task.id}/log",
        content=f'{{"agent_id": "{agent.id}", "duration_minutes": {raw_minutes}}}',
        headers={**auth_headers, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "validation_error"
    assert "finite number" in data["error"]


def test_log_work_invalid_entry_type(test_client, auth_headers, claimed_task, agent):
    response = test_client.post(
        f"/tasks/{claimed_task.id}/log",
        json={"agent_id": str(agent.id), "duration_minutes": 5, "entry_type": "nap"},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid entry_type")


def test_get_work_log(test_client, auth_headers, claimed_task, agent):
    """Test GET /tasks/{task_id}/log totals every entry."""
    for minutes in (30, 45):
        test_client.post(
            f"/tasks/{claimed_task.id}/log",
            json={"agent_id": str(agent.id), "duration_minutes": minutes},
            headers=auth_headers,
        )

    response = test_client.get(f"/tasks/{claimed_task.id}/log", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    # The claim opened one entry without a duration
    assert len(data["entries"]) == 3
    assert data["total_minutes"] == 75
    assert data["total_hours"] == 1.25


def test_get_work_log_task_not_found(test_client, auth_headers):
    response = test_client.get(f"/tasks/{uuid4()}/log", headers=auth_headers)

    assert response.status_code == 404


def test_complete_task(test_client, auth_headers, claimed_task, agent):
    """Test POST /tasks/{task_id}/complete sends the task to review."""
    test_client.post(
        f"/tasks/{claimed_task.id}/log",
        json={"agent_id": str(agent.id), "duration_minutes": 60, "files_modified": ["a.py"]},
        headers=auth_headers,
    )

    response = test_client.post(
        f"/tasks/{claimed_task.id}/complete",
        json={
            "agent_id": str(agent.id),
            "notes": "ready for review",
            "files_modified": ["b.py"],
            "pull_request_url": "https://github.com/acme/site/pull/7",
        },
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Task completed and sent to review"
    assert data["data"]["task"]["status"] == "review"
    assert data["data"]["task"]["agent_id"] == str(agent.id)
    assert data["data"]["files_modified"] == ["a.py", "b.py"]
    assert data["data"]["total_time_minutes"] == 60
    assert data["data"]["total_time_hours"] == 1
    metadata = data["data"]["completion_metadata"]
    assert metadata["completed_by_agent"] == str(agent.id)
    assert metadata["pull_request_url"] == "https://github.com/acme/site/pull/7"


def test_complete_task_twice(test_client, auth_headers, claimed_task, agent):
    body = {"agent_id": str(agent.id)}
    test_client.post(f"/tasks/{claimed_task.id}/complete", json=body, headers=auth_headers)

    response = test_client.post(
        f"/tasks/{claimed_task.id}/complete", json=body, headers=auth_headers
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "invalid_state"
    assert data["error"] == "Task is already in review"


def test_complete_task_not_owner(test_client, auth_headers):
    task = create_test_task()
    agent = create_test_agent()

    response = test_client.post(
        f"/tasks/{task.id}/complete",
        json={"agent_id": str(agent.id)},
        headers=auth_headers,
    )

    assert response.status_code == 403
    assert response.json()["code"] == "not_owner"


def test_ship_task_notifies_client(test_client, auth_headers, agent, mock_dispatch):
    """Test PATCH /tasks/{task_id}/status ships a reviewed task."""
    project = create_test_project(client=create_test_client(email="owner@acme.test"))
    task = create_test_task(project, work_type=WorkType.HYBRID)
    ClaimService.claim_task(task.id, agent.id)
    test_client.post(
        f"/tasks/{task.id}/complete",
        json={"agent_id": str(agent.id)},
        headers=auth_headers,
    )

    response = test_client.patch(
        f"/tasks/{task.id}/status", json={"status": "shipped"}, headers=auth_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Task moved to shipped"
    assert data["data"]["status"] == "shipped"
    assert data["data"]["shipped_at"] is not None
    [notification] = NotificationService.list_notifications()
    assert notification.recipient_email == "owner@acme.test"
    mock_dispatch.assert_called_once()


def test_change_status_requires_status(test_client, auth_headers):
    task = create_test_task()

    response = test_client.patch(f"/tasks/{task.id}/status", json={}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "status is required"


def test_change_status_invalid_value(test_client, auth_headers):
    task = create_test_task()

    response = test_client.patch(
        f"/tasks/{task.id}/status", json={"status": "done"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid status. Must be one of:")


def test_change_status_rejected_transition(test_client, auth_headers):
    task = create_test_task()

    response = test_client.patch(
        f"/tasks/{task.id}/status", json={"status": "shipped"}, headers=auth_headers
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "invalid_state"
    assert data["current_status"] == "backlog"


def test_move_to_backlog_releases_claim(test_client, auth_headers, claimed_task):
    response = test_client.patch(
        f"/tasks/{claimed_task.id}/status", json={"status": "backlog"}, headers=auth_headers
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "backlog"
    assert data["agent_id"] is None
    assert data["agent_claimed_at"] is None


def test_store_error_returns_envelope(test_client, auth_headers, mocker):
    from sqlalchemy.exc import OperationalError

    mocker.patch.object(
        TaskService,
        "get_task_by_id",
        side_effect=OperationalError("SELECT", {}, Exception("database is locked")),
    )

    response = test_client.get(f"/tasks/{uuid4()}", headers=auth_headers)

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Data store unavailable",
        "code": "store_unavailable",
    }


def test_unknown_route_returns_envelope(test_client, auth_headers):
    response = test_client.get("/nope", headers=auth_headers)

    assert response.status_code == 404
    data = response.json()
    assert data["success"] is False
    assert data["code"] == "not_found"
