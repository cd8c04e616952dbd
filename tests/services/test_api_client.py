"""Tests for ApiClientService."""

import os
from uuid import UUID

import httpx
import pytest

from app.services.api_client import ApiClientService

# Test UUIDs
TASK_ID = str(UUID("12345678-1234-4678-9234-567812345678"))
AGENT_ID = str(UUID("12345678-1234-4678-9234-567812345679"))
OTHER_AGENT_ID = str(UUID("12345678-1234-4678-9234-567812345680"))


def _mock_client(mocker, *responses):
    """Build a mock httpx.Client whose request() returns the given bodies."""
    mock_client = mocker.Mock(spec=httpx.Client)
    mock_responses = []
    for body in responses:
        mock_response = mocker.Mock()
        mock_response.json.return_value = body
        mock_responses.append(mock_response)
    mock_client.request.side_effect = mock_responses
    return mock_client


def _status_error(mocker, status_code):
    response = mocker.Mock()
    response.status_code = status_code
    return httpx.HTTPStatusError(
        f"{status_code} error", request=mocker.Mock(), response=response
    )


def test_get_client_default_values(mocker):
    """Test get_client with default values from environment."""
    mocker.patch.dict(
        os.environ,
        {"SHIFTBOARD_URL": "http://test.example.com", "API_SECRET_KEY": "test-key"},
    )

    client = ApiClientService.get_client()

    assert isinstance(client, httpx.Client)
    assert str(client.base_url) == "http://test.example.com"
    assert client.headers["X-API-Key"] == "test-key"
    assert client.timeout.read == 30.0
    client.close()


def test_get_client_with_explicit_values():
    """Test get_client with explicitly provided values."""
    client = ApiClientService.get_client(
        base_url="http://custom.example.com", api_key="custom-key"
    )

    assert str(client.base_url) == "http://custom.example.com"
    assert client.headers["X-API-Key"] == "custom-key"
    client.close()


def test_claim_task_success(mocker):
    """Test claiming a task creates and closes its own client."""
    body = {"success": True, "data": {"task": {"id": TASK_ID, "agent_id": AGENT_ID}}}
    mock_client = _mock_client(mocker, body)
    mocker.patch.object(ApiClientService, "get_client", return_value=mock_client)

    result = ApiClientService.claim_task(TASK_ID, AGENT_ID, notes="starting")

    assert result == body
    mock_client.request.assert_called_once_with(
        "POST",
        f"/tasks/{TASK_ID}/claim",
        json={"agent_id": AGENT_ID, "notes": "starting"},
    )
    mock_client.close.assert_called_once()


def test_provided_client_is_not_closed(mocker):
    mock_client = _mock_client(mocker, {"success": True, "data": {}})

    ApiClientService.get_task(TASK_ID, client=mock_client)

    mock_client.request.assert_called_once_with("GET", f"/tasks/{TASK_ID}")
    mock_client.close.assert_not_called()


def test_http_error_propagates(mocker):
    mock_client = mocker.Mock(spec=httpx.Client)
    mock_response = mocker.Mock()
    mock_response.raise_for_status.side_effect = _status_error(mocker, 404)
    mock_client.request.return_value = mock_response

    with pytest.raises(httpx.HTTPStatusError):
        ApiClientService.get_task(TASK_ID, client=mock_client)


def test_get_available_tasks_passes_filters(mocker):
    mock_client = _mock_client(mocker, {"success": True, "count": 0, "data": []})

    ApiClientService.get_available_tasks(priority="urgent", limit=5, client=mock_client)

    mock_client.request.assert_called_once_with(
        "GET", "/tasks/available", params={"priority": "urgent", "limit": 5}
    )


def test_log_work_payload(mocker):
    mock_client = _mock_client(mocker, {"success": True, "data": {}})

    ApiClientService.log_work(
        TASK_ID,
        AGENT_ID,
        30,
        files_modified=["a.py"],
        commit_hash="abc",
        client=mock_client,
    )

    mock_client.request.assert_called_once_with(
        "POST",
        f"/tasks/{TASK_ID}/log",
        json={
            "agent_id": AGENT_ID,
            "duration_minutes": 30,
            "entry_type": "work",
            "files_modified": ["a.py"],
            "commit_hash": "abc",
        },
    )


def test_complete_task_payload(mocker):
    mock_client = _mock_client(mocker, {"success": True, "data": {}})

    ApiClientService.complete_task(
        TASK_ID,
        AGENT_ID,
        notes="done",
        pull_request_url="https://github.com/acme/site/pull/1",
        client=mock_client,
    )

    _, kwargs = mock_client.request.call_args
    assert kwargs["json"] == {
        "agent_id": AGENT_ID,
        "notes": "done",
        "pull_request_url": "https://github.com/acme/site/pull/1",
    }


def test_register_agent_payload(mocker):
    mock_client = _mock_client(mocker, {"success": True, "data": {}})

    ApiClientService.register_agent("builder", capabilities=["python"], client=mock_client)

    mock_client.request.assert_called_once_with(
        "POST",
        "/agents/register",
        json={"name": "builder", "capabilities": ["python"]},
    )


def test_claim_task_safely_returns_task(mocker):
    task = {"id": TASK_ID, "agent_id": AGENT_ID}
    mocker.patch.object(
        ApiClientService, "claim_task", return_value={"data": {"task": task}}
    )

    assert ApiClientService.claim_task_safely(TASK_ID, AGENT_ID) == task


def test_claim_task_safely_conflict_returns_none(mocker):
    mocker.patch.object(
        ApiClientService, "claim_task", side_effect=_status_error(mocker, 409)
    )

    assert ApiClientService.claim_task_safely(TASK_ID, AGENT_ID) is None


def test_claim_task_safely_other_errors_propagate(mocker):
    mocker.patch.object(
        ApiClientService, "claim_task", side_effect=_status_error(mocker, 400)
    )

    with pytest.raises(httpx.HTTPStatusError):
        ApiClientService.claim_task_safely(TASK_ID, AGENT_ID)


def test_claim_task_safely_timeout_but_claim_applied(mocker):
    """A timed out claim that did land counts as ours."""
    mocker.patch.object(
        ApiClientService, "claim_task", side_effect=httpx.ReadTimeout("timed out")
    )
    task = {"id": TASK_ID, "agent_id": AGENT_ID, "status": "active"}
    get_task = mocker.patch.object(
        ApiClientService, "get_task", return_value={"data": task}
    )

    assert ApiClientService.claim_task_safely(TASK_ID, AGENT_ID) == task
    get_task.assert_called_once_with(TASK_ID, client=None)


def test_claim_task_safely_timeout_and_someone_else_won(mocker):
    mocker.patch.object(
        ApiClientService, "claim_task", side_effect=httpx.ConnectTimeout("timed out")
    )
    mocker.patch.object(
        ApiClientService,
        "get_task",
        return_value={"data": {"id": TASK_ID, "agent_id": OTHER_AGENT_ID}},
    )

    assert ApiClientService.claim_task_safely(TASK_ID, AGENT_ID) is None
