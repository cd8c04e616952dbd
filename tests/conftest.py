"""Pytest configuration and fixtures."""

import os
import tempfile

# Set test environment before the app reads its settings
os.environ["APP_ENV"] = "test"
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite:///{tempfile.gettempdir()}/shiftboard-test-{os.getpid()}.db",
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.database import (  # noqa: E402
    clean_database,
    close_db,
    create_tables,
    get_session,
)
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Agent,
    AgentStatus,
    Client,
    Project,
    RequirementDoc,
    RequirementStatus,
    Task,
    TaskPriority,
    TaskStatus,
    WorkType,
)


def create_test_client(
    name: str = "Acme Client", email: str | None = "client@example.com"
) -> Client:
    """Helper function to create a client contact."""
    with get_session() as session:
        client = Client(name=name, company="Acme", email=email)
        session.add(client)
        session.commit()
        session.refresh(client)
        return client


def create_test_project(
    name: str = "Test Project", client: Client | None = None
) -> Project:
    """Helper function to create a project, optionally linked to a client."""
    with get_session() as session:
        project = Project(
            name=name,
            client_name=client.name if client else "Acme",
            description="A project for tests",
            client_id=client.id if client else None,
        )
        session.add(project)
        session.commit()
        session.refresh(project)
        return project


def create_test_task(
    project: Project | None = None,
    title: str = "Test task",
    status: TaskStatus = TaskStatus.BACKLOG,
    priority: TaskPriority = TaskPriority.MEDIUM,
    work_type: WorkType | None = WorkType.AI_SUITABLE,
    **fields,
) -> Task:
    """Helper function to create a test task with default values."""
    if project is None:
        project = create_test_project()

    with get_session() as session:
        task = Task(
            project_id=project.id,
            title=title,
            status=status,
            priority=priority,
            work_type=work_type,
            **fields,
        )
        session.add(task)
        session.commit()
        session.refresh(task)
        return task


def create_test_agent(name: str = "test-agent", **fields) -> Agent:
    """Helper function to register an agent directly in the store."""
    fields.setdefault("status", AgentStatus.IDLE)
    with get_session() as session:
        agent = Agent(name=name, **fields)
        session.add(agent)
        session.commit()
        session.refresh(agent)
        return agent


def create_test_requirement(
    project: Project | None = None,
    title: str = "Phase 1 requirements",
    status: RequirementStatus = RequirementStatus.DRAFT,
) -> RequirementDoc:
    if project is None:
        project = create_test_project()

    with get_session() as session:
        requirement = RequirementDoc(
            project_id=project.id,
            title=title,
            phase="discovery",
            summary="Scope for the first phase",
            status=status,
        )
        session.add(requirement)
        session.commit()
        session.refresh(requirement)
        return requirement


@pytest.fixture(autouse=True, scope="function")
def mock_dispatch(mocker):
    """Mock Celery outbox dispatch for all tests."""
    return mocker.patch("app.tasks.notifications.dispatch_notifications.delay")


@pytest.fixture(autouse=True, scope="function")
def clean_db():
    """Initialize and clean database for each test."""
    create_tables()

    # Clean all tables before test to ensure isolation
    clean_database()

    yield

    # Close DB connections
    close_db()


@pytest.fixture(scope="function")
def test_client():
    """Create a test client."""
    with TestClient(app) as client:
        yield client


@pytest.fixture(scope="function")
def auth_headers():
    """Provide authentication headers for API requests."""
    from app.core.config import settings

    return {"X-API-Key": settings.api_secret_key}


@pytest.fixture
def agent():
    return create_test_agent()


@pytest.fixture
def claimed_task(agent):
    """An active task owned by ``agent``."""
    from app.services import ClaimService

    task = create_test_task(title="Claimed task")
    ClaimService.claim_task(task.id, agent.id)
    return task
