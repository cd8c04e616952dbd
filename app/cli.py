"""ShiftBoard CLI - command-line interface for agents using the ShiftBoard API."""

import os
from pathlib import Path

import httpx
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from app.services.api_client import ApiClientService

# Load .env file from project root (parent of app/ directory)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

app = typer.Typer(help="ShiftBoard agent CLI")
agent_app = typer.Typer(help="Agent registration commands")
task_app = typer.Typer(help="Task claiming and work logging commands")
app.add_typer(agent_app, name="agent")
app.add_typer(task_app, name="task")

console = Console()


def get_client() -> httpx.Client:
    """Get configured HTTP client."""
    return ApiClientService.get_client(
        base_url=os.getenv("SHIFTBOARD_URL", "http://localhost:8000"),
        api_key=os.getenv("API_SECRET_KEY", ""),
    )


def fail(e: httpx.HTTPStatusError) -> None:
    """Print an API error and exit."""
    try:
        body = e.response.json()
        message = body.get("error", e.response.text)
        code = body.get("code")
    except ValueError:
        body, message, code = None, e.response.text, None

    suffix = f" ({code})" if code else ""
    console.print(f"[red]✗[/red] {message}{suffix}")
    if isinstance(body, dict) and body.get("claimed_by"):
        console.print(f"  Claimed by: {body['claimed_by']}")
    raise typer.Exit(1) from e


@agent_app.command("register")
def register_agent(
    name: str = typer.Argument(..., help="Agent name"),
    description: str = typer.Option(None, "--description", "-d", help="Description"),
    capability: list[str] = typer.Option(
        None, "--capability", "-c", help="Capability (repeatable)"
    ),
):
    """Register a new agent."""
    try:
        with get_client() as client:
            result = ApiClientService.register_agent(
                name, description=description, capabilities=capability, client=client
            )
    except httpx.HTTPStatusError as e:
        fail(e)

    agent = result["data"]["agent"]
    console.print(f"[green]✓[/green] Agent registered: [bold]{agent['id']}[/bold]")
    console.print(f"  Name: {agent['name']}")
    console.print(f"  Status: {agent['status']}")


@agent_app.command("heartbeat")
def heartbeat(
    agent_id: str = typer.Argument(..., help="Agent ID"),
    status: str = typer.Option(None, "--status", help="active, idle or offline"),
):
    """Send a heartbeat for an agent."""
    try:
        with get_client() as client:
            result = ApiClientService.heartbeat(agent_id, status=status, client=client)
    except httpx.HTTPStatusError as e:
        fail(e)

    data = result["data"]
    console.print(f"[green]✓[/green] Heartbeat recorded ({data['status']})")
    if data.get("current_task_id"):
        console.print(f"  Current task: {data['current_task_id']}")


@task_app.command("available")
def available_tasks(
    project_id: str = typer.Option(None, "--project", help="Filter by project ID"),
    priority: str = typer.Option(None, "--priority", help="urgent, high, medium, low"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of tasks to show"),
):
    """List tasks available for claiming."""
    try:
        with get_client() as client:
            result = ApiClientService.get_available_tasks(
                project_id=project_id, priority=priority, limit=limit, client=client
            )
    except httpx.HTTPStatusError as e:
        fail(e)

    tasks = result["data"]
    if not tasks:
        console.print("[yellow]No tasks available[/yellow]")
        return

    table = Table(title=f"Available Tasks ({result['count']})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Priority", style="magenta")
    table.add_column("Status")
    table.add_column("Project", style="dim")
    table.add_column("Title", style="white")

    for task in tasks:
        title = task["title"][:50] + "..." if len(task["title"]) > 50 else task["title"]
        project = task["project"]["name"] if task.get("project") else ""
        table.add_row(task["id"], task["priority"], task["status"], project, title)

    console.print(table)


@task_app.command("get")
def get_task(task_id: str = typer.Argument(..., help="Task ID")):
    """Get task details."""
    try:
        with get_client() as client:
            task = ApiClientService.get_task(task_id, client=client)["data"]
    except httpx.HTTPStatusError as e:
        fail(e)

    console.print(f"[bold]{task['title']}[/bold]")
    console.print(f"  ID: {task['id']}")
    console.print(f"  Status: {task['status']}")
    console.print(f"  Priority: {task['priority']}")
    if task.get("agent_id"):
        console.print(f"  Claimed by: {task['agent_id']} at {task['agent_claimed_at']}")
    if task.get("files_modified"):
        console.print(f"  Files: {', '.join(task['files_modified'])}")

    if task.get("description"):
        console.print(f"\n[bold]Description:[/bold]\n{task['description']}")

    if task.get("acceptance_criteria"):
        console.print("\n[bold]Acceptance criteria:[/bold]")
        for criterion in task["acceptance_criteria"]:
            console.print(f"  - {criterion}")

    if task.get("agent_notes"):
        console.print(f"\n[bold]Agent notes:[/bold]\n{task['agent_notes']}")


@task_app.command("claim")
def claim_task(
    task_id: str = typer.Argument(..., help="Task ID"),
    agent_id: str = typer.Option(..., "--agent", "-a", envvar="SHIFTBOARD_AGENT_ID"),
    notes: str = typer.Option(None, "--notes", help="Note recorded with the claim"),
    session_id: str = typer.Option(None, "--session", help="Agent session ID"),
):
    """Claim a task."""
    try:
        with get_client() as client:
            task = ApiClientService.claim_task_safely(
                task_id, agent_id, session_id=session_id, notes=notes, client=client
            )
    except httpx.HTTPStatusError as e:
        fail(e)

    if task is None:
        console.print("[red]✗[/red] Task is claimed by another agent")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Claimed task: [bold]{task['title']}[/bold]")
    console.print(f"  Status: {task['status']}")


@task_app.command("log")
def log_work(
    task_id: str = typer.Argument(..., help="Task ID"),
    minutes: float = typer.Argument(..., help="Minutes of work to record"),
    agent_id: str = typer.Option(..., "--agent", "-a", envvar="SHIFTBOARD_AGENT_ID"),
    notes: str = typer.Option(None, "--notes", help="What was done"),
    file: list[str] = typer.Option(None, "--file", "-f", help="Modified file (repeatable)"),
    commit: str = typer.Option(None, "--commit", help="Commit hash"),
    entry_type: str = typer.Option("work", "--type", help="work, review or blocked"),
):
    """Log work time against a claimed task."""
    try:
        with get_client() as client:
            result = ApiClientService.log_work(
                task_id,
                agent_id,
                minutes,
                notes=notes,
                files_modified=file,
                commit_hash=commit,
                entry_type=entry_type,
                client=client,
            )
    except httpx.HTTPStatusError as e:
        fail(e)

    data = result["data"]
    console.print(
        f"[green]✓[/green] Logged {data['duration_minutes']:g} min "
        f"({data['hours_logged']:.2f} h)"
    )


@task_app.command("worklog")
def work_log(task_id: str = typer.Argument(..., help="Task ID")):
    """Show the time entries recorded for a task."""
    try:
        with get_client() as client:
            data = ApiClientService.get_work_log(task_id, client=client)["data"]
    except httpx.HTTPStatusError as e:
        fail(e)

    entries = data["entries"]
    if not entries:
        console.print("[yellow]No time logged[/yellow]")
        return

    table = Table(title=f"Work log ({data['total_hours']:.2f} h total)")
    table.add_column("Started", style="dim")
    table.add_column("Type", style="magenta")
    table.add_column("Minutes", justify="right")
    table.add_column("Notes", style="white")

    for entry in entries:
        minutes = entry["duration_minutes"]
        table.add_row(
            entry["started_at"][:16],
            entry["entry_type"],
            f"{minutes:g}" if minutes is not None else "-",
            entry.get("notes") or "",
        )

    console.print(table)


@task_app.command("complete")
def complete_task(
    task_id: str = typer.Argument(..., help="Task ID"),
    agent_id: str = typer.Option(..., "--agent", "-a", envvar="SHIFTBOARD_AGENT_ID"),
    notes: str = typer.Option(None, "--notes", help="Completion summary"),
    file: list[str] = typer.Option(None, "--file", "-f", help="Modified file (repeatable)"),
    commit: str = typer.Option(None, "--commit", help="Commit hash"),
    pr: str = typer.Option(None, "--pr", help="Pull request URL"),
):
    """Complete a task and send it to human review."""
    try:
        with get_client() as client:
            result = ApiClientService.complete_task(
                task_id,
                agent_id,
                notes=notes,
                files_modified=file,
                commit_hash=commit,
                pull_request_url=pr,
                client=client,
            )
    except httpx.HTTPStatusError as e:
        fail(e)

    data = result["data"]
    console.print("[green]✓[/green] Task sent to review")
    console.print(f"  Total time: {data['total_time_hours']:.2f} h")
    if data["files_modified"]:
        console.print(f"  Files: {', '.join(data['files_modified'])}")


if __name__ == "__main__":
    app()
