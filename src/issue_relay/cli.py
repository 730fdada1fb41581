"""CLI for issue relay."""

import asyncio
import sys
from collections.abc import Awaitable, Callable
from typing import Annotated, Any, Literal

import structlog
from cyclopts import App, Parameter

from issue_relay.config import Settings, build_service
from issue_relay.config_commands import config_app
from issue_relay.issues import IssueService, OperationResult
from issue_relay.trace_commands import trace_app

logger = structlog.get_logger()

app = App(
    help="Issue Relay - Manage Linear issues by name and run prompts through agents",
)

app.command(trace_app)
app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def get_settings() -> Settings:
    return Settings.load()


def get_service() -> IssueService:
    """Get issue operations over the configured Linear workspace."""
    return build_service(get_settings())


def fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    raise SystemExit(1)


def run_operation(operation: Callable[[IssueService], Awaitable[OperationResult]]) -> Any:
    """Run an issue operation, closing the Linear client afterwards.

    Exits with status 1 if the operation fails.
    """

    async def run() -> OperationResult:
        service = get_service()
        try:
            return await operation(service)
        finally:
            await service.catalog.aclose()

    result = asyncio.run(run())
    if not result.success:
        fail(f"{result.error}: {result.details}" if result.details else result.error or "Unknown error")
    return result.data


def split_labels(labels: str | None) -> list[str] | None:
    if labels is None:
        return None
    return [label.strip() for label in labels.split(",") if label.strip()]


def _name(relation: dict | None, key: str = "name") -> str | None:
    return relation.get(key) if relation else None


def print_issue(issue: dict[str, Any]) -> None:
    print(f"Issue: {issue['id']}")
    print(f"Title: {issue['title']}")
    if issue.get("description"):
        print(f"Description: {issue['description']}")
    if issue.get("team"):
        print(f"Team: {issue['team']['name']} ({issue['team']['key']})")
    if issue.get("state"):
        print(f"State: {_name(issue['state'])}")
    if issue.get("assignee"):
        print(f"Assignee: {issue['assignee']['displayName']} ({issue['assignee']['email']})")
    if issue.get("project"):
        print(f"Project: {_name(issue['project'])}")
    if issue.get("priority") is not None:
        print(f"Priority: {issue['priority']}")
    if issue.get("labels"):
        print(f"Labels: {', '.join(label['name'] for label in issue['labels'])}")
    if issue.get("url"):
        print(f"URL: {issue['url']}")


def print_issue_list(data: dict[str, Any]) -> None:
    issues = data["issues"]
    print(f"Found {len(issues)} issue(s):\n")
    for issue in issues:
        state = _name(issue.get("state")) or "-"
        assignee = _name(issue.get("assignee"), "displayName")
        suffix = f" @{assignee}" if assignee else ""
        print(f"[{state}] {issue['id']}: {issue['title']}{suffix}")
    if data.get("hasNextPage"):
        print("\nMore issues are available (use --offset)")


@app.command
def create(
    title: str,
    team: str,
    description: str | None = None,
    assignee: str | None = None,
    priority: int | None = None,
    labels: str | None = None,
    project: str | None = None,
    state: str | None = None,
) -> None:
    """Create an issue.

    Args:
        title: Issue title
        team: Team ID, name or key
        description: Markdown description
        assignee: User ID, name, display name or email
        priority: 0 (none) to 4 (low)
        labels: Comma-separated label IDs
        project: Project ID or name (defaults to the configured default project)
        state: Workflow state ID or name
    """
    payload = {
        "title": title,
        "teamId": team,
        "description": description,
        "assigneeId": assignee,
        "priority": priority,
        "labelIds": split_labels(labels),
        "projectId": project,
        "stateId": state,
    }
    issue = run_operation(lambda service: service.create(payload))
    print(f"Created issue {issue['id']}: {issue['title']}")
    if issue.get("url"):
        print(f"URL: {issue['url']}")


@app.command
def get(issue_id: str) -> None:
    """Show an issue by ID."""
    print_issue(run_operation(lambda service: service.get(issue_id)))


@app.command
def update(
    issue_id: str,
    title: str | None = None,
    description: str | None = None,
    assignee: str | None = None,
    priority: int | None = None,
    labels: str | None = None,
    project: str | None = None,
    state: str | None = None,
) -> None:
    """Update an issue. Only the given fields change."""
    payload = {
        "title": title,
        "description": description,
        "assigneeId": assignee,
        "priority": priority,
        "labelIds": split_labels(labels),
        "projectId": project,
        "stateId": state,
    }
    issue = run_operation(lambda service: service.update(issue_id, payload))
    print(f"Updated issue {issue['id']}: {issue['title']}")


@app.command
def search(
    query: str | None = None,
    team: str | None = None,
    assignee: str | None = None,
    project: str | None = None,
    state: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> None:
    """Search issues by text and by team, assignee, project or state."""
    filters = {
        "query": query,
        "teamId": team,
        "assigneeId": assignee,
        "projectId": project,
        "stateId": state,
        "limit": limit,
        "offset": offset,
    }
    print_issue_list(run_operation(lambda service: service.search(filters)))


@app.command(name="list")
def list_issues(limit: int = 50, offset: int = 0, team: str | None = None) -> None:
    """List issues, optionally for one team."""
    print_issue_list(run_operation(lambda service: service.list(limit=limit, offset=offset, team=team)))


@app.command
def serve(host: str | None = None, port: int | None = None) -> None:
    """Run the HTTP API.

    Args:
        host: Interface to bind (defaults to the configured server.host)
        port: Port to bind (defaults to the configured server.port)
    """
    import uvicorn

    from issue_relay.api import create_app

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "critical",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


def run() -> None:
    app.meta()


if __name__ == "__main__":
    run()
