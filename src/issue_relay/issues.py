"""Issue operations: create, update, get, search and list by human-readable references."""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from issue_relay.catalog import MAX_PAGE_SIZE, Catalog, IssueDraft, IssueQuery
from issue_relay.errors import (
    IssueNotFound,
    IssueRelayError,
    RemoteOperationFailure,
    ResolutionNotFound,
    ValidationFailure,
)
from issue_relay.models import Entity, Issue, IssuePage, summary
from issue_relay.resolver import EntityKind, EntityResolver
from issue_relay.schemas import (
    CreateIssuePayload,
    ListIssuesPayload,
    SearchIssuesPayload,
    UpdateIssuePayload,
    validate_payload,
)

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class OperationResult:
    """Outcome of an issue operation.

    ``kind`` classifies failures: ``validation``, ``resolution``,
    ``not_found``, ``remote`` or ``error``.
    """

    success: bool
    data: Any = None
    error: str | None = None
    kind: str | None = None
    details: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        response = {"success": False, "error": self.error}
        if self.details:
            response["details"] = self.details
        return response


def operation(name: str) -> Callable[..., Callable[..., Awaitable[OperationResult]]]:
    """Run an issue operation and fold any exception into a failed OperationResult."""

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[OperationResult]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> OperationResult:
            try:
                data = await func(*args, **kwargs)
            except ValidationFailure as e:
                logger.info("Issue operation rejected", operation=name, details=e.details)
                return OperationResult(success=False, error="Validation error", kind=e.kind, details=e.details)
            except IssueRelayError as e:
                logger.info("Issue operation failed", operation=name, kind=e.kind, error=str(e))
                return OperationResult(success=False, error=str(e), kind=e.kind)
            except Exception as e:
                logger.exception("Unexpected error in issue operation", operation=name)
                return OperationResult(success=False, error=str(e) or "Internal server error", kind="error")
            return OperationResult(success=True, data=data)

        return wrapper

    return decorator


async def _maybe(resolution: Awaitable[Entity | None] | None) -> Entity | None:
    return await resolution if resolution is not None else None


def _matches_query(issue: Issue, query: str) -> bool:
    wanted = query.lower()
    return wanted in issue.title.lower() or wanted in (issue.description or "").lower()


class IssueService:
    """Issue operations that resolve every entity reference before touching the catalog."""

    def __init__(self, catalog: Catalog, resolver: EntityResolver) -> None:
        self.catalog = catalog
        self.resolver = resolver

    async def _check(self, kind: EntityKind, requested: str | None, resolved: Entity | None) -> None:
        """Raise ResolutionNotFound if a supplied reference did not resolve."""
        if requested and resolved is None:
            message = await self.resolver.build_not_found_message(kind, requested)
            raise ResolutionNotFound(kind, requested, message)

    async def _remote(self, call: Awaitable[T]) -> T:
        try:
            return await call
        except IssueRelayError:
            raise
        except Exception as e:
            raise RemoteOperationFailure(str(e)) from e

    @operation("create")
    async def create(self, payload: CreateIssuePayload | dict[str, Any]) -> dict[str, Any]:
        """Create an issue, resolving team, assignee, project and state references.

        When no project is given the configured default project is used. A
        default project that fails to resolve is skipped rather than reported.
        """
        data = validate_payload(CreateIssuePayload, payload)
        logger.info("Creating issue", title=data.title, team=data.team_id)

        project_resolution = (
            self.resolver.resolve_project(data.project_id)
            if data.project_id
            else self.resolver.resolve_default_project()
        )
        team, assignee, project, state = await asyncio.gather(
            self.resolver.resolve_team(data.team_id),
            _maybe(self.resolver.resolve_user(data.assignee_id) if data.assignee_id else None),
            project_resolution,
            _maybe(self.resolver.resolve_state(data.state_id) if data.state_id else None),
        )

        await self._check("team", data.team_id, team)
        await self._check("user", data.assignee_id, assignee)
        await self._check("project", data.project_id, project)
        await self._check("state", data.state_id, state)

        if project is None and not data.project_id and self.resolver.default_project:
            logger.warning("Default project could not be resolved", project=self.resolver.default_project)

        draft = IssueDraft(
            title=data.title,
            description=data.description,
            team_id=team.id,
            assignee_id=assignee.id if assignee else None,
            priority=data.priority,
            label_ids=[label for label in data.label_ids if label] if data.label_ids else None,
            project_id=project.id if project else None,
            state_id=state.id if state else None,
        )
        issue = await self._remote(self.catalog.create_issue(draft))
        if issue is None:
            raise RemoteOperationFailure("Failed to create issue")

        logger.info("Issue created", issue_id=issue.id, number=issue.number)
        response = issue.to_dict()
        response.update(
            team=summary(team),
            assignee=summary(assignee),
            project=summary(project),
            state=summary(state),
        )
        return response

    @operation("update")
    async def update(self, issue_id: str, payload: UpdateIssuePayload | dict[str, Any]) -> dict[str, Any]:
        """Update an issue. Workflow states are resolved within the issue's own team."""
        data = validate_payload(UpdateIssuePayload, payload)
        logger.info("Updating issue", issue_id=issue_id)

        existing = await self._remote(self.catalog.fetch_issue(issue_id))
        if existing is None:
            raise IssueNotFound()

        assignee, project, state = await asyncio.gather(
            _maybe(self.resolver.resolve_user(data.assignee_id) if data.assignee_id else None),
            _maybe(self.resolver.resolve_project(data.project_id) if data.project_id else None),
            _maybe(self.resolver.resolve_state(data.state_id, existing.team_id) if data.state_id else None),
        )

        await self._check("user", data.assignee_id, assignee)
        await self._check("project", data.project_id, project)
        await self._check("state", data.state_id, state)

        draft = IssueDraft(
            title=data.title,
            description=data.description,
            assignee_id=assignee.id if assignee else None,
            priority=data.priority,
            label_ids=[label for label in data.label_ids if label] if data.label_ids is not None else None,
            project_id=project.id if project else None,
            state_id=state.id if state else None,
        )
        updated = await self._remote(self.catalog.update_issue(issue_id, draft))
        if updated is None:
            raise RemoteOperationFailure("Failed to update issue")

        logger.info("Issue updated", issue_id=updated.id)
        response = updated.to_dict()
        response.update(
            assignee=summary(assignee or updated.assignee),
            project=summary(project or updated.project),
            state=summary(state or updated.state),
        )
        return response

    @operation("get")
    async def get(self, issue_id: str) -> dict[str, Any]:
        """Get an issue with its team, assignee, project, state and labels."""
        if not issue_id:
            raise IssueNotFound("Issue ID is required")
        issue = await self._remote(self.catalog.fetch_issue(issue_id))
        if issue is None:
            raise IssueNotFound()
        return issue.to_dict()

    async def _page(self, filter: dict[str, Any], limit: int, offset: int) -> IssuePage:
        """Read ``offset + limit`` issues by following the cursor, then slice off the offset.

        Each request asks for at most MAX_PAGE_SIZE issues.
        """
        issues: list[Issue] = []
        remaining = offset + limit
        after: str | None = None
        while True:
            query = IssueQuery(filter=filter, first=min(remaining, MAX_PAGE_SIZE), after=after)
            page = await self._remote(self.catalog.query_issues(query))
            issues.extend(page.issues)
            remaining -= len(page.issues)
            if remaining <= 0 or not page.has_next_page or not page.end_cursor or not page.issues:
                break
            after = page.end_cursor

        return IssuePage(
            issues=issues[offset : offset + limit],
            has_next_page=page.has_next_page or len(issues) > offset + limit,
            has_previous_page=offset > 0,
            end_cursor=page.end_cursor,
        )

    @operation("search")
    async def search(self, filters: SearchIssuesPayload | dict[str, Any]) -> dict[str, Any]:
        """Search issues by team, assignee, project, state and free text."""
        data = validate_payload(SearchIssuesPayload, filters)
        logger.info("Searching issues", query=data.query, team=data.team_id, assignee=data.assignee_id)

        team, assignee, project, state = await asyncio.gather(
            _maybe(self.resolver.resolve_team(data.team_id) if data.team_id else None),
            _maybe(self.resolver.resolve_user(data.assignee_id) if data.assignee_id else None),
            _maybe(self.resolver.resolve_project(data.project_id) if data.project_id else None),
            _maybe(self.resolver.resolve_state(data.state_id) if data.state_id else None),
        )

        await self._check("team", data.team_id, team)
        await self._check("user", data.assignee_id, assignee)
        await self._check("project", data.project_id, project)
        await self._check("state", data.state_id, state)

        filter: dict[str, Any] = {}
        for field, entity in (("team", team), ("assignee", assignee), ("project", project), ("state", state)):
            if entity is not None:
                filter[field] = {"id": {"eq": entity.id}}
        if data.query:
            filter["or"] = [
                {"title": {"containsIgnoreCase": data.query}},
                {"description": {"containsIgnoreCase": data.query}},
            ]

        page = await self._page(filter, data.limit, data.offset)
        issues = page.issues
        if data.query:
            issues = [issue for issue in issues if _matches_query(issue, data.query)]

        return {
            "issues": [issue.to_dict() for issue in issues],
            "totalCount": len(issues),
            "hasNextPage": page.has_next_page,
            "hasPreviousPage": page.has_previous_page or data.offset > 0,
            "appliedFilters": {
                "team": summary(team),
                "assignee": summary(assignee),
                "project": summary(project),
                "state": summary(state),
                "query": data.query,
            },
            "pagination": {"limit": data.limit, "offset": data.offset},
        }

    @operation("list")
    async def list(self, limit: int = 50, offset: int = 0, team: str | None = None) -> dict[str, Any]:
        """List issues, optionally restricted to one team."""
        data = validate_payload(ListIssuesPayload, {"limit": limit, "offset": offset, "teamId": team})
        logger.info("Listing issues", limit=data.limit, offset=data.offset, team=data.team_id)

        filter: dict[str, Any] = {}
        if data.team_id:
            resolved = await self.resolver.resolve_team(data.team_id)
            await self._check("team", data.team_id, resolved)
            filter["team"] = {"id": {"eq": resolved.id}}

        page = await self._page(filter, data.limit, data.offset)
        return {
            "issues": [issue.to_dict() for issue in page.issues],
            "totalCount": len(page.issues),
            "hasNextPage": page.has_next_page,
            "hasPreviousPage": page.has_previous_page or data.offset > 0,
            "pagination": {"limit": data.limit, "offset": data.offset},
        }
