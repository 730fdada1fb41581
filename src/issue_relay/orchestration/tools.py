"""Tools exposed to the specialized agents.

Every call records one ``tool`` event into the trace, whether it succeeds or
fails.
"""

from collections.abc import Callable
from typing import Any

import structlog
from agents import FunctionTool, function_tool

from issue_relay.errors import ToolFailure
from issue_relay.issues import IssueService, OperationResult
from issue_relay.traces.models import AgentEvent
from issue_relay.traces.store import TraceStore

logger = structlog.get_logger()


def _issue_link(issue: dict[str, Any]) -> str:
    return f"[{issue.get('id')}]({issue.get('url')})"


class TracedTools:
    """Base for tool sets bound to one trace; events are attributed to ``agent_name``."""

    agent_name = "agent"

    def __init__(self, store: TraceStore, trace_id: str) -> None:
        self.store = store
        self.trace_id = trace_id

    def _record(self, tool: str, arguments: dict[str, Any], output: dict[str, Any], markdown: str) -> None:
        event = AgentEvent(
            type="tool",
            agent=self.agent_name,
            input={"tool": tool, **arguments},
            output=output,
            markdown=markdown,
        )
        try:
            self.store.add_event(self.trace_id, event)
        except Exception as e:
            logger.error("Failed to record tool event", trace_id=self.trace_id, tool=tool, error=str(e))

    def _fail(self, tool: str, verb: str, arguments: dict[str, Any], message: str) -> ToolFailure:
        """Record a failed call and return the error to raise to the agent."""
        self._record(tool, arguments, {"error": message}, f"Failed to {verb}: {message}")
        logger.info("Tool call failed", tool=tool, agent=self.agent_name, trace_id=self.trace_id, error=message)
        return ToolFailure(f"Failed to {verb}: {message}")


class IssueTools(TracedTools):
    """Issue operations bound to one trace."""

    agent_name = "linear"

    def __init__(self, service: IssueService, store: TraceStore, trace_id: str) -> None:
        super().__init__(store, trace_id)
        self.service = service

    def _finish(
        self,
        tool: str,
        verb: str,
        arguments: dict[str, Any],
        result: OperationResult,
        describe: Callable[[Any], str],
    ) -> dict[str, Any]:
        if not result.success:
            message = result.error or "Unknown error"
            if result.details:
                message = f"{message}: {result.details}"
            raise self._fail(tool, verb, arguments, message)
        self._record(tool, arguments, result.data, describe(result.data))
        return result.data

    async def create_issue(
        self,
        title: str,
        team_id: str,
        description: str | None = None,
        assignee_id: str | None = None,
        priority: int | None = None,
        project_id: str | None = None,
        state_id: str | None = None,
    ) -> dict[str, Any]:
        arguments = {
            "title": title,
            "teamId": team_id,
            "description": description,
            "assigneeId": assignee_id,
            "priority": priority,
            "projectId": project_id,
            "stateId": state_id,
        }
        result = await self.service.create(arguments)
        return self._finish(
            "create_issue",
            "create issue",
            arguments,
            result,
            lambda issue: f"Created issue {_issue_link(issue)} with title {issue.get('title')}.",
        )

    async def search_issues(
        self,
        query: str | None = None,
        team_id: str | None = None,
        assignee_id: str | None = None,
        state_id: str | None = None,
        project_id: str | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        arguments = {
            "query": query,
            "teamId": team_id,
            "assigneeId": assignee_id,
            "stateId": state_id,
            "projectId": project_id,
            "limit": limit if limit is not None else 50,
        }
        result = await self.service.search(arguments)
        return self._finish(
            "search_issues",
            "search issues",
            arguments,
            result,
            lambda data: f"Found {len(data['issues'])} issues.",
        )

    async def get_issue(self, id: str) -> dict[str, Any]:
        arguments = {"id": id}
        result = await self.service.get(id)
        return self._finish(
            "get_issue",
            "get issue",
            arguments,
            result,
            lambda issue: f"Got issue {_issue_link(issue)} with title {issue.get('title')}.",
        )

    async def update_issue(
        self,
        id: str,
        title: str | None = None,
        description: str | None = None,
        assignee_id: str | None = None,
        priority: int | None = None,
        project_id: str | None = None,
        state_id: str | None = None,
    ) -> dict[str, Any]:
        changes = {
            "title": title,
            "description": description,
            "assigneeId": assignee_id,
            "priority": priority,
            "projectId": project_id,
            "stateId": state_id,
        }
        result = await self.service.update(id, changes)
        return self._finish(
            "update_issue",
            "update issue",
            {"id": id, **changes},
            result,
            lambda issue: f"Updated issue {_issue_link(issue)} with title {issue.get('title')}.",
        )

    def as_function_tools(self) -> list[FunctionTool]:
        """Wrap the tools for the agent runtime.

        Optional parameters are nullable without defaults so the generated
        schemas stay strict.
        """
        tools = self

        @function_tool
        async def create_issue(
            title: str,
            team_id: str,
            description: str | None,
            assignee_id: str | None,
            priority: int | None,
            project_id: str | None,
            state_id: str | None,
        ) -> dict[str, Any]:
            """Create a new issue in Linear with the specified details.

            Args:
                title: Issue title, 1 to 255 characters
                team_id: Team ID or team name/key
                description: Markdown description
                assignee_id: User ID, name, or email
                priority: 0 (none) to 4 (low)
                project_id: Project ID or project name
                state_id: State ID or state name
            """
            return await tools.create_issue(
                title, team_id, description, assignee_id, priority, project_id, state_id
            )

        @function_tool
        async def search_issues(
            query: str | None,
            team_id: str | None,
            assignee_id: str | None,
            state_id: str | None,
            project_id: str | None,
            limit: int | None,
        ) -> dict[str, Any]:
            """Search for issues in Linear based on various criteria.

            Args:
                query: Text search query for issue titles and descriptions
                team_id: Team ID or team name/key to filter by
                assignee_id: User ID, name, or email to filter by
                state_id: State ID or state name to filter by
                project_id: Project ID or project name to filter by
                limit: Maximum number of issues, 1 to 100
            """
            return await tools.search_issues(query, team_id, assignee_id, state_id, project_id, limit)

        @function_tool
        async def get_issue(id: str) -> dict[str, Any]:
            """Get detailed information about a specific issue by ID.

            Args:
                id: Issue ID
            """
            return await tools.get_issue(id)

        @function_tool
        async def update_issue(
            id: str,
            title: str | None,
            description: str | None,
            assignee_id: str | None,
            priority: int | None,
            project_id: str | None,
            state_id: str | None,
        ) -> dict[str, Any]:
            """Update an existing issue with new information.

            Args:
                id: Issue ID
                title: New title
                description: New markdown description
                assignee_id: User ID, name, or email
                priority: 0 (none) to 4 (low)
                project_id: Project ID or project name
                state_id: State ID or state name
            """
            return await tools.update_issue(id, title, description, assignee_id, priority, project_id, state_id)

        return [create_issue, search_issues, get_issue, update_issue]
