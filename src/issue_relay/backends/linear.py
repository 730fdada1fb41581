"""Linear GraphQL catalog implementation using httpx."""

from typing import Any

import httpx
import structlog

from issue_relay.catalog import MAX_PAGE_SIZE, Catalog, IssueDraft, IssueQuery
from issue_relay.models import Issue, IssuePage, Label, Project, Team, User, WorkflowState

logger = structlog.get_logger()

LINEAR_API_URL = "https://api.linear.app/graphql"

PAGE_SIZE = MAX_PAGE_SIZE

TEAM_FIELDS = "id name key"
USER_FIELDS = "id name email displayName"
PROJECT_FIELDS = "id name"
STATE_FIELDS = "id name type color"

ISSUE_FIELDS = f"""
    id
    title
    description
    number
    url
    priority
    createdAt
    updatedAt
    team {{ {TEAM_FIELDS} }}
    assignee {{ {USER_FIELDS} }}
    project {{ {PROJECT_FIELDS} }}
    state {{ {STATE_FIELDS} }}
    labels {{ nodes {{ id name color }} }}
"""


class LinearError(Exception):
    """Linear API error."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    @property
    def is_not_found(self) -> bool:
        """Whether Linear reported that the requested entity does not exist."""
        messages = [str(self)] + [str(error.get("message", "")) for error in self.errors]
        return any("not found" in message.lower() for message in messages)


def team_from_node(node: dict[str, Any]) -> Team:
    return Team(id=node["id"], name=node.get("name") or "", key=node.get("key") or "")


def user_from_node(node: dict[str, Any]) -> User:
    return User(
        id=node["id"],
        name=node.get("name") or "",
        email=node.get("email") or "",
        display_name=node.get("displayName") or "",
    )


def project_from_node(node: dict[str, Any]) -> Project:
    return Project(id=node["id"], name=node.get("name") or "")


def state_from_node(node: dict[str, Any]) -> WorkflowState:
    return WorkflowState(
        id=node["id"],
        name=node.get("name") or "",
        type=node.get("type") or "",
        color=node.get("color") or "",
    )


def label_from_node(node: dict[str, Any]) -> Label:
    return Label(id=node["id"], name=node.get("name") or "", color=node.get("color") or "")


def issue_from_node(node: dict[str, Any]) -> Issue:
    """Convert a Linear issue node to an Issue."""
    team = team_from_node(node["team"]) if node.get("team") else None
    labels = (node.get("labels") or {}).get("nodes") or []
    return Issue(
        id=node["id"],
        title=node.get("title") or "",
        description=node.get("description"),
        number=node.get("number") or 0,
        url=node.get("url") or "",
        priority=node.get("priority") or 0,
        created_at=node.get("createdAt"),
        updated_at=node.get("updatedAt"),
        team_id=team.id if team else None,
        team=team,
        assignee=user_from_node(node["assignee"]) if node.get("assignee") else None,
        project=project_from_node(node["project"]) if node.get("project") else None,
        state=state_from_node(node["state"]) if node.get("state") else None,
        labels=[label_from_node(label) for label in labels],
    )


class LinearCatalog(Catalog):
    """Catalog backed by the Linear GraphQL API."""

    def __init__(self, api_key: str, url: str = LINEAR_API_URL, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the Linear catalog.

        Args:
            api_key: Linear API key
            url: GraphQL endpoint
            client: Preconfigured HTTP client (tests pass one with a mock transport)
        """
        if not api_key:
            raise ValueError("Linear API key required")

        self.url = url
        self.client = client or httpx.AsyncClient(timeout=30.0)
        self._headers = {"Authorization": api_key, "Content-Type": "application/json"}
        logger.debug("Linear catalog initialized", url=url)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute a GraphQL document and return its ``data`` object."""
        try:
            response = await self.client.post(
                self.url,
                json={"query": query, "variables": variables or {}},
                headers=self._headers,
            )
        except httpx.HTTPError as e:
            logger.error("Linear request failed", error=str(e))
            raise LinearError(f"Linear request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        errors = payload.get("errors") if isinstance(payload, dict) else None
        if errors:
            message = errors[0].get("message", "Unknown error")
            logger.debug("Linear returned errors", message=message, count=len(errors))
            raise LinearError(message, errors)

        if response.status_code >= 400:
            raise LinearError(f"HTTP {response.status_code}: {response.text}")

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise LinearError("Malformed response from Linear")
        return data

    async def _paginate(self, query: str, root: str, variables: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Collect every node of a connection by following its cursor."""
        nodes: list[dict[str, Any]] = []
        after: str | None = None
        while True:
            data = await self._graphql(query, {**(variables or {}), "first": PAGE_SIZE, "after": after})
            connection = _dig(data, root)
            nodes.extend(connection.get("nodes") or [])
            page_info = connection.get("pageInfo") or {}
            after = page_info.get("endCursor")
            if not page_info.get("hasNextPage") or not after:
                return nodes

    async def _fetch(self, root: str, fields: str, entity_id: str) -> dict[str, Any]:
        query = f"query Fetch($id: String!) {{ {root}(id: $id) {{ {fields} }} }}"
        data = await self._graphql(query, {"id": entity_id})
        node = data.get(root)
        if not node:
            raise LinearError(f"Entity not found: {root}")
        return node

    async def _list(self, root: str, fields: str) -> list[dict[str, Any]]:
        query = (
            f"query List($first: Int!, $after: String) {{ {root}(first: $first, after: $after) "
            f"{{ nodes {{ {fields} }} pageInfo {{ hasNextPage endCursor }} }} }}"
        )
        return await self._paginate(query, root)

    async def fetch_team(self, team_id: str) -> Team:
        return team_from_node(await self._fetch("team", TEAM_FIELDS, team_id))

    async def list_teams(self) -> list[Team]:
        logger.debug("Listing Linear teams")
        return [team_from_node(node) for node in await self._list("teams", TEAM_FIELDS)]

    async def fetch_user(self, user_id: str) -> User:
        return user_from_node(await self._fetch("user", USER_FIELDS, user_id))

    async def list_users(self) -> list[User]:
        logger.debug("Listing Linear users")
        return [user_from_node(node) for node in await self._list("users", USER_FIELDS)]

    async def fetch_project(self, project_id: str) -> Project:
        return project_from_node(await self._fetch("project", PROJECT_FIELDS, project_id))

    async def list_projects(self) -> list[Project]:
        logger.debug("Listing Linear projects")
        return [project_from_node(node) for node in await self._list("projects", PROJECT_FIELDS)]

    async def fetch_state(self, state_id: str) -> WorkflowState:
        return state_from_node(await self._fetch("workflowState", STATE_FIELDS, state_id))

    async def list_states(self) -> list[WorkflowState]:
        logger.debug("Listing Linear workflow states")
        return [state_from_node(node) for node in await self._list("workflowStates", STATE_FIELDS)]

    async def list_team_states(self, team_id: str) -> list[WorkflowState]:
        logger.debug("Listing Linear team workflow states", team_id=team_id)
        query = (
            "query TeamStates($id: String!, $first: Int!, $after: String) { team(id: $id) { "
            f"states(first: $first, after: $after) {{ nodes {{ {STATE_FIELDS} }} "
            "pageInfo { hasNextPage endCursor } } } }"
        )
        nodes = await self._paginate(query, "team.states", {"id": team_id})
        return [state_from_node(node) for node in nodes]

    async def fetch_issue(self, issue_id: str) -> Issue | None:
        logger.info("Fetching Linear issue", issue_id=issue_id)
        query = f"query Issue($id: String!) {{ issue(id: $id) {{ {ISSUE_FIELDS} }} }}"
        try:
            data = await self._graphql(query, {"id": issue_id})
        except LinearError as e:
            if e.is_not_found:
                logger.debug("Linear issue not found", issue_id=issue_id)
                return None
            raise
        node = data.get("issue")
        return issue_from_node(node) if node else None

    async def create_issue(self, draft: IssueDraft) -> Issue | None:
        logger.info("Creating Linear issue", title=draft.title, team_id=draft.team_id)
        query = (
            "mutation CreateIssue($input: IssueCreateInput!) { issueCreate(input: $input) { "
            f"success issue {{ {ISSUE_FIELDS} }} }} }}"
        )
        data = await self._graphql(query, {"input": draft.to_input()})
        node = (data.get("issueCreate") or {}).get("issue")
        return issue_from_node(node) if node else None

    async def update_issue(self, issue_id: str, draft: IssueDraft) -> Issue | None:
        logger.info("Updating Linear issue", issue_id=issue_id)
        query = (
            "mutation UpdateIssue($id: String!, $input: IssueUpdateInput!) { issueUpdate(id: $id, input: $input) { "
            f"success issue {{ {ISSUE_FIELDS} }} }} }}"
        )
        data = await self._graphql(query, {"id": issue_id, "input": draft.to_input()})
        node = (data.get("issueUpdate") or {}).get("issue")
        return issue_from_node(node) if node else None

    async def query_issues(self, query: IssueQuery) -> IssuePage:
        logger.info("Querying Linear issues", filter=query.filter, first=query.first)
        document = (
            "query Issues($filter: IssueFilter, $first: Int, $after: String) { "
            "issues(filter: $filter, first: $first, after: $after) { "
            f"nodes {{ {ISSUE_FIELDS} }} pageInfo {{ hasNextPage hasPreviousPage endCursor }} }} }}"
        )
        variables = {"filter": query.filter or None, "first": query.first, "after": query.after}
        connection = (await self._graphql(document, variables)).get("issues") or {}
        page_info = connection.get("pageInfo") or {}
        return IssuePage(
            issues=[issue_from_node(node) for node in connection.get("nodes") or []],
            has_next_page=bool(page_info.get("hasNextPage")),
            has_previous_page=bool(page_info.get("hasPreviousPage")),
            end_cursor=page_info.get("endCursor"),
        )


def _dig(data: dict[str, Any], path: str) -> dict[str, Any]:
    """Follow a dotted path through nested response objects."""
    node: Any = data
    for part in path.split("."):
        node = node.get(part) if isinstance(node, dict) else None
        if node is None:
            raise LinearError(f"Entity not found: {part}")
    return node
