"""Tests for the Linear GraphQL catalog."""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from issue_relay.backends.linear import LinearCatalog, LinearError, issue_from_node
from issue_relay.catalog import MAX_PAGE_SIZE, IssueDraft, IssueQuery
from issue_relay.issues import IssueService
from issue_relay.models import Team, WorkflowState
from issue_relay.resolver import EntityResolver

pytestmark = pytest.mark.anyio

ISSUE_NODE = {
    "id": "issue-1",
    "title": "Fix login bug",
    "description": "Users cannot log in",
    "number": 42,
    "url": "https://linear.app/acme/issue/ENG-42",
    "priority": 2,
    "createdAt": "2026-01-01T00:00:00.000Z",
    "updatedAt": "2026-01-02T00:00:00.000Z",
    "team": {"id": "t1", "name": "Engineering", "key": "ENG"},
    "assignee": {"id": "u1", "name": "John Doe", "email": "john@example.com", "displayName": "John"},
    "project": None,
    "state": {"id": "s1", "name": "Todo", "type": "unstarted", "color": "#aaa"},
    "labels": {"nodes": [{"id": "l1", "name": "bug", "color": "#f00"}]},
}


class Recorder:
    """Mock transport handler that records GraphQL requests and replays responses."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.requests: list[dict[str, Any]] = []
        self.headers: list[httpx.Headers] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        self.headers.append(request.headers)
        response = self.responses.pop(0)
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)


@pytest.fixture
def make_catalog() -> Callable[[Recorder], LinearCatalog]:
    def factory(recorder: Recorder) -> LinearCatalog:
        client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        return LinearCatalog(api_key="lin_api_test", client=client)

    return factory


def test_requires_api_key() -> None:
    """Test the catalog refuses to start without a key."""
    with pytest.raises(ValueError, match="API key"):
        LinearCatalog(api_key="")


def test_issue_from_node() -> None:
    """Test mapping an issue node with relations."""
    issue = issue_from_node(ISSUE_NODE)

    assert issue.team_id == "t1"
    assert issue.assignee.display_name == "John"
    assert issue.project is None
    assert issue.labels[0].name == "bug"
    assert issue.to_dict()["createdAt"] == "2026-01-01T00:00:00.000Z"


async def test_fetch_team_sends_key(make_catalog) -> None:
    """Test a fetch posts the query with the API key."""
    recorder = Recorder({"data": {"team": {"id": "t1", "name": "Engineering", "key": "ENG"}}})
    catalog = make_catalog(recorder)

    team = await catalog.fetch_team("t1")

    assert team == Team(id="t1", name="Engineering", key="ENG")
    assert recorder.headers[0]["authorization"] == "lin_api_test"
    assert recorder.requests[0]["variables"] == {"id": "t1"}


async def test_fetch_missing_entity(make_catalog) -> None:
    """Test a null node is reported as an error."""
    catalog = make_catalog(Recorder({"data": {"user": None}}))

    with pytest.raises(LinearError, match="not found"):
        await catalog.fetch_user("u404")


async def test_list_follows_pages(make_catalog) -> None:
    """Test listings follow the cursor until the last page."""
    recorder = Recorder(
        {
            "data": {
                "teams": {
                    "nodes": [{"id": "t1", "name": "Engineering", "key": "ENG"}],
                    "pageInfo": {"hasNextPage": True, "endCursor": "c1"},
                }
            }
        },
        {
            "data": {
                "teams": {
                    "nodes": [{"id": "t2", "name": "Operations", "key": "OPS"}],
                    "pageInfo": {"hasNextPage": False, "endCursor": "c2"},
                }
            }
        },
    )
    catalog = make_catalog(recorder)

    teams = await catalog.list_teams()

    assert [team.key for team in teams] == ["ENG", "OPS"]
    assert recorder.requests[0]["variables"]["after"] is None
    assert recorder.requests[1]["variables"]["after"] == "c1"


async def test_list_team_states(make_catalog) -> None:
    """Test team-scoped states are read from the nested connection."""
    recorder = Recorder(
        {
            "data": {
                "team": {
                    "states": {
                        "nodes": [{"id": "s1", "name": "Todo", "type": "unstarted", "color": "#aaa"}],
                        "pageInfo": {"hasNextPage": False, "endCursor": None},
                    }
                }
            }
        }
    )
    catalog = make_catalog(recorder)

    states = await catalog.list_team_states("t1")

    assert states == [WorkflowState(id="s1", name="Todo", type="unstarted", color="#aaa")]
    assert recorder.requests[0]["variables"]["id"] == "t1"


async def test_graphql_errors_raise(make_catalog) -> None:
    """Test GraphQL errors carry the error list."""
    errors = [{"message": "Authentication required"}]
    catalog = make_catalog(Recorder(httpx.Response(400, json={"errors": errors})))

    with pytest.raises(LinearError, match="Authentication required") as excinfo:
        await catalog.list_projects()

    assert excinfo.value.errors == errors


async def test_http_error_without_body(make_catalog) -> None:
    """Test HTTP failures without a GraphQL body."""
    catalog = make_catalog(Recorder(httpx.Response(500, text="upstream down")))

    with pytest.raises(LinearError, match="HTTP 500"):
        await catalog.list_users()


async def test_transport_error(make_catalog) -> None:
    """Test transport failures are wrapped."""

    def fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(fail))
    catalog = LinearCatalog(api_key="lin_api_test", client=client)

    with pytest.raises(LinearError, match="Linear request failed"):
        await catalog.list_states()


async def test_fetch_issue_not_found(make_catalog) -> None:
    """Test a not-found error maps to None."""
    catalog = make_catalog(Recorder({"errors": [{"message": "Entity not found: Issue"}], "data": None}))

    assert await catalog.fetch_issue("missing") is None


async def test_create_issue_sends_only_set_fields(make_catalog) -> None:
    """Test the create input omits unset fields."""
    recorder = Recorder({"data": {"issueCreate": {"success": True, "issue": ISSUE_NODE}}})
    catalog = make_catalog(recorder)

    issue = await catalog.create_issue(IssueDraft(title="Fix login bug", team_id="t1", priority=2))

    assert issue.id == "issue-1"
    assert recorder.requests[0]["variables"]["input"] == {"title": "Fix login bug", "teamId": "t1", "priority": 2}


async def test_update_issue(make_catalog) -> None:
    """Test the update mutation targets the issue."""
    recorder = Recorder({"data": {"issueUpdate": {"success": True, "issue": ISSUE_NODE}}})
    catalog = make_catalog(recorder)

    issue = await catalog.update_issue("issue-1", IssueDraft(state_id="s1"))

    assert issue.state.name == "Todo"
    assert recorder.requests[0]["variables"] == {"id": "issue-1", "input": {"stateId": "s1"}}


async def test_query_issues(make_catalog) -> None:
    """Test issue queries pass the filter and page info through."""
    recorder = Recorder(
        {
            "data": {
                "issues": {
                    "nodes": [ISSUE_NODE],
                    "pageInfo": {"hasNextPage": True, "hasPreviousPage": False},
                }
            }
        }
    )
    catalog = make_catalog(recorder)
    issue_filter = {"assignee": {"id": {"eq": "u1"}}}

    page = await catalog.query_issues(IssueQuery(filter=issue_filter, first=10))

    assert len(page.issues) == 1
    assert page.has_next_page is True
    assert recorder.requests[0]["variables"] == {"filter": issue_filter, "first": 10, "after": None}


async def test_query_without_filter_sends_null(make_catalog) -> None:
    """Test an empty filter is sent as null."""
    recorder = Recorder({"data": {"issues": {"nodes": [], "pageInfo": {}}}})
    catalog = make_catalog(recorder)

    page = await catalog.query_issues(IssueQuery())

    assert page.issues == []
    assert recorder.requests[0]["variables"]["filter"] is None


async def test_query_issues_returns_end_cursor(make_catalog) -> None:
    """Test the end cursor is read and the after cursor is sent."""
    recorder = Recorder(
        {"data": {"issues": {"nodes": [], "pageInfo": {"hasNextPage": True, "endCursor": "c2"}}}}
    )
    catalog = make_catalog(recorder)

    page = await catalog.query_issues(IssueQuery(first=5, after="c1"))

    assert page.end_cursor == "c2"
    assert recorder.requests[0]["variables"]["after"] == "c1"


async def test_list_with_large_offset_respects_page_size() -> None:
    """Test listing past the page size walks the cursor without oversized pages."""
    total = 400
    sent: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        variables = json.loads(request.content)["variables"]
        first = variables["first"]
        sent.append(first)
        if first > MAX_PAGE_SIZE:
            return httpx.Response(400, json={"errors": [{"message": f"first must be <= {MAX_PAGE_SIZE}"}]})
        start = int(variables["after"] or 0)
        end = min(start + first, total)
        nodes = [{**ISSUE_NODE, "id": f"issue-{index}"} for index in range(start, end)]
        page_info = {"hasNextPage": end < total, "hasPreviousPage": start > 0, "endCursor": str(end)}
        return httpx.Response(200, json={"data": {"issues": {"nodes": nodes, "pageInfo": page_info}}})

    catalog = LinearCatalog(api_key="lin_api_test", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    service = IssueService(catalog, EntityResolver(catalog))

    result = await service.list(limit=100, offset=200)

    assert result.success, result.error
    assert sent == [MAX_PAGE_SIZE, 50]
    assert [issue["id"] for issue in result.data["issues"]] == [f"issue-{index}" for index in range(200, 300)]
