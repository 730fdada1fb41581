"""Tests for the Vercel REST client."""

import httpx
import pytest

from issue_relay.backends.vercel import VercelClient, VercelError
from issue_relay.cache import TTLCache

from conftest import FakeClock

pytestmark = pytest.mark.anyio

DEPLOYMENT = {
    "uid": "dpl_1",
    "name": "web",
    "url": "web-abc.vercel.app",
    "state": "READY",
    "createdAt": 1767225600000,
    "creator": {"username": "john"},
}


class Handler:
    """Mock transport handler that serves canned JSON by path."""

    def __init__(self, routes: dict) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes[request.url.path]
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, json=route)


def make_client(handler: Handler, clock: FakeClock | None = None) -> VercelClient:
    return VercelClient(
        api_key="vercel_token",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        cache=TTLCache(clock=clock or FakeClock()),
    )


def test_requires_api_key() -> None:
    """Test the client refuses to start without a token."""
    with pytest.raises(ValueError, match="Vercel API key"):
        VercelClient(api_key="")


async def test_list_deployments_sends_filters() -> None:
    """Test the limit and project filter reach the query string with a bearer token."""
    handler = Handler({"/v6/deployments": {"deployments": [DEPLOYMENT], "pagination": {"count": 1}}})
    client = make_client(handler)

    data = await client.list_deployments(limit=5, project_id="prj_1")

    assert data["deployments"][0]["uid"] == "dpl_1"
    request = handler.requests[0]
    assert request.url.params["limit"] == "5"
    assert request.url.params["projectId"] == "prj_1"
    assert request.headers["authorization"] == "Bearer vercel_token"


async def test_list_deployments_omits_missing_project() -> None:
    """Test an absent project filter is not sent."""
    handler = Handler({"/v6/deployments": {"deployments": []}})

    await make_client(handler).list_deployments()

    assert "projectId" not in handler.requests[0].url.params


async def test_responses_are_cached_until_expiry() -> None:
    """Test repeated reads hit the cache for two minutes."""
    clock = FakeClock()
    handler = Handler({"/v13/deployments/dpl_1": DEPLOYMENT})
    client = make_client(handler, clock)

    await client.get_deployment("dpl_1")
    clock.advance(119)
    await client.get_deployment("dpl_1")
    assert len(handler.requests) == 1

    clock.advance(2)
    await client.get_deployment("dpl_1")
    assert len(handler.requests) == 2


async def test_cache_keys_include_arguments() -> None:
    """Test different filters are cached separately."""
    handler = Handler({"/v6/deployments": {"deployments": []}})
    client = make_client(handler)

    await client.list_deployments(limit=5)
    await client.list_deployments(limit=5, project_id="prj_1")
    await client.list_deployments(limit=5)

    assert len(handler.requests) == 2


async def test_events_as_text() -> None:
    """Test non-JSON event responses are returned as text."""
    handler = Handler({"/v3/deployments/dpl_1/events": httpx.Response(200, text="line one\nline two")})

    assert await make_client(handler).get_deployment_events("dpl_1") == "line one\nline two"


async def test_error_message_from_body() -> None:
    """Test API errors carry the status and message."""
    body = {"error": {"code": "forbidden", "message": "Not authorized"}}
    handler = Handler({"/v9/projects": httpx.Response(403, json=body)})

    with pytest.raises(VercelError, match="HTTP 403: Not authorized"):
        await make_client(handler).list_projects()


async def test_failures_are_not_cached() -> None:
    """Test a failed request is retried on the next call."""
    handler = Handler({"/v9/projects": httpx.Response(500, text="upstream down")})
    client = make_client(handler)

    for _ in range(2):
        with pytest.raises(VercelError, match="HTTP 500: upstream down"):
            await client.list_projects()

    assert len(handler.requests) == 2


async def test_transport_error() -> None:
    """Test transport failures are wrapped."""

    def fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = VercelClient(api_key="vercel_token", client=httpx.AsyncClient(transport=httpx.MockTransport(fail)))

    with pytest.raises(VercelError, match="Vercel request failed"):
        await client.list_projects()
