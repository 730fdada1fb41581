"""Issue routes: /api/linear."""

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from issue_relay.api.auth import require_api_key
from issue_relay.api.responses import ApiError, from_result
from issue_relay.issues import IssueService

router = APIRouter(prefix="/api/linear", tags=["issues"], dependencies=[Depends(require_api_key)])


def get_service(request: Request) -> IssueService:
    service = request.app.state.service
    if service is None:
        raise ApiError(503, "Linear integration is not configured")
    return service


async def read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as e:
        raise ApiError(400, "Invalid JSON body") from e


def query_dict(request: Request) -> dict[str, str]:
    """Return the query parameters without the authentication parameter."""
    return {key: value for key, value in request.query_params.items() if key != "Bearer"}


@router.post("/create")
async def create_issue(request: Request, service: IssueService = Depends(get_service)) -> JSONResponse:
    """Create an issue from human-readable team, assignee, project and state references."""
    body = await read_json(request)
    return from_result(await service.create(body), status_code=201)


@router.get("/list")
async def list_issues(request: Request, service: IssueService = Depends(get_service)) -> JSONResponse:
    params = query_dict(request)
    result = await service.list(
        limit=params.get("limit", 50),
        offset=params.get("offset", 0),
        team=params.get("teamId"),
    )
    return from_result(result)


@router.get("/search")
async def search_issues(request: Request, service: IssueService = Depends(get_service)) -> JSONResponse:
    """Search issues by query, teamId, assigneeId, stateId, projectId, limit and offset."""
    return from_result(await service.search(query_dict(request)))


@router.get("/{issue_id}")
async def get_issue(issue_id: str, service: IssueService = Depends(get_service)) -> JSONResponse:
    return from_result(await service.get(issue_id))


@router.put("/{issue_id}")
async def update_issue(issue_id: str, request: Request, service: IssueService = Depends(get_service)) -> JSONResponse:
    body = await read_json(request)
    return from_result(await service.update(issue_id, body))
