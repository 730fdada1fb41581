"""Trace routes: /api/traces."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from issue_relay.api.auth import require_api_key
from issue_relay.api.issues import query_dict, read_json
from issue_relay.api.responses import ApiError, success
from issue_relay.orchestration.processor import AgentProcessor
from issue_relay.resolver import is_identifier
from issue_relay.schemas import (
    AddEventRequest,
    CreateTraceRequest,
    ListTracesRequest,
    UpdateTraceRequest,
    validate_payload,
)
from issue_relay.traces.models import AgentEvent, project_fields
from issue_relay.traces.store import TraceStore

router = APIRouter(prefix="/api/traces", tags=["traces"], dependencies=[Depends(require_api_key)])


def get_store(request: Request) -> TraceStore:
    return request.app.state.store


def get_processor(request: Request) -> AgentProcessor:
    return request.app.state.processor


def check_trace_id(trace_id: str) -> None:
    if not is_identifier(trace_id):
        raise ApiError(400, "Validation error", "id: Invalid trace ID")


@router.post("")
async def create_trace(
    request: Request,
    store: TraceStore = Depends(get_store),
    processor: AgentProcessor = Depends(get_processor),
) -> JSONResponse:
    """Create a trace.

    Blocking requests run the agents before answering; other traces stay
    pending until processNext picks them up.
    """
    data = validate_payload(CreateTraceRequest, await read_json(request))
    trace = store.create(
        name=data.name,
        initial_input=data.input,
        agent_hint=data.agent_hint or data.first_agent,
    )
    if data.blocking:
        trace = await processor.process_trace(trace.id)
    return success(trace.to_dict(), status_code=201)


@router.get("")
async def list_traces(request: Request, store: TraceStore = Depends(get_store)) -> JSONResponse:
    params = validate_payload(ListTracesRequest, query_dict(request))
    page = store.list_traces(
        cursor=params.cursor,
        limit=params.limit,
        order_by=params.order_by,
        order_direction=params.order_direction,
        fields=params.field_list(),
    )
    return success(
        {
            "traces": page.traces,
            "pagination": {
                "cursor": params.cursor,
                "nextCursor": page.next_cursor,
                "hasMore": page.has_more,
                "orderBy": params.order_by,
                "orderDirection": params.order_direction,
            },
        }
    )


@router.get("/processNext")
async def process_next(processor: AgentProcessor = Depends(get_processor)) -> JSONResponse:
    """Process the oldest pending trace."""
    trace = await processor.process_next()
    if trace is None:
        return success(None, message="No unprocessed traces found")
    return success(trace.to_dict(), message="Trace processed completed")


@router.get("/{trace_id}")
async def get_trace(trace_id: str, request: Request, store: TraceStore = Depends(get_store)) -> JSONResponse:
    check_trace_id(trace_id)
    trace = store.require(trace_id)
    fields = ListTracesRequest(fields=request.query_params.get("fields")).field_list()
    return success(project_fields(trace.to_dict(), fields))


@router.put("/{trace_id}")
async def update_trace(trace_id: str, request: Request, store: TraceStore = Depends(get_store)) -> JSONResponse:
    """Append an event (``{"event": {...}}``) or update status and duration."""
    check_trace_id(trace_id)
    body = await read_json(request)

    if isinstance(body, dict) and body.get("event"):
        payload = validate_payload(AddEventRequest, body).event
        event = AgentEvent(
            type=payload.type,
            agent=payload.agent,
            input=payload.input,
            output=payload.output,
            markdown=payload.markdown,
            timestamp=payload.timestamp,
        )
        store.add_event(trace_id, event)
        return success(store.require(trace_id).to_dict())

    changes = validate_payload(UpdateTraceRequest, body)
    if changes.status is None and changes.duration is None:
        raise ApiError(400, "No valid fields to update")
    trace = store.update(trace_id, status=changes.status, duration=changes.duration)
    return success(trace.to_dict())


@router.delete("/{trace_id}")
async def delete_trace(trace_id: str, store: TraceStore = Depends(get_store)) -> JSONResponse:
    check_trace_id(trace_id)
    store.delete(trace_id)
    return success({"message": "Trace deleted successfully"})
