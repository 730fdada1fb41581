"""Trace commands for the issue relay CLI."""

import asyncio
import json
from typing import Literal

from cyclopts import App

trace_app = App(name="trace", help="Submit prompts to the agents and inspect traces")


def _components():
    from issue_relay.cli import get_settings
    from issue_relay.config import build_hosting, build_service, build_store
    from issue_relay.orchestration.processor import AgentProcessor

    settings = get_settings()
    store = build_store(settings)
    service = build_service(settings) if settings.linear_api_key else None
    return store, AgentProcessor(store, service, hosting=build_hosting(settings))


def _print_trace(trace: dict) -> None:
    print(f"Trace: {trace['id']}")
    if "name" in trace:
        print(f"Name: {trace['name']}")
    if "status" in trace:
        print(f"Status: {trace['status']}")
    if trace.get("duration") is not None:
        print(f"Duration: {trace['duration']:.0f} ms")
    for event in trace.get("events", []):
        print(f"\n- {event['type']} ({event['agent']}) {event['timestamp']}")
        if event.get("markdown"):
            print(event["markdown"])


@trace_app.command
def submit(
    name: str,
    prompt: str,
    agent_hint: Literal["coordinator", "linear", "hosting"] | None = None,
    no_wait: bool = False,
) -> None:
    """Submit a prompt and run it through the agents.

    Args:
        name: Trace name
        prompt: Free-text prompt for the coordinator agent
        agent_hint: Agent the coordinator should prefer
        no_wait: Leave the trace pending for process-next instead of running it now
    """
    from issue_relay.schemas import CreateTraceRequest, validate_payload

    data = validate_payload(
        CreateTraceRequest,
        {"name": name, "input": prompt, "agentHint": agent_hint, "blocking": not no_wait},
    )
    store, processor = _components()
    trace = store.create(name=data.name, initial_input=data.input, agent_hint=data.agent_hint)
    if no_wait:
        print(f"Queued trace {trace.id}")
        return
    trace = asyncio.run(processor.process_trace(trace.id))
    _print_trace(trace.to_dict())


@trace_app.command
def show(trace_id: str, fields: str | None = None) -> None:
    """Show a trace.

    Args:
        trace_id: Trace ID
        fields: Comma-separated fields to print as JSON instead of the summary
    """
    from issue_relay.traces.models import project_fields

    store, _ = _components()
    trace = store.require(trace_id).to_dict()
    if fields:
        names = [name.strip() for name in fields.split(",") if name.strip()]
        print(json.dumps(project_fields(trace, names), indent=2))
        return
    _print_trace(trace)


@trace_app.command(name="list")
def list_traces(
    limit: int = 20,
    cursor: str | None = None,
    order_by: Literal["createdAt", "updatedAt", "name"] = "createdAt",
    order_direction: Literal["asc", "desc"] = "desc",
    pending: bool = False,
) -> None:
    """List traces."""
    store, _ = _components()
    page = store.list_traces(
        cursor=cursor,
        limit=limit,
        order_by=order_by,
        order_direction=order_direction,
        fields=["name", "status", "createdAt"],
        only_pending=pending,
    )
    if not page.traces:
        print("No traces found")
        return

    for trace in page.traces:
        print(f"[{trace['status']}] {trace['id']}: {trace['name']} ({trace['createdAt']})")
    if page.has_more:
        print(f"\nNext page: --cursor {page.next_cursor}")


@trace_app.command(name="process-next")
def process_next() -> None:
    """Process the oldest pending trace."""
    _, processor = _components()
    trace = asyncio.run(processor.process_next())
    if trace is None:
        print("No unprocessed traces found")
        return
    _print_trace(trace.to_dict())


@trace_app.command
def delete(trace_id: str) -> None:
    """Delete a trace."""
    store, _ = _components()
    store.delete(trace_id)
    print(f"Deleted trace {trace_id}")
