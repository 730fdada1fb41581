"""Execution traces of agent runs."""

from issue_relay.traces.handoff import HandoffPair, create_handoff_events, log_handoff_pair
from issue_relay.traces.models import AgentEvent, AgenticTrace, project_fields
from issue_relay.traces.store import MemoryTraceStore, TracePage, TraceStore

__all__ = [
    "AgentEvent",
    "AgenticTrace",
    "HandoffPair",
    "MemoryTraceStore",
    "TracePage",
    "TraceStore",
    "create_handoff_events",
    "log_handoff_pair",
    "project_fields",
]
