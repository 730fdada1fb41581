"""Trace storage."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import structlog

from issue_relay.errors import TraceNotFound
from issue_relay.traces.models import AgentEvent, AgenticTrace, project_fields, utc_now

logger = structlog.get_logger()

ORDER_FIELDS = {"createdAt": "created_at", "updatedAt": "updated_at", "name": "name"}


@dataclass
class TracePage:
    """One page of a trace listing."""

    traces: list[dict[str, Any]] = field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None


class TraceStore(ABC):
    """Abstract base class for trace stores.

    Subclasses persist whole traces as documents; event appends and status
    changes rewrite the stored document.
    """

    @abstractmethod
    def get(self, trace_id: str) -> AgenticTrace | None:
        """Get a trace by ID, or None if it does not exist."""
        pass

    @abstractmethod
    def _save(self, trace: AgenticTrace) -> None:
        """Insert or replace a trace document."""
        pass

    @abstractmethod
    def _remove(self, trace_id: str) -> None:
        pass

    @abstractmethod
    def _ordered(self, order_by: str, descending: bool, only_pending: bool) -> list[AgenticTrace]:
        """Return every stored trace in listing order."""
        pass

    def create(
        self,
        name: str,
        initial_input: str,
        status: str = "pending",
        agent_hint: str | None = None,
    ) -> AgenticTrace:
        """Create and store a new trace."""
        trace = AgenticTrace(name=name, initial_input=initial_input, status=status, agent_hint=agent_hint)
        self._save(trace)
        logger.info("Trace created", trace_id=trace.id, name=name, status=status)
        return trace

    def require(self, trace_id: str) -> AgenticTrace:
        """Get a trace by ID, raising TraceNotFound if it does not exist."""
        trace = self.get(trace_id)
        if trace is None:
            raise TraceNotFound()
        return trace

    def update(self, trace_id: str, status: str | None = None, duration: float | None = None) -> AgenticTrace:
        """Update the status and/or duration of a trace.

        Raises:
            TraceNotFound: If the trace does not exist
        """
        trace = self.require(trace_id)
        if status is not None:
            trace.status = status
        if duration is not None:
            trace.duration = duration
        trace.updated_at = utc_now()
        self._save(trace)
        logger.debug("Trace updated", trace_id=trace_id, status=trace.status)
        return trace

    def add_events(self, trace_id: str, events: list[AgentEvent]) -> AgenticTrace:
        """Append events to a trace in order.

        Raises:
            TraceNotFound: If the trace does not exist
        """
        trace = self.require(trace_id)
        trace.events.extend(events)
        trace.updated_at = utc_now()
        self._save(trace)
        logger.debug("Trace events added", trace_id=trace_id, count=len(events))
        return trace

    def add_event(self, trace_id: str, event: AgentEvent) -> AgentEvent:
        self.add_events(trace_id, [event])
        return event

    def delete(self, trace_id: str) -> None:
        """Delete a trace.

        Raises:
            TraceNotFound: If the trace does not exist
        """
        self.require(trace_id)
        self._remove(trace_id)
        logger.info("Trace deleted", trace_id=trace_id)

    def list_traces(
        self,
        cursor: str | None = None,
        limit: int = 50,
        order_by: str = "createdAt",
        order_direction: str = "desc",
        fields: list[str] | None = None,
        only_pending: bool = False,
    ) -> TracePage:
        """List traces page by page.

        Args:
            cursor: ID of the last trace of the previous page; ignored if unknown
            limit: Maximum number of traces to return
            order_by: One of createdAt, updatedAt or name
            order_direction: asc or desc
            fields: Top-level fields to keep in each trace (id is always kept)
            only_pending: Only list traces whose status is pending

        Returns:
            TracePage with the projected traces and the cursor of the next page
        """
        if order_by not in ORDER_FIELDS:
            raise ValueError(f"Unsupported order field: {order_by}")

        traces = self._ordered(order_by, order_direction == "desc", only_pending)
        if cursor:
            position = next((i for i, trace in enumerate(traces) if trace.id == cursor), None)
            if position is not None:
                traces = traces[position + 1 :]

        window = traces[: limit + 1]
        page = window[:limit]
        has_more = len(window) > limit
        return TracePage(
            traces=[project_fields(trace.to_dict(), fields) for trace in page],
            has_more=has_more,
            next_cursor=page[-1].id if has_more and page else None,
        )


def _sort_key(order_by: str):
    attribute = ORDER_FIELDS[order_by]
    return lambda trace: (getattr(trace, attribute), trace.id)


class MemoryTraceStore(TraceStore):
    """Trace store kept in process memory."""

    def __init__(self) -> None:
        self._traces: dict[str, dict[str, Any]] = {}

    def get(self, trace_id: str) -> AgenticTrace | None:
        data = self._traces.get(trace_id)
        return AgenticTrace.from_dict(data) if data is not None else None

    def _save(self, trace: AgenticTrace) -> None:
        self._traces[trace.id] = trace.to_dict()

    def _remove(self, trace_id: str) -> None:
        self._traces.pop(trace_id, None)

    def _ordered(self, order_by: str, descending: bool, only_pending: bool) -> list[AgenticTrace]:
        traces = [AgenticTrace.from_dict(data) for data in self._traces.values()]
        if only_pending:
            traces = [trace for trace in traces if trace.status == "pending"]
        return sorted(traces, key=_sort_key(order_by), reverse=descending)
