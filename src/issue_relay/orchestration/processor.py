"""Runs traces through the coordinator agent."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from agents import Agent, Runner

from issue_relay.backends.vercel import VercelClient
from issue_relay.issues import IssueService
from issue_relay.orchestration.coordinator import build_coordinator
from issue_relay.traces.models import AgenticTrace
from issue_relay.traces.store import TraceStore

logger = structlog.get_logger()

AgentRunner = Callable[[Agent, str], Awaitable[Any]]
AgentFactory = Callable[[AgenticTrace, TraceStore, IssueService | None, VercelClient | None], Agent]

FINISHED_STATUSES = ("completed", "failed")


def build_input(trace: AgenticTrace) -> str:
    """Return the prompt for a trace, suffixed with its agent hint when there is one."""
    if trace.agent_hint:
        return f"{trace.initial_input}\n\nIf possible, use the agent {trace.agent_hint}"
    return trace.initial_input


async def run_agent(agent: Agent, input: str) -> Any:
    return await Runner.run(agent, input)


class AgentProcessor:
    """Processes traces: runs the agents and records the outcome on the trace."""

    def __init__(
        self,
        store: TraceStore,
        service: IssueService | None = None,
        runner: AgentRunner = run_agent,
        agent_factory: AgentFactory = build_coordinator,
        poll_interval: float = 1.0,
        hosting: VercelClient | None = None,
    ) -> None:
        """Initialize the processor.

        Args:
            store: Store holding the traces
            service: Issue operations handed to the issue agent, if configured
            runner: Coroutine running an agent on an input
            agent_factory: Builds the starting agent for a trace
            poll_interval: Seconds between checks in wait_for_completion
            hosting: Vercel client handed to the hosting agent, if configured
        """
        self.store = store
        self.service = service
        self.runner = runner
        self.agent_factory = agent_factory
        self.poll_interval = poll_interval
        self.hosting = hosting
        self._tasks: set[asyncio.Task] = set()

    async def process_trace(self, trace_id: str) -> AgenticTrace:
        """Run the agents for a trace and mark it completed or failed.

        Agent errors are recorded on the trace rather than raised.

        Raises:
            TraceNotFound: If the trace does not exist
        """
        trace = self.store.require(trace_id)
        started = time.monotonic()
        logger.info("Starting agent processing", trace_id=trace_id, input=trace.initial_input)
        self.store.update(trace_id, status="running")

        try:
            agent = self.agent_factory(trace, self.store, self.service, self.hosting)
            await self.runner(agent, build_input(trace))
        except Exception as e:
            duration = (time.monotonic() - started) * 1000
            logger.error("Agent processing failed", trace_id=trace_id, error=str(e), duration_ms=duration)
            return self.store.update(trace_id, status="failed", duration=duration)

        duration = (time.monotonic() - started) * 1000
        logger.info("Agent processing completed", trace_id=trace_id, duration_ms=duration)
        return self.store.update(trace_id, status="completed", duration=duration)

    def start_processing(self, trace_id: str) -> asyncio.Task:
        """Process a trace in the background without waiting for it."""
        task = asyncio.create_task(self.process_trace(trace_id))
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background processing failed", error=str(task.exception()))

    def is_trace_complete(self, trace_id: str) -> bool:
        trace = self.store.get(trace_id)
        return trace is not None and trace.status in FINISHED_STATUSES

    async def wait_for_completion(self, trace_id: str, timeout: float = 30.0) -> bool:
        """Poll until the trace is finished.

        Returns:
            True if the trace finished before the timeout
        """
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self.is_trace_complete(trace_id):
                return True
            await asyncio.sleep(self.poll_interval)
        return self.is_trace_complete(trace_id)

    async def process_next(self) -> AgenticTrace | None:
        """Process the oldest pending trace.

        Returns:
            The processed trace, or None if no trace is pending
        """
        page = self.store.list_traces(
            limit=1,
            order_by="createdAt",
            order_direction="asc",
            fields=["id", "status"],
            only_pending=True,
        )
        if not page.traces:
            logger.info("No unprocessed traces found")
            return None
        return await self.process_trace(page.traces[0]["id"])
