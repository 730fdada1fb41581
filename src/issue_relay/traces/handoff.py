"""Trace events recorded when one agent hands a task to another."""

from typing import NamedTuple

import structlog

from issue_relay.traces.models import AgentEvent
from issue_relay.traces.store import TraceStore

logger = structlog.get_logger()


class HandoffPair(NamedTuple):
    handoff: AgentEvent
    received: AgentEvent


def create_handoff_event(
    from_agent: str,
    to_agent: str,
    input: str,
    task: str | None = None,
    context: str | None = None,
) -> AgentEvent:
    """Create the event recording the handoff itself, attributed to the sending agent."""
    task_info = f' for task: "{task}"' if task else ""
    context_info = f"\n\n**Context:** {context}" if context else ""
    markdown = (
        "🔄 **Agent Handoff**\n\n"
        f"**From:** {from_agent} Agent\n"
        f"**To:** {to_agent} Agent{task_info}\n"
        f"**Input:** {input}{context_info}\n\n"
        f"The {from_agent} agent is transferring control to the {to_agent} agent to handle this request."
    )
    return AgentEvent(
        type="handoff",
        agent=from_agent,
        input={"task": task or input, "context": context, "targetAgent": to_agent},
        output={"handoffExecuted": True, "targetAgent": to_agent, "task": task, "context": context},
        markdown=markdown,
    )


def create_received_event(agent: str, from_agent: str, input: str, handoff_id: str) -> AgentEvent:
    """Create the event recording the receiving agent starting work on a handoff."""
    markdown = (
        "📥 **Handoff Received**\n\n"
        f"**From:** {from_agent} Agent\n"
        f"**Processing:** {input}\n\n"
        f"The {agent} agent has received the handoff and is now processing the request."
    )
    return AgentEvent(
        type="start",
        agent=agent,
        input={"receivedFrom": from_agent, "handoffId": handoff_id, "task": input},
        output={
            "handoffReceived": True,
            "fromAgent": from_agent,
            "handoffId": handoff_id,
            "processingStarted": True,
        },
        markdown=markdown,
    )


def create_handoff_events(
    from_agent: str,
    to_agent: str,
    input: str,
    task: str | None = None,
    context: str | None = None,
) -> HandoffPair:
    """Create a handoff event and the matching received event that references it."""
    handoff = create_handoff_event(from_agent, to_agent, input, task=task, context=context)
    received = create_received_event(to_agent, from_agent, input, handoff.id)
    return HandoffPair(handoff, received)


def log_handoff_pair(store: TraceStore, trace_id: str, pair: HandoffPair) -> bool:
    """Append a handoff pair to a trace.

    Logging a handoff never interrupts the agent run, so failures are logged
    and reported through the return value.

    Returns:
        True if both events were stored
    """
    try:
        store.add_events(trace_id, [pair.handoff, pair.received])
    except Exception as e:
        logger.error("Failed to log handoff events", trace_id=trace_id, error=str(e))
        return False
    logger.info("Logged handoff", trace_id=trace_id, from_agent=pair.handoff.agent, to_agent=pair.received.agent)
    return True
