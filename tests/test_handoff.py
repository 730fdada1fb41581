"""Tests for handoff events."""

from unittest.mock import MagicMock

from issue_relay.traces import MemoryTraceStore, create_handoff_events, log_handoff_pair


def test_handoff_pair_is_linked() -> None:
    """Test the received event references the handoff event."""
    pair = create_handoff_events("coordinator", "linear", "Create a bug for login", task="create issue")

    assert pair.handoff.type == "handoff"
    assert pair.handoff.agent == "coordinator"
    assert pair.handoff.input == {"task": "create issue", "context": None, "targetAgent": "linear"}
    assert pair.handoff.output["handoffExecuted"] is True
    assert pair.received.type == "start"
    assert pair.received.agent == "linear"
    assert pair.received.input["handoffId"] == pair.handoff.id
    assert pair.received.output["handoffId"] == pair.handoff.id
    assert pair.received.output["fromAgent"] == "coordinator"


def test_handoff_markdown() -> None:
    """Test the rendered descriptions."""
    pair = create_handoff_events("coordinator", "linear", "Create a bug", context="from chat")

    assert pair.handoff.markdown.startswith("🔄 **Agent Handoff**")
    assert "**To:** linear Agent\n" in pair.handoff.markdown
    assert "**Context:** from chat" in pair.handoff.markdown
    assert pair.handoff.input["task"] == "Create a bug"
    assert pair.received.markdown.startswith("📥 **Handoff Received**")
    assert "**Processing:** Create a bug" in pair.received.markdown


def test_log_handoff_pair() -> None:
    """Test both events are appended in order."""
    store = MemoryTraceStore()
    trace = store.create(name="Plan", initial_input="x")
    pair = create_handoff_events("coordinator", "linear", "x")

    assert log_handoff_pair(store, trace.id, pair) is True
    assert [event.type for event in store.get(trace.id).events] == ["handoff", "start"]


def test_log_handoff_pair_failure_is_reported() -> None:
    """Test store failures are returned instead of raised."""
    store = MagicMock()
    store.add_events.side_effect = RuntimeError("disk full")
    pair = create_handoff_events("coordinator", "linear", "x")

    assert log_handoff_pair(store, "trace-1", pair) is False


def test_log_handoff_pair_missing_trace() -> None:
    """Test logging into an unknown trace."""
    pair = create_handoff_events("coordinator", "linear", "x")

    assert log_handoff_pair(MemoryTraceStore(), "missing", pair) is False
