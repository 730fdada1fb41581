"""Trace and event records."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utc_now() -> str:
    """Return the current time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class AgentEvent:
    """A single step recorded while agents work on a trace."""

    agent: str
    input: dict[str, Any]
    output: dict[str, Any]
    type: str = "tool"
    markdown: str | None = None
    timestamp: str = field(default_factory=utc_now)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "type": self.type,
            "agent": self.agent,
            "input": self.input,
            "output": self.output,
            "timestamp": self.timestamp,
        }
        if self.markdown is not None:
            data["markdown"] = self.markdown
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AgentEvent":
        return cls(
            id=data.get("id") or new_id(),
            type=data.get("type", "tool"),
            agent=data["agent"],
            input=data.get("input", {}),
            output=data.get("output", {}),
            markdown=data.get("markdown"),
            timestamp=data.get("timestamp") or utc_now(),
        )


@dataclass
class AgenticTrace:
    """The persisted record of one prompt's agent run.

    Status moves from ``pending`` to ``running`` and then to ``completed`` or
    ``failed``. ``duration`` is in milliseconds.
    """

    name: str
    initial_input: str
    status: str = "pending"
    agent_hint: str | None = None
    duration: float | None = None
    events: list[AgentEvent] = field(default_factory=list)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = ""
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        if not self.updated_at:
            self.updated_at = self.created_at

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "initialInput": self.initial_input,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "events": [event.to_dict() for event in self.events],
            "status": self.status,
        }
        if self.duration is not None:
            data["duration"] = self.duration
        if self.agent_hint is not None:
            data["agentHint"] = self.agent_hint
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AgenticTrace":
        return cls(
            id=data["id"],
            name=data["name"],
            initial_input=data["initialInput"],
            status=data.get("status", "pending"),
            agent_hint=data.get("agentHint"),
            duration=data.get("duration"),
            events=[AgentEvent.from_dict(event) for event in data.get("events", [])],
            created_at=data["createdAt"],
            updated_at=data.get("updatedAt", data["createdAt"]),
        )


def project_fields(trace: dict[str, Any], fields: list[str] | None) -> dict[str, Any]:
    """Keep only the requested top-level fields of a serialized trace; ``id`` is always kept."""
    if not fields:
        return trace
    projected = {name: trace[name] for name in fields if name in trace}
    projected["id"] = trace["id"]
    return projected
