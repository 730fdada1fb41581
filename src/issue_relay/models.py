"""Data models for issue relay."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Team:
    """A Linear team."""

    id: str
    name: str
    key: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "key": self.key}


@dataclass(frozen=True)
class User:
    """A Linear user."""

    id: str
    name: str
    email: str
    display_name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "displayName": self.display_name, "email": self.email}


@dataclass(frozen=True)
class Project:
    """A Linear project."""

    id: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class WorkflowState:
    """A workflow state. States belong to a team in Linear."""

    id: str
    name: str
    type: str
    color: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "type": self.type, "color": self.color}


@dataclass(frozen=True)
class Label:
    """An issue label."""

    id: str
    name: str
    color: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}


Entity = Team | User | Project | WorkflowState


def summary(entity: Entity | None) -> dict[str, Any] | None:
    """Return the response summary of a resolved entity, or None."""
    return entity.to_dict() if entity is not None else None


@dataclass
class Issue:
    """Represents a Linear issue with its related entities."""

    id: str
    title: str
    description: str | None = None
    number: int = 0
    url: str = ""
    priority: int = 0
    created_at: str | None = None
    updated_at: str | None = None
    team_id: str | None = None
    team: Team | None = None
    assignee: User | None = None
    project: Project | None = None
    state: WorkflowState | None = None
    labels: list[Label] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the issue with its related entity summaries."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "number": self.number,
            "url": self.url,
            "priority": self.priority,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "team": summary(self.team),
            "assignee": summary(self.assignee),
            "project": summary(self.project),
            "state": summary(self.state),
            "labels": [label.to_dict() for label in self.labels],
        }


@dataclass
class IssuePage:
    """One page of issues returned by a catalog query."""

    issues: list[Issue] = field(default_factory=list)
    has_next_page: bool = False
    has_previous_page: bool = False
    end_cursor: str | None = None
