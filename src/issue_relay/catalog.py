"""Remote catalog interface consumed by the resolver and issue operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from issue_relay.models import Issue, IssuePage, Project, Team, User, WorkflowState

# Linear rejects pages larger than this.
MAX_PAGE_SIZE = 250


@dataclass
class IssueDraft:
    """Issue fields for a create or update call, with identifiers already resolved.

    Fields left as None are not sent to the remote catalog.
    """

    title: str | None = None
    description: str | None = None
    team_id: str | None = None
    assignee_id: str | None = None
    priority: int | None = None
    label_ids: list[str] | None = None
    project_id: str | None = None
    state_id: str | None = None

    def to_input(self) -> dict[str, Any]:
        """Return the camelCase input object, omitting unset fields."""
        values = {
            "title": self.title,
            "description": self.description,
            "teamId": self.team_id,
            "assigneeId": self.assignee_id,
            "priority": self.priority,
            "labelIds": self.label_ids,
            "projectId": self.project_id,
            "stateId": self.state_id,
        }
        return {key: value for key, value in values.items() if value is not None}


@dataclass
class IssueQuery:
    """Filter and page size for an issue query."""

    filter: dict[str, Any] = field(default_factory=dict)
    first: int = 50
    after: str | None = None


class Catalog(ABC):
    """Abstract base class for remote issue tracker catalogs."""

    @abstractmethod
    async def fetch_team(self, team_id: str) -> Team:
        """Fetch a team by identifier."""
        pass

    @abstractmethod
    async def list_teams(self) -> list[Team]:
        """Fetch every team."""
        pass

    @abstractmethod
    async def fetch_user(self, user_id: str) -> User:
        """Fetch a user by identifier."""
        pass

    @abstractmethod
    async def list_users(self) -> list[User]:
        """Fetch every user."""
        pass

    @abstractmethod
    async def fetch_project(self, project_id: str) -> Project:
        """Fetch a project by identifier."""
        pass

    @abstractmethod
    async def list_projects(self) -> list[Project]:
        """Fetch every project."""
        pass

    @abstractmethod
    async def fetch_state(self, state_id: str) -> WorkflowState:
        """Fetch a workflow state by identifier."""
        pass

    @abstractmethod
    async def list_states(self) -> list[WorkflowState]:
        """Fetch every workflow state across all teams."""
        pass

    @abstractmethod
    async def list_team_states(self, team_id: str) -> list[WorkflowState]:
        """Fetch the workflow states of one team."""
        pass

    @abstractmethod
    async def fetch_issue(self, issue_id: str) -> Issue | None:
        """Fetch an issue with its related entities, or None if it does not exist."""
        pass

    @abstractmethod
    async def create_issue(self, draft: IssueDraft) -> Issue | None:
        """Create an issue. Returns None if the remote reports no issue."""
        pass

    @abstractmethod
    async def update_issue(self, issue_id: str, draft: IssueDraft) -> Issue | None:
        """Update an issue. Returns None if the remote reports no issue."""
        pass

    @abstractmethod
    async def query_issues(self, query: IssueQuery) -> IssuePage:
        """Fetch one page of issues matching a filter."""
        pass

    async def aclose(self) -> None:
        """Release any transport held by the catalog."""
        return None
