"""Shared fixtures: an in-memory catalog with call counters and a controllable clock."""

from collections import Counter
from dataclasses import replace

import pytest

from issue_relay.backends.linear import LinearError
from issue_relay.cache import TTLCache
from issue_relay.catalog import MAX_PAGE_SIZE, Catalog, IssueDraft, IssueQuery
from issue_relay.issues import IssueService
from issue_relay.models import Issue, IssuePage, Project, Team, User, WorkflowState
from issue_relay.resolver import EntityResolver

ENG_ID = "11111111-1111-4111-8111-111111111111"
OPS_ID = "22222222-2222-4222-8222-222222222222"
JOHN_ID = "33333333-3333-4333-8333-333333333333"
JANE_ID = "44444444-4444-4444-8444-444444444444"
ROADMAP_ID = "55555555-5555-4555-8555-555555555555"
BACKLOG_ID = "66666666-6666-4666-8666-666666666666"
ENG_TODO_ID = "77777777-7777-4777-8777-777777777777"
OPS_TODO_ID = "88888888-8888-4888-8888-888888888888"
ISSUE_ID = "99999999-9999-4999-8999-999999999999"

ENGINEERING = Team(id=ENG_ID, name="Engineering", key="ENG")
OPERATIONS = Team(id=OPS_ID, name="Operations", key="OPS")
JOHN = User(id=JOHN_ID, name="John Doe", email="john@example.com", display_name="John")
JANE = User(id=JANE_ID, name="Jane Roe", email="jane@example.com", display_name="Jane")
ROADMAP = Project(id=ROADMAP_ID, name="Roadmap")
BACKLOG = Project(id=BACKLOG_ID, name="Backlog")
ENG_TODO = WorkflowState(id=ENG_TODO_ID, name="Todo", type="unstarted", color="#aaa")
OPS_TODO = WorkflowState(id=OPS_TODO_ID, name="Todo", type="unstarted", color="#bbb")


class FakeClock:
    """Clock whose time only moves when told to."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCatalog(Catalog):
    """In-memory catalog that counts every call."""

    def __init__(
        self,
        teams: list[Team] | None = None,
        users: list[User] | None = None,
        projects: list[Project] | None = None,
        states: dict[str, list[WorkflowState]] | None = None,
        issues: list[Issue] | None = None,
    ) -> None:
        self.teams = teams if teams is not None else [ENGINEERING, OPERATIONS]
        self.users = users if users is not None else [JOHN, JANE]
        self.projects = projects if projects is not None else [ROADMAP, BACKLOG]
        self.states = states if states is not None else {ENG_ID: [ENG_TODO], OPS_ID: [OPS_TODO]}
        self.issues = {issue.id: issue for issue in (issues or [])}
        self.calls: Counter[str] = Counter()
        self.failing: set[str] = set()
        self.created: list[IssueDraft] = []
        self.updated: list[tuple[str, IssueDraft]] = []
        self.queries: list[IssueQuery] = []

    def _call(self, operation: str) -> None:
        self.calls[operation] += 1
        if operation in self.failing:
            raise LinearError(f"{operation} failed")

    @staticmethod
    def _find(entities: list, entity_id: str, kind: str):
        for entity in entities:
            if entity.id == entity_id:
                return entity
        raise LinearError(f"Entity not found: {kind}")

    def _all_states(self) -> list[WorkflowState]:
        return [state for states in self.states.values() for state in states]

    async def fetch_team(self, team_id: str) -> Team:
        self._call("fetch_team")
        return self._find(self.teams, team_id, "team")

    async def list_teams(self) -> list[Team]:
        self._call("list_teams")
        return list(self.teams)

    async def fetch_user(self, user_id: str) -> User:
        self._call("fetch_user")
        return self._find(self.users, user_id, "user")

    async def list_users(self) -> list[User]:
        self._call("list_users")
        return list(self.users)

    async def fetch_project(self, project_id: str) -> Project:
        self._call("fetch_project")
        return self._find(self.projects, project_id, "project")

    async def list_projects(self) -> list[Project]:
        self._call("list_projects")
        return list(self.projects)

    async def fetch_state(self, state_id: str) -> WorkflowState:
        self._call("fetch_state")
        return self._find(self._all_states(), state_id, "workflowState")

    async def list_states(self) -> list[WorkflowState]:
        self._call("list_states")
        return self._all_states()

    async def list_team_states(self, team_id: str) -> list[WorkflowState]:
        self._call("list_team_states")
        return list(self.states.get(team_id, []))

    async def fetch_issue(self, issue_id: str) -> Issue | None:
        self._call("fetch_issue")
        return self.issues.get(issue_id)

    def _lookup(self, entities: list, entity_id: str | None):
        return next((entity for entity in entities if entity.id == entity_id), None)

    async def create_issue(self, draft: IssueDraft) -> Issue | None:
        self._call("create_issue")
        self.created.append(draft)
        issue = Issue(
            id=f"issue-{len(self.created)}",
            title=draft.title or "",
            description=draft.description,
            number=len(self.created),
            url=f"https://linear.app/test/issue/ENG-{len(self.created)}",
            priority=draft.priority or 0,
            created_at="2026-01-01T00:00:00.000Z",
            updated_at="2026-01-01T00:00:00.000Z",
            team_id=draft.team_id,
            team=self._lookup(self.teams, draft.team_id),
            assignee=self._lookup(self.users, draft.assignee_id),
            project=self._lookup(self.projects, draft.project_id),
            state=self._lookup(self._all_states(), draft.state_id),
        )
        self.issues[issue.id] = issue
        return issue

    async def update_issue(self, issue_id: str, draft: IssueDraft) -> Issue | None:
        self._call("update_issue")
        self.updated.append((issue_id, draft))
        issue = self.issues[issue_id]
        changes = {}
        if draft.title is not None:
            changes["title"] = draft.title
        if draft.description is not None:
            changes["description"] = draft.description
        if draft.priority is not None:
            changes["priority"] = draft.priority
        if draft.assignee_id is not None:
            changes["assignee"] = self._lookup(self.users, draft.assignee_id)
        if draft.project_id is not None:
            changes["project"] = self._lookup(self.projects, draft.project_id)
        if draft.state_id is not None:
            changes["state"] = self._lookup(self._all_states(), draft.state_id)
        updated = replace(issue, **changes)
        self.issues[issue_id] = updated
        return updated

    async def query_issues(self, query: IssueQuery) -> IssuePage:
        self._call("query_issues")
        self.queries.append(query)
        issues = list(self.issues.values())
        for field in ("team", "assignee", "project", "state"):
            if field in query.filter:
                wanted = query.filter[field]["id"]["eq"]
                issues = [i for i in issues if getattr(i, field) is not None and getattr(i, field).id == wanted]
        if query.first > MAX_PAGE_SIZE:
            raise LinearError(f"first must be <= {MAX_PAGE_SIZE}")
        start = int(query.after) if query.after else 0
        end = start + query.first
        return IssuePage(
            issues=issues[start:end],
            has_next_page=len(issues) > end,
            has_previous_page=start > 0,
            end_cursor=str(min(end, len(issues))),
        )


def make_issue(
    id: str = ISSUE_ID,
    title: str = "Fix login bug",
    description: str | None = "Users cannot log in",
    team: Team = ENGINEERING,
    assignee: User | None = JOHN,
    state: WorkflowState | None = ENG_TODO,
    project: Project | None = None,
) -> Issue:
    return Issue(
        id=id,
        title=title,
        description=description,
        number=1,
        url=f"https://linear.app/test/issue/{id}",
        priority=2,
        created_at="2026-01-01T00:00:00.000Z",
        updated_at="2026-01-02T00:00:00.000Z",
        team_id=team.id,
        team=team,
        assignee=assignee,
        project=project,
        state=state,
    )


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog(issues=[make_issue()])


@pytest.fixture
def resolver(catalog: FakeCatalog, clock: FakeClock) -> EntityResolver:
    return EntityResolver(catalog, cache=TTLCache(clock=clock))


@pytest.fixture
def service(catalog: FakeCatalog, resolver: EntityResolver) -> IssueService:
    return IssueService(catalog, resolver)
