"""Resolution of human-readable entity references to canonical Linear entities.

Callers refer to teams, users, projects and workflow states either by their
canonical identifier or by a name, key, display name or email. The resolver
turns such a reference into an entity record, caching every successful
resolution for a fixed time-to-live so that repeated references cost no
remote calls.

A reference that looks like an identifier is fetched directly and is never
demoted to a name scan. Anything else is matched case-insensitively against
the full collection for its kind. Remote failures are logged and reported
the same way as a missing entity: as ``None``.
"""

import re
from collections.abc import Awaitable, Callable
from typing import Literal

import structlog

from issue_relay.cache import DEFAULT_TTL, TTLCache
from issue_relay.catalog import Catalog
from issue_relay.models import Entity, Project, Team, User, WorkflowState

logger = structlog.get_logger()

EntityKind = Literal["team", "user", "project", "state"]

ENTITY_KINDS: tuple[EntityKind, ...] = ("team", "user", "project", "state")

IDENTIFIER_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# Longest list of candidate names included in a not-found message.
MAX_SUGGESTIONS = 10


def is_identifier(value: str) -> bool:
    """Return True if the value has the shape of a canonical identifier."""
    return bool(IDENTIFIER_PATTERN.match(value))


def _matches(kind: EntityKind, entity: Entity, reference: str) -> bool:
    wanted = reference.lower()
    if isinstance(entity, Team):
        candidates = [entity.name, entity.key]
    elif isinstance(entity, User):
        candidates = [entity.name, entity.display_name, entity.email]
    else:
        candidates = [entity.name]
    return any(candidate.lower() == wanted for candidate in candidates if candidate)


def _describe(entity: Entity) -> str:
    if isinstance(entity, Team):
        return f"{entity.name} ({entity.key})"
    if isinstance(entity, User):
        return f"{entity.display_name} ({entity.email})"
    return entity.name


class EntityResolver:
    """Resolves entity references through a remote catalog and a TTL cache."""

    def __init__(
        self,
        catalog: Catalog,
        cache: TTLCache | None = None,
        ttl: float = DEFAULT_TTL,
        default_project: str | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            catalog: Remote catalog to query
            cache: Cache owned by this resolver (a new one is created if omitted)
            ttl: Seconds a resolution stays cached
            default_project: Project reference used when an issue names none
        """
        self.catalog = catalog
        self.cache = cache if cache is not None else TTLCache()
        self.ttl = ttl
        self.default_project = default_project

    def _fetcher(self, kind: EntityKind) -> Callable[[str], Awaitable[Entity]]:
        return {
            "team": self.catalog.fetch_team,
            "user": self.catalog.fetch_user,
            "project": self.catalog.fetch_project,
            "state": self.catalog.fetch_state,
        }[kind]

    def _lister(self, kind: EntityKind) -> Callable[[], Awaitable[list]]:
        return {
            "team": self.catalog.list_teams,
            "user": self.catalog.list_users,
            "project": self.catalog.list_projects,
            "state": self.catalog.list_states,
        }[kind]

    async def resolve(self, kind: EntityKind, reference: str, context_team_id: str | None = None) -> Entity | None:
        """Resolve a reference to an entity of the given kind.

        Args:
            kind: Entity kind to resolve
            reference: Identifier, name, key or email
            context_team_id: For states, restrict the name search to this team

        Returns:
            The resolved entity, or None if nothing matched or the catalog failed
        """
        if kind not in ENTITY_KINDS:
            raise ValueError(f"Unknown entity kind: {kind}")

        if kind == "state":
            cache_key = f"state:{reference}:{context_team_id or 'global'}"
        else:
            cache_key = f"{kind}:{reference}"

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("Resolved entity from cache", kind=kind, reference=reference)
            return cached

        try:
            if is_identifier(reference):
                logger.debug("Fetching entity by identifier", kind=kind, reference=reference)
                entity: Entity | None = await self._fetcher(kind)(reference)
            else:
                candidates = await self._collection_for(kind, context_team_id)
                entity = next((c for c in candidates if _matches(kind, c, reference)), None)
        except Exception as e:
            logger.warning("Error resolving entity", kind=kind, reference=reference, error=str(e))
            return None

        if entity is None:
            logger.info("Entity not found", kind=kind, reference=reference)
            return None

        self.cache.set(cache_key, entity, self.ttl)
        logger.debug("Resolved entity", kind=kind, reference=reference, entity_id=entity.id)
        return entity

    async def _collection_for(self, kind: EntityKind, context_team_id: str | None) -> list[Entity]:
        if kind == "state" and context_team_id and is_identifier(context_team_id):
            team = await self.catalog.fetch_team(context_team_id)
            return list(await self.catalog.list_team_states(team.id))
        return list(await self._lister(kind)())

    async def resolve_team(self, reference: str) -> Team | None:
        return await self.resolve("team", reference)

    async def resolve_user(self, reference: str) -> User | None:
        return await self.resolve("user", reference)

    async def resolve_project(self, reference: str) -> Project | None:
        return await self.resolve("project", reference)

    async def resolve_state(self, reference: str, team_id: str | None = None) -> WorkflowState | None:
        return await self.resolve("state", reference, team_id)

    async def resolve_default_project(self) -> Project | None:
        """Resolve the configured default project, if there is one."""
        if not self.default_project:
            return None
        return await self.resolve_project(self.default_project)

    async def list_entities(self, kind: EntityKind) -> list[Entity]:
        """Return the full catalog for a kind, cached under ``all_{kind}s``.

        Raises whatever the catalog raises; failures are not cached.
        """
        cache_key = f"all_{kind}s"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached
        entities = list(await self._lister(kind)())
        self.cache.set(cache_key, entities, self.ttl)
        return entities

    async def list_teams(self) -> list[Team]:
        return await self.list_entities("team")

    async def list_users(self) -> list[User]:
        return await self.list_entities("user")

    async def list_projects(self) -> list[Project]:
        return await self.list_entities("project")

    async def list_states(self) -> list[WorkflowState]:
        return await self.list_entities("state")

    async def build_not_found_message(self, kind: EntityKind, requested_value: str) -> str:
        """Describe a failed resolution and list the valid alternatives.

        Never raises: if the catalog cannot be fetched the message says so
        instead of listing candidates.
        """
        names: list[str] = []
        try:
            names = [_describe(entity) for entity in await self.list_entities(kind)]
        except Exception as e:
            logger.error("Error fetching available entities", kind=kind, error=str(e))

        message = f"{kind.capitalize()} '{requested_value}' not found."
        if not names:
            return f"{message} Unable to fetch available {kind}s."

        message += f" Available {kind}s: {', '.join(names[:MAX_SUGGESTIONS])}"
        remaining = len(names) - MAX_SUGGESTIONS
        if remaining > 0:
            message += f" and {remaining} more"
        return message
