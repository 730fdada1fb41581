"""Vercel REST client used by the hosting agent."""

from typing import Any

import httpx
import structlog

from issue_relay.cache import TTLCache

logger = structlog.get_logger()

VERCEL_API_URL = "https://api.vercel.com"

# Deployment state changes quickly, so responses are kept for two minutes only.
DEPLOYMENT_CACHE_TTL = 2 * 60.0


class VercelError(Exception):
    """Vercel API error."""


class VercelClient:
    """Read-only access to Vercel deployments, deployment events and projects.

    Every response is cached for DEPLOYMENT_CACHE_TTL seconds under a key
    built from the request.
    """

    def __init__(
        self,
        api_key: str,
        url: str = VERCEL_API_URL,
        client: httpx.AsyncClient | None = None,
        cache: TTLCache | None = None,
        ttl: float = DEPLOYMENT_CACHE_TTL,
    ) -> None:
        """Initialize the Vercel client.

        Args:
            api_key: Vercel access token
            url: REST API base URL
            client: Preconfigured HTTP client (tests pass one with a mock transport)
            cache: Response cache (a private one is created if omitted)
            ttl: Seconds a cached response stays valid
        """
        if not api_key:
            raise ValueError("Vercel API key required")

        self.url = url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=30.0)
        self.cache = cache if cache is not None else TTLCache()
        self.ttl = ttl
        self._headers = {"Authorization": f"Bearer {api_key}"}
        logger.debug("Vercel client initialized", url=self.url)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        query = {key: value for key, value in (params or {}).items() if value is not None}
        try:
            response = await self.client.get(f"{self.url}{path}", params=query, headers=self._headers)
        except httpx.HTTPError as e:
            logger.error("Vercel request failed", path=path, error=str(e))
            raise VercelError(f"Vercel request failed: {e}") from e

        if response.status_code >= 400:
            try:
                message = response.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                message = response.text
            raise VercelError(f"HTTP {response.status_code}: {message}")

        if "json" in response.headers.get("content-type", ""):
            return response.json()
        return response.text

    async def _cached(self, key: str, path: str, params: dict[str, Any] | None = None) -> Any:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Vercel cache hit", key=key)
            return cached
        data = await self._get(path, params)
        self.cache.set(key, data, ttl=self.ttl)
        return data

    async def list_deployments(self, limit: int = 20, project_id: str | None = None) -> dict[str, Any]:
        logger.info("Listing Vercel deployments", limit=limit, project_id=project_id)
        return await self._cached(
            f"deployments:{limit}:{project_id or 'all'}",
            "/v6/deployments",
            {"limit": limit, "projectId": project_id},
        )

    async def get_deployment(self, deployment_id: str) -> dict[str, Any]:
        logger.info("Fetching Vercel deployment", deployment_id=deployment_id)
        return await self._cached(f"deployment:{deployment_id}", f"/v13/deployments/{deployment_id}")

    async def get_deployment_events(self, deployment_id: str) -> Any:
        """Return the build and runtime events of a deployment.

        Vercel answers with a JSON list of events, an object holding an
        ``events`` list, or plain log text.
        """
        logger.info("Fetching Vercel deployment events", deployment_id=deployment_id)
        return await self._cached(f"logs:{deployment_id}", f"/v3/deployments/{deployment_id}/events")

    async def list_projects(self) -> dict[str, Any]:
        logger.info("Listing Vercel projects")
        return await self._cached("projects", "/v9/projects")
