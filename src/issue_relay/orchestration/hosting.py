"""Deployment tools and the hosting agent built on the Vercel client."""

import time
from typing import Any

import structlog
from agents import Agent, FunctionTool, Handoff, WebSearchTool, function_tool
from agents.extensions.handoff_prompt import RECOMMENDED_PROMPT_PREFIX

from issue_relay.backends.vercel import VercelClient, VercelError
from issue_relay.orchestration.tools import TracedTools
from issue_relay.traces.store import TraceStore

logger = structlog.get_logger()

DEFAULT_DEPLOYMENT_LIMIT = 20
MAX_DEPLOYMENT_LIMIT = 100
DEFAULT_LOG_LIMIT = 100
MAX_LOG_LIMIT = 1000

HOSTING_AGENT_INSTRUCTIONS = f"""{RECOMMENDED_PROMPT_PREFIX}
You are a hosting agent specialized in managing Vercel deployments and infrastructure.

Key capabilities:
- Get list of deployments with their status and metadata
- Get detailed status information for specific deployments
- Retrieve build and runtime logs for deployments
- List all projects in the Vercel account
- Hand off to Linear agent for issue management tasks

You help users monitor their deployments, debug issues, and understand their infrastructure state.
Always provide helpful, structured responses about deployment status and logs."""


def _now_ms() -> int:
    return int(time.time() * 1000)


def _creator(item: dict[str, Any]) -> str:
    return (item.get("creator") or {}).get("username") or "Unknown"


def _check_limit(name: str, value: int, maximum: int) -> str | None:
    if not 1 <= value <= maximum:
        return f"{name} must be between 1 and {maximum}"
    return None


def deployment_summary(deployment: dict[str, Any]) -> dict[str, Any]:
    return {
        "uid": deployment.get("uid") or deployment.get("id"),
        "name": deployment.get("name"),
        "url": deployment.get("url"),
        "state": deployment.get("state") or deployment.get("readyState"),
        "ready": deployment.get("ready"),
        "createdAt": deployment.get("createdAt") or deployment.get("created"),
        "creator": _creator(deployment),
        "target": deployment.get("target"),
        "source": deployment.get("source"),
        "projectId": deployment.get("projectId"),
        "regions": deployment.get("regions") or [],
    }


def log_entries(response: Any, limit: int) -> list[dict[str, Any]]:
    """Normalize a deployment events response into at most ``limit`` log entries.

    Plain text becomes one entry per line; structured events keep their id,
    type, timestamp, source and level, reading the text from the payload when
    there is one.
    """
    if isinstance(response, str):
        created = _now_ms()
        return [
            {"id": f"log-{index}", "type": "log", "created": created, "text": line, "level": "info"}
            for index, line in enumerate(response.split("\n")[:limit])
        ]

    if isinstance(response, dict):
        events = response.get("events") or []
    elif isinstance(response, list):
        events = response
    else:
        return []

    entries = []
    for index, event in enumerate(events[:limit]):
        payload = event.get("payload") or {}
        entries.append(
            {
                "id": event.get("id") or f"event-{index}",
                "type": event.get("type") or "log",
                "created": event.get("created") or _now_ms(),
                "text": payload.get("text") or payload.get("message") or event.get("text") or "No message",
                "source": payload.get("source") or event.get("source"),
                "level": payload.get("level") or event.get("level") or "info",
            }
        )
    return entries


class HostingTools(TracedTools):
    """Read-only Vercel operations bound to one trace."""

    agent_name = "hosting"

    def __init__(self, client: VercelClient, store: TraceStore, trace_id: str) -> None:
        super().__init__(store, trace_id)
        self.client = client

    async def get_deployments(self, limit: int | None = None, project_id: str | None = None) -> dict[str, Any]:
        limit = limit if limit is not None else DEFAULT_DEPLOYMENT_LIMIT
        arguments = {"limit": limit, "projectId": project_id}
        invalid = _check_limit("limit", limit, MAX_DEPLOYMENT_LIMIT)
        if invalid:
            raise self._fail("get_deployments", "retrieve deployments", arguments, invalid)

        try:
            response = await self.client.list_deployments(limit, project_id)
        except VercelError as e:
            raise self._fail("get_deployments", "retrieve deployments", arguments, str(e)) from e

        deployments = [deployment_summary(item) for item in response.get("deployments", [])]
        result = {
            "deployments": deployments,
            "pagination": response.get("pagination"),
            "totalCount": len(deployments),
        }
        self._record(
            "get_deployments", arguments, result, f"Retrieved {len(deployments)} deployments from Vercel."
        )
        return result

    async def get_deployment_status(self, deployment_id: str) -> dict[str, Any]:
        arguments = {"deploymentId": deployment_id}
        try:
            deployment = await self.client.get_deployment(deployment_id)
        except VercelError as e:
            raise self._fail("get_deployment_status", "get deployment status", arguments, str(e)) from e

        result = deployment_summary(deployment)
        result.update(
            state=result["state"] or "UNKNOWN",
            readyState=deployment.get("readyState"),
            buildingAt=deployment.get("buildingAt"),
            readyAt=deployment.get("readyAt"),
            functions=deployment.get("functions") or [],
        )
        markdown = (
            f"Retrieved status for deployment [{deployment_id}](https://{result['url']}) - State: {result['state']}"
        )
        self._record("get_deployment_status", arguments, result, markdown)
        return result

    async def get_deployment_logs(self, deployment_id: str, limit: int | None = None) -> dict[str, Any]:
        limit = limit if limit is not None else DEFAULT_LOG_LIMIT
        arguments = {"deploymentId": deployment_id, "limit": limit}
        invalid = _check_limit("limit", limit, MAX_LOG_LIMIT)
        if invalid:
            raise self._fail("get_deployment_logs", "get deployment logs", arguments, invalid)

        try:
            response = await self.client.get_deployment_events(deployment_id)
        except VercelError as e:
            raise self._fail("get_deployment_logs", "get deployment logs", arguments, str(e)) from e

        logs = log_entries(response, limit)
        result = {
            "deploymentId": deployment_id,
            "logs": logs,
            "totalCount": len(logs),
            "hasMore": len(logs) >= limit,
        }
        self._record(
            "get_deployment_logs",
            arguments,
            result,
            f"Retrieved {len(logs)} log entries for deployment {deployment_id}.",
        )
        return result

    async def get_projects(self) -> dict[str, Any]:
        try:
            response = await self.client.list_projects()
        except VercelError as e:
            raise self._fail("get_projects", "retrieve projects", {}, str(e)) from e

        projects = [
            {
                "id": project.get("id"),
                "name": project.get("name"),
                "accountId": project.get("accountId"),
                "createdAt": project.get("createdAt"),
                "updatedAt": project.get("updatedAt"),
                "framework": project.get("framework"),
                "devCommand": project.get("devCommand"),
                "buildCommand": project.get("buildCommand"),
                "outputDirectory": project.get("outputDirectory"),
                "publicSource": project.get("publicSource"),
            }
            for project in response.get("projects", [])
        ]
        result = {"projects": projects, "pagination": response.get("pagination"), "totalCount": len(projects)}
        self._record("get_projects", {}, result, f"Retrieved {len(projects)} projects from Vercel.")
        return result

    def as_function_tools(self) -> list[FunctionTool]:
        tools = self

        @function_tool
        async def get_deployments(limit: int | None, project_id: str | None) -> dict[str, Any]:
            """Get a list of deployments from Vercel with their status and metadata.

            Args:
                limit: Number of deployments to retrieve, 1 to 100 (default 20)
                project_id: Filter deployments by project ID
            """
            return await tools.get_deployments(limit, project_id)

        @function_tool
        async def get_deployment_status(deployment_id: str) -> dict[str, Any]:
            """Get detailed status and information about a specific deployment.

            Args:
                deployment_id: The deployment ID or URL
            """
            return await tools.get_deployment_status(deployment_id)

        @function_tool
        async def get_deployment_logs(deployment_id: str, limit: int | None) -> dict[str, Any]:
            """Get build and runtime logs for a specific deployment.

            Args:
                deployment_id: The deployment ID or URL
                limit: Number of log entries to retrieve, 1 to 1000 (default 100)
            """
            return await tools.get_deployment_logs(deployment_id, limit)

        @function_tool
        async def get_projects() -> dict[str, Any]:
            """Get a list of all projects from Vercel."""
            return await tools.get_projects()

        return [get_deployments, get_deployment_status, get_deployment_logs, get_projects]


def build_hosting_agent(tools: HostingTools, issue_handoff: Handoff | None = None) -> Agent:
    """Build the hosting agent, able to hand issue work on when Linear is configured."""
    return Agent(
        name="Hosting Agent",
        handoff_description="Monitors Vercel deployments, their status and logs, and lists projects.",
        instructions=HOSTING_AGENT_INSTRUCTIONS,
        tools=[*tools.as_function_tools(), WebSearchTool()],
        handoffs=[issue_handoff] if issue_handoff is not None else [],
    )
