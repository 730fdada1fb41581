"""Agent definitions: a coordinator that delegates to the issue and hosting agents."""

from agents import Agent, Handoff, RunContextWrapper, WebSearchTool, handoff
from agents.extensions.handoff_prompt import RECOMMENDED_PROMPT_PREFIX
from pydantic import BaseModel, Field

from issue_relay.backends.vercel import VercelClient
from issue_relay.issues import IssueService
from issue_relay.orchestration.hosting import HostingTools, build_hosting_agent
from issue_relay.orchestration.tools import IssueTools
from issue_relay.traces.handoff import create_handoff_events, log_handoff_pair
from issue_relay.traces.models import AgenticTrace
from issue_relay.traces.store import TraceStore

ISSUE_AGENT_INSTRUCTIONS = f"""{RECOMMENDED_PROMPT_PREFIX}
You are a Linear issue management agent. You can create, search, get, and update Linear issues.

Key capabilities:
- Create new issues with titles, descriptions, team assignments, etc.
- Search for issues by text, team, assignee, state, or project
- Get detailed information about specific issues
- Update existing issues with new information

You can resolve team names, user names/emails, project names, and state names to their IDs automatically.
Always provide helpful, structured responses about Linear issues."""

ISSUE_SERVICE_DESCRIPTION = "- Linear issue management (create, search, update issues)"
HOSTING_SERVICE_DESCRIPTION = (
    "- Vercel deployment monitoring (list deployments, check status, view logs, manage projects)"
)

NO_SERVICES_TEXT = (
    "No specialized services are currently configured. "
    "Ensure API keys are set for Linear and/or Vercel integration."
)


def coordinator_instructions(services: list[str]) -> str:
    """Build the coordinator prompt listing the available specialized services."""
    if services:
        services_text = "Available specialized services:\n" + "\n".join(services)
    else:
        services_text = NO_SERVICES_TEXT
    return (
        f"{RECOMMENDED_PROMPT_PREFIX}\n"
        "You are a helpful coordinator agent that manages conversations and delegates tasks "
        "to specialized agents.\n\n"
        "Your primary role is to:\n"
        "- Understand user requests and determine the best agent to handle them\n"
        "- Provide general assistance for non-specialized tasks\n"
        "- Delegate to specialized agents when their services are needed\n\n"
        f"{services_text}\n\n"
        "Be helpful and decide quickly whether a task should be handled by you or delegated."
    )


def build_issue_agent(tools: IssueTools) -> Agent:
    return Agent(
        name="Linear Agent",
        handoff_description="Creates, searches, reads and updates Linear issues.",
        instructions=ISSUE_AGENT_INSTRUCTIONS,
        tools=tools.as_function_tools(),
    )


def _issue_handoff(
    trace: AgenticTrace, store: TraceStore, service: IssueService, from_agent: str = "coordinator"
) -> Handoff:
    agent = build_issue_agent(IssueTools(service, store, trace.id))

    async def on_handoff(ctx: RunContextWrapper) -> None:
        pair = create_handoff_events(from_agent, "linear", trace.initial_input)
        log_handoff_pair(store, trace.id, pair)

    return handoff(agent, on_handoff=on_handoff)


class HostingTask(BaseModel):
    """Input the coordinator supplies when handing work to the hosting agent."""

    task: str = Field(description="A detailed description of the hosting/deployment task to be completed.")


def _hosting_handoff(
    trace: AgenticTrace, store: TraceStore, hosting: VercelClient, service: IssueService | None
) -> Handoff:
    issue_handoff = _issue_handoff(trace, store, service, from_agent="hosting") if service is not None else None
    agent = build_hosting_agent(HostingTools(hosting, store, trace.id), issue_handoff)

    async def on_handoff(ctx: RunContextWrapper, input: HostingTask) -> None:
        pair = create_handoff_events("coordinator", "hosting", trace.initial_input, task=input.task)
        log_handoff_pair(store, trace.id, pair)

    return handoff(agent, on_handoff=on_handoff, input_type=HostingTask)


def build_coordinator(
    trace: AgenticTrace,
    store: TraceStore,
    service: IssueService | None = None,
    hosting: VercelClient | None = None,
) -> Agent:
    """Build the coordinator agent for one trace.

    Each specialized agent is only offered as a handoff when its backend is
    configured. The hosting agent can itself hand issue work to the issue
    agent.

    Args:
        trace: Trace the run records into
        store: Store holding the trace
        service: Issue operations, or None when no Linear API key is configured
        hosting: Vercel client, or None when no Vercel API key is configured
    """
    handoffs = []
    services = []
    if service is not None:
        handoffs.append(_issue_handoff(trace, store, service))
        services.append(ISSUE_SERVICE_DESCRIPTION)
    if hosting is not None:
        handoffs.append(_hosting_handoff(trace, store, hosting, service))
        services.append(HOSTING_SERVICE_DESCRIPTION)

    return Agent(
        name="Coordinator",
        instructions=coordinator_instructions(services),
        handoffs=handoffs,
        tools=[WebSearchTool()],
    )
