"""Agent orchestration over issue operations, deployments and traces."""

from issue_relay.orchestration.coordinator import build_coordinator, build_issue_agent
from issue_relay.orchestration.hosting import HostingTools, build_hosting_agent
from issue_relay.orchestration.processor import AgentProcessor
from issue_relay.orchestration.tools import IssueTools

__all__ = [
    "AgentProcessor",
    "HostingTools",
    "IssueTools",
    "build_coordinator",
    "build_hosting_agent",
    "build_issue_agent",
]
