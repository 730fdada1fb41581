"""Request payload schemas.

Wire keys are camelCase (``teamId``), attributes are snake_case (``team_id``).
"""

from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from issue_relay.errors import ValidationFailure

AgentType = Literal["coordinator", "linear", "hosting"]
TraceStatus = Literal["pending", "running", "completed", "failed"]
EventType = Literal["tool", "start", "handoff"]

T = TypeVar("T", bound=BaseModel)


class Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CreateIssuePayload(Payload):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    team_id: str = Field(min_length=1)
    assignee_id: str | None = None
    priority: int | None = Field(default=None, ge=0, le=4)
    label_ids: list[str] | None = None
    project_id: str | None = None
    state_id: str | None = None


class UpdateIssuePayload(Payload):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    assignee_id: str | None = None
    priority: int | None = Field(default=None, ge=0, le=4)
    label_ids: list[str] | None = None
    project_id: str | None = None
    state_id: str | None = None


class SearchIssuesPayload(Payload):
    query: str | None = None
    team_id: str | None = None
    assignee_id: str | None = None
    state_id: str | None = None
    project_id: str | None = None
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class ListIssuesPayload(Payload):
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
    team_id: str | None = None


class CreateTraceRequest(Payload):
    name: str = Field(min_length=1, max_length=255)
    input: str = Field(min_length=1)
    first_agent: AgentType | None = None
    blocking: bool = True
    agent_hint: AgentType | None = None


class UpdateTraceRequest(Payload):
    status: TraceStatus | None = None
    duration: float | None = Field(default=None, ge=0)


class EventPayload(Payload):
    type: EventType = "tool"
    agent: AgentType
    input: dict[str, Any]
    output: dict[str, Any]
    markdown: str | None = None
    timestamp: str


class AddEventRequest(Payload):
    event: EventPayload


class ListTracesRequest(Payload):
    cursor: str | None = None
    limit: int = Field(default=50, ge=1, le=100)
    order_by: Literal["createdAt", "updatedAt", "name"] = "createdAt"
    order_direction: Literal["asc", "desc"] = "desc"
    fields: str | None = None

    def field_list(self) -> list[str] | None:
        """Split the comma-separated ``fields`` parameter."""
        if not self.fields:
            return None
        return [name.strip() for name in self.fields.split(",") if name.strip()]


def format_errors(error: ValidationError) -> str:
    """Render pydantic errors as ``field: message`` pairs."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return ", ".join(parts)


def validate_payload(schema: type[T], data: Any) -> T:
    """Validate ``data`` against a schema, raising ValidationFailure on error."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data if data is not None else {})
    except ValidationError as e:
        raise ValidationFailure(format_errors(e)) from e
