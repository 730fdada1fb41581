"""Exceptions raised by issue relay operations."""


class IssueRelayError(Exception):
    """Base class for issue relay errors."""

    kind = "error"


class ValidationFailure(IssueRelayError):
    """A payload violates its field constraints."""

    kind = "validation"

    def __init__(self, details: str) -> None:
        super().__init__(f"Validation error: {details}")
        self.details = details


class ResolutionNotFound(IssueRelayError):
    """An entity reference did not resolve against the remote catalog."""

    kind = "resolution"

    def __init__(self, entity_kind: str, value: str, message: str) -> None:
        super().__init__(message)
        self.entity_kind = entity_kind
        self.value = value


class IssueNotFound(IssueRelayError):
    """The requested issue does not exist."""

    kind = "not_found"

    def __init__(self, message: str = "Issue not found") -> None:
        super().__init__(message)


class TraceNotFound(IssueRelayError):
    """The requested trace does not exist."""

    kind = "not_found"

    def __init__(self, message: str = "Trace not found") -> None:
        super().__init__(message)


class RemoteOperationFailure(IssueRelayError):
    """A remote create, update or query call failed after resolution succeeded."""

    kind = "remote"


class ToolFailure(IssueRelayError):
    """An agent tool call failed; the message names the operation."""

    kind = "tool"
