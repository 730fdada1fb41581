"""Response envelopes shared by the routers."""

from typing import Any

from fastapi.responses import JSONResponse

from issue_relay.issues import OperationResult

# HTTP status for each failure kind
STATUS_BY_KIND = {
    "validation": 400,
    "resolution": 400,
    "not_found": 404,
    "remote": 400,
    "tool": 400,
    "error": 500,
}


class ApiError(Exception):
    """Raised by route handlers to answer with a failure envelope."""

    def __init__(self, status_code: int, error: str, details: str | None = None) -> None:
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details

    def to_response(self) -> JSONResponse:
        content: dict[str, Any] = {"success": False, "error": self.error}
        if self.details:
            content["details"] = self.details
        return JSONResponse(status_code=self.status_code, content=content)


def success(data: Any, status_code: int = 200, message: str | None = None) -> JSONResponse:
    content: dict[str, Any] = {"success": True, "data": data}
    if message:
        content["message"] = message
    return JSONResponse(status_code=status_code, content=content)


def from_result(result: OperationResult, status_code: int = 200) -> JSONResponse:
    """Render an issue operation result, mapping failure kinds to HTTP statuses."""
    if result.success:
        return success(result.data, status_code)
    return JSONResponse(status_code=STATUS_BY_KIND.get(result.kind or "error", 500), content=result.to_dict())
