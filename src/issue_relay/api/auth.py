"""API key authentication for /api routes."""

import secrets

import structlog
from fastapi import Request

from issue_relay.api.responses import ApiError

logger = structlog.get_logger()

UNAUTHORIZED = "Unauthorized - Invalid or missing API key"


async def require_api_key(request: Request) -> None:
    """Reject the request unless it carries the configured API key.

    Every request is rejected when no API key is configured.
    """
    expected = request.app.state.settings.api_key
    if not expected:
        logger.error("API key is not configured")
        raise ApiError(401, UNAUTHORIZED)

    candidates = [request.query_params.get("Bearer")]
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer "):
        candidates.insert(0, header[len("Bearer ") :])

    if not any(token and secrets.compare_digest(token, expected) for token in candidates):
        logger.info("Rejected unauthenticated request", path=request.url.path)
        raise ApiError(401, UNAUTHORIZED)
