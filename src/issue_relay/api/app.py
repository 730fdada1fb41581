"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from issue_relay import __version__
from issue_relay.api import issues, traces
from issue_relay.api.responses import STATUS_BY_KIND, ApiError
from issue_relay.backends.vercel import VercelClient
from issue_relay.config import Settings, build_hosting, build_service, build_store
from issue_relay.errors import IssueRelayError, ValidationFailure
from issue_relay.issues import IssueService
from issue_relay.orchestration.processor import AgentProcessor
from issue_relay.traces.store import TraceStore

logger = structlog.get_logger()


def create_app(
    settings: Settings | None = None,
    service: IssueService | None = None,
    store: TraceStore | None = None,
    processor: AgentProcessor | None = None,
    hosting: VercelClient | None = None,
) -> FastAPI:
    """Create the HTTP application.

    Args:
        settings: Effective settings (loaded from the environment and config if omitted)
        service: Issue operations (built from the Linear API key if omitted)
        store: Trace store (built from the trace backend setting if omitted)
        processor: Agent processor (built over the store, service and hosting client if omitted)
        hosting: Vercel client for the hosting agent (built from the Vercel API key if omitted)
    """
    settings = settings if settings is not None else Settings.load()
    if service is None and settings.linear_api_key:
        service = build_service(settings)
    store = store if store is not None else build_store(settings)
    if processor is None:
        hosting = hosting if hosting is not None else build_hosting(settings)
        processor = AgentProcessor(store, service, hosting=hosting)
    hosting = processor.hosting

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Starting issue relay",
            linear=service is not None,
            vercel=hosting is not None,
            traces=settings.trace_backend,
        )
        yield
        if service is not None:
            await service.catalog.aclose()
        if hosting is not None:
            await hosting.aclose()

    app = FastAPI(
        title="issue-relay",
        description="Manage Linear issues by name and run prompts through the issue and hosting agents.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.service = service
    app.state.store = store
    app.state.processor = processor

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        return exc.to_response()

    @app.exception_handler(ValidationFailure)
    async def validation_failure_handler(request: Request, exc: ValidationFailure) -> JSONResponse:
        return ApiError(400, "Validation error", exc.details).to_response()

    @app.exception_handler(IssueRelayError)
    async def issue_relay_error_handler(request: Request, exc: IssueRelayError) -> JSONResponse:
        return ApiError(STATUS_BY_KIND.get(exc.kind, 500), str(exc)).to_response()

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = ", ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())
        return ApiError(400, "Validation error", details).to_response()

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {
            "status": "ok",
            "version": __version__,
            "linear": service is not None,
            "vercel": hosting is not None,
        }

    app.include_router(issues.router)
    app.include_router(traces.router)
    return app
