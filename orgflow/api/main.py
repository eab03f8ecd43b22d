"""FastAPI application configuration and setup.

Main entry point for the HTTP API with CORS, error mapping
and lifecycle management.
"""

import logging
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orgflow import __version__
from orgflow.api.routes import api_router
from orgflow.exceptions import (
    LLMError,
    OrgflowError,
    ValidationError,
    WorkflowBuildError,
    WorkflowReferenceError,
)
from orgflow.logging_config import configure_logging
from orgflow.settings import Settings, get_settings
from orgflow.storage import close_db, init_db

logger = logging.getLogger(__name__)

# Singleton app instance
_app: FastAPI | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database pool on startup and close it on shutdown."""
    settings = get_settings()

    if settings.environment != "testing":
        await init_db()

    yield

    await close_db()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Args:
        settings: Optional settings override (uses get_settings() if not provided)

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = get_settings()

    configure_logging(settings.log_level)

    app = FastAPI(
        title="orgflow",
        description="Workflow template builder for organizations",
        version=__version__,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_get_allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api/v1")

    _register_exception_handlers(app, settings)

    return app


def _get_allowed_origins(settings: Settings) -> list[str]:
    """Get allowed CORS origins based on environment.

    Priority:
    1. Explicit ALLOWED_ORIGINS env var (comma-separated)
    2. Any origin in development and testing, none otherwise
    """
    if settings.allowed_origins:
        return [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]

    if settings.environment in ("development", "testing"):
        return ["*"]
    return []


def _status_for(exc: OrgflowError) -> int:
    """HTTP status for an application error.

    A build that stopped on a step or action name the client wrote is a
    client error, even though it arrives wrapped in ``WorkflowBuildError``.
    """
    if isinstance(exc, ValidationError | WorkflowReferenceError):
        return 400
    if isinstance(exc, WorkflowBuildError) and isinstance(exc.__cause__, WorkflowReferenceError):
        return 400
    if isinstance(exc, LLMError):
        return 502
    return 500


def _public_message(exc: OrgflowError, settings: Settings) -> str:
    """Message safe to return to the client.

    Client errors only echo names from the submitted definition, so they are
    always shown.  Server-side causes are shown in development and testing;
    elsewhere the client gets the correlation id to quote.
    """
    if _status_for(exc) < 500 or settings.debug or settings.environment in (
        "development",
        "testing",
    ):
        return str(exc)
    if isinstance(exc, WorkflowBuildError):
        return (
            f'Could not create structured workflow "{exc.workflow_name}". '
            f"Check server logs for correlation id {exc.correlation_id}."
        )
    if isinstance(exc, LLMError):
        return "Workflow generation failed. The language model did not return a usable definition."
    return "Internal server error"


def _error_body(
    status_code: int,
    message: str,
    error_type: str,
    correlation_id: str,
    **extra: Any,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": status_code,
                "message": message,
                "type": error_type,
                "correlation_id": correlation_id,
                **extra,
            }
        },
        headers={"X-Correlation-ID": correlation_id},
    )


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Register custom exception handlers.

    Args:
        app: FastAPI application
        settings: Settings deciding how much error detail clients see
    """

    @app.exception_handler(OrgflowError)
    async def orgflow_error_handler(request: Request, exc: OrgflowError) -> JSONResponse:
        """Handle orgflow application errors with correlation ID."""
        correlation_id = exc.correlation_id
        error_type = exc.__class__.__name__.replace("Error", "_error").lower()
        status_code = _status_for(exc)

        if status_code >= 500:
            logger.error(
                "%s %s failed (%s)",
                request.method,
                request.url.path,
                correlation_id,
                exc_info=exc,
            )
        else:
            logger.info(
                "Rejected %s %s (%s): %s", request.method, request.url.path, correlation_id, exc
            )

        extra: dict[str, Any] = {}
        if isinstance(exc, ValidationError):
            extra["errors"] = exc.errors
        return _error_body(
            status_code,
            _public_message(exc, settings),
            error_type,
            correlation_id,
            **extra,
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent format."""
        return _error_body(exc.status_code, exc.detail, "http_error", str(uuid.uuid4()))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        correlation_id = str(uuid.uuid4())
        logger.error("Unhandled exception (%s)", correlation_id, exc_info=exc)

        detail = str(exc) if settings.debug else "Internal server error"
        return _error_body(500, detail, "internal_error", correlation_id)


def get_app() -> FastAPI:
    """Get or create the singleton FastAPI application."""
    global _app
    if _app is None:
        _app = create_app()
    return _app


# For uvicorn: use "orgflow.api.main:get_app" with --factory flag,
# or "orgflow.api.main:app" which lazily initializes on first access.
def __getattr__(name: str) -> Any:
    """Create the app only when ``app`` is accessed, not at import time."""
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
