"""Meetpoint FastAPI Application.

Main entry point for the backend API server.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from meetpoint.api import router
from meetpoint.api.errors import status_for, to_app_error
from meetpoint.config import Settings
from meetpoint.container import ServiceContainer, build_services
from meetpoint.models import ErrorCode, LocationServiceError

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _error_response(status_code: int, code: ErrorCode, message: str, user_message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {
                "code": code.value,
                "message": message,
                "user_message": user_message,
                "recovery_options": [],
            },
        },
    )


def create_app(
    settings: Settings | None = None, services: ServiceContainer | None = None
) -> FastAPI:
    """Build the application.

    Args:
        settings: Configuration; read from the environment when omitted.
        services: Pre-built service container (tests inject fakes); built
            from ``settings`` when omitted.
    """
    if settings is None:
        settings = services.settings if services is not None else Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        container = services or build_services(settings)
        app.state.services = container
        await container.startup()
        yield
        await container.shutdown()

    app = FastAPI(
        title="Meetpoint API",
        description="Find venues halfway between two people",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LocationServiceError)
    async def location_error_handler(request: Request, exc: LocationServiceError):
        """Map core error kinds to HTTP responses."""
        app_error = to_app_error(exc)
        if exc.code is ErrorCode.INTERNAL_ERROR:
            logger.error(f"[APP] {exc.message}")
        return JSONResponse(
            status_code=status_for(exc),
            content={"success": False, "error": app_error.model_dump(mode="json")},
        )

    @app.exception_handler(RequestValidationError)
    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc: Exception):
        """Handle Pydantic validation errors."""
        return _error_response(
            422,
            ErrorCode.INVALID_INPUT,
            str(exc),
            "Invalid request format. Please check your input.",
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors."""
        logger.exception("Unhandled error")
        return _error_response(
            500,
            ErrorCode.INTERNAL_ERROR,
            str(exc),
            "Something went wrong. Please try again.",
        )

    app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
