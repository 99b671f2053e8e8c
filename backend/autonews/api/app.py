"""FastAPI application setup with lifespan and exception handlers."""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from autonews import __version__, validate_dependencies
from autonews.api.routes import router
from autonews.config import settings
from autonews.db import init_database, shutdown
from autonews.errors import InvalidTransition, JobValidationError, NotFound
from autonews.services.container import Services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Startup:
        - Report missing service credentials
        - Initialize database schema
        - Build services and start automation when enabled

    Shutdown:
        - Stop automation, cancel unfinished jobs, close adapters
        - Close database connections
    """
    if getattr(app.state, "services", None) is not None:
        # Services injected by the caller; the caller owns their lifecycle
        yield
        return

    logger.info("Starting AutoNews API...")
    validate_dependencies(settings)
    await init_database()
    services = Services.build(settings)
    app.state.services = services
    if settings.automation.enabled:
        services.controller.start()
    logger.info("API startup complete")

    yield

    logger.info("Shutting down AutoNews API...")
    await services.aclose()
    await shutdown()
    logger.info("API shutdown complete")


async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def validation_handler(request: Request, exc: JobValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def transition_handler(request: Request, exc: InvalidTransition):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler to prevent stack traces in API responses."""
    logger.error(f"Unhandled exception in {request.method} {request.url.path}: {type(exc).__name__}: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
        }
    )


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Build the API application.

    Args:
        services: Pre-built services (tests). When omitted, the lifespan
            builds them from settings and owns their shutdown.
    """
    app = FastAPI(
        title="AutoNews API",
        version=__version__,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    # CORS for the dashboard dev server
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(JobValidationError, validation_handler)
    app.add_exception_handler(InvalidTransition, transition_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
    return app


app = create_app()
