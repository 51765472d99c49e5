"""FastAPI application for MedBook."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from medbook import __version__
from medbook.api.middleware import APIKeyMiddleware, RequestLoggingMiddleware
from medbook.api.routes import appointments, availability, health, schedule
from medbook.config import get_settings
from medbook.scheduling.errors import SchedulingError

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "validation": 400,
    "invalid_transition": 400,
    "policy_violation": 400,
    "forbidden": 403,
    "not_found": 404,
    "conflict": 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    logger.info(
        "Starting MedBook API (cancel window %gh, reschedule window %gh)",
        settings.cancel_window_hours,
        settings.reschedule_window_hours,
    )
    yield
    logger.info("Shutting down MedBook API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="MedBook API",
        description="Doctor availability and appointment booking",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    if settings.api_key:
        app.add_middleware(APIKeyMiddleware, api_key=settings.api_key)

    app.include_router(health.router, tags=["health"])
    app.include_router(availability.router, prefix="/api/v1", tags=["availability"])
    app.include_router(appointments.router, prefix="/api/v1", tags=["appointments"])
    app.include_router(schedule.router, prefix="/api/v1", tags=["schedule"])

    @app.exception_handler(SchedulingError)
    async def scheduling_error_handler(request: Request, exc: SchedulingError):
        status = ERROR_STATUS.get(exc.kind, 400)
        logger.info(f"{request.method} {request.url.path} -> {status} {exc.kind}: {exc.message}")
        return JSONResponse(status_code=status, content={"error": exc.kind, "detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}" for e in errors
        )
        return JSONResponse(status_code=400, content={"error": "validation", "detail": detail})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.debug_mode else None,
            },
        )

    return app
