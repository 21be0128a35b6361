"""Application entry point and FastAPI app factory."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config.settings import settings
from .controllers import auth, classes, departments, subjects, users
from .database import TRANSIENT_ERRORS, Database
from .errors import ClassroomError, TransientStoreError, error_response
from .middleware import (
    JSONBodyMiddleware,
    SecurityMiddleware,
    StructuredLoggingMiddleware,
    TelemetryMiddleware,
)

logger = logging.getLogger(__name__)


def _reset_handlers(target: logging.Logger) -> None:
    """Detach existing handlers, closing the file handlers among them."""

    for handler in list(target.handlers):
        target.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()


def _configure_logging() -> None:
    """Ensure structured middleware logs stream to stdout and file."""

    _reset_handlers(logging.getLogger())

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    log_path = Path(settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=1_000_000,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(file_handler)
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    middleware_logger = logging.getLogger("classroom.middleware.structured")
    _reset_handlers(middleware_logger)
    middleware_stdout = logging.StreamHandler(sys.stdout)
    middleware_stdout.setFormatter(logging.Formatter("%(message)s"))
    middleware_logger.addHandler(middleware_stdout)
    middleware_logger.addHandler(file_handler)
    middleware_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    middleware_logger.propagate = False

    noisy_loggers = [
        "aiosqlite",
        "asyncpg",
        "sqlalchemy.engine",
        "uvicorn.access",
    ]
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def create_app(database: Optional[Database] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``database`` defaults to one built from the environment; tests pass their
    own so each run gets an isolated store.
    """

    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        description="Classroom management backend API",
    )
    app.state.database = database or Database.from_settings(settings)

    # Added innermost first: CORS wraps everything, security sits next to the routes.
    app.add_middleware(SecurityMiddleware)
    app.add_middleware(JSONBodyMiddleware)
    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(departments.router)
    app.include_router(subjects.router)
    app.include_router(classes.router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""

        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "status": "operational",
        }

    @app.get("/health", include_in_schema=False)
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""

        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose application metrics for Prometheus scraping."""

        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(ClassroomError)
    async def classroom_error_handler(request: Request, exc: ClassroomError):
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        return JSONResponse(
            status_code=400,
            content={
                "detail": jsonable_encoder(exc.errors()),
                "code": "invalid_input",
            },
        )

    for error_type in TRANSIENT_ERRORS:

        @app.exception_handler(error_type)
        async def transient_error_handler(request: Request, exc: Exception):
            logger.warning("Transient store failure: %r", exc)
            return error_response(TransientStoreError())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "code": "http_error"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "code": "internal_error"},
        )

    @app.on_event("startup")
    async def startup_event() -> None:
        await app.state.database.init_models()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await app.state.database.dispose()

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "classroom.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
