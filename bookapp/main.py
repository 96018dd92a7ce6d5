"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from bookapp.api.middleware import (
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from bookapp.api.routes import invitations, metrics
from bookapp.core.config import Settings, get_settings
from bookapp.core.database import Database
from bookapp.core.exceptions import StoreError
from bookapp.core.structured_logging import configure_logging, log_json
from bookapp.schemas.errors import ErrorResponse

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Build the application.

    The database handle is created once per application (or supplied by the
    caller, as tests do) and disposed on shutdown only if the app created it.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = database is None
        app.state.database = database or Database.from_settings(settings)
        log_json(logger, logging.INFO, "startup", environment=settings.environment)
        try:
            yield
        finally:
            if owned:
                await app.state.database.dispose()
            log_json(logger, logging.INFO, "shutdown")

    docs_enabled = settings.api_docs_enabled
    if docs_enabled is None:
        docs_enabled = settings.environment != "production"

    app = FastAPI(
        title="Bookapp API",
        description="Invitation codes for organization onboarding",
        version="1.0.0",
        docs_url="/api/docs" if docs_enabled else None,
        redoc_url="/api/redoc" if docs_enabled else None,
        openapi_url="/api/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    # Available before startup too, for clients that skip the lifespan
    if database is not None:
        app.state.database = database

    # Middleware configuration (order matters - applied in reverse order)
    # 1. Request logging (outermost - logs all requests)
    app.add_middleware(RequestLoggingMiddleware)

    # 2. Security headers
    app.add_middleware(SecurityHeadersMiddleware, settings=settings)

    # 3. Rate limiting (applied before routing)
    app.add_middleware(RateLimitMiddleware, settings=settings)

    # 4. CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    @app.exception_handler(StoreError)
    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
        if not isinstance(exc, StoreError):
            log_json(
                logger,
                logging.ERROR,
                "store_error",
                operation="commit",
                error=str(exc),
                exception=exc.__class__.__name__,
            )
        body = ErrorResponse(error="store_error", message="Invitation store unavailable")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(exclude_none=True),
        )

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    app.include_router(invitations.router, prefix="/api/invitations", tags=["invitations"])
    app.include_router(metrics.router, prefix="/api", tags=["metrics"])

    return app
