"""
FastAPI application - blog post management service
"""

from __future__ import annotations

import logging
import secrets
from contextlib import asynccontextmanager

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.exc import SQLAlchemyError

from postdesk.config import Settings
from postdesk.config import settings as default_settings
from postdesk.database import Database, get_database
from postdesk.observability import (
    MetricsMiddleware,
    configure_logging,
    metrics_response,
)
from postdesk.routers.rpc import EXCEPTION_HANDLERS, PROCEDURES
from postdesk.routers.rpc import router as rpc_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; the lifespan owns the database handle."""
    settings = settings or default_settings
    configure_logging(settings.log_level, json_logs=not settings.debug)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Opening database", extra={"environment": settings.environment})
        database = Database(settings.database_url, echo=settings.db_echo)
        database.create_all()
        app.state.database = database
        try:
            yield
        finally:
            database.dispose()
            logger.info("Application shut down")

    is_prod = settings.is_production
    app = FastAPI(
        title="Postdesk",
        description="Blog post management service",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None if is_prod else "/docs",
        redoc_url=None if is_prod else "/redoc",
        openapi_url=None if is_prod else "/openapi.json",
    )
    app.state.settings = settings

    # Order: metrics → correlation id → CORS (outermost)
    app.add_middleware(MetricsMiddleware, procedures=PROCEDURES)
    app.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=False,
            allow_methods=["GET", "POST"],
            allow_headers=["Accept", "Content-Type", "Authorization", "X-Request-ID"],
        )

    for exc_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exc_class, handler)

    _register_system_routes(app, settings)
    app.include_router(rpc_router)
    return app


def _register_system_routes(app: FastAPI, settings: Settings) -> None:
    security = HTTPBasic(auto_error=False)

    def verify_metrics_auth(
        credentials: HTTPBasicCredentials | None = Depends(security),
    ) -> str:
        """Verify HTTP Basic Auth credentials for the metrics endpoint."""
        if not settings.metrics_password:
            return credentials.username if credentials else "anonymous"
        if credentials is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
                headers={"WWW-Authenticate": "Basic"},
            )

        correct_username = secrets.compare_digest(
            credentials.username, settings.metrics_username
        )
        correct_password = secrets.compare_digest(
            credentials.password, settings.metrics_password
        )
        if not (correct_username and correct_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
                headers={"WWW-Authenticate": "Basic"},
            )
        return credentials.username

    @app.get("/healthz", tags=["system"], summary="Health check", response_model=dict)
    def health_check(request: Request) -> dict:
        try:
            get_database(request).ping()
        except SQLAlchemyError:
            logger.exception("Health check failed")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="unhealthy"
            )
        if settings.is_production:
            return {"status": "healthy"}
        return {"status": "healthy", "database": "connected", "version": app.version}

    @app.get("/metrics", include_in_schema=False)
    def metrics(_: str = Depends(verify_metrics_auth)):
        """
        Prometheus metrics endpoint.

        Protected with HTTP Basic Auth once METRICS_PASSWORD is set.
        """
        return metrics_response()


app = create_app()
