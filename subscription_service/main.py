"""
Subscription Service - FastAPI Application
REST API for managing user subscriptions and their cost totals
"""
from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from subscription_service.api.middleware import register_error_handling
from subscription_service.api.routes import health
from subscription_service.api.v1 import subscriptions
from subscription_service.config import Settings, get_settings
from subscription_service.core.exceptions import ConfigError, DatabaseUnavailableError
from subscription_service.core.logging import setup_logging
from subscription_service.database import (
    create_db_engine,
    create_session_factory,
    init_db,
    require_database,
)

logger = logging.getLogger(__name__)

DOCS_URL = "/swagger/index.html"
OPENAPI_URL = "/swagger/doc.json"


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the FastAPI application around a process-owned engine.

    Args:
        settings: Optional Settings instance (for testing)
        engine: Optional pre-built engine; created from settings otherwise
    """
    if settings is None:
        settings = get_settings()
    setup_logging(settings.log_level)

    if engine is None:
        engine = create_db_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle startup and shutdown events."""
        logger.info("Starting %s...", settings.app_name)
        init_db(engine)
        logger.info("Database initialized")
        yield
        logger.info("Shutting down %s...", settings.app_name)
        engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        description="REST API for managing user subscriptions",
        version="1.0.0",
        docs_url=DOCS_URL,
        openapi_url=OPENAPI_URL,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    register_error_handling(app)

    @app.get("/swagger", include_in_schema=False)
    async def swagger_root() -> RedirectResponse:
        return RedirectResponse(url=DOCS_URL)

    app.include_router(health.router, prefix=settings.api_v1_prefix, tags=["Health"])
    app.include_router(
        subscriptions.router,
        prefix=f"{settings.api_v1_prefix}/subscriptions",
        tags=["subscriptions"],
    )
    return app


def run() -> None:
    """Console entry point; every startup failure is fatal."""
    try:
        settings = get_settings()
    except ConfigError as exc:
        setup_logging()
        logger.error("failed to load configuration: %s", exc)
        sys.exit(1)

    setup_logging(settings.log_level)
    try:
        engine = create_db_engine(settings)
        require_database(engine)
    except (DatabaseUnavailableError, SQLAlchemyError) as exc:
        logger.error("failed to connect to database: %s", exc)
        sys.exit(1)

    app = create_app(settings, engine=engine)
    config = uvicorn.Config(
        app=app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
        access_log=False,
        # uvicorn traps SIGINT/SIGTERM and waits this long for in-flight requests.
        timeout_graceful_shutdown=settings.shutdown_timeout,
    )
    server = uvicorn.Server(config)
    server.run()
    if not server.started:
        logger.error("server failed to start on %s:%s", settings.server_host, settings.server_port)
        sys.exit(1)


if __name__ == "__main__":
    run()
