# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the Adaptive LMS API.

Run with:
    uvicorn src.api.app:create_app --factory

or, with host and port from settings:
    lms-api
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from src import __version__
from src.api.dependencies import close_db, init_db
from src.api.middleware.auth import AuthMiddleware
from src.api.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from src.api.middleware.request_logging import RequestLoggingMiddleware
from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import get_settings
from src.infrastructure.database.connection import DatabaseError
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Configures logging and opens the database pool on startup; closes
    the pool on shutdown. The API still starts when the database is
    unreachable so health checks can report it.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Starting Adaptive LMS API",
        extra={"environment": settings.environment, "debug": settings.debug},
    )

    # =========================================================================
    # Startup
    # =========================================================================

    try:
        await init_db()
        logger.info("Database connection initialized")
    except DatabaseError as e:
        logger.warning("Failed to initialize database connection: %s", str(e))

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    try:
        await close_db()
        logger.info("Database connection closed")
    except DatabaseError as e:
        logger.warning("Error closing database connection: %s", str(e))

    logger.info("Shutting down Adaptive LMS API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a new FastAPI instance with all
    middleware, routes, and configurations applied.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Adaptive LMS API",
        description="Bilingual (Thai / English) adaptive learning platform backend",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        # Disable automatic redirects from /path to /path/
        # This prevents 307 redirects that lose Authorization headers
        redirect_slashes=False,
    )

    # =========================================================================
    # State
    # =========================================================================
    app.state.limiter = limiter

    # =========================================================================
    # Exception handlers
    # =========================================================================
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # =========================================================================
    # Middleware (order matters - last added is first executed)
    # =========================================================================

    # Request logging - runs after auth so the user is known
    app.add_middleware(RequestLoggingMiddleware)

    # Auth middleware - validates JWT tokens
    app.add_middleware(AuthMiddleware)

    # CORS middleware (should be last to execute first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app


def main() -> None:
    """Serve the API with uvicorn using the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.api.app:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        workers=None if settings.api.reload else settings.api.workers,
        reload=settings.api.reload,
    )
