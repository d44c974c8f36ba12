# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides health, liveness and readiness endpoints for the API.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from src import __version__
from src.core.config import get_settings
from src.infrastructure.database.connection import check_database_connection

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    latency_ms: float | None = Field(None, description="Response latency in ms")
    message: str | None = Field(None, description="Additional status message")


class ComponentsHealth(BaseModel):
    """All components health status."""
    database: ComponentHealth | None = None
    llm: ComponentHealth | None = None


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")
    components: ComponentsHealth = Field(default_factory=ComponentsHealth)


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    checks: dict[str, Any] = Field(description="Individual check results")


async def check_database() -> ComponentHealth:
    """Check PostgreSQL database connection."""
    start = time.time()
    healthy = await check_database_connection()
    latency = (time.time() - start) * 1000

    if healthy:
        return ComponentHealth(status="healthy", latency_ms=round(latency, 2))
    logger.error("Database health check failed")
    return ComponentHealth(status="unhealthy", message="Database unreachable")


def check_llm() -> ComponentHealth:
    """Report whether the tutor can reach a real model."""
    if get_settings().llm.has_provider_key:
        return ComponentHealth(status="healthy", message="Provider key configured")
    return ComponentHealth(status="degraded", message="No provider key, tutor uses mock replies")


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check if the API is healthy with component details.

    The database decides overall health; a missing LLM key only
    degrades it.

    Returns:
        HealthResponse with detailed status.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    uptime = int(time.time() - _server_start_time)

    db_health = await check_database()
    llm_health = check_llm()

    if db_health.status != "healthy":
        overall_status = "unhealthy"
    elif llm_health.status != "healthy":
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return HealthResponse(
        status=overall_status,
        timestamp=now,
        version=__version__,
        environment=settings.environment,
        uptime_seconds=uptime,
        components=ComponentsHealth(database=db_health, llm=llm_health),
    )


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """The process is up and serving requests."""
    return {"status": "alive"}


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check if the API is ready to accept traffic.

    Returns:
        ReadinessResponse with individual check results; 503 when not ready.
    """
    db_health = await check_database()
    checks: dict[str, Any] = {
        "database": {"status": db_health.status, "latency_ms": db_health.latency_ms},
    }
    ready = db_health.status == "healthy"
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(ready=ready, checks=checks)
