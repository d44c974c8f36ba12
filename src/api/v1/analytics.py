# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics API endpoints.

This module provides endpoints for learning and system analytics:
- POST /events - Track a client event
- GET /users/{user_id}/summary - Daily aggregates over a period
- POST /users/{user_id}/aggregate - Build the daily aggregate for a date
- GET /users/{user_id}/insights - Strengths, improvements, recommendations
- GET /courses/{course_id} - Course engagement (authors and admins)
- GET /system - API traffic and errors (admins)
- POST /system/aggregate - Build the hourly system aggregate (admins)
- POST /cleanup - Drop old raw events (admins)

Periods default to the last 30 days.

Example:
    GET /api/v1/analytics/users/{user_id}/summary?start=2025-01-01T00:00:00Z
"""

import logging
from datetime import date, datetime, timedelta

from fastapi import APIRouter, HTTPException, Query, status

from src.api.dependencies import DB, AdminUser, AuthenticatedUser, AuthorOrAdmin, ensure_self_or_admin
from src.domains.analytics import DEFAULT_RETENTION_DAYS, AnalyticsService
from src.models.analytics import (
    AnalyticsCleanupResponse,
    CourseAnalyticsResponse,
    LearningInsightsResponse,
    SystemAnalyticsResponse,
    SystemHour,
    TrackEventRequest,
    UserAnalyticsSummary,
    UserDailyMetrics,
)
from src.models.common import MessageResponse
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_PERIOD_DAYS = 30


def _period(start: datetime | None, end: datetime | None) -> tuple[datetime, datetime]:
    end = end or utc_now()
    start = start or end - timedelta(days=DEFAULT_PERIOD_DAYS)
    if start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start must be before end")
    return start, end


@router.post(
    "/events",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Track an event",
)
async def track_event(data: TrackEventRequest, db: DB, current_user: AuthenticatedUser) -> MessageResponse:
    """Record a client-side event. Failures are logged, never returned."""
    await AnalyticsService(db).track_event(
        data.event_type,
        data.event_category,
        data.event_data,
        user_id=current_user.id,
        session_id=data.session_id,
        metadata=data.metadata,
    )
    return MessageResponse(message="Event accepted")


# =============================================================================
# Learner analytics
# =============================================================================


@router.get("/users/{user_id}/summary", response_model=UserAnalyticsSummary, summary="Get user summary")
async def get_user_summary(
    user_id: str,
    db: DB,
    current_user: AuthenticatedUser,
    start: datetime | None = None,
    end: datetime | None = None,
) -> UserAnalyticsSummary:
    ensure_self_or_admin(current_user, user_id)
    start, end = _period(start, end)
    return await AnalyticsService(db).get_user_analytics_summary(user_id, start, end)


@router.post(
    "/users/{user_id}/aggregate",
    response_model=UserDailyMetrics,
    summary="Aggregate daily stats",
)
async def aggregate_user_day(
    user_id: str,
    db: DB,
    current_user: AuthenticatedUser,
    day: date | None = None,
) -> UserDailyMetrics:
    """Compute (or recompute) the ``user_daily`` aggregate; defaults to today (UTC)."""
    ensure_self_or_admin(current_user, user_id)
    return await AnalyticsService(db).aggregate_user_daily_stats(user_id, day or utc_now().date())


@router.get(
    "/users/{user_id}/insights",
    response_model=LearningInsightsResponse,
    summary="Get learning insights",
)
async def get_insights(user_id: str, db: DB, current_user: AuthenticatedUser) -> LearningInsightsResponse:
    ensure_self_or_admin(current_user, user_id)
    return await AnalyticsService(db).get_learning_insights(user_id)


# =============================================================================
# Course and system analytics
# =============================================================================


@router.get("/courses/{course_id}", response_model=CourseAnalyticsResponse, summary="Get course analytics")
async def get_course_analytics(
    course_id: str,
    db: DB,
    current_user: AuthorOrAdmin,
    start: datetime | None = None,
    end: datetime | None = None,
) -> CourseAnalyticsResponse:
    start, end = _period(start, end)
    return await AnalyticsService(db).get_course_analytics(course_id, start, end)


@router.get("/system", response_model=SystemAnalyticsResponse, summary="Get system analytics")
async def get_system_analytics(
    db: DB,
    current_user: AdminUser,
    start: datetime | None = None,
    end: datetime | None = None,
) -> SystemAnalyticsResponse:
    start, end = _period(start, end)
    return await AnalyticsService(db).get_system_analytics(start, end)


@router.post("/system/aggregate", response_model=SystemHour, summary="Aggregate an hour of traffic")
async def aggregate_system_hour(
    db: DB,
    current_user: AdminUser,
    hour_start: datetime | None = None,
) -> SystemHour:
    """Defaults to the previous full hour."""
    if hour_start is None:
        hour_start = utc_now().replace(minute=0, second=0, microsecond=0) - timedelta(hours=1)
    return await AnalyticsService(db).aggregate_system_hourly(hour_start)


@router.post("/cleanup", response_model=AnalyticsCleanupResponse, summary="Delete old events")
async def cleanup_events(
    db: DB,
    current_user: AdminUser,
    days: int = Query(default=DEFAULT_RETENTION_DAYS, ge=1, le=3650),
) -> AnalyticsCleanupResponse:
    deleted = await AnalyticsService(db).cleanup_old_analytics_events(days)
    return AnalyticsCleanupResponse(deleted=deleted)
