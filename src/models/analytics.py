# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics API models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

EventCategory = Literal["engagement", "performance", "behavior", "system"]


class TrackEventRequest(BaseModel):
    event_type: str = Field(min_length=1, max_length=100)
    event_category: EventCategory
    event_data: dict[str, Any] = Field(default_factory=dict)
    session_id: str | None = Field(default=None, max_length=128)
    metadata: dict[str, Any] = Field(default_factory=dict)


class AnalyticsPeriod(BaseModel):
    start: datetime
    end: datetime


class UserDailyMetrics(BaseModel):
    """One ``user_daily`` aggregate."""

    date: datetime
    sessions_count: int = 0
    lessons_started: int = 0
    lessons_completed: int = 0
    quizzes_taken: int = 0
    quizzes_passed: int = 0
    avg_quiz_score: float = 0.0
    achievements_unlocked: int = 0
    xp_earned: int = 0
    streak_days: int = 0


class UserSummaryMetrics(BaseModel):
    total_sessions: int
    total_lessons: int
    total_quizzes: int
    avg_quiz_score: float
    total_achievements: int
    total_xp: int


class UserAnalyticsSummary(BaseModel):
    period: AnalyticsPeriod
    metrics: UserSummaryMetrics
    daily_data: list[UserDailyMetrics]


class CourseMetrics(BaseModel):
    active_users: int
    lessons_started: int
    lessons_completed: int
    completion_rate: float
    avg_time_per_lesson: float
    total_time_spent: int


class CourseAnalyticsResponse(BaseModel):
    period: AnalyticsPeriod
    course_id: str
    metrics: CourseMetrics


class SystemMetrics(BaseModel):
    total_api_calls: int
    total_errors: int
    avg_response_time: float
    error_rate: float


class SystemHour(BaseModel):
    timestamp: datetime
    api_calls: int = 0
    errors: int = 0
    avg_response_time: float = 0.0


class SystemAnalyticsResponse(BaseModel):
    period: AnalyticsPeriod
    metrics: SystemMetrics
    hourly_data: list[SystemHour]


class LearningInsightsResponse(BaseModel):
    strengths: list[str]
    improvements: list[str]
    recommendations: list[str]


class AnalyticsCleanupResponse(BaseModel):
    deleted: int
