# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics service module.

This module provides the AnalyticsService class for tracking raw events
and reading learner, course and system analytics.

Aggregates are rolled up into AnalyticsAggregate rows:
- user_daily: per learner and UTC day, built from progress, quiz
  attempts, achievements and daily XP
- system_hourly: per hour, built from ``api.request`` system events

Usage:
    from src.domains.analytics import AnalyticsService

    service = AnalyticsService(db=db_session)
    await service.track_event("lesson.viewed", "engagement", {"lesson_id": lid}, user_id=uid)
    await service.aggregate_user_daily_stats(uid, date.today())
    summary = await service.get_user_analytics_summary(uid, start, end)
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.analytics.insights import (
    LearnerSnapshot,
    learning_insights,
    summarize_system_hours,
    summarize_user_days,
)
from src.infrastructure.database.models import (
    AnalyticsAggregate,
    AnalyticsEvent,
    LeaderboardEntry,
    LearnerProgress,
    QuizAttempt,
    UserAchievement,
    UserGameStats,
    new_id,
)
from src.models.analytics import (
    AnalyticsPeriod,
    CourseAnalyticsResponse,
    CourseMetrics,
    LearningInsightsResponse,
    SystemAnalyticsResponse,
    SystemHour,
    SystemMetrics,
    UserAnalyticsSummary,
    UserDailyMetrics,
    UserSummaryMetrics,
)
from src.utils.datetime import days_ago, utc_now

logger = logging.getLogger(__name__)

USER_DAILY = "user_daily"
SYSTEM_HOURLY = "system_hourly"
API_REQUEST_EVENT = "api.request"
DEFAULT_RETENTION_DAYS = 90


class AnalyticsServiceError(Exception):
    """Base exception for analytics service errors."""

    pass


class AnalyticsService:
    """Service for analytics events and aggregates.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # =========================================================================
    # Events
    # =========================================================================

    async def track_event(
        self,
        event_type: str,
        event_category: str,
        event_data: dict[str, Any] | None = None,
        user_id: str | None = None,
        session_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Store a raw analytics event.

        Tracking never raises; a failed write is logged and rolled back.

        Returns:
            Whether the event was stored.
        """
        event = AnalyticsEvent(
            id=new_id(),
            user_id=user_id,
            session_id=session_id,
            event_type=event_type,
            event_category=event_category,
            event_data=event_data or {},
            event_metadata=metadata or {},
            timestamp=utc_now(),
        )
        try:
            self.db.add(event)
            await self.db.commit()
        except SQLAlchemyError as e:
            logger.error("Error tracking analytics event %s: %s", event_type, e)
            await self.db.rollback()
            return False

        logger.debug("Event tracked: type=%s, user=%s", event_type, user_id)
        return True

    async def cleanup_old_analytics_events(self, days_old: int = DEFAULT_RETENTION_DAYS) -> int:
        """Delete raw events older than ``days_old`` days."""
        result = await self.db.execute(
            delete(AnalyticsEvent).where(AnalyticsEvent.timestamp < days_ago(days_old))
        )
        await self.db.commit()

        deleted = result.rowcount or 0
        if deleted:
            logger.info("Cleaned up %d old analytics events (>%d days)", deleted, days_old)
        return deleted

    # =========================================================================
    # Aggregation
    # =========================================================================

    async def aggregate_user_daily_stats(self, user_id: str, day: date) -> UserDailyMetrics:
        """Roll a learner's UTC day up into a ``user_daily`` aggregate.

        Re-running for the same day overwrites the stored metrics.
        """
        start, end = _day_bounds(day)

        progress_result = await self.db.execute(
            select(LearnerProgress).where(
                LearnerProgress.user_id == user_id,
                LearnerProgress.last_accessed_at >= start,
                LearnerProgress.last_accessed_at <= end,
            )
        )
        progress = progress_result.scalars().all()

        attempts_result = await self.db.execute(
            select(QuizAttempt).where(
                QuizAttempt.user_id == user_id,
                QuizAttempt.submitted_at >= start,
                QuizAttempt.submitted_at <= end,
            )
        )
        attempts = attempts_result.scalars().all()

        achievements_result = await self.db.execute(
            select(func.count())
            .select_from(UserAchievement)
            .where(
                UserAchievement.user_id == user_id,
                UserAchievement.earned_at >= start,
                UserAchievement.earned_at <= end,
            )
        )

        xp_result = await self.db.execute(
            select(LeaderboardEntry.value).where(
                LeaderboardEntry.user_id == user_id,
                LeaderboardEntry.metric == "xp",
                LeaderboardEntry.period == "daily",
                LeaderboardEntry.period_start == start,
            )
        )

        sessions_result = await self.db.execute(
            select(func.count(func.distinct(AnalyticsEvent.session_id))).where(
                AnalyticsEvent.user_id == user_id,
                AnalyticsEvent.timestamp >= start,
                AnalyticsEvent.timestamp <= end,
            )
        )

        stats_result = await self.db.execute(
            select(UserGameStats.streak_current).where(UserGameStats.user_id == user_id)
        )

        metrics = UserDailyMetrics(
            date=start,
            sessions_count=sessions_result.scalar() or 0,
            lessons_started=sum(1 for p in progress if p.status in ("in-progress", "completed")),
            lessons_completed=sum(
                1
                for p in progress
                if p.status == "completed" and p.completed_at and start <= p.completed_at <= end
            ),
            quizzes_taken=len(attempts),
            quizzes_passed=sum(1 for a in attempts if a.passed),
            avg_quiz_score=(
                sum(a.percentage for a in attempts) / len(attempts) if attempts else 0.0
            ),
            achievements_unlocked=achievements_result.scalar() or 0,
            xp_earned=int(xp_result.scalar_one_or_none() or 0),
            streak_days=stats_result.scalar_one_or_none() or 0,
        )

        await self._upsert_aggregate(
            USER_DAILY,
            user_id,
            start,
            end,
            "day",
            metrics.model_dump(exclude={"date"}),
        )
        await self.db.commit()

        logger.info("Aggregated daily stats for user %s on %s", user_id, day.isoformat())
        return metrics

    async def aggregate_system_hourly(self, hour_start: datetime) -> SystemHour:
        """Roll an hour of ``api.request`` events into a ``system_hourly`` aggregate.

        Each event carries ``status_code`` and ``duration_ms``; responses
        with status 500 or above count as errors.
        """
        start = hour_start.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)
        end = start + timedelta(hours=1) - timedelta(microseconds=1)

        result = await self.db.execute(
            select(AnalyticsEvent.event_data).where(
                AnalyticsEvent.event_type == API_REQUEST_EVENT,
                AnalyticsEvent.timestamp >= start,
                AnalyticsEvent.timestamp <= end,
            )
        )
        requests = result.scalars().all()
        durations = [float(r.get("duration_ms", 0)) for r in requests]

        hour = SystemHour(
            timestamp=start,
            api_calls=len(requests),
            errors=sum(1 for r in requests if int(r.get("status_code", 200)) >= 500),
            avg_response_time=sum(durations) / len(durations) if durations else 0.0,
        )

        await self._upsert_aggregate(
            SYSTEM_HOURLY,
            "global",
            start,
            end,
            "hour",
            hour.model_dump(exclude={"timestamp"}),
        )
        await self.db.commit()

        logger.info("Aggregated system metrics for %s: %d calls", start.isoformat(), hour.api_calls)
        return hour

    # =========================================================================
    # Reports
    # =========================================================================

    async def get_user_analytics_summary(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> UserAnalyticsSummary:
        """Totals and daily series from a learner's ``user_daily`` aggregates."""
        aggregates = await self._aggregates(USER_DAILY, start, end, key=user_id)

        days = [UserDailyMetrics(date=a.period_start, **(a.metrics or {})) for a in aggregates]
        return UserAnalyticsSummary(
            period=AnalyticsPeriod(start=start, end=end),
            metrics=UserSummaryMetrics(
                **summarize_user_days([a.metrics or {} for a in aggregates])
            ),
            daily_data=days,
        )

    async def get_course_analytics(
        self,
        course_id: str,
        start: datetime,
        end: datetime,
    ) -> CourseAnalyticsResponse:
        """Activity on a course's lessons within a window."""
        result = await self.db.execute(
            select(LearnerProgress).where(
                LearnerProgress.course_id == course_id,
                LearnerProgress.last_accessed_at >= start,
                LearnerProgress.last_accessed_at <= end,
            )
        )
        progress = result.scalars().all()

        started = sum(1 for p in progress if p.status != "not-started")
        completed = sum(1 for p in progress if p.status == "completed")
        total_time = sum(p.time_spent or 0 for p in progress)

        return CourseAnalyticsResponse(
            period=AnalyticsPeriod(start=start, end=end),
            course_id=course_id,
            metrics=CourseMetrics(
                active_users=len({p.user_id for p in progress}),
                lessons_started=started,
                lessons_completed=completed,
                completion_rate=completed / started * 100 if started else 0.0,
                avg_time_per_lesson=total_time / started if started else 0.0,
                total_time_spent=total_time,
            ),
        )

    async def get_system_analytics(self, start: datetime, end: datetime) -> SystemAnalyticsResponse:
        aggregates = await self._aggregates(SYSTEM_HOURLY, start, end)
        metrics = [a.metrics or {} for a in aggregates]

        return SystemAnalyticsResponse(
            period=AnalyticsPeriod(start=start, end=end),
            metrics=SystemMetrics(**summarize_system_hours(metrics)),
            hourly_data=[SystemHour(timestamp=a.period_start, **(a.metrics or {})) for a in aggregates],
        )

    async def get_learning_insights(self, user_id: str) -> LearningInsightsResponse:
        """Rule-based strengths, improvements and recommendations.

        A learner without game stats gets empty lists.
        """
        result = await self.db.execute(
            select(UserGameStats).where(UserGameStats.user_id == user_id)
        )
        stats = result.scalar_one_or_none()
        if stats is None:
            return LearningInsightsResponse(strengths=[], improvements=[], recommendations=[])

        attempts_result = await self.db.execute(
            select(func.count(), func.count().filter(QuizAttempt.passed.is_(True)))
            .select_from(QuizAttempt)
            .where(QuizAttempt.user_id == user_id)
        )
        taken, passed = attempts_result.one()

        insights = learning_insights(
            LearnerSnapshot(
                average_mastery=stats.average_mastery,
                streak_current=stats.streak_current,
                streak_longest=stats.streak_longest,
                lessons_completed=stats.lessons_completed,
                quizzes_passed=stats.quizzes_passed,
                perfect_quizzes=stats.perfect_quizzes,
                quiz_pass_rate=passed / taken * 100 if taken else 0.0,
            )
        )
        return LearningInsightsResponse(
            strengths=insights.strengths,
            improvements=insights.improvements,
            recommendations=insights.recommendations,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _aggregates(
        self,
        aggregate_type: str,
        start: datetime,
        end: datetime,
        key: str | None = None,
    ) -> list[AnalyticsAggregate]:
        query = select(AnalyticsAggregate).where(
            AnalyticsAggregate.aggregate_type == aggregate_type,
            AnalyticsAggregate.period_start >= start,
            AnalyticsAggregate.period_start <= end,
        )
        if key is not None:
            query = query.where(AnalyticsAggregate.aggregate_key == key)
        result = await self.db.execute(query.order_by(AnalyticsAggregate.period_start))
        return list(result.scalars().all())

    async def _upsert_aggregate(
        self,
        aggregate_type: str,
        key: str,
        start: datetime,
        end: datetime,
        granularity: str,
        metrics: dict[str, Any],
    ) -> AnalyticsAggregate:
        result = await self.db.execute(
            select(AnalyticsAggregate).where(
                AnalyticsAggregate.aggregate_type == aggregate_type,
                AnalyticsAggregate.aggregate_key == key,
                AnalyticsAggregate.period_start == start,
                AnalyticsAggregate.granularity == granularity,
            )
        )
        aggregate = result.scalar_one_or_none()
        if aggregate is None:
            aggregate = AnalyticsAggregate(
                id=new_id(),
                aggregate_type=aggregate_type,
                aggregate_key=key,
                period_start=start,
                period_end=end,
                granularity=granularity,
                metrics=metrics,
            )
            self.db.add(aggregate)
        else:
            aggregate.period_end = end
            aggregate.metrics = metrics
        return aggregate


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min).replace(tzinfo=timezone.utc)
    end = datetime.combine(day, time.max).replace(tzinfo=timezone.utc)
    return start, end
