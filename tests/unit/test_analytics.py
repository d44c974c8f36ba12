# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for learning insights and the analytics service."""

from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from src.domains.analytics import AnalyticsService
from src.domains.analytics.insights import (
    LearnerSnapshot,
    learning_insights,
    summarize_system_hours,
    summarize_user_days,
)


def _snapshot(**overrides) -> LearnerSnapshot:
    values = dict(
        average_mastery=0.65,
        streak_current=2,
        streak_longest=2,
        lessons_completed=3,
        quizzes_passed=1,
        perfect_quizzes=0,
        quiz_pass_rate=80.0,
    )
    values.update(overrides)
    return LearnerSnapshot(**values)


class TestLearningInsights:
    """Tests for rule-based insights."""

    def test_strong_learner(self) -> None:
        insights = learning_insights(
            _snapshot(average_mastery=0.85, streak_current=9, streak_longest=9, perfect_quizzes=6)
        )

        assert insights.strengths == [
            "High average mastery across competencies",
            "Consistent daily learning habit",
            "Excellent quiz performance",
        ]
        assert insights.improvements == []
        assert insights.recommendations == []

    def test_struggling_learner(self) -> None:
        insights = learning_insights(
            _snapshot(
                average_mastery=0.4,
                streak_current=0,
                streak_longest=10,
                quizzes_passed=0,
                quiz_pass_rate=20.0,
            )
        )

        assert insights.strengths == []
        assert "Build a daily learning streak" in insights.improvements
        assert "Review quiz materials before attempting" in insights.improvements
        assert insights.recommendations == [
            "Take quizzes to test your knowledge",
            "Try to beat your longest streak!",
            "Review lessons with low mastery scores",
        ]

    def test_middle_band_mastery_only_recommends_review(self) -> None:
        insights = learning_insights(_snapshot(average_mastery=0.65))

        assert "Focus on improving competency mastery" not in insights.improvements
        assert insights.recommendations == ["Review lessons with low mastery scores"]


class TestSummaries:
    """Tests for aggregate arithmetic."""

    def test_user_days(self) -> None:
        summary = summarize_user_days(
            [
                {"sessions_count": 2, "quizzes_taken": 1, "avg_quiz_score": 90.0, "xp_earned": 100},
                {"sessions_count": 1, "quizzes_taken": 0, "avg_quiz_score": 0.0, "xp_earned": 50},
            ]
        )

        assert summary["total_sessions"] == 3
        assert summary["avg_quiz_score"] == 45.0
        assert summary["total_xp"] == 150

    def test_system_hours_error_rate(self) -> None:
        summary = summarize_system_hours(
            [
                {"api_calls": 150, "errors": 3, "avg_response_time": 100.0},
                {"api_calls": 50, "errors": 1, "avg_response_time": 200.0},
            ]
        )

        assert summary["error_rate"] == pytest.approx(2.0)
        assert summary["avg_response_time"] == pytest.approx(150.0)

    def test_empty_windows(self) -> None:
        assert summarize_system_hours([])["error_rate"] == 0.0
        assert summarize_user_days([])["avg_quiz_score"] == 0.0


@pytest.fixture
def service(mock_db):
    return AnalyticsService(db=mock_db)


class TestAnalyticsService:
    """Tests for AnalyticsService."""

    @pytest.mark.asyncio
    async def test_track_event(self, service, mock_db) -> None:
        assert await service.track_event("lesson.viewed", "engagement", {"lesson_id": "l-1"}) is True

        event = mock_db.add.call_args[0][0]
        assert event.event_type == "lesson.viewed"
        assert event.event_data == {"lesson_id": "l-1"}

    @pytest.mark.asyncio
    async def test_track_event_failure_is_swallowed(self, service, mock_db) -> None:
        mock_db.commit.side_effect = OperationalError("INSERT", {}, Exception("down"))

        assert await service.track_event("lesson.viewed", "engagement") is False
        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_aggregate_user_daily_stats(self, service, mock_db, make_result) -> None:
        completed_at = datetime(2025, 3, 1, 9, tzinfo=timezone.utc)
        progress = [
            SimpleNamespace(status="completed", completed_at=completed_at),
            SimpleNamespace(status="in-progress", completed_at=None),
        ]
        attempts = [
            SimpleNamespace(passed=True, percentage=90.0),
            SimpleNamespace(passed=False, percentage=50.0),
        ]
        mock_db.execute.side_effect = [
            make_result(scalars=progress),
            make_result(scalars=attempts),
            make_result(scalar=1),
            make_result(scalar=175.0),
            make_result(scalar=2),
            make_result(scalar=4),
            make_result(scalar=None),
        ]

        metrics = await service.aggregate_user_daily_stats("user-1", date(2025, 3, 1))

        assert metrics.lessons_started == 2
        assert metrics.lessons_completed == 1
        assert metrics.quizzes_passed == 1
        assert metrics.avg_quiz_score == 70.0
        assert metrics.xp_earned == 175
        assert metrics.streak_days == 4

        aggregate = mock_db.add.call_args[0][0]
        assert aggregate.aggregate_type == "user_daily"
        assert aggregate.metrics["sessions_count"] == 2
        assert "date" not in aggregate.metrics

    @pytest.mark.asyncio
    async def test_aggregate_system_hourly_overwrites(self, service, mock_db, make_result) -> None:
        existing = SimpleNamespace(metrics={}, period_end=None)
        mock_db.execute.side_effect = [
            make_result(
                scalars=[
                    {"status_code": 200, "duration_ms": 40},
                    {"status_code": 503, "duration_ms": 160},
                ]
            ),
            make_result(scalar=existing),
        ]

        hour = await service.aggregate_system_hourly(datetime(2025, 3, 1, 10, 37, tzinfo=timezone.utc))

        assert hour.timestamp == datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert hour.api_calls == 2
        assert hour.errors == 1
        assert hour.avg_response_time == 100.0
        assert existing.metrics["errors"] == 1
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_insights_without_stats(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)

        insights = await service.get_learning_insights("user-1")

        assert insights.strengths == []
        assert insights.recommendations == []

    @pytest.mark.asyncio
    async def test_insights_use_pass_rate(self, service, mock_db, make_result) -> None:
        stats = SimpleNamespace(
            average_mastery=0.9,
            streak_current=1,
            streak_longest=1,
            lessons_completed=4,
            quizzes_passed=1,
            perfect_quizzes=0,
        )
        counts = make_result()
        counts.one.return_value = (4, 1)
        mock_db.execute.side_effect = [make_result(scalar=stats), counts]

        insights = await service.get_learning_insights("user-1")

        assert insights.strengths == ["High average mastery across competencies"]
        assert insights.improvements == ["Review quiz materials before attempting"]

    @pytest.mark.asyncio
    async def test_course_analytics(self, service, mock_db, make_result) -> None:
        progress = [
            SimpleNamespace(user_id="u-1", status="completed", time_spent=600),
            SimpleNamespace(user_id="u-1", status="in-progress", time_spent=300),
            SimpleNamespace(user_id="u-2", status="not-started", time_spent=0),
        ]
        mock_db.execute.return_value = make_result(scalars=progress)
        start = datetime(2025, 3, 1, tzinfo=timezone.utc)
        end = datetime(2025, 3, 31, tzinfo=timezone.utc)

        report = await service.get_course_analytics("course-1", start, end)

        assert report.metrics.active_users == 2
        assert report.metrics.completion_rate == 50.0
        assert report.metrics.avg_time_per_lesson == 450.0
