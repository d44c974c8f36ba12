# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rule-based learning insights and aggregate arithmetic."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

STRONG_MASTERY = 0.8
WEAK_MASTERY = 0.6
REVIEW_MASTERY = 0.7
HABIT_STREAK_DAYS = 7
EXCELLENT_PERFECT_QUIZZES = 5
PASS_RATE_TARGET = 70.0
STREAK_CHALLENGE_GAP = 3


@dataclass
class LearnerSnapshot:
    """The stats the insight rules look at."""

    average_mastery: float
    streak_current: int
    streak_longest: int
    lessons_completed: int
    quizzes_passed: int
    perfect_quizzes: int
    quiz_pass_rate: float


@dataclass
class Insights:
    strengths: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


def learning_insights(snapshot: LearnerSnapshot) -> Insights:
    """Strengths, areas to improve and next steps for a learner."""
    insights = Insights()

    if snapshot.average_mastery >= STRONG_MASTERY:
        insights.strengths.append("High average mastery across competencies")
    if snapshot.streak_current >= HABIT_STREAK_DAYS:
        insights.strengths.append("Consistent daily learning habit")
    if snapshot.perfect_quizzes >= EXCELLENT_PERFECT_QUIZZES:
        insights.strengths.append("Excellent quiz performance")

    if snapshot.average_mastery < WEAK_MASTERY:
        insights.improvements.append("Focus on improving competency mastery")
    if snapshot.streak_current == 0:
        insights.improvements.append("Build a daily learning streak")
    if snapshot.quiz_pass_rate < PASS_RATE_TARGET:
        insights.improvements.append("Review quiz materials before attempting")

    if snapshot.lessons_completed > 0 and snapshot.quizzes_passed == 0:
        insights.recommendations.append("Take quizzes to test your knowledge")
    if snapshot.streak_longest > snapshot.streak_current + STREAK_CHALLENGE_GAP:
        insights.recommendations.append("Try to beat your longest streak!")
    if snapshot.average_mastery < REVIEW_MASTERY:
        insights.recommendations.append("Review lessons with low mastery scores")

    return insights


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def summarize_user_days(days: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    """Totals over ``user_daily`` metric dicts.

    The quiz score is the unweighted mean of the daily means.
    """
    return {
        "total_sessions": sum(d.get("sessions_count", 0) for d in days),
        "total_lessons": sum(d.get("lessons_completed", 0) for d in days),
        "total_quizzes": sum(d.get("quizzes_taken", 0) for d in days),
        "avg_quiz_score": _mean([d.get("avg_quiz_score", 0.0) for d in days]),
        "total_achievements": sum(d.get("achievements_unlocked", 0) for d in days),
        "total_xp": sum(d.get("xp_earned", 0) for d in days),
    }


def summarize_system_hours(hours: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    """Totals over ``system_hourly`` metric dicts, error rate in percent."""
    api_calls = sum(h.get("api_calls", 0) for h in hours)
    errors = sum(h.get("errors", 0) for h in hours)
    return {
        "total_api_calls": api_calls,
        "total_errors": errors,
        "avg_response_time": _mean([h.get("avg_response_time", 0.0) for h in hours]),
        "error_rate": errors / api_calls * 100 if api_calls else 0.0,
    }
