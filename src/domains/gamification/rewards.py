# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""XP and point rewards.

Level thresholds grow quadratically: level n starts at (n-1)^2 * 100 XP,
so level 2 needs 100 XP, level 3 needs 400 XP and level 4 needs 900 XP.
"""

from dataclasses import dataclass, field
from typing import Any

XP_REWARDS = {
    "lesson_complete": 50,
    "quiz_pass": 100,
    "quiz_perfect": 150,
    "first_lesson": 25,
    "daily_login": 10,
    "streak_bonus_per_day": 5,
}

POINT_REWARDS = {
    "lesson_complete": 10,
    "quiz_pass": 20,
    "quiz_perfect": 30,
    "achievement_unlock": 50,
}

PASSING_PERCENTAGE = 70.0
PERFECT_PERCENTAGE = 100.0

ACHIEVEMENT_METRICS = (
    "xp",
    "lessons_completed",
    "quizzes_passed",
    "streak_days",
    "perfect_quizzes",
    "mastery_avg",
)

LEADERBOARD_METRICS = ("xp", "points", "streak")
LEADERBOARD_PERIODS = ("daily", "weekly", "monthly", "all-time")


@dataclass
class RewardOutcome:
    """What a learning event earned the user."""

    xp_earned: int = 0
    points_earned: int = 0
    leveled_up: bool = False
    level: int = 1
    streak: int = 0
    achievements: list[dict[str, Any]] = field(default_factory=list)


def quiz_rewards(percentage: float, passed: bool) -> tuple[int, int]:
    """XP and points for a graded quiz.

    A perfect score replaces the pass reward. Failing earns nothing.

    Returns:
        Tuple of (xp, points).
    """
    if percentage >= PERFECT_PERCENTAGE:
        return XP_REWARDS["quiz_perfect"], POINT_REWARDS["quiz_perfect"]
    if passed:
        return XP_REWARDS["quiz_pass"], POINT_REWARDS["quiz_pass"]
    return 0, 0


def lesson_rewards(first_lesson: bool) -> tuple[int, int]:
    """XP and points for completing a lesson.

    Returns:
        Tuple of (xp, points).
    """
    xp = XP_REWARDS["lesson_complete"]
    if first_lesson:
        xp += XP_REWARDS["first_lesson"]
    return xp, POINT_REWARDS["lesson_complete"]


def streak_bonus(streak_days: int) -> int:
    """Bonus XP for extending a streak past its first day."""
    if streak_days <= 1:
        return 0
    return streak_days * XP_REWARDS["streak_bonus_per_day"]


def criteria_met(criteria: dict[str, Any], metric_value: float) -> bool:
    """Check an achievement threshold against the user's metric value."""
    threshold = criteria.get("threshold")
    if threshold is None:
        return False
    return metric_value >= float(threshold)
