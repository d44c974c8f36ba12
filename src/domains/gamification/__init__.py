# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gamification domain package.

This package provides:
- XP and point reward rules
- Levels, streaks and achievements
- Period leaderboards
"""

from src.domains.gamification.rewards import (
    POINT_REWARDS,
    XP_REWARDS,
    RewardOutcome,
    criteria_met,
    lesson_rewards,
    quiz_rewards,
    streak_bonus,
)
from src.domains.gamification.service import (
    AchievementConflictError,
    AchievementNotFoundError,
    GamificationService,
    GamificationServiceError,
    outcome_to_dict,
)

__all__ = [
    "POINT_REWARDS",
    "XP_REWARDS",
    "RewardOutcome",
    "criteria_met",
    "lesson_rewards",
    "quiz_rewards",
    "streak_bonus",
    "GamificationService",
    "GamificationServiceError",
    "AchievementNotFoundError",
    "AchievementConflictError",
    "outcome_to_dict",
]
