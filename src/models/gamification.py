# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gamification API models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.models.common import BilingualText, BilingualTextUpdate

LeaderboardMetric = Literal["xp", "points", "streak"]
LeaderboardPeriod = Literal["daily", "weekly", "monthly", "all-time"]
AchievementType = Literal["badge", "milestone", "streak", "mastery"]
AchievementTier = Literal["bronze", "silver", "gold", "platinum"]
AchievementMetric = Literal[
    "xp",
    "lessons_completed",
    "quizzes_passed",
    "streak_days",
    "perfect_quizzes",
    "mastery_avg",
]


class AchievementCriteria(BaseModel):
    metric: AchievementMetric
    threshold: float = Field(ge=0)
    timeframe: Literal["all-time", "daily", "weekly", "monthly"] | None = None


class AchievementReward(BaseModel):
    xp: int = Field(default=0, ge=0)
    points: int = Field(default=0, ge=0)


class AchievementCreateRequest(BaseModel):
    """Define a new achievement."""

    key: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9_]+$")
    achievement_type: AchievementType
    name: BilingualText
    description: BilingualText
    icon: str = Field(default="", max_length=200)
    criteria: AchievementCriteria
    reward: AchievementReward = Field(default_factory=AchievementReward)
    tier: AchievementTier = "bronze"
    is_active: bool = True


class AchievementUpdateRequest(BaseModel):
    name: BilingualTextUpdate | None = None
    description: BilingualTextUpdate | None = None
    icon: str | None = Field(default=None, max_length=200)
    criteria: AchievementCriteria | None = None
    reward: AchievementReward | None = None
    tier: AchievementTier | None = None
    is_active: bool | None = None


class AchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    key: str
    achievement_type: str
    name: dict[str, Any]
    description: dict[str, Any]
    icon: str
    criteria: dict[str, Any]
    reward: dict[str, Any]
    tier: str
    is_active: bool


class EarnedAchievementResponse(BaseModel):
    achievement: AchievementResponse
    earned_at: datetime


class AchievementHolderResponse(BaseModel):
    user_id: str
    display_name: str
    earned_at: datetime


class UserStatsResponse(BaseModel):
    """Gamification profile of a user."""

    user_id: str
    xp: int
    level: int
    xp_for_next_level: int
    xp_progress: int
    points: int
    streak_current: int
    streak_longest: int
    lessons_completed: int
    quizzes_passed: int
    perfect_quizzes: int
    study_time_minutes: int
    average_mastery: float
    achievements_count: int = 0


class RewardResponse(BaseModel):
    xp_earned: int
    points_earned: int
    leveled_up: bool
    level: int
    streak: int
    achievements: list[dict[str, Any]] = Field(default_factory=list)


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: str
    display_name: str
    value: float


class LeaderboardResponse(BaseModel):
    metric: LeaderboardMetric
    period: LeaderboardPeriod
    period_start: datetime | None
    entries: list[LeaderboardEntryResponse]


class UserRankResponse(BaseModel):
    metric: LeaderboardMetric
    period: LeaderboardPeriod
    rank: int | None
    total: int
    value: float
