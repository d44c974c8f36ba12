# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gamification tables: per-user stats, achievements and leaderboards."""

import math
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.utils.datetime import day_start, days_between, utc_now


def level_for_xp(xp: int) -> int:
    """Level reached with the given XP: floor(sqrt(xp / 100)) + 1."""
    return int(math.floor(math.sqrt(max(0, xp) / 100))) + 1


def xp_for_level(level: int) -> int:
    """Total XP needed to reach the start of ``level``."""
    return (level - 1) ** 2 * 100


class UserGameStats(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """XP, level, points, streak and learning counters for a user."""

    __tablename__ = "user_game_stats"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    streak_current: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    streak_longest: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak_last_activity: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    lessons_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quizzes_passed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    perfect_quizzes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    study_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_mastery: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    @property
    def xp_for_next_level(self) -> int:
        """Total XP at which the next level starts."""
        return self.level**2 * 100

    @property
    def xp_progress(self) -> int:
        """XP earned since the start of the current level."""
        return self.xp - xp_for_level(self.level)

    def recalculate_level(self) -> bool:
        """Recompute the level from XP.

        Returns:
            True if the level went up.
        """
        new_level = level_for_xp(self.xp)
        leveled_up = new_level > (self.level or 1)
        self.level = new_level
        return leveled_up

    def update_streak(self, at: datetime | None = None) -> bool:
        """Register learning activity for the streak.

        Days are compared as UTC calendar dates.

        Args:
            at: Time of the activity (defaults to now).

        Returns:
            False when activity was already recorded today, True otherwise.
        """
        today = day_start(at or utc_now())

        if self.streak_last_activity is None:
            self.streak_current = 1
            self.streak_longest = max(self.streak_longest or 0, 1)
            self.streak_last_activity = today
            return True

        gap = days_between(self.streak_last_activity, today)
        if gap <= 0:
            return False

        if gap == 1:
            self.streak_current = (self.streak_current or 0) + 1
            self.streak_longest = max(self.streak_longest or 0, self.streak_current)
        else:
            self.streak_current = 1

        self.streak_last_activity = today
        return True

    def metric_value(self, metric: str) -> float:
        """Value of an achievement criteria metric for this user."""
        values = {
            "xp": self.xp,
            "lessons_completed": self.lessons_completed,
            "quizzes_passed": self.quizzes_passed,
            "streak_days": self.streak_current,
            "perfect_quizzes": self.perfect_quizzes,
            "mastery_avg": (self.average_mastery or 0.0) * 100,
        }
        return float(values.get(metric, 0) or 0)


class Achievement(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """An unlockable achievement.

    ``criteria`` is ``{"metric", "threshold", "timeframe"}`` and
    ``reward`` is ``{"xp", "points"}``.
    """

    __tablename__ = "achievements"

    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    achievement_type: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    description: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    icon: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    criteria: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    reward: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    tier: Mapped[str] = mapped_column(String(20), nullable=False, default="bronze")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class UserAchievement(UUIDPrimaryKeyMixin, Base):
    """An achievement earned by a user."""

    __tablename__ = "user_achievements"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    achievement_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("achievements.id", ondelete="CASCADE"),
        nullable=False,
    )
    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False, index=True
    )
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=100.0)

    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )


class LeaderboardEntry(UUIDPrimaryKeyMixin, Base):
    """Accumulated metric value for a user within a leaderboard period."""

    __tablename__ = "leaderboard_entries"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    metric: Mapped[str] = mapped_column(String(20), nullable=False)
    period: Mapped[str] = mapped_column(String(20), nullable=False)
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "metric", "period", "period_start", name="uq_leaderboard_entry"
        ),
    )
