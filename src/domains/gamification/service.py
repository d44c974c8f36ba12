# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gamification service.

This module provides the GamificationService class for:
- Rewarding lesson and quiz completion with XP and points
- Levels and daily streaks
- Achievement unlocking and achievement administration
- Period leaderboards and user ranks
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.gamification.rewards import (
    LEADERBOARD_PERIODS,
    POINT_REWARDS,
    XP_REWARDS,
    RewardOutcome,
    criteria_met,
    lesson_rewards,
    quiz_rewards,
    streak_bonus,
)
from src.infrastructure.database.models import (
    Achievement,
    LeaderboardEntry,
    LearnerMastery,
    User,
    UserAchievement,
    UserGameStats,
)
from src.infrastructure.notifications import NotificationService
from src.models.gamification import (
    AchievementCreateRequest,
    AchievementHolderResponse,
    AchievementResponse,
    AchievementUpdateRequest,
    EarnedAchievementResponse,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    UserRankResponse,
    UserStatsResponse,
)
from src.utils.datetime import period_start, utc_now

logger = logging.getLogger(__name__)

# Live stats columns ranked by the all-time leaderboard
_ALL_TIME_COLUMNS = {
    "xp": UserGameStats.xp,
    "points": UserGameStats.points,
    "streak": UserGameStats.streak_current,
}

# Users who appear on leaderboards and count towards ranks
_RANKED_USERS = (User.leaderboard_opt_in.is_(True), User.is_active.is_(True))


class GamificationServiceError(Exception):
    """Base exception for gamification service errors."""

    pass


class AchievementNotFoundError(GamificationServiceError):
    """Raised when an achievement is not found."""

    pass


class AchievementConflictError(GamificationServiceError):
    """Raised when an achievement key already exists."""

    pass


class GamificationService:
    """Service for XP, streaks, achievements and leaderboards.

    Notifications are best effort: a failure to notify is logged and
    never undoes a reward.

    Attributes:
        db: Async database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        notifications: NotificationService | None = None,
    ) -> None:
        self.db = db
        self._notifications = notifications or NotificationService(db)

    # =========================================================================
    # Stats
    # =========================================================================

    async def get_or_create_stats(self, user_id: str) -> UserGameStats:
        """Load a user's stats row, creating an empty one if needed."""
        result = await self.db.execute(select(UserGameStats).where(UserGameStats.user_id == user_id))
        stats = result.scalar_one_or_none()
        if stats is not None:
            return stats

        stats = UserGameStats(
            user_id=user_id,
            xp=0,
            level=1,
            points=0,
            streak_current=0,
            streak_longest=0,
            lessons_completed=0,
            quizzes_passed=0,
            perfect_quizzes=0,
            study_time_minutes=0,
            average_mastery=0.0,
        )
        self.db.add(stats)
        await self.db.flush()
        return stats

    async def get_user_stats(self, user_id: str) -> UserStatsResponse:
        """Gamification profile with level progress."""
        stats = await self.get_or_create_stats(user_id)
        count_result = await self.db.execute(
            select(func.count()).select_from(UserAchievement).where(UserAchievement.user_id == user_id)
        )
        return UserStatsResponse(
            user_id=user_id,
            xp=stats.xp,
            level=stats.level,
            xp_for_next_level=stats.xp_for_next_level,
            xp_progress=stats.xp_progress,
            points=stats.points,
            streak_current=stats.streak_current,
            streak_longest=stats.streak_longest,
            lessons_completed=stats.lessons_completed,
            quizzes_passed=stats.quizzes_passed,
            perfect_quizzes=stats.perfect_quizzes,
            study_time_minutes=stats.study_time_minutes,
            average_mastery=stats.average_mastery,
            achievements_count=count_result.scalar() or 0,
        )

    # =========================================================================
    # Learning events
    # =========================================================================

    async def handle_lesson_completion(
        self,
        user_id: str,
        lesson_id: str,
        time_spent_minutes: int = 0,
    ) -> RewardOutcome:
        """Reward a completed lesson.

        Args:
            user_id: Learner ID.
            lesson_id: Completed lesson.
            time_spent_minutes: Study time to add.

        Returns:
            What the completion earned.
        """
        stats = await self.get_or_create_stats(user_id)

        xp, points = lesson_rewards(first_lesson=stats.lessons_completed == 0)
        stats.lessons_completed += 1
        stats.study_time_minutes += max(0, time_spent_minutes)

        outcome = await self._reward(stats, xp, points)
        logger.info(
            "Lesson %s completed by %s: +%d XP, +%d points",
            lesson_id,
            user_id,
            outcome.xp_earned,
            outcome.points_earned,
        )
        return await self._finish(user_id, outcome)

    async def handle_quiz_completion(
        self,
        user_id: str,
        quiz_id: str,
        percentage: float,
        passed: bool,
    ) -> RewardOutcome:
        """Reward a graded quiz attempt.

        Args:
            user_id: Learner ID.
            quiz_id: Graded quiz.
            percentage: Score percentage.
            passed: Whether the attempt passed.

        Returns:
            What the attempt earned.
        """
        stats = await self.get_or_create_stats(user_id)

        xp, points = quiz_rewards(percentage, passed)
        if passed:
            stats.quizzes_passed += 1
        if percentage >= 100:
            stats.perfect_quizzes += 1

        outcome = await self._reward(stats, xp, points)
        logger.info(
            "Quiz %s graded for %s (%.1f%%): +%d XP",
            quiz_id,
            user_id,
            percentage,
            outcome.xp_earned,
        )
        return await self._finish(user_id, outcome)

    async def handle_daily_login(self, user_id: str) -> RewardOutcome:
        """Grant the daily login reward once per UTC day."""
        stats = await self.get_or_create_stats(user_id)
        last = stats.streak_last_activity
        if last is not None and period_start("daily", last) == period_start("daily"):
            return RewardOutcome(level=stats.level, streak=stats.streak_current)

        outcome = await self._reward(stats, XP_REWARDS["daily_login"], 0)
        return await self._finish(user_id, outcome)

    async def award_xp(self, user_id: str, amount: int, reason: str) -> RewardOutcome:
        """Grant XP outside the regular learning events.

        Args:
            user_id: Learner ID.
            amount: XP to add.
            reason: Logged reason.

        Returns:
            Outcome with the new level.
        """
        stats = await self.get_or_create_stats(user_id)
        stats.xp += max(0, amount)
        leveled_up = stats.recalculate_level()
        await self.record_leaderboard_activity(user_id, "xp", amount)
        await self.db.commit()

        logger.info("Awarded %d XP to %s (%s)", amount, user_id, reason)
        outcome = RewardOutcome(
            xp_earned=amount,
            leveled_up=leveled_up,
            level=stats.level,
            streak=stats.streak_current,
        )
        if leveled_up:
            await self._notify_level_up(user_id, stats.level)
        return outcome

    async def check_achievements(self, user_id: str) -> list[Achievement]:
        """Unlock every active achievement whose criteria are met.

        Refreshes the user's average mastery first so mastery
        achievements see the latest value. Rewards of unlocked
        achievements are applied immediately.

        Returns:
            Newly unlocked achievements.
        """
        stats = await self.get_or_create_stats(user_id)

        avg_result = await self.db.execute(
            select(func.avg(LearnerMastery.mastery)).where(LearnerMastery.user_id == user_id)
        )
        stats.average_mastery = float(avg_result.scalar() or 0.0)

        earned_result = await self.db.execute(
            select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
        )
        earned_ids = set(earned_result.scalars().all())

        active_result = await self.db.execute(select(Achievement).where(Achievement.is_active.is_(True)))
        candidates = [a for a in active_result.scalars().all() if a.id not in earned_ids]

        unlocked: list[Achievement] = []
        level_before = stats.level
        for achievement in candidates:
            criteria = achievement.criteria or {}
            if not criteria_met(criteria, stats.metric_value(criteria.get("metric", ""))):
                continue

            self.db.add(
                UserAchievement(
                    user_id=user_id,
                    achievement_id=achievement.id,
                    earned_at=utc_now(),
                    progress=100.0,
                )
            )
            reward = achievement.reward or {}
            stats.xp += int(reward.get("xp", 0))
            stats.points += int(reward.get("points", POINT_REWARDS["achievement_unlock"]))
            unlocked.append(achievement)

        stats.recalculate_level()
        await self.db.commit()

        for achievement in unlocked:
            logger.info("User %s unlocked achievement %s", user_id, achievement.key)
            try:
                await self._notifications.notify_achievement_earned(
                    user_id, achievement.name, achievement.reward, achievement.id
                )
            except Exception as e:
                logger.warning("Achievement notification failed for %s: %s", user_id, str(e))

        if stats.level > level_before:
            await self._notify_level_up(user_id, stats.level)

        return unlocked

    async def get_user_achievements(self, user_id: str) -> list[EarnedAchievementResponse]:
        """Achievements a user has earned, newest first."""
        result = await self.db.execute(
            select(Achievement, UserAchievement.earned_at)
            .join(UserAchievement, UserAchievement.achievement_id == Achievement.id)
            .where(UserAchievement.user_id == user_id)
            .order_by(UserAchievement.earned_at.desc())
        )
        return [
            EarnedAchievementResponse(
                achievement=AchievementResponse.model_validate(achievement),
                earned_at=earned_at,
            )
            for achievement, earned_at in result.all()
        ]

    # =========================================================================
    # Leaderboards
    # =========================================================================

    async def record_leaderboard_activity(
        self,
        user_id: str,
        metric: str,
        value: float,
        at: datetime | None = None,
    ) -> None:
        """Accumulate a metric into the user's period entries.

        XP and points add up within a period; streak keeps the highest
        value seen. The all-time board reads live stats and is not
        recorded.
        """
        if not value:
            return

        for period in LEADERBOARD_PERIODS:
            start = period_start(period, at)
            if start is None:
                continue

            result = await self.db.execute(
                select(LeaderboardEntry).where(
                    LeaderboardEntry.user_id == user_id,
                    LeaderboardEntry.metric == metric,
                    LeaderboardEntry.period == period,
                    LeaderboardEntry.period_start == start,
                )
            )
            entry = result.scalar_one_or_none()
            if entry is None:
                self.db.add(
                    LeaderboardEntry(
                        user_id=user_id,
                        metric=metric,
                        period=period,
                        period_start=start,
                        value=float(value),
                    )
                )
            elif metric == "streak":
                entry.value = max(entry.value, float(value))
            else:
                entry.value = entry.value + float(value)

    async def get_leaderboard(self, metric: str, period: str, limit: int = 10) -> LeaderboardResponse:
        """Top users for a metric and period.

        Only users who opted in to leaderboards are listed.
        """
        start = period_start(period)

        if start is None:
            column = _ALL_TIME_COLUMNS[metric]
            query = (
                select(UserGameStats.user_id, User.display_name, column)
                .join(User, User.id == UserGameStats.user_id)
                .where(*_RANKED_USERS)
                .order_by(column.desc())
                .limit(limit)
            )
        else:
            query = (
                select(LeaderboardEntry.user_id, User.display_name, LeaderboardEntry.value)
                .join(User, User.id == LeaderboardEntry.user_id)
                .where(
                    LeaderboardEntry.metric == metric,
                    LeaderboardEntry.period == period,
                    LeaderboardEntry.period_start == start,
                    *_RANKED_USERS,
                )
                .order_by(LeaderboardEntry.value.desc())
                .limit(limit)
            )

        result = await self.db.execute(query)
        entries = [
            LeaderboardEntryResponse(
                rank=index + 1,
                user_id=user_id,
                display_name=display_name,
                value=float(value or 0),
            )
            for index, (user_id, display_name, value) in enumerate(result.all())
        ]
        return LeaderboardResponse(metric=metric, period=period, period_start=start, entries=entries)

    async def get_user_rank(self, user_id: str, metric: str, period: str) -> UserRankResponse:
        """Rank of a user: one plus the users strictly ahead."""
        start = period_start(period)

        if start is None:
            column = _ALL_TIME_COLUMNS[metric]
            value_result = await self.db.execute(
                select(column).where(UserGameStats.user_id == user_id)
            )
            value = float(value_result.scalar() or 0)
            base = (
                select(func.count())
                .select_from(UserGameStats)
                .join(User, User.id == UserGameStats.user_id)
                .where(*_RANKED_USERS)
            )
            ahead_result = await self.db.execute(base.where(column > value))
            total_result = await self.db.execute(base)
        else:
            scope = (
                LeaderboardEntry.metric == metric,
                LeaderboardEntry.period == period,
                LeaderboardEntry.period_start == start,
            )
            value_result = await self.db.execute(
                select(LeaderboardEntry.value).where(LeaderboardEntry.user_id == user_id, *scope)
            )
            value = float(value_result.scalar() or 0)
            base = (
                select(func.count())
                .select_from(LeaderboardEntry)
                .join(User, User.id == LeaderboardEntry.user_id)
                .where(*scope, *_RANKED_USERS)
            )
            ahead_result = await self.db.execute(base.where(LeaderboardEntry.value > value))
            total_result = await self.db.execute(base)

        ahead = ahead_result.scalar() or 0
        return UserRankResponse(
            metric=metric,
            period=period,
            rank=ahead + 1,
            total=total_result.scalar() or 0,
            value=value,
        )

    # =========================================================================
    # Achievement administration
    # =========================================================================

    async def list_achievements(self, include_inactive: bool = False) -> list[AchievementResponse]:
        query = select(Achievement)
        if not include_inactive:
            query = query.where(Achievement.is_active.is_(True))
        result = await self.db.execute(query.order_by(Achievement.key))
        return [AchievementResponse.model_validate(a) for a in result.scalars().all()]

    async def create_achievement(self, request: AchievementCreateRequest) -> AchievementResponse:
        """Create an achievement.

        Raises:
            AchievementConflictError: If the key already exists.
        """
        existing = await self.db.execute(select(Achievement).where(Achievement.key == request.key))
        if existing.scalar_one_or_none():
            raise AchievementConflictError(f"Achievement key already exists: {request.key}")

        achievement = Achievement(
            key=request.key,
            achievement_type=request.achievement_type,
            name=request.name.model_dump(),
            description=request.description.model_dump(),
            icon=request.icon,
            criteria=request.criteria.model_dump(),
            reward=request.reward.model_dump(),
            tier=request.tier,
            is_active=request.is_active,
        )
        self.db.add(achievement)
        await self.db.commit()
        await self.db.refresh(achievement)

        logger.info("Created achievement: %s", achievement.key)
        return AchievementResponse.model_validate(achievement)

    async def update_achievement(
        self,
        achievement_id: str,
        request: AchievementUpdateRequest,
    ) -> AchievementResponse:
        """Apply a partial update to an achievement.

        Raises:
            AchievementNotFoundError: If it does not exist.
        """
        achievement = await self._get_achievement(achievement_id)

        if request.name is not None:
            achievement.name = {**achievement.name, **request.name.model_dump(exclude_unset=True)}
        if request.description is not None:
            achievement.description = {
                **achievement.description,
                **request.description.model_dump(exclude_unset=True),
            }
        if request.icon is not None:
            achievement.icon = request.icon
        if request.criteria is not None:
            achievement.criteria = request.criteria.model_dump()
        if request.reward is not None:
            achievement.reward = request.reward.model_dump()
        if request.tier is not None:
            achievement.tier = request.tier
        if request.is_active is not None:
            achievement.is_active = request.is_active

        await self.db.commit()
        await self.db.refresh(achievement)
        return AchievementResponse.model_validate(achievement)

    async def delete_achievement(self, achievement_id: str) -> None:
        """Delete an achievement and every user's copy of it.

        Raises:
            AchievementNotFoundError: If it does not exist.
        """
        achievement = await self._get_achievement(achievement_id)
        await self.db.delete(achievement)
        await self.db.commit()
        logger.info("Deleted achievement: %s", achievement.key)

    async def get_achievement_users(
        self,
        achievement_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AchievementHolderResponse]:
        """Users who earned an achievement, most recent first.

        Raises:
            AchievementNotFoundError: If it does not exist.
        """
        await self._get_achievement(achievement_id)
        result = await self.db.execute(
            select(UserAchievement.user_id, User.display_name, UserAchievement.earned_at)
            .join(User, User.id == UserAchievement.user_id)
            .where(UserAchievement.achievement_id == achievement_id)
            .order_by(UserAchievement.earned_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return [
            AchievementHolderResponse(user_id=user_id, display_name=name, earned_at=earned_at)
            for user_id, name, earned_at in result.all()
        ]

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _reward(self, stats: UserGameStats, xp: int, points: int) -> RewardOutcome:
        """Apply streak, XP and points to stats and the period boards."""
        streak_advanced = stats.update_streak()
        bonus = streak_bonus(stats.streak_current) if streak_advanced else 0

        total_xp = xp + bonus
        stats.xp += total_xp
        stats.points += points
        leveled_up = stats.recalculate_level()

        await self.record_leaderboard_activity(stats.user_id, "xp", total_xp)
        await self.record_leaderboard_activity(stats.user_id, "points", points)
        await self.record_leaderboard_activity(stats.user_id, "streak", stats.streak_current)
        await self.db.commit()

        return RewardOutcome(
            xp_earned=total_xp,
            points_earned=points,
            leveled_up=leveled_up,
            level=stats.level,
            streak=stats.streak_current,
        )

    async def _finish(self, user_id: str, outcome: RewardOutcome) -> RewardOutcome:
        if outcome.leveled_up:
            await self._notify_level_up(user_id, outcome.level)

        unlocked = await self.check_achievements(user_id)
        outcome.achievements = [
            {"id": a.id, "key": a.key, "name": a.name, "reward": a.reward} for a in unlocked
        ]
        return outcome

    async def _notify_level_up(self, user_id: str, level: int) -> None:
        try:
            await self._notifications.notify_level_up(user_id, level)
        except Exception as e:
            logger.warning("Level-up notification failed for %s: %s", user_id, str(e))

    async def _get_achievement(self, achievement_id: str) -> Achievement:
        result = await self.db.execute(select(Achievement).where(Achievement.id == achievement_id))
        achievement = result.scalar_one_or_none()
        if not achievement:
            raise AchievementNotFoundError(f"Achievement not found: {achievement_id}")
        return achievement


def outcome_to_dict(outcome: RewardOutcome) -> dict[str, Any]:
    """Serialisable view of a reward outcome."""
    return {
        "xp_earned": outcome.xp_earned,
        "points_earned": outcome.points_earned,
        "leveled_up": outcome.leveled_up,
        "level": outcome.level,
        "streak": outcome.streak,
        "achievements": outcome.achievements,
    }
