# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gamification API endpoints.

This module provides endpoints for XP, levels, streaks, achievements
and leaderboards:
- GET /users/{user_id}/stats - Level, XP, streak and counters
- GET /users/{user_id}/achievements - Earned achievements
- GET /achievements - Catalogue of active achievements
- GET /leaderboard - Ranked users for a metric and period
- GET /leaderboard/rank - The caller's own rank

Rewards themselves are granted as side effects of completing lessons,
passing quizzes and logging in.
"""

import logging

from fastapi import APIRouter, Query

from src.api.dependencies import DB, AuthenticatedUser, ensure_self_or_admin
from src.domains.gamification import GamificationService
from src.models.gamification import (
    AchievementResponse,
    EarnedAchievementResponse,
    LeaderboardMetric,
    LeaderboardPeriod,
    LeaderboardResponse,
    UserRankResponse,
    UserStatsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/users/{user_id}/stats", response_model=UserStatsResponse, summary="Get user stats")
async def get_user_stats(user_id: str, db: DB, current_user: AuthenticatedUser) -> UserStatsResponse:
    ensure_self_or_admin(current_user, user_id)
    return await GamificationService(db).get_user_stats(user_id)


@router.get(
    "/users/{user_id}/achievements",
    response_model=list[EarnedAchievementResponse],
    summary="Get earned achievements",
)
async def get_user_achievements(
    user_id: str,
    db: DB,
    current_user: AuthenticatedUser,
) -> list[EarnedAchievementResponse]:
    ensure_self_or_admin(current_user, user_id)
    return await GamificationService(db).get_user_achievements(user_id)


@router.get("/achievements", response_model=list[AchievementResponse], summary="List achievements")
async def list_achievements(db: DB, current_user: AuthenticatedUser) -> list[AchievementResponse]:
    return await GamificationService(db).list_achievements()


@router.get("/leaderboard", response_model=LeaderboardResponse, summary="Get leaderboard")
async def get_leaderboard(
    db: DB,
    current_user: AuthenticatedUser,
    metric: LeaderboardMetric = "xp",
    period: LeaderboardPeriod = "weekly",
    limit: int = Query(default=10, ge=1, le=100),
) -> LeaderboardResponse:
    """Top users by metric.

    Only users who opted in to leaderboards are ranked. Weeks start on
    Sunday (UTC).
    """
    return await GamificationService(db).get_leaderboard(metric, period, limit)


@router.get("/leaderboard/rank", response_model=UserRankResponse, summary="Get own rank")
async def get_own_rank(
    db: DB,
    current_user: AuthenticatedUser,
    metric: LeaderboardMetric = "xp",
    period: LeaderboardPeriod = "weekly",
) -> UserRankResponse:
    return await GamificationService(db).get_user_rank(current_user.id, metric, period)
