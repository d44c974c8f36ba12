# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    auth: Registration, login, token refresh and logout.
    users: Own profile and device sessions.
    courses: Course catalogue, lessons and competencies (read).
    learning: Learning path, next lesson and lesson progress.
    quizzes: Taking and submitting quizzes.
    mastery: Competency mastery, skill graph and recommendations.
    gamification: Stats, achievements and leaderboards.
    notifications: Notification center and preferences.
    xapi: Learning Record Store.
    sync: Offline push / pull and conflict resolution.
    tutor: AI tutor conversations.
    analytics: Learner, course and system analytics.
    admin: Content authoring and platform administration.
"""

from fastapi import APIRouter

from src.api.v1 import (
    admin,
    analytics,
    auth,
    courses,
    gamification,
    learning,
    mastery,
    notifications,
    quizzes,
    sync,
    tutor,
    users,
    xapi,
)

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(courses.router, prefix="/courses", tags=["Courses"])
router.include_router(courses.lesson_router, prefix="/lessons", tags=["Courses"])
router.include_router(courses.competency_router, prefix="/competencies", tags=["Courses"])
router.include_router(learning.router, prefix="/learning", tags=["Learning"])
router.include_router(quizzes.router, prefix="/quizzes", tags=["Quizzes"])
router.include_router(mastery.router, prefix="/mastery", tags=["Mastery"])
router.include_router(gamification.router, prefix="/gamification", tags=["Gamification"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(xapi.router, prefix="/xapi", tags=["xAPI"])
router.include_router(sync.router, prefix="/sync", tags=["Sync"])
router.include_router(tutor.router, prefix="/tutor", tags=["AI Tutor"])
router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])

# Authoring and administration
router.include_router(admin.router, prefix="/admin", tags=["Admin"])

__all__ = ["router"]
