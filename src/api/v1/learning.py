# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Adaptive learning API endpoints.

This module provides the learner's path through a course and lesson
progress reporting:
- GET /courses/{course_id}/path - Learning path with lock states
- GET /courses/{course_id}/next - Lesson to study next
- GET /courses/{course_id}/completion - Completion counts
- GET /courses/{course_id}/recommended - Next and review lessons
- POST /progress - Report lesson progress
- POST /lessons/{lesson_id}/complete - Mark a lesson completed
- GET /lessons/{lesson_id}/progress - Progress on one lesson
- GET /activity - Recently accessed lessons

Text is localised to ``language``, defaulting to the user's preferred
language from the access token.
"""

import logging

from fastapi import APIRouter, HTTPException, Query, status

from src.api.dependencies import DB, AuthenticatedUser
from src.domains.adaptive import AdaptiveCourseNotFoundError, AdaptiveService
from src.domains.progress import ProgressLessonNotFoundError, ProgressNotFoundError, ProgressService
from src.models.adaptive import (
    CourseCompletionResponse,
    LearningPathResponse,
    LessonProgressResponse,
    LessonProgressUpdateRequest,
    NextLessonResponse,
    RecentActivityResponse,
    RecommendedContentResponse,
)
from src.models.common import LanguageCode

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Learning path
# =============================================================================


@router.get("/courses/{course_id}/path", response_model=LearningPathResponse, summary="Get learning path")
async def get_learning_path(
    course_id: str,
    db: DB,
    current_user: AuthenticatedUser,
    language: LanguageCode | None = None,
) -> LearningPathResponse:
    """Lessons in module then lesson order with their availability."""
    try:
        return await AdaptiveService(db).build_learning_path(
            current_user.id, course_id, language or current_user.language
        )
    except AdaptiveCourseNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/courses/{course_id}/next", response_model=NextLessonResponse, summary="Get next lesson")
async def get_next_lesson(
    course_id: str,
    db: DB,
    current_user: AuthenticatedUser,
    language: LanguageCode | None = None,
) -> NextLessonResponse:
    try:
        return await AdaptiveService(db).get_next_lesson(
            current_user.id, course_id, language or current_user.language
        )
    except AdaptiveCourseNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/courses/{course_id}/completion",
    response_model=CourseCompletionResponse,
    summary="Get course completion",
)
async def get_course_completion(
    course_id: str,
    db: DB,
    current_user: AuthenticatedUser,
) -> CourseCompletionResponse:
    try:
        return await AdaptiveService(db).get_course_completion(current_user.id, course_id)
    except AdaptiveCourseNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/courses/{course_id}/recommended",
    response_model=RecommendedContentResponse,
    summary="Get recommended content",
)
async def get_recommended_content(
    course_id: str,
    db: DB,
    current_user: AuthenticatedUser,
    language: LanguageCode | None = None,
) -> RecommendedContentResponse:
    try:
        return await AdaptiveService(db).get_recommended_content(
            current_user.id, course_id, language or current_user.language
        )
    except AdaptiveCourseNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# =============================================================================
# Lesson progress
# =============================================================================


@router.post("/progress", response_model=LessonProgressResponse, summary="Report lesson progress")
async def update_progress(
    data: LessonProgressUpdateRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> LessonProgressResponse:
    try:
        return await ProgressService(db).update_progress(current_user.id, data)
    except ProgressLessonNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "/lessons/{lesson_id}/complete",
    response_model=LessonProgressResponse,
    summary="Mark lesson completed",
)
async def complete_lesson(lesson_id: str, db: DB, current_user: AuthenticatedUser) -> LessonProgressResponse:
    try:
        return await ProgressService(db).complete_lesson(current_user.id, lesson_id)
    except ProgressLessonNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/lessons/{lesson_id}/progress",
    response_model=LessonProgressResponse,
    summary="Get lesson progress",
)
async def get_lesson_progress(lesson_id: str, db: DB, current_user: AuthenticatedUser) -> LessonProgressResponse:
    try:
        return await ProgressService(db).get_lesson_progress(current_user.id, lesson_id)
    except ProgressNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/activity", response_model=RecentActivityResponse, summary="Get recent activity")
async def get_recent_activity(
    db: DB,
    current_user: AuthenticatedUser,
    limit: int = Query(default=10, ge=1, le=50),
) -> RecentActivityResponse:
    activity = await ProgressService(db).get_recent_activity(current_user.id, limit)
    return RecentActivityResponse(activity=activity, total=len(activity))
