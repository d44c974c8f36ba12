# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiz taking API endpoints.

This module provides endpoints for learners taking quizzes:
- GET / - List quizzes of a course or lesson
- POST /{quiz_id}/start - Get a prepared quiz (no answers)
- POST /{quiz_id}/submit - Submit responses for grading
- GET /{quiz_id}/statistics - Own best, last and average scores
- GET /{quiz_id}/attempts - Own attempt history

Submitting an attempt updates mastery for every competency the quiz
touches and awards XP, points and achievements.

Example:
    POST /api/v1/quizzes/{quiz_id}/submit
    {
        "responses": [
            {"item_id": "q1", "response": "b", "time_spent_ms": 42000},
            {"item_id": "q2", "response": ["a", "c"]}
        ],
        "device_id": "ios-7f3a"
    }
"""

import logging
from typing import NoReturn

from fastapi import APIRouter, HTTPException, Query, status

from src.api.dependencies import DB, AuthenticatedUser
from src.domains.quiz import (
    MaxAttemptsReachedError,
    QuizService,
    QuizServiceError,
    QuizValidationError,
)
from src.models.quiz import (
    PreparedQuizResponse,
    QuizAttemptResponse,
    QuizResponse,
    QuizResultResponse,
    QuizStatisticsResponse,
    QuizSubmitRequest,
    StartQuizRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def raise_quiz_error(error: QuizServiceError) -> NoReturn:
    """Translate a quiz service error to an HTTP error."""
    if isinstance(error, (MaxAttemptsReachedError, QuizValidationError)):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_404_NOT_FOUND
    raise HTTPException(status_code=code, detail=str(error))


@router.get("", response_model=list[QuizResponse], summary="List quizzes")
async def list_quizzes(
    db: DB,
    current_user: AuthenticatedUser,
    course_id: str | None = Query(default=None),
    lesson_id: str | None = Query(default=None),
) -> list[QuizResponse]:
    quizzes = await QuizService(db).list_quizzes(course_id=course_id, lesson_id=lesson_id)
    if current_user.is_author:
        return quizzes
    return [q for q in quizzes if q.published]


@router.post("/{quiz_id}/start", response_model=PreparedQuizResponse, summary="Start a quiz")
async def start_quiz(
    quiz_id: str,
    data: StartQuizRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> PreparedQuizResponse:
    """Select the items for an attempt, strip answers and localise text."""
    try:
        return await QuizService(db).start_quiz(current_user.id, quiz_id, data.language)
    except QuizServiceError as e:
        raise_quiz_error(e)


@router.post("/{quiz_id}/submit", response_model=QuizResultResponse, summary="Submit quiz responses")
async def submit_quiz(
    quiz_id: str,
    data: QuizSubmitRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> QuizResultResponse:
    """Grade an attempt.

    Raises:
        HTTPException: 404 for an unknown quiz, 400 once every attempt is used.
    """
    try:
        return await QuizService(db).grade_quiz(current_user.id, quiz_id, data)
    except QuizServiceError as e:
        raise_quiz_error(e)


@router.get("/{quiz_id}/statistics", response_model=QuizStatisticsResponse, summary="Own quiz statistics")
async def get_statistics(quiz_id: str, db: DB, current_user: AuthenticatedUser) -> QuizStatisticsResponse:
    return await QuizService(db).get_quiz_statistics(current_user.id, quiz_id)


@router.get("/{quiz_id}/attempts", response_model=list[QuizAttemptResponse], summary="Own attempts")
async def list_attempts(quiz_id: str, db: DB, current_user: AuthenticatedUser) -> list[QuizAttemptResponse]:
    return await QuizService(db).list_user_attempts(current_user.id, quiz_id)
