# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lesson progress service.

This module provides the ProgressService class for:
- Recording lesson progress reports
- Completing lessons and rewarding the completion
- Reading progress for learning paths and recent activity
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.gamification import GamificationService
from src.infrastructure.database.models import Lesson, LearnerProgress
from src.models.adaptive import LessonProgressResponse, LessonProgressUpdateRequest
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class ProgressServiceError(Exception):
    """Base exception for progress service errors."""

    pass


class ProgressLessonNotFoundError(ProgressServiceError):
    """Raised when progress references an unknown lesson."""

    pass


class ProgressNotFoundError(ProgressServiceError):
    """Raised when a user has no progress on a lesson."""

    pass


class ProgressService:
    """Service for per-lesson learner progress.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession, gamification: GamificationService | None = None) -> None:
        self.db = db
        self._gamification = gamification or GamificationService(db)

    async def update_progress(
        self,
        user_id: str,
        request: LessonProgressUpdateRequest,
    ) -> LessonProgressResponse:
        """Merge a progress report into the user's lesson progress.

        Completion never decreases and time accumulates. A report that
        reaches 100 percent completes the lesson and grants the lesson
        rewards.

        Args:
            user_id: Learner ID.
            request: Progress report.

        Returns:
            Updated progress.

        Raises:
            ProgressLessonNotFoundError: If the lesson does not exist.
        """
        progress = await self._get_or_create(user_id, request.lesson_id)
        completed_now = progress.update_progress(request.completion_percentage, request.time_spent)

        await self.db.commit()
        await self.db.refresh(progress)

        logger.info(
            "Progress updated: user=%s lesson=%s status=%s completion=%.0f",
            user_id,
            request.lesson_id,
            progress.status,
            progress.completion_percentage,
        )

        if completed_now:
            await self._reward_completion(user_id, progress)
        return LessonProgressResponse.model_validate(progress)

    async def complete_lesson(self, user_id: str, lesson_id: str) -> LessonProgressResponse:
        """Mark a lesson completed.

        Rewards are granted only the first time the lesson completes.

        Raises:
            ProgressLessonNotFoundError: If the lesson does not exist.
        """
        progress = await self._get_or_create(user_id, lesson_id)
        already_completed = progress.status == "completed"
        progress.mark_completed()

        await self.db.commit()
        await self.db.refresh(progress)

        logger.info("Lesson %s marked completed by %s", lesson_id, user_id)
        if not already_completed:
            await self._reward_completion(user_id, progress)
        return LessonProgressResponse.model_validate(progress)

    async def get_lesson_progress(self, user_id: str, lesson_id: str) -> LessonProgressResponse:
        """Raises ProgressNotFoundError when the lesson was never opened."""
        progress = await self._get_progress(user_id, lesson_id)
        if progress is None:
            raise ProgressNotFoundError(f"No progress for lesson {lesson_id}")
        return LessonProgressResponse.model_validate(progress)

    async def get_status_map(self, user_id: str, course_id: str) -> dict[str, str]:
        """Progress status of each touched lesson in a course."""
        result = await self.db.execute(
            select(LearnerProgress.lesson_id, LearnerProgress.status).where(
                LearnerProgress.user_id == user_id,
                LearnerProgress.course_id == course_id,
            )
        )
        return {lesson_id: status for lesson_id, status in result.all()}

    async def get_recent_activity(self, user_id: str, limit: int = 10) -> list[LessonProgressResponse]:
        """Most recently accessed lessons, newest first."""
        result = await self.db.execute(
            select(LearnerProgress)
            .where(LearnerProgress.user_id == user_id)
            .order_by(LearnerProgress.last_accessed_at.desc())
            .limit(limit)
        )
        return [LessonProgressResponse.model_validate(p) for p in result.scalars().all()]

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _reward_completion(self, user_id: str, progress: LearnerProgress) -> None:
        try:
            await self._gamification.handle_lesson_completion(
                user_id,
                progress.lesson_id,
                time_spent_minutes=(progress.time_spent or 0) // 60,
            )
        except Exception as e:
            logger.error("Failed to reward lesson completion: %s", str(e), exc_info=True)

    async def _get_or_create(self, user_id: str, lesson_id: str) -> LearnerProgress:
        progress = await self._get_progress(user_id, lesson_id)
        if progress is not None:
            return progress

        result = await self.db.execute(select(Lesson).where(Lesson.id == lesson_id))
        lesson = result.scalar_one_or_none()
        if lesson is None:
            raise ProgressLessonNotFoundError(f"Lesson not found: {lesson_id}")

        progress = LearnerProgress(
            user_id=user_id,
            lesson_id=lesson_id,
            course_id=lesson.course_id,
            status="not-started",
            completion_percentage=0.0,
            time_spent=0,
            last_accessed_at=utc_now(),
        )
        self.db.add(progress)
        return progress

    async def _get_progress(self, user_id: str, lesson_id: str) -> LearnerProgress | None:
        result = await self.db.execute(
            select(LearnerProgress).where(
                LearnerProgress.user_id == user_id,
                LearnerProgress.lesson_id == lesson_id,
            )
        )
        return result.scalar_one_or_none()
