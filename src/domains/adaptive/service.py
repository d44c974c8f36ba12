# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Adaptive learning service.

This module provides the AdaptiveService class for:
- Building a learner's path through a course
- Choosing the next lesson to study
- Course completion and recommended content
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.adaptive.path import (
    NO_LESSONS_AVAILABLE,
    PathItem,
    build_learning_path,
    choose_next_lesson,
    completion_summary,
    suggest_lessons,
)
from src.domains.bilingual import localize, transform_lesson
from src.domains.mastery import MasteryService, Recommendations, recommend_competencies
from src.domains.progress import ProgressService
from src.infrastructure.database.models import Course, CourseModule, Lesson
from src.models.adaptive import (
    CourseCompletionResponse,
    LearningPathItemResponse,
    LearningPathResponse,
    NextLessonResponse,
    PathCompetencyResponse,
    RecommendedContentResponse,
)
from src.models.course import LessonResponse
from src.models.mastery import CompetencyRecommendationResponse

logger = logging.getLogger(__name__)


class AdaptiveServiceError(Exception):
    """Base exception for adaptive service errors."""

    pass


class AdaptiveCourseNotFoundError(AdaptiveServiceError):
    """Raised when the course does not exist."""

    pass


class AdaptiveService:
    """Service combining progress and mastery into learning guidance.

    Attributes:
        db: Async database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        mastery: MasteryService | None = None,
        progress: ProgressService | None = None,
    ) -> None:
        self.db = db
        self._mastery = mastery or MasteryService(db)
        self._progress = progress or ProgressService(db)

    async def build_learning_path(
        self,
        user_id: str,
        course_id: str,
        language: str = "en",
    ) -> LearningPathResponse:
        """Lessons of a course with the learner's status, localised.

        Raises:
            AdaptiveCourseNotFoundError: If the course does not exist.
        """
        path, _ = await self._load_path(user_id, course_id)
        return LearningPathResponse(
            course_id=course_id,
            language=language,
            total=len(path),
            items=[_localize_item(item, language) for item in path],
        )

    async def get_next_lesson(
        self,
        user_id: str,
        course_id: str,
        language: str = "en",
    ) -> NextLessonResponse:
        """The lesson the learner should study next.

        Raises:
            AdaptiveCourseNotFoundError: If the course does not exist.
        """
        path, recommendations = await self._load_path(user_id, course_id)
        choice = choose_next_lesson(path, {r.competency_id for r in recommendations.next})
        if choice is None:
            return NextLessonResponse(message=NO_LESSONS_AVAILABLE)

        result = await self.db.execute(select(Lesson).where(Lesson.id == choice.item.lesson_id))
        lesson = result.scalar_one()
        logger.debug(
            "Next lesson for %s in %s: %s (%s)", user_id, course_id, lesson.id, choice.priority
        )
        return NextLessonResponse(
            lesson=transform_lesson(LessonResponse.model_validate(lesson).model_dump(), language),
            reason=choice.reason,
            priority=choice.priority,
            competencies_to_learn=choice.item.competency_ids,
        )

    async def get_course_completion(self, user_id: str, course_id: str) -> CourseCompletionResponse:
        """Lesson counts by path status."""
        path, _ = await self._load_path(user_id, course_id)
        return CourseCompletionResponse(course_id=course_id, **completion_summary(path))

    async def get_recommended_content(
        self,
        user_id: str,
        course_id: str,
        language: str = "en",
    ) -> RecommendedContentResponse:
        """Lessons to study next and completed lessons to review."""
        path, recommendations = await self._load_path(user_id, course_id)
        next_lessons, review_lessons = suggest_lessons(
            path,
            {r.competency_id for r in recommendations.next},
            {r.competency_id for r in recommendations.remediation},
        )
        return RecommendedContentResponse(
            course_id=course_id,
            language=language,
            next_lessons=[_localize_item(item, language) for item in next_lessons],
            review_lessons=[_localize_item(item, language) for item in review_lessons],
            next_competencies=[CompetencyRecommendationResponse(**vars(r)) for r in recommendations.next],
            remediation=[
                CompetencyRecommendationResponse(**vars(r)) for r in recommendations.remediation
            ],
        )

    async def _load_path(self, user_id: str, course_id: str) -> tuple[list[PathItem], Recommendations]:
        result = await self.db.execute(select(Course.id).where(Course.id == course_id))
        if result.scalar_one_or_none() is None:
            raise AdaptiveCourseNotFoundError(f"Course not found: {course_id}")

        result = await self.db.execute(
            select(Lesson, CourseModule.title)
            .join(CourseModule, CourseModule.id == Lesson.module_id)
            .where(Lesson.course_id == course_id, Lesson.published.is_(True))
            .order_by(CourseModule.order, Lesson.order)
        )
        rows = result.all()
        lessons = [lesson for lesson, _ in rows]
        module_titles = {lesson.module_id: title for lesson, title in rows}

        nodes = await self._mastery.load_course_competencies(course_id)
        mastery = await self._mastery.get_mastery_map(user_id)
        progress = await self._progress.get_status_map(user_id, course_id)

        path = build_learning_path(
            lessons,
            module_titles,
            {node.id: node for node in nodes},
            progress,
            mastery,
        )
        return path, recommend_competencies(nodes, mastery)


def _localize_item(item: PathItem, language: str) -> LearningPathItemResponse:
    data: dict[str, Any] = {
        "lesson_id": item.lesson_id,
        "lesson_type": item.lesson_type,
        "title": localize(item.title, language),
        "module_id": item.module_id,
        "module_title": localize(item.module_title, language),
        "order": item.order,
        "status": item.status,
        "reason": item.reason,
        "prerequisites_met": item.prerequisites_met,
        "estimated_minutes": item.estimated_minutes,
        "difficulty": item.difficulty,
        "competencies": [
            PathCompetencyResponse(
                competency_id=c.competency_id,
                code=c.code,
                name=localize(c.name, language),
                mastery=c.mastery,
                status=c.status,
            )
            for c in item.competencies
        ],
    }
    return LearningPathItemResponse(**data)
