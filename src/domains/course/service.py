# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course content service.

This module provides the CourseService class for:
- Course, module, lesson and competency CRUD
- Publish / unpublish workflow with content checks
- Prerequisite DAG enforcement for lessons and competencies
- Offline course download bundles
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.course.graph import prerequisite_closure, validate_dag
from src.infrastructure.database.models import Competency, Course, CourseModule, Lesson
from src.models.common import BilingualTextUpdate
from src.models.course import (
    CompetencyCreateRequest,
    CompetencyResponse,
    CompetencyUpdateRequest,
    CourseCreateRequest,
    CourseDownloadResponse,
    CourseResponse,
    CourseUpdateRequest,
    LessonCreateRequest,
    LessonResponse,
    LessonUpdateRequest,
    ModuleCreateRequest,
    ModuleResponse,
    ModuleUpdateRequest,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class CourseServiceError(Exception):
    """Base exception for course service errors."""

    pass


class CourseNotFoundError(CourseServiceError):
    """Raised when a course is not found."""

    pass


class CourseModuleNotFoundError(CourseServiceError):
    """Raised when a module is not found."""

    pass


class LessonNotFoundError(CourseServiceError):
    """Raised when a lesson is not found."""

    pass


class CompetencyNotFoundError(CourseServiceError):
    """Raised when a competency (or a referenced prerequisite) is not found."""

    pass


class CourseConflictError(CourseServiceError):
    """Raised when a slug or competency code is already taken."""

    pass


class CourseValidationError(CourseServiceError):
    """Raised when content fails a publish or structure check."""

    pass


class PrerequisiteCycleError(CourseValidationError):
    """Raised when prerequisites would form a cycle."""

    pass


def _merge_bilingual(current: dict[str, Any] | None, update: BilingualTextUpdate | None) -> dict[str, Any]:
    merged = dict(current or {})
    if update is not None:
        merged.update(update.model_dump(exclude_unset=True))
    return merged


def _bilingual(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    return value.model_dump()


class CourseService:
    """Service for authoring and reading course content.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # =========================================================================
    # Courses
    # =========================================================================

    async def create_course(
        self,
        request: CourseCreateRequest,
        created_by: str | None = None,
    ) -> CourseResponse:
        """Create a draft course.

        Raises:
            CourseConflictError: If the slug is taken.
        """
        existing = await self.db.execute(select(Course).where(Course.slug == request.slug))
        if existing.scalar_one_or_none():
            raise CourseConflictError(f"Course slug already exists: {request.slug}")

        course = Course(
            slug=request.slug,
            title=_bilingual(request.title),
            description=_bilingual(request.description),
            difficulty=request.difficulty,
            estimated_hours=request.estimated_hours,
            tags=list(request.tags),
            published=False,
            created_by=created_by,
        )

        self.db.add(course)
        await self.db.commit()
        await self.db.refresh(course)

        logger.info("Created course: %s (%s)", course.slug, course.id)
        return CourseResponse.model_validate(course)

    async def list_courses(
        self,
        published_only: bool = True,
        tags: list[str] | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[CourseResponse], int]:
        """List courses, newest first.

        Args:
            published_only: Hide drafts.
            tags: Only courses carrying any of these tags.
            limit: Page size.
            offset: Page offset.

        Returns:
            Tuple of (courses, total count).
        """
        query = select(Course)
        if published_only:
            query = query.where(Course.published.is_(True))
        if tags:
            query = query.where(Course.tags.has_any(tags))

        count_result = await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar() or 0

        result = await self.db.execute(
            query.order_by(Course.created_at.desc()).limit(limit).offset(offset)
        )
        courses = result.scalars().all()
        return [CourseResponse.model_validate(c) for c in courses], total

    async def get_course(self, course_id: str, published_only: bool = False) -> CourseResponse:
        """Get a course by id.

        Raises:
            CourseNotFoundError: If missing, or a draft when published_only.
        """
        course = await self._get_course(course_id)
        if published_only and not course.published:
            raise CourseNotFoundError(f"Course not found: {course_id}")
        return CourseResponse.model_validate(course)

    async def get_course_by_slug(self, slug: str) -> CourseResponse:
        """Get a course by its slug.

        Raises:
            CourseNotFoundError: If no course has this slug.
        """
        result = await self.db.execute(select(Course).where(Course.slug == slug.lower()))
        course = result.scalar_one_or_none()
        if not course:
            raise CourseNotFoundError(f"Course not found: {slug}")
        return CourseResponse.model_validate(course)

    async def update_course(self, course_id: str, request: CourseUpdateRequest) -> CourseResponse:
        """Apply a partial update to a course.

        Raises:
            CourseNotFoundError: If the course does not exist.
            CourseConflictError: If the new slug is taken.
        """
        course = await self._get_course(course_id)

        if request.slug and request.slug != course.slug:
            existing = await self.db.execute(select(Course).where(Course.slug == request.slug))
            if existing.scalar_one_or_none():
                raise CourseConflictError(f"Course slug already exists: {request.slug}")
            course.slug = request.slug

        if request.title is not None:
            course.title = _merge_bilingual(course.title, request.title)
        if request.description is not None:
            course.description = _merge_bilingual(course.description, request.description)
        if request.difficulty is not None:
            course.difficulty = request.difficulty
        if request.estimated_hours is not None:
            course.estimated_hours = request.estimated_hours
        if request.tags is not None:
            course.tags = list(request.tags)

        await self.db.commit()
        await self.db.refresh(course)

        logger.info("Updated course: %s", course.id)
        return CourseResponse.model_validate(course)

    async def delete_course(self, course_id: str) -> None:
        """Delete a course with its modules, lessons and competencies.

        Raises:
            CourseNotFoundError: If the course does not exist.
        """
        course = await self._get_course(course_id)

        await self.db.execute(delete(Lesson).where(Lesson.course_id == course_id))
        await self.db.execute(delete(CourseModule).where(CourseModule.course_id == course_id))
        await self.db.execute(delete(Competency).where(Competency.course_id == course_id))
        await self.db.delete(course)
        await self.db.commit()

        logger.info("Deleted course and its content: %s", course_id)

    async def publish_course(self, course_id: str) -> CourseResponse:
        """Publish a draft course.

        A course can be published once it has at least one module, at
        least one competency, and every lesson maps to a competency.

        Raises:
            CourseNotFoundError: If the course does not exist.
            CourseValidationError: If a publish check fails.
        """
        course = await self._get_course(course_id)
        if course.published:
            raise CourseValidationError("Course is already published")

        if not course.title.get("en"):
            logger.warning("Publishing course %s without English title", course_id)

        module_count = await self._count(CourseModule, CourseModule.course_id == course_id)
        if module_count == 0:
            raise CourseValidationError("Cannot publish course without modules")

        competency_count = await self._count(Competency, Competency.course_id == course_id)
        if competency_count == 0:
            raise CourseValidationError("Cannot publish course without competencies")

        result = await self.db.execute(select(Lesson).where(Lesson.course_id == course_id))
        for lesson in result.scalars().all():
            if not lesson.competencies:
                raise CourseValidationError(f"Lesson {lesson.id} has no competencies")

        course.published = True
        await self.db.commit()
        await self.db.refresh(course)

        logger.info("Published course: %s", course_id)
        return CourseResponse.model_validate(course)

    async def unpublish_course(self, course_id: str) -> CourseResponse:
        """Return a published course to draft.

        Raises:
            CourseNotFoundError: If the course does not exist.
            CourseValidationError: If the course is not published.
        """
        course = await self._get_course(course_id)
        if not course.published:
            raise CourseValidationError("Course is not published")

        course.published = False
        await self.db.commit()
        await self.db.refresh(course)

        logger.info("Unpublished course: %s", course_id)
        return CourseResponse.model_validate(course)

    async def download_course(self, course_id: str) -> CourseDownloadResponse:
        """Bundle a published course for offline use.

        Raises:
            CourseNotFoundError: If the course is missing or a draft.
        """
        course = await self._get_course(course_id)
        if not course.published:
            raise CourseNotFoundError(f"Course not found: {course_id}")

        modules = await self.list_modules(course_id)
        lessons = await self.list_course_lessons(course_id, published_only=True)
        competencies = await self.list_competencies(course_id)

        logger.info("Prepared offline bundle for course %s", course_id)
        return CourseDownloadResponse(
            course=CourseResponse.model_validate(course),
            modules=modules,
            lessons=lessons,
            competencies=competencies,
            downloaded_at=utc_now(),
        )

    # =========================================================================
    # Modules
    # =========================================================================

    async def create_module(self, request: ModuleCreateRequest) -> ModuleResponse:
        """Create a module in an existing course.

        Raises:
            CourseNotFoundError: If the course does not exist.
        """
        await self._get_course(request.course_id)

        module = CourseModule(
            course_id=request.course_id,
            title=_bilingual(request.title),
            description=_bilingual(request.description),
            order=request.order,
        )
        self.db.add(module)
        await self.db.commit()
        await self.db.refresh(module)

        logger.info("Created module %s in course %s", module.id, request.course_id)
        return ModuleResponse.model_validate(module)

    async def list_modules(self, course_id: str) -> list[ModuleResponse]:
        """Modules of a course in display order."""
        result = await self.db.execute(
            select(CourseModule)
            .where(CourseModule.course_id == course_id)
            .order_by(CourseModule.order)
        )
        return [ModuleResponse.model_validate(m) for m in result.scalars().all()]

    async def update_module(self, module_id: str, request: ModuleUpdateRequest) -> ModuleResponse:
        """Apply a partial update to a module.

        Raises:
            CourseModuleNotFoundError: If the module does not exist.
        """
        module = await self._get_module(module_id)

        if request.title is not None:
            module.title = _merge_bilingual(module.title, request.title)
        if request.description is not None:
            module.description = _merge_bilingual(module.description, request.description)
        if request.order is not None:
            module.order = request.order

        await self.db.commit()
        await self.db.refresh(module)
        return ModuleResponse.model_validate(module)

    async def delete_module(self, module_id: str) -> None:
        """Delete a module and its lessons.

        Raises:
            CourseModuleNotFoundError: If the module does not exist.
        """
        module = await self._get_module(module_id)

        await self.db.execute(delete(Lesson).where(Lesson.module_id == module_id))
        await self.db.delete(module)
        await self.db.commit()

        logger.info("Deleted module and its lessons: %s", module_id)

    # =========================================================================
    # Lessons
    # =========================================================================

    async def create_lesson(self, request: LessonCreateRequest) -> LessonResponse:
        """Create a lesson in an existing module.

        Raises:
            CourseModuleNotFoundError: If the module does not exist.
            CompetencyNotFoundError: If a referenced competency is missing.
            LessonNotFoundError: If a prerequisite lesson is missing.
        """
        module = await self._get_module(request.module_id)
        await self._ensure_competencies_exist(request.competencies)
        await self._ensure_lessons_exist(request.prerequisites)

        lesson = Lesson(
            module_id=module.id,
            course_id=module.course_id,
            title=_bilingual(request.title),
            lesson_type=request.lesson_type.value,
            order=request.order,
            content=request.content.model_dump(exclude_none=True),
            difficulty=request.difficulty,
            estimated_minutes=request.estimated_minutes,
            prerequisites=list(request.prerequisites),
            tags=list(request.tags),
            learning_objectives=list(request.learning_objectives),
            accessibility=dict(request.accessibility),
            competencies=list(request.competencies),
            published=False,
        )
        self.db.add(lesson)
        await self.db.commit()
        await self.db.refresh(lesson)

        logger.info("Created lesson %s in module %s", lesson.id, module.id)
        return LessonResponse.model_validate(lesson)

    async def get_lesson(self, lesson_id: str, published_only: bool = False) -> LessonResponse:
        """Get a lesson by id.

        Raises:
            LessonNotFoundError: If missing, or a draft when published_only.
        """
        lesson = await self._get_lesson(lesson_id)
        if published_only and not lesson.published:
            raise LessonNotFoundError(f"Lesson not found: {lesson_id}")
        return LessonResponse.model_validate(lesson)

    async def list_lessons(self, module_id: str, published_only: bool = True) -> list[LessonResponse]:
        """Lessons of a module in display order."""
        query = select(Lesson).where(Lesson.module_id == module_id)
        if published_only:
            query = query.where(Lesson.published.is_(True))
        result = await self.db.execute(query.order_by(Lesson.order))
        return [LessonResponse.model_validate(lesson) for lesson in result.scalars().all()]

    async def list_course_lessons(self, course_id: str, published_only: bool = True) -> list[LessonResponse]:
        """All lessons of a course ordered by module order then lesson order."""
        query = (
            select(Lesson)
            .join(CourseModule, CourseModule.id == Lesson.module_id)
            .where(Lesson.course_id == course_id)
        )
        if published_only:
            query = query.where(Lesson.published.is_(True))
        result = await self.db.execute(query.order_by(CourseModule.order, Lesson.order))
        return [LessonResponse.model_validate(lesson) for lesson in result.scalars().all()]

    async def update_lesson(self, lesson_id: str, request: LessonUpdateRequest) -> LessonResponse:
        """Apply a partial update to a lesson.

        Raises:
            LessonNotFoundError: If the lesson or a prerequisite is missing.
            CompetencyNotFoundError: If a referenced competency is missing.
            PrerequisiteCycleError: If new prerequisites form a cycle.
        """
        lesson = await self._get_lesson(lesson_id)

        if request.prerequisites is not None:
            await self._ensure_lessons_exist(request.prerequisites)
            graph = await self._load_graph(Lesson, request.prerequisites)
            graph[lesson_id] = list(request.prerequisites)
            if not validate_dag(graph, lesson_id):
                raise PrerequisiteCycleError("Circular lesson prerequisite detected")
            lesson.prerequisites = list(request.prerequisites)

        if request.competencies is not None:
            await self._ensure_competencies_exist(request.competencies)
            lesson.competencies = list(request.competencies)

        if request.title is not None:
            lesson.title = _merge_bilingual(lesson.title, request.title)
        if request.content is not None:
            lesson.content = {**(lesson.content or {}), **request.content.model_dump(exclude_none=True)}

        for field_name in (
            "order",
            "difficulty",
            "estimated_minutes",
            "tags",
            "learning_objectives",
            "accessibility",
        ):
            value = getattr(request, field_name)
            if value is not None:
                setattr(lesson, field_name, value)
        if request.lesson_type is not None:
            lesson.lesson_type = request.lesson_type.value

        await self.db.commit()
        await self.db.refresh(lesson)

        logger.info("Updated lesson: %s", lesson_id)
        return LessonResponse.model_validate(lesson)

    async def delete_lesson(self, lesson_id: str) -> None:
        """Delete a lesson.

        Raises:
            LessonNotFoundError: If the lesson does not exist.
        """
        lesson = await self._get_lesson(lesson_id)
        await self.db.delete(lesson)
        await self.db.commit()
        logger.info("Deleted lesson: %s", lesson_id)

    async def publish_lesson(self, lesson_id: str) -> LessonResponse:
        """Publish a lesson.

        Raises:
            LessonNotFoundError: If the lesson does not exist.
            CourseValidationError: If already published, without
                competencies, or without Thai content.
        """
        lesson = await self._get_lesson(lesson_id)

        if lesson.published:
            raise CourseValidationError("Lesson is already published")
        if not lesson.competencies:
            raise CourseValidationError("Cannot publish lesson without competencies")
        if not (lesson.content or {}).get("th"):
            raise CourseValidationError("Lesson must have Thai content")

        lesson.published = True
        await self.db.commit()
        await self.db.refresh(lesson)

        logger.info("Published lesson: %s", lesson_id)
        return LessonResponse.model_validate(lesson)

    # =========================================================================
    # Competencies
    # =========================================================================

    async def create_competency(self, request: CompetencyCreateRequest) -> CompetencyResponse:
        """Create a competency node.

        Raises:
            CourseNotFoundError: If the course does not exist.
            CourseConflictError: If the code is taken.
            CompetencyNotFoundError: If a prerequisite is missing.
        """
        await self._get_course(request.course_id)

        existing = await self.db.execute(select(Competency).where(Competency.code == request.code))
        if existing.scalar_one_or_none():
            raise CourseConflictError(f"Competency code already exists: {request.code}")

        await self._ensure_competencies_exist(request.prerequisites)

        # A brand new node cannot close a cycle, only edits can
        competency = Competency(
            code=request.code,
            course_id=request.course_id,
            name=_bilingual(request.name),
            description=_bilingual(request.description),
            prerequisites=list(request.prerequisites),
            domain=request.domain,
            difficulty=request.difficulty,
        )
        self.db.add(competency)
        await self.db.commit()
        await self.db.refresh(competency)

        logger.info("Created competency %s (%s)", competency.code, competency.id)
        return CompetencyResponse.model_validate(competency)

    async def get_competency(self, competency_id: str) -> CompetencyResponse:
        """Get a competency by id.

        Raises:
            CompetencyNotFoundError: If missing.
        """
        return CompetencyResponse.model_validate(await self._get_competency(competency_id))

    async def list_competencies(self, course_id: str) -> list[CompetencyResponse]:
        """Competencies of a course ordered by code."""
        result = await self.db.execute(
            select(Competency).where(Competency.course_id == course_id).order_by(Competency.code)
        )
        return [CompetencyResponse.model_validate(c) for c in result.scalars().all()]

    async def update_competency(
        self,
        competency_id: str,
        request: CompetencyUpdateRequest,
    ) -> CompetencyResponse:
        """Apply a partial update to a competency.

        Raises:
            CompetencyNotFoundError: If it or a prerequisite is missing.
            PrerequisiteCycleError: If new prerequisites form a cycle.
        """
        competency = await self._get_competency(competency_id)

        if request.prerequisites is not None:
            await self._ensure_competencies_exist(request.prerequisites)
            graph = await self._load_graph(Competency, request.prerequisites)
            graph[competency_id] = list(request.prerequisites)
            if not validate_dag(graph, competency_id):
                raise PrerequisiteCycleError("Circular competency dependency detected")
            competency.prerequisites = list(request.prerequisites)

        if request.name is not None:
            competency.name = _merge_bilingual(competency.name, request.name)
        if request.description is not None:
            competency.description = _merge_bilingual(competency.description, request.description)
        if request.domain is not None:
            competency.domain = request.domain
        if request.difficulty is not None:
            competency.difficulty = request.difficulty

        await self.db.commit()
        await self.db.refresh(competency)

        logger.info("Updated competency: %s", competency_id)
        return CompetencyResponse.model_validate(competency)

    async def get_prerequisites_tree(self, competency_id: str) -> list[CompetencyResponse]:
        """All transitive prerequisites of a competency.

        Raises:
            CompetencyNotFoundError: If the competency does not exist.
        """
        competency = await self._get_competency(competency_id)
        graph = await self._load_graph(Competency, competency.prerequisites)
        graph[competency_id] = list(competency.prerequisites)

        closure = prerequisite_closure(graph, competency_id)
        if not closure:
            return []

        result = await self.db.execute(select(Competency).where(Competency.id.in_(closure)))
        by_id = {c.id: c for c in result.scalars().all()}
        return [CompetencyResponse.model_validate(by_id[cid]) for cid in closure if cid in by_id]

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _load_graph(self, model: type, seed_ids: list[str]) -> dict[str, list[str]]:
        """Load the prerequisite graph reachable from ``seed_ids``.

        Fetches one layer per query until no new ids appear.
        """
        graph: dict[str, list[str]] = {}
        frontier = {i for i in seed_ids}

        while frontier:
            result = await self.db.execute(
                select(model.id, model.prerequisites).where(model.id.in_(frontier))
            )
            rows = result.all()
            next_frontier: set[str] = set()
            for node_id, prerequisites in rows:
                graph[node_id] = list(prerequisites or [])
                next_frontier.update(p for p in graph[node_id] if p not in graph)
            frontier = next_frontier - set(graph)
            if not rows:
                break

        return graph

    async def _ensure_competencies_exist(self, ids: list[str]) -> None:
        if not ids:
            return
        found = await self._count(Competency, Competency.id.in_(ids))
        if found != len(set(ids)):
            raise CompetencyNotFoundError("One or more competencies not found")

    async def _ensure_lessons_exist(self, ids: list[str]) -> None:
        if not ids:
            return
        found = await self._count(Lesson, Lesson.id.in_(ids))
        if found != len(set(ids)):
            raise LessonNotFoundError("One or more prerequisite lessons not found")

    async def _count(self, model: type, *criteria: Any) -> int:
        result = await self.db.execute(select(func.count()).select_from(model).where(*criteria))
        return result.scalar() or 0

    async def _get_course(self, course_id: str) -> Course:
        result = await self.db.execute(select(Course).where(Course.id == course_id))
        course = result.scalar_one_or_none()
        if not course:
            raise CourseNotFoundError(f"Course not found: {course_id}")
        return course

    async def _get_module(self, module_id: str) -> CourseModule:
        result = await self.db.execute(select(CourseModule).where(CourseModule.id == module_id))
        module = result.scalar_one_or_none()
        if not module:
            raise CourseModuleNotFoundError(f"Module not found: {module_id}")
        return module

    async def _get_lesson(self, lesson_id: str) -> Lesson:
        result = await self.db.execute(select(Lesson).where(Lesson.id == lesson_id))
        lesson = result.scalar_one_or_none()
        if not lesson:
            raise LessonNotFoundError(f"Lesson not found: {lesson_id}")
        return lesson

    async def _get_competency(self, competency_id: str) -> Competency:
        result = await self.db.execute(select(Competency).where(Competency.id == competency_id))
        competency = result.scalar_one_or_none()
        if not competency:
            raise CompetencyNotFoundError(f"Competency not found: {competency_id}")
        return competency
