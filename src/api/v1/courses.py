# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course catalogue API endpoints.

Read-only access to course content for learners:
- GET /courses - List published courses (filter by tag)
- GET /courses/slug/{slug} - Look a course up by slug
- GET /courses/{course_id} - Course details
- GET /courses/{course_id}/modules - Modules in order
- GET /courses/{course_id}/lessons - Lessons in path order
- GET /courses/{course_id}/competencies - Skill graph nodes
- GET /courses/{course_id}/download - Offline bundle
- GET /lessons/{lesson_id} - Lesson details
- GET /competencies/{competency_id}/prerequisites - Transitive prerequisites

Passing ``language`` returns the localised form of the resource, with
fallback markers where a translation is missing. Drafts are only
visible to authors and admins.
"""

import logging
from typing import Any, NoReturn

from fastapi import APIRouter, HTTPException, Query, status

from src.api.dependencies import DB, AuthenticatedUser
from src.domains.bilingual import (
    transform_competency,
    transform_course,
    transform_lesson,
    transform_module,
)
from src.domains.course import (
    CourseConflictError,
    CourseService,
    CourseServiceError,
    CourseValidationError,
)
from src.models.common import LanguageCode
from src.models.course import (
    CompetencyResponse,
    CourseDownloadResponse,
    CourseListResponse,
    CourseResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()
lesson_router = APIRouter()
competency_router = APIRouter()


def raise_course_error(error: CourseServiceError) -> NoReturn:
    """Translate a course service error to an HTTP error."""
    if isinstance(error, CourseValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, CourseConflictError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_404_NOT_FOUND
    raise HTTPException(status_code=code, detail=str(error))


# =============================================================================
# Courses
# =============================================================================


@router.get("", response_model=CourseListResponse, summary="List courses")
async def list_courses(
    db: DB,
    current_user: AuthenticatedUser,
    tag: list[str] | None = Query(default=None),
    include_drafts: bool = False,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> CourseListResponse:
    """List courses, newest first.

    Drafts are included only when an author or admin asks for them.
    """
    published_only = not (include_drafts and current_user.is_author)
    courses, total = await CourseService(db).list_courses(
        published_only=published_only,
        tags=tag,
        limit=limit,
        offset=offset,
    )
    return CourseListResponse(courses=courses, total=total)


@router.get("/slug/{slug}", response_model=CourseResponse, summary="Get course by slug")
async def get_course_by_slug(slug: str, db: DB, current_user: AuthenticatedUser) -> CourseResponse:
    try:
        course = await CourseService(db).get_course_by_slug(slug)
    except CourseServiceError as e:
        raise_course_error(e)

    if not course.published and not current_user.is_author:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Course not found: {slug}")
    return course


@router.get("/{course_id}", summary="Get course")
async def get_course(
    course_id: str,
    db: DB,
    current_user: AuthenticatedUser,
    language: LanguageCode | None = None,
) -> dict[str, Any]:
    try:
        course = await CourseService(db).get_course(course_id, published_only=not current_user.is_author)
    except CourseServiceError as e:
        raise_course_error(e)

    data = course.model_dump(mode="json")
    return transform_course(data, language) if language else data


@router.get("/{course_id}/modules", summary="List course modules")
async def list_modules(
    course_id: str,
    db: DB,
    current_user: AuthenticatedUser,
    language: LanguageCode | None = None,
) -> list[dict[str, Any]]:
    service = CourseService(db)
    try:
        await service.get_course(course_id, published_only=not current_user.is_author)
    except CourseServiceError as e:
        raise_course_error(e)

    modules = [m.model_dump(mode="json") for m in await service.list_modules(course_id)]
    if language:
        return [transform_module(m, language) for m in modules]
    return modules


@router.get("/{course_id}/lessons", summary="List course lessons")
async def list_course_lessons(
    course_id: str,
    db: DB,
    current_user: AuthenticatedUser,
    language: LanguageCode | None = None,
) -> list[dict[str, Any]]:
    """Lessons ordered by module then lesson order."""
    service = CourseService(db)
    learner = not current_user.is_author
    try:
        await service.get_course(course_id, published_only=learner)
    except CourseServiceError as e:
        raise_course_error(e)

    lessons = [
        lesson.model_dump(mode="json")
        for lesson in await service.list_course_lessons(course_id, published_only=learner)
    ]
    if language:
        return [transform_lesson(lesson, language) for lesson in lessons]
    return lessons


@router.get("/{course_id}/competencies", summary="List course competencies")
async def list_competencies(
    course_id: str,
    db: DB,
    current_user: AuthenticatedUser,
    language: LanguageCode | None = None,
) -> list[dict[str, Any]]:
    service = CourseService(db)
    try:
        await service.get_course(course_id, published_only=not current_user.is_author)
    except CourseServiceError as e:
        raise_course_error(e)

    competencies = [c.model_dump(mode="json") for c in await service.list_competencies(course_id)]
    if language:
        return [transform_competency(c, language) for c in competencies]
    return competencies


@router.get(
    "/{course_id}/download",
    response_model=CourseDownloadResponse,
    summary="Download course for offline use",
)
async def download_course(course_id: str, db: DB, current_user: AuthenticatedUser) -> CourseDownloadResponse:
    try:
        bundle = await CourseService(db).download_course(course_id)
    except CourseServiceError as e:
        raise_course_error(e)

    logger.info("Course %s downloaded by %s (device=%s)", course_id, current_user.id, current_user.device_id)
    return bundle


# =============================================================================
# Lessons
# =============================================================================


@lesson_router.get("/{lesson_id}", summary="Get lesson")
async def get_lesson(
    lesson_id: str,
    db: DB,
    current_user: AuthenticatedUser,
    language: LanguageCode | None = None,
) -> dict[str, Any]:
    """Lesson details; with ``language`` the matching content block only."""
    try:
        lesson = await CourseService(db).get_lesson(lesson_id, published_only=not current_user.is_author)
    except CourseServiceError as e:
        raise_course_error(e)

    data = lesson.model_dump(mode="json")
    return transform_lesson(data, language) if language else data


# =============================================================================
# Competencies
# =============================================================================


@competency_router.get("/{competency_id}", response_model=CompetencyResponse, summary="Get competency")
async def get_competency(competency_id: str, db: DB, current_user: AuthenticatedUser) -> CompetencyResponse:
    try:
        return await CourseService(db).get_competency(competency_id)
    except CourseServiceError as e:
        raise_course_error(e)


@competency_router.get(
    "/{competency_id}/prerequisites",
    response_model=list[CompetencyResponse],
    summary="Get transitive prerequisites",
)
async def get_prerequisites_tree(
    competency_id: str,
    db: DB,
    current_user: AuthenticatedUser,
) -> list[CompetencyResponse]:
    try:
        return await CourseService(db).get_prerequisites_tree(competency_id)
    except CourseServiceError as e:
        raise_course_error(e)
