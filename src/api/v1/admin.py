# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Administration API endpoints.

Content authoring (authors and admins):
- /courses, /modules, /lessons, /competencies - create, update, delete, publish
- /quiz-items, /quizzes - item bank, quiz definitions, attempts, analytics

Platform administration (admins only):
- /achievements - achievement catalogue and holders
- /users - list users, change role, deactivate
- /jobs/* - maintenance jobs for notifications and the sync queue
"""

import logging

from fastapi import APIRouter, HTTPException, Query, status

from src.api.dependencies import DB, AdminUser, AuthorOrAdmin
from src.api.v1.courses import raise_course_error
from src.api.v1.quizzes import raise_quiz_error
from src.domains.course import CourseService, CourseServiceError
from src.domains.gamification import (
    AchievementConflictError,
    AchievementNotFoundError,
    GamificationService,
)
from src.domains.quiz import QuizService, QuizServiceError
from src.domains.sync import SyncService
from src.domains.user import UserNotFoundError, UserService
from src.infrastructure.notifications import NotificationService
from src.models.common import CountResponse, MessageResponse
from src.models.course import (
    CompetencyCreateRequest,
    CompetencyResponse,
    CompetencyUpdateRequest,
    CourseCreateRequest,
    CourseResponse,
    CourseUpdateRequest,
    LessonCreateRequest,
    LessonResponse,
    LessonUpdateRequest,
    ModuleCreateRequest,
    ModuleResponse,
    ModuleUpdateRequest,
)
from src.models.gamification import (
    AchievementCreateRequest,
    AchievementHolderResponse,
    AchievementResponse,
    AchievementUpdateRequest,
)
from src.models.quiz import (
    QuizAnalyticsResponse,
    QuizAttemptResponse,
    QuizCreateRequest,
    QuizItemCreateRequest,
    QuizItemResponse,
    QuizItemUpdateRequest,
    QuizResponse,
    QuizUpdateRequest,
)
from src.models.sync import SyncCleanupRequest
from src.models.user import UserAdminUpdateRequest, UserListResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Courses and modules
# =============================================================================


@router.post(
    "/courses",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(data: CourseCreateRequest, db: DB, current_user: AuthorOrAdmin) -> CourseResponse:
    try:
        return await CourseService(db).create_course(data, created_by=current_user.id)
    except CourseServiceError as e:
        raise_course_error(e)


@router.patch("/courses/{course_id}", response_model=CourseResponse, summary="Update course")
async def update_course(
    course_id: str,
    data: CourseUpdateRequest,
    db: DB,
    current_user: AuthorOrAdmin,
) -> CourseResponse:
    try:
        return await CourseService(db).update_course(course_id, data)
    except CourseServiceError as e:
        raise_course_error(e)


@router.delete("/courses/{course_id}", response_model=MessageResponse, summary="Delete course")
async def delete_course(course_id: str, db: DB, current_user: AuthorOrAdmin) -> MessageResponse:
    """Delete a course together with its modules, lessons and competencies."""
    try:
        await CourseService(db).delete_course(course_id)
    except CourseServiceError as e:
        raise_course_error(e)
    return MessageResponse(message="Course deleted")


@router.post("/courses/{course_id}/publish", response_model=CourseResponse, summary="Publish course")
async def publish_course(course_id: str, db: DB, current_user: AuthorOrAdmin) -> CourseResponse:
    """Publish a draft.

    Raises:
        HTTPException: 400 if already published, without modules or
            competencies, or with a lesson lacking competencies.
    """
    try:
        return await CourseService(db).publish_course(course_id)
    except CourseServiceError as e:
        raise_course_error(e)


@router.post("/courses/{course_id}/unpublish", response_model=CourseResponse, summary="Unpublish course")
async def unpublish_course(course_id: str, db: DB, current_user: AuthorOrAdmin) -> CourseResponse:
    try:
        return await CourseService(db).unpublish_course(course_id)
    except CourseServiceError as e:
        raise_course_error(e)


@router.post(
    "/modules",
    response_model=ModuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create module",
)
async def create_module(data: ModuleCreateRequest, db: DB, current_user: AuthorOrAdmin) -> ModuleResponse:
    try:
        return await CourseService(db).create_module(data)
    except CourseServiceError as e:
        raise_course_error(e)


@router.patch("/modules/{module_id}", response_model=ModuleResponse, summary="Update module")
async def update_module(
    module_id: str,
    data: ModuleUpdateRequest,
    db: DB,
    current_user: AuthorOrAdmin,
) -> ModuleResponse:
    try:
        return await CourseService(db).update_module(module_id, data)
    except CourseServiceError as e:
        raise_course_error(e)


@router.delete("/modules/{module_id}", response_model=MessageResponse, summary="Delete module")
async def delete_module(module_id: str, db: DB, current_user: AuthorOrAdmin) -> MessageResponse:
    try:
        await CourseService(db).delete_module(module_id)
    except CourseServiceError as e:
        raise_course_error(e)
    return MessageResponse(message="Module deleted")


# =============================================================================
# Lessons and competencies
# =============================================================================


@router.post(
    "/lessons",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create lesson",
)
async def create_lesson(data: LessonCreateRequest, db: DB, current_user: AuthorOrAdmin) -> LessonResponse:
    try:
        return await CourseService(db).create_lesson(data)
    except CourseServiceError as e:
        raise_course_error(e)


@router.patch("/lessons/{lesson_id}", response_model=LessonResponse, summary="Update lesson")
async def update_lesson(
    lesson_id: str,
    data: LessonUpdateRequest,
    db: DB,
    current_user: AuthorOrAdmin,
) -> LessonResponse:
    try:
        return await CourseService(db).update_lesson(lesson_id, data)
    except CourseServiceError as e:
        raise_course_error(e)


@router.delete("/lessons/{lesson_id}", response_model=MessageResponse, summary="Delete lesson")
async def delete_lesson(lesson_id: str, db: DB, current_user: AuthorOrAdmin) -> MessageResponse:
    try:
        await CourseService(db).delete_lesson(lesson_id)
    except CourseServiceError as e:
        raise_course_error(e)
    return MessageResponse(message="Lesson deleted")


@router.post("/lessons/{lesson_id}/publish", response_model=LessonResponse, summary="Publish lesson")
async def publish_lesson(lesson_id: str, db: DB, current_user: AuthorOrAdmin) -> LessonResponse:
    try:
        return await CourseService(db).publish_lesson(lesson_id)
    except CourseServiceError as e:
        raise_course_error(e)


@router.post(
    "/competencies",
    response_model=CompetencyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create competency",
)
async def create_competency(
    data: CompetencyCreateRequest,
    db: DB,
    current_user: AuthorOrAdmin,
) -> CompetencyResponse:
    """Create a competency; prerequisite cycles are rejected with 400."""
    try:
        return await CourseService(db).create_competency(data)
    except CourseServiceError as e:
        raise_course_error(e)


@router.patch(
    "/competencies/{competency_id}",
    response_model=CompetencyResponse,
    summary="Update competency",
)
async def update_competency(
    competency_id: str,
    data: CompetencyUpdateRequest,
    db: DB,
    current_user: AuthorOrAdmin,
) -> CompetencyResponse:
    try:
        return await CourseService(db).update_competency(competency_id, data)
    except CourseServiceError as e:
        raise_course_error(e)


# =============================================================================
# Quiz items and quizzes
# =============================================================================


@router.post(
    "/quiz-items",
    response_model=QuizItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create quiz item",
)
async def create_quiz_item(
    data: QuizItemCreateRequest,
    db: DB,
    current_user: AuthorOrAdmin,
) -> QuizItemResponse:
    try:
        return await QuizService(db).create_item(data)
    except QuizServiceError as e:
        raise_quiz_error(e)


@router.get("/quiz-items", response_model=list[QuizItemResponse], summary="List quiz items")
async def list_quiz_items(
    db: DB,
    current_user: AuthorOrAdmin,
    competency_id: str | None = None,
) -> list[QuizItemResponse]:
    return await QuizService(db).list_items(competency_id)


@router.get("/quiz-items/{item_id}", response_model=QuizItemResponse, summary="Get quiz item")
async def get_quiz_item(item_id: str, db: DB, current_user: AuthorOrAdmin) -> QuizItemResponse:
    try:
        return await QuizService(db).get_item(item_id)
    except QuizServiceError as e:
        raise_quiz_error(e)


@router.patch("/quiz-items/{item_id}", response_model=QuizItemResponse, summary="Update quiz item")
async def update_quiz_item(
    item_id: str,
    data: QuizItemUpdateRequest,
    db: DB,
    current_user: AuthorOrAdmin,
) -> QuizItemResponse:
    try:
        return await QuizService(db).update_item(item_id, data)
    except QuizServiceError as e:
        raise_quiz_error(e)


@router.delete("/quiz-items/{item_id}", response_model=MessageResponse, summary="Delete quiz item")
async def delete_quiz_item(item_id: str, db: DB, current_user: AuthorOrAdmin) -> MessageResponse:
    try:
        await QuizService(db).delete_item(item_id)
    except QuizServiceError as e:
        raise_quiz_error(e)
    return MessageResponse(message="Quiz item deleted")


@router.post(
    "/quizzes",
    response_model=QuizResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create quiz",
)
async def create_quiz(data: QuizCreateRequest, db: DB, current_user: AuthorOrAdmin) -> QuizResponse:
    try:
        return await QuizService(db).create_quiz(data)
    except QuizServiceError as e:
        raise_quiz_error(e)


@router.get("/quizzes/{quiz_id}", response_model=QuizResponse, summary="Get quiz")
async def get_quiz(quiz_id: str, db: DB, current_user: AuthorOrAdmin) -> QuizResponse:
    try:
        return await QuizService(db).get_quiz(quiz_id)
    except QuizServiceError as e:
        raise_quiz_error(e)


@router.patch("/quizzes/{quiz_id}", response_model=QuizResponse, summary="Update quiz")
async def update_quiz(
    quiz_id: str,
    data: QuizUpdateRequest,
    db: DB,
    current_user: AuthorOrAdmin,
) -> QuizResponse:
    try:
        return await QuizService(db).update_quiz(quiz_id, data)
    except QuizServiceError as e:
        raise_quiz_error(e)


@router.delete("/quizzes/{quiz_id}", response_model=MessageResponse, summary="Delete quiz")
async def delete_quiz(quiz_id: str, db: DB, current_user: AuthorOrAdmin) -> MessageResponse:
    try:
        await QuizService(db).delete_quiz(quiz_id)
    except QuizServiceError as e:
        raise_quiz_error(e)
    return MessageResponse(message="Quiz deleted")


@router.get(
    "/quizzes/{quiz_id}/attempts",
    response_model=list[QuizAttemptResponse],
    summary="List quiz attempts",
)
async def list_quiz_attempts(
    quiz_id: str,
    db: DB,
    current_user: AuthorOrAdmin,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> list[QuizAttemptResponse]:
    return await QuizService(db).list_attempts(quiz_id, limit, offset)


@router.get(
    "/quizzes/{quiz_id}/analytics",
    response_model=QuizAnalyticsResponse,
    summary="Get quiz analytics",
)
async def get_quiz_analytics(quiz_id: str, db: DB, current_user: AuthorOrAdmin) -> QuizAnalyticsResponse:
    """Attempts, pass rate, average score and per-item correct rate."""
    try:
        return await QuizService(db).get_quiz_analytics(quiz_id)
    except QuizServiceError as e:
        raise_quiz_error(e)


# =============================================================================
# Achievements
# =============================================================================


@router.get("/achievements", response_model=list[AchievementResponse], summary="List achievements")
async def list_achievements(
    db: DB,
    current_user: AdminUser,
    include_inactive: bool = True,
) -> list[AchievementResponse]:
    return await GamificationService(db).list_achievements(include_inactive=include_inactive)


@router.post(
    "/achievements",
    response_model=AchievementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create achievement",
)
async def create_achievement(
    data: AchievementCreateRequest,
    db: DB,
    current_user: AdminUser,
) -> AchievementResponse:
    try:
        return await GamificationService(db).create_achievement(data)
    except AchievementConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.patch(
    "/achievements/{achievement_id}",
    response_model=AchievementResponse,
    summary="Update achievement",
)
async def update_achievement(
    achievement_id: str,
    data: AchievementUpdateRequest,
    db: DB,
    current_user: AdminUser,
) -> AchievementResponse:
    try:
        return await GamificationService(db).update_achievement(achievement_id, data)
    except AchievementNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete(
    "/achievements/{achievement_id}",
    response_model=MessageResponse,
    summary="Delete achievement",
)
async def delete_achievement(achievement_id: str, db: DB, current_user: AdminUser) -> MessageResponse:
    try:
        await GamificationService(db).delete_achievement(achievement_id)
    except AchievementNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return MessageResponse(message="Achievement deleted")


@router.get(
    "/achievements/{achievement_id}/users",
    response_model=list[AchievementHolderResponse],
    summary="List achievement holders",
)
async def get_achievement_users(
    achievement_id: str,
    db: DB,
    current_user: AdminUser,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> list[AchievementHolderResponse]:
    try:
        return await GamificationService(db).get_achievement_users(achievement_id, limit, offset)
    except AchievementNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# =============================================================================
# Users
# =============================================================================


@router.get("/users", response_model=UserListResponse, summary="List users")
async def list_users(
    db: DB,
    current_user: AdminUser,
    role: str | None = None,
    search: str | None = Query(default=None, max_length=100),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> UserListResponse:
    return await UserService(db).list_users(role=role, search=search, limit=limit, offset=offset)


@router.get("/users/{user_id}", response_model=UserResponse, summary="Get user")
async def get_user(user_id: str, db: DB, current_user: AdminUser) -> UserResponse:
    try:
        return await UserService(db).get_user(user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch("/users/{user_id}", response_model=UserResponse, summary="Update user role or status")
async def update_user(
    user_id: str,
    data: UserAdminUpdateRequest,
    db: DB,
    current_user: AdminUser,
) -> UserResponse:
    """Change a user's role or deactivate them; deactivation ends all sessions."""
    if user_id == current_user.id and data.is_active is False:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot deactivate yourself")
    try:
        return await UserService(db).admin_update(user_id, data)
    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# =============================================================================
# Maintenance jobs
# =============================================================================


@router.post(
    "/jobs/notifications/deliver-scheduled",
    response_model=CountResponse,
    summary="Deliver scheduled notifications",
)
async def deliver_scheduled_notifications(db: DB, current_user: AdminUser) -> CountResponse:
    return CountResponse(count=await NotificationService(db).process_scheduled_notifications())


@router.post(
    "/jobs/notifications/cleanup",
    response_model=CountResponse,
    summary="Delete expired notifications",
)
async def cleanup_notifications(db: DB, current_user: AdminUser) -> CountResponse:
    return CountResponse(count=await NotificationService(db).cleanup_expired_notifications())


@router.post("/jobs/sync/cleanup", response_model=CountResponse, summary="Delete old synced queue items")
async def cleanup_sync_queue(data: SyncCleanupRequest, db: DB, current_user: AdminUser) -> CountResponse:
    return CountResponse(count=await SyncService(db).cleanup_sync_queue(data.days))
