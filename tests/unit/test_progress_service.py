# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for lesson progress tracking."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from src.domains.progress import ProgressLessonNotFoundError, ProgressService
from src.infrastructure.database.models import LearnerProgress
from src.models.adaptive import LessonProgressUpdateRequest


def _progress(**overrides) -> LearnerProgress:
    values = dict(
        user_id="user-1",
        lesson_id="lesson-1",
        course_id="course-1",
        status="in-progress",
        completion_percentage=60.0,
        time_spent=600,
        last_accessed_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return LearnerProgress(**values)


@pytest.fixture
def gamification():
    return AsyncMock()


@pytest.fixture
def service(mock_db, gamification):
    return ProgressService(db=mock_db, gamification=gamification)


class TestUpdateProgress:
    """Tests for ProgressService.update_progress."""

    @pytest.mark.asyncio
    async def test_completion_never_decreases(self, service, mock_db, make_result, gamification) -> None:
        progress = _progress()
        mock_db.execute.return_value = make_result(scalar=progress)

        response = await service.update_progress(
            "user-1", LessonProgressUpdateRequest(lesson_id="lesson-1", completion_percentage=30, time_spent=120)
        )

        assert response.completion_percentage == 60.0
        assert response.time_spent == 720
        gamification.handle_lesson_completion.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reaching_100_rewards_once(self, service, mock_db, make_result, gamification) -> None:
        progress = _progress()
        mock_db.execute.return_value = make_result(scalar=progress)

        response = await service.update_progress(
            "user-1", LessonProgressUpdateRequest(lesson_id="lesson-1", completion_percentage=100, time_spent=300)
        )

        assert response.status == "completed"
        assert response.completed_at is not None
        gamification.handle_lesson_completion.assert_awaited_once_with(
            "user-1", "lesson-1", time_spent_minutes=15
        )

    @pytest.mark.asyncio
    async def test_first_report_creates_progress(self, service, mock_db, make_result) -> None:
        lesson = SimpleNamespace(id="lesson-1", course_id="course-9")
        mock_db.execute.side_effect = [make_result(scalar=None), make_result(scalar=lesson)]

        response = await service.update_progress(
            "user-1", LessonProgressUpdateRequest(lesson_id="lesson-1", completion_percentage=10, time_spent=60)
        )

        assert response.course_id == "course-9"
        assert response.status == "in-progress"
        mock_db.add.assert_called_once()

    @pytest.mark.asyncio
    async def test_unknown_lesson(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(ProgressLessonNotFoundError):
            await service.update_progress(
                "user-1", LessonProgressUpdateRequest(lesson_id="nope", completion_percentage=10, time_spent=60)
            )


class TestCompleteLesson:
    """Tests for ProgressService.complete_lesson."""

    @pytest.mark.asyncio
    async def test_already_completed_is_not_rewarded_again(
        self, service, mock_db, make_result, gamification
    ) -> None:
        done = datetime(2025, 2, 1, tzinfo=timezone.utc)
        progress = _progress(status="completed", completion_percentage=100.0, completed_at=done)
        mock_db.execute.return_value = make_result(scalar=progress)

        response = await service.complete_lesson("user-1", "lesson-1")

        assert response.completed_at == done
        gamification.handle_lesson_completion.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reward_failure_is_logged_not_raised(
        self, service, mock_db, make_result, gamification
    ) -> None:
        gamification.handle_lesson_completion.side_effect = RuntimeError("boom")
        mock_db.execute.return_value = make_result(scalar=_progress())

        response = await service.complete_lesson("user-1", "lesson-1")

        assert response.status == "completed"
