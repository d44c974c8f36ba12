# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for CourseService publishing and prerequisite checks."""

from types import SimpleNamespace

import pytest

from src.domains.course.service import (
    CompetencyNotFoundError,
    CourseNotFoundError,
    CourseService,
    CourseValidationError,
    PrerequisiteCycleError,
)
from src.models.course import CompetencyUpdateRequest


@pytest.fixture
def service(mock_db):
    return CourseService(db=mock_db)


def _course(**overrides) -> SimpleNamespace:
    values = dict(id="course-1", slug="math-p1", title={"th": "คณิตศาสตร์", "en": "Math"}, published=False)
    values.update(overrides)
    return SimpleNamespace(**values)


class TestPublishCourse:
    """Tests for CourseService.publish_course."""

    @pytest.mark.asyncio
    async def test_requires_modules(self, service, mock_db, make_result) -> None:
        mock_db.execute.side_effect = [make_result(scalar=_course()), make_result(scalar=0)]

        with pytest.raises(CourseValidationError, match="without modules"):
            await service.publish_course("course-1")

    @pytest.mark.asyncio
    async def test_requires_competencies(self, service, mock_db, make_result) -> None:
        mock_db.execute.side_effect = [
            make_result(scalar=_course()),
            make_result(scalar=2),
            make_result(scalar=0),
        ]

        with pytest.raises(CourseValidationError, match="without competencies"):
            await service.publish_course("course-1")

    @pytest.mark.asyncio
    async def test_every_lesson_needs_competencies(self, service, mock_db, make_result) -> None:
        course = _course()
        mock_db.execute.side_effect = [
            make_result(scalar=course),
            make_result(scalar=1),
            make_result(scalar=3),
            make_result(scalars=[SimpleNamespace(id="lesson-7", competencies=[])]),
        ]

        with pytest.raises(CourseValidationError, match="lesson-7"):
            await service.publish_course("course-1")
        assert course.published is False

    @pytest.mark.asyncio
    async def test_already_published(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=_course(published=True))

        with pytest.raises(CourseValidationError):
            await service.publish_course("course-1")

    @pytest.mark.asyncio
    async def test_draft_cannot_be_downloaded(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=_course())

        with pytest.raises(CourseNotFoundError):
            await service.download_course("course-1")


class TestPublishLesson:
    """Tests for CourseService.publish_lesson."""

    @pytest.mark.asyncio
    async def test_requires_thai_content(self, service, mock_db, make_result) -> None:
        lesson = SimpleNamespace(
            id="lesson-1",
            published=False,
            competencies=["comp-1"],
            content={"en": {"body": "English only"}},
        )
        mock_db.execute.return_value = make_result(scalar=lesson)

        with pytest.raises(CourseValidationError, match="Thai content"):
            await service.publish_lesson("lesson-1")


class TestCompetencyPrerequisites:
    """Tests for prerequisite validation on competency updates."""

    @pytest.mark.asyncio
    async def test_cycle_is_rejected(self, service, mock_db, make_result) -> None:
        competency = SimpleNamespace(id="comp-1", prerequisites=[])
        mock_db.execute.side_effect = [
            make_result(scalar=competency),
            make_result(scalar=1),
            make_result(rows=[("comp-2", ["comp-1"])]),
            make_result(rows=[("comp-1", [])]),
        ]

        with pytest.raises(PrerequisiteCycleError):
            await service.update_competency(
                "comp-1", CompetencyUpdateRequest(prerequisites=["comp-2"])
            )
        assert competency.prerequisites == []
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_prerequisite(self, service, mock_db, make_result) -> None:
        mock_db.execute.side_effect = [
            make_result(scalar=SimpleNamespace(id="comp-1", prerequisites=[])),
            make_result(scalar=1),
        ]

        with pytest.raises(CompetencyNotFoundError):
            await service.update_competency(
                "comp-1", CompetencyUpdateRequest(prerequisites=["comp-2", "comp-3"])
            )
