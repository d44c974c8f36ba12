# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for learning path construction and next-lesson selection."""

from types import SimpleNamespace

import pytest

from src.domains.adaptive.path import (
    NEXT_CONTINUE,
    NEXT_IN_SEQUENCE,
    NEXT_RECOMMENDED,
    build_learning_path,
    choose_next_lesson,
    completion_summary,
    priority_for_score,
    suggest_lessons,
)
from src.domains.mastery import CompetencyNode


def _lesson(lesson_id: str, competencies: list[str], prerequisites: list[str] | None = None):
    return SimpleNamespace(
        id=lesson_id,
        lesson_type="text",
        title={"th": f"บทเรียน {lesson_id}", "en": f"Lesson {lesson_id}"},
        module_id="m1",
        competencies=competencies,
        prerequisites=prerequisites or [],
        estimated_minutes=None,
        difficulty=None,
    )


@pytest.fixture
def lessons() -> list[SimpleNamespace]:
    return [
        _lesson("L1", ["a"]),
        _lesson("L2", ["b"], prerequisites=["L1"]),
        _lesson("L3", ["c"]),
        _lesson("L4", ["d"]),
    ]


@pytest.fixture
def competencies() -> dict[str, CompetencyNode]:
    nodes = [
        CompetencyNode(id="a", code="A", name={"en": "A"}),
        CompetencyNode(id="b", code="B", name={"en": "B"}, prerequisites=("a",)),
        CompetencyNode(id="c", code="C", name={"en": "C"}, prerequisites=("b",)),
        CompetencyNode(id="d", code="D", name={"en": "D"}),
    ]
    return {n.id: n for n in nodes}


@pytest.fixture
def path(lessons, competencies):
    return build_learning_path(
        lessons,
        {"m1": {"th": "หน่วยที่ 1", "en": "Unit 1"}},
        competencies,
        {"L1": "completed"},
        {"a": 0.9},
    )


class TestBuildLearningPath:
    """Tests for build_learning_path."""

    def test_statuses(self, path) -> None:
        assert [(item.lesson_id, item.status) for item in path] == [
            ("L1", "completed"),
            ("L2", "available"),
            ("L3", "locked"),
            ("L4", "available"),
        ]

    def test_order_and_defaults(self, path) -> None:
        assert [item.order for item in path] == [1, 2, 3, 4]
        assert path[0].estimated_minutes == 30
        assert path[0].difficulty == 3
        assert path[0].module_title["en"] == "Unit 1"

    def test_competency_annotations(self, path) -> None:
        assert path[0].competencies[0].status == "mastered"
        assert path[1].competencies[0].status == "not-started"
        assert path[1].competencies[0].mastery == 0.0

    def test_unfinished_prerequisite_lesson_locks(self, lessons, competencies) -> None:
        result = build_learning_path(lessons, {}, competencies, {"L1": "in-progress"}, {"a": 0.9})

        assert result[0].status == "in-progress"
        assert result[1].status == "locked"
        assert result[1].prerequisites_met is False


class TestChooseNextLesson:
    """Tests for choose_next_lesson."""

    def test_in_progress_wins(self, lessons, competencies) -> None:
        path = build_learning_path(lessons, {}, competencies, {"L3": "in-progress"}, {})

        choice = choose_next_lesson(path, {"d"})

        assert choice.item.lesson_id == "L3"
        assert choice.reason == NEXT_CONTINUE
        assert choice.priority == "high"

    def test_recommended_competency_boosts_lesson(self, path) -> None:
        choice = choose_next_lesson(path, {"d"})

        assert choice.item.lesson_id == "L4"
        assert choice.reason == NEXT_RECOMMENDED
        assert choice.score == pytest.approx(24.6)
        assert choice.priority == "high"

    def test_sequence_order_breaks_near_ties(self, path) -> None:
        choice = choose_next_lesson(path, set())

        assert choice.item.lesson_id == "L2"
        assert choice.reason == NEXT_IN_SEQUENCE
        assert choice.priority == "medium"

    def test_nothing_available(self, lessons, competencies) -> None:
        done = {lesson.id: "completed" for lesson in lessons}
        path = build_learning_path(lessons, {}, competencies, done, {})

        assert choose_next_lesson(path, set()) is None


def test_priority_bands() -> None:
    assert priority_for_score(16) == "high"
    assert priority_for_score(15) == "medium"
    assert priority_for_score(10) == "low"


def test_completion_summary(path) -> None:
    summary = completion_summary(path)

    assert summary["total"] == 4
    assert summary["completed"] == 1
    assert summary["available"] == 2
    assert summary["locked"] == 1
    assert summary["completion_percentage"] == 25.0
    assert completion_summary([])["completion_percentage"] == 0.0


def test_suggest_lessons(path) -> None:
    next_lessons, review = suggest_lessons(path, next_ids={"b", "c"}, remediation_ids={"a"})

    assert [item.lesson_id for item in next_lessons] == ["L2"]
    assert [item.lesson_id for item in review] == ["L1"]
