# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for quiz item validation, grading and delivery."""

import random
from types import SimpleNamespace

import pytest

from src.domains.quiz.grading import (
    QuizDefinitionError,
    competency_performance,
    grade_item,
    prepare_quiz_for_user,
    quiz_statistics,
    score_responses,
    validate_item_definition,
)


def _item(item_id: str, item_type: str, options=None, correct_answer=None, competency_id="comp-1"):
    return SimpleNamespace(
        id=item_id,
        item_type=item_type,
        options=options,
        correct_answer=correct_answer,
        competency_id=competency_id,
        stem={"th": f"คำถาม {item_id}", "en": f"Question {item_id}"},
        difficulty=0.5,
    )


MCQ_OPTIONS = [
    {"id": "a", "text": {"en": "3"}, "correct": False},
    {"id": "b", "text": {"en": "4"}, "correct": True},
    {"id": "c", "text": {"en": "5"}, "correct": False},
]
MULTI_OPTIONS = [
    {"id": "a", "text": {"en": "2"}, "correct": True},
    {"id": "b", "text": {"en": "3"}, "correct": True},
    {"id": "c", "text": {"en": "4"}, "correct": False},
    {"id": "d", "text": {"en": "5"}, "correct": True},
]


@pytest.fixture
def items() -> dict[str, SimpleNamespace]:
    return {
        "q1": _item("q1", "mcq", MCQ_OPTIONS),
        "q2": _item("q2", "multi-select", MULTI_OPTIONS, competency_id="comp-2"),
        "q3": _item("q3", "short-answer", correct_answer="Bangkok"),
    }


class TestValidateItemDefinition:
    """Tests for validate_item_definition."""

    def test_valid_items(self) -> None:
        validate_item_definition("mcq", MCQ_OPTIONS, None)
        validate_item_definition("multi-select", MULTI_OPTIONS, None)
        validate_item_definition("short-answer", [], "Bangkok")

    def test_unknown_type(self) -> None:
        with pytest.raises(QuizDefinitionError, match="Unknown item type"):
            validate_item_definition("essay", [], None)

    def test_mcq_needs_exactly_one_correct(self) -> None:
        options = [{"id": "a", "correct": True}, {"id": "b", "correct": True}]

        with pytest.raises(QuizDefinitionError, match="exactly one"):
            validate_item_definition("mcq", options, None)

    def test_duplicate_option_ids(self) -> None:
        options = [{"id": "a", "correct": True}, {"id": "a"}]

        with pytest.raises(QuizDefinitionError, match="unique"):
            validate_item_definition("multi-select", options, None)

    def test_short_answer_needs_answer(self) -> None:
        with pytest.raises(QuizDefinitionError):
            validate_item_definition("short-answer", [], "   ")


class TestGradeItem:
    """Tests for grade_item."""

    def test_mcq(self, items) -> None:
        assert grade_item(items["q1"], "b") == (True, 1.0)
        assert grade_item(items["q1"], "a") == (False, 0.0)

    def test_multi_select_exact_set(self, items) -> None:
        assert grade_item(items["q2"], ["d", "a", "b"]) == (True, 1.0)
        assert grade_item(items["q2"], ["a", "b"]) == (False, 0.0)

    def test_multi_select_partial_credit(self, items) -> None:
        correct, points = grade_item(items["q2"], ["a", "b", "c"], partial_credit=True)

        assert correct is False
        assert points == pytest.approx(1 / 3)

    def test_partial_credit_never_negative(self, items) -> None:
        assert grade_item(items["q2"], ["c"], partial_credit=True) == (False, 0.0)

    def test_short_answer_ignores_case_and_whitespace(self, items) -> None:
        assert grade_item(items["q3"], "  bangkok ") == (True, 1.0)
        assert grade_item(items["q3"], "Chiang Mai") == (False, 0.0)
        assert grade_item(items["q3"], ["Bangkok"]) == (False, 0.0)


class TestScoreResponses:
    """Tests for score_responses."""

    def test_percentage_and_pass(self, items) -> None:
        score = score_responses(
            items,
            [
                {"item_id": "q1", "response": "b", "time_spent_ms": 20_000},
                {"item_id": "q2", "response": ["a", "b", "d"], "hints_used": 1},
                {"item_id": "q3", "response": "Phuket"},
            ],
        )

        assert score.earned == 2
        assert score.possible == 3
        assert score.percentage == pytest.approx(66.666, rel=1e-3)
        assert score.passed is False
        assert score.perfect is False
        assert score.responses[1].hints_used == 1

    def test_unknown_items_are_skipped(self, items) -> None:
        score = score_responses(items, [{"item_id": "q1", "response": "b"}, {"item_id": "ghost", "response": "x"}])

        assert score.skipped_item_ids == ["ghost"]
        assert score.possible == 1
        assert score.perfect is True

    def test_empty_submission_scores_zero(self, items) -> None:
        score = score_responses(items, [])

        assert score.percentage == 0.0
        assert score.perfect is False


def test_competency_performance_groups_by_competency(items) -> None:
    responses = [
        {"item_id": "q1", "correct": True, "time_spent_ms": 1000},
        {"item_id": "q3", "correct": False, "time_spent_ms": 3000, "hints_used": 2},
        {"item_id": "q2", "correct": True, "time_spent_ms": 500},
    ]

    performance = competency_performance(responses, items)

    assert performance["comp-1"].total == 2
    assert performance["comp-1"].correctness == 0.5
    assert performance["comp-1"].mean_time_ms == 2000
    assert performance["comp-1"].hints_used == 2
    assert performance["comp-2"].correctness == 1.0


def test_quiz_statistics() -> None:
    assert quiz_statistics([])["best_score"] is None

    stats = quiz_statistics([80.0, 60.0, 100.0])

    assert stats == {"attempt_count": 3, "best_score": 100.0, "last_score": 80.0, "average_score": 80.0}


class TestPrepareQuizForUser:
    """Tests for prepare_quiz_for_user."""

    def test_answers_are_hidden(self, items) -> None:
        quiz = SimpleNamespace(id="quiz-1", title={"th": "แบบทดสอบ", "en": "Quiz"}, config={"randomize": False})

        prepared = prepare_quiz_for_user(quiz, list(items.values()), "en")

        assert prepared["title"] == "Quiz"
        assert [i["id"] for i in prepared["items"]] == ["q1", "q2", "q3"]
        first = prepared["items"][0]
        assert first["stem"] == "Question q1"
        assert all(set(o) == {"id", "text"} for o in first["options"])
        assert "correct_answer" not in prepared["items"][2]

    def test_randomised_sample_respects_item_count(self, items) -> None:
        quiz = SimpleNamespace(id="quiz-1", title={"en": "Quiz"}, config={"randomize": True, "item_count": 2})

        prepared = prepare_quiz_for_user(quiz, list(items.values()), "th", rng=random.Random(7))

        assert len(prepared["items"]) == 2
        assert prepared["config"]["item_count"] == 2
        assert len({i["id"] for i in prepared["items"]}) == 2

    def test_options_shuffled_without_randomize(self) -> None:
        options = [{"id": str(i), "text": {"en": f"Option {i}"}, "correct": i == 0} for i in range(8)]
        item = SimpleNamespace(
            id="q1",
            item_type="mcq",
            stem={"en": "Pick one"},
            competency_id="comp-1",
            difficulty=3,
            options=options,
        )
        quiz = SimpleNamespace(id="quiz-1", title={"en": "Quiz"}, config={"randomize": False})

        orders = set()
        for seed in range(20):
            prepared = prepare_quiz_for_user(quiz, [item], "en", rng=random.Random(seed))
            orders.add(tuple(o["id"] for o in prepared["items"][0]["options"]))

        assert len(orders) > 1
        assert all(sorted(order) == [str(i) for i in range(8)] for order in orders)
