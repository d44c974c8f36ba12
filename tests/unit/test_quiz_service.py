# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for QuizService grading."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from src.domains.gamification.rewards import RewardOutcome
from src.domains.quiz.service import (
    MaxAttemptsReachedError,
    QuizNotFoundError,
    QuizService,
    summarize_attempts,
)
from src.models.quiz import QuizAnswer, QuizSubmitRequest

OPTIONS = [
    {"id": "a", "text": {"en": "3"}, "correct": False},
    {"id": "b", "text": {"en": "4"}, "correct": True},
]


def _item(item_id: str, competency_id: str) -> SimpleNamespace:
    return SimpleNamespace(
        id=item_id,
        item_type="mcq",
        options=OPTIONS,
        correct_answer=None,
        competency_id=competency_id,
        stem={"en": "2 + 2?"},
        difficulty=0.5,
    )


QUIZ = SimpleNamespace(
    id="quiz-1",
    title={"th": "แบบทดสอบ", "en": "Quiz"},
    items=["q1", "q2"],
    max_attempts=3,
    config={},
)


@pytest.fixture
def mastery():
    return AsyncMock()


@pytest.fixture
def gamification():
    client = AsyncMock()
    client.handle_quiz_completion.return_value = RewardOutcome(xp_earned=150, level=2, streak=1)
    return client


@pytest.fixture
def notifications():
    return AsyncMock()


@pytest.fixture
def service(mock_db, mastery, gamification, notifications):
    async def assign_id(obj):
        obj.id = obj.id or "attempt-1"

    mock_db.refresh.side_effect = assign_id
    return QuizService(mock_db, mastery=mastery, gamification=gamification, notifications=notifications)


def _submit(*answers: tuple[str, str]) -> QuizSubmitRequest:
    return QuizSubmitRequest(
        responses=[QuizAnswer(item_id=i, response=r, time_spent_ms=30_000) for i, r in answers]
    )


class TestGradeQuiz:
    """Tests for QuizService.grade_quiz."""

    @pytest.mark.asyncio
    async def test_perfect_attempt(
        self, service, mock_db, make_result, mastery, gamification, notifications
    ) -> None:
        mock_db.execute.side_effect = [
            make_result(scalar=QUIZ),
            make_result(scalar=1),
            make_result(scalars=[_item("q1", "comp-1"), _item("q2", "comp-2")]),
        ]

        result = await service.grade_quiz("user-1", "quiz-1", _submit(("q1", "b"), ("q2", "b")))

        assert result.attempt_number == 2
        assert result.score.percentage == 100.0
        assert result.passed is True
        assert result.perfect is True
        assert result.mastery_updated is True
        assert result.gamification.xp_earned == 150

        assert mastery.update_mastery.await_count == 2
        gamification.handle_quiz_completion.assert_awaited_once_with("user-1", "quiz-1", 100.0, True)
        notifications.notify_quiz_result.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_follow_up_failures_do_not_lose_attempt(
        self, service, mock_db, make_result, mastery, gamification
    ) -> None:
        mastery.update_mastery.side_effect = RuntimeError("db down")
        gamification.handle_quiz_completion.side_effect = RuntimeError("db down")
        mock_db.execute.side_effect = [
            make_result(scalar=QUIZ),
            make_result(scalar=0),
            make_result(scalars=[_item("q1", "comp-1"), _item("q2", "comp-1")]),
        ]

        result = await service.grade_quiz("user-1", "quiz-1", _submit(("q1", "a"), ("q2", "b")))

        assert result.passed is False
        assert result.score.percentage == 50.0
        assert result.mastery_updated is False
        assert result.gamification is None
        mock_db.commit.assert_awaited()
        assert mock_db.rollback.await_count == 2

    @pytest.mark.asyncio
    async def test_attempt_limit(self, service, mock_db, make_result) -> None:
        mock_db.execute.side_effect = [make_result(scalar=QUIZ), make_result(scalar=3)]

        with pytest.raises(MaxAttemptsReachedError):
            await service.grade_quiz("user-1", "quiz-1", _submit(("q1", "b")))
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_quiz(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(QuizNotFoundError):
            await service.grade_quiz("user-1", "missing", _submit(("q1", "b")))


def test_summarize_attempts() -> None:
    attempts = [
        SimpleNamespace(
            user_id="u-1",
            passed=True,
            percentage=90.0,
            responses=[{"item_id": "q1", "correct": True}],
        ),
        SimpleNamespace(
            user_id="u-2",
            passed=False,
            percentage=40.0,
            responses=[{"item_id": "q1", "correct": False}],
        ),
    ]

    summary = summarize_attempts(attempts)

    assert summary["total_attempts"] == 2
    assert summary["unique_users"] == 2
    assert summary["pass_rate"] == 50.0
    assert summary["average_score"] == 65.0
