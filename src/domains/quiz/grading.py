# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiz item validation, grading and delivery.

Each item is worth one point. Multiple-choice answers match the single
correct option id, multi-select answers must select exactly the correct
set, and short answers compare trimmed, case-insensitive text. When a
quiz enables partial credit, a multi-select answer that is not exactly
right earns the share of correct options it selected, minus wrong ones.
"""

import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from src.domains.bilingual import localize

ITEM_TYPES = ("mcq", "multi-select", "short-answer")
CHOICE_TYPES = ("mcq", "multi-select")

PASSING_PERCENTAGE = 70.0
EXPECTED_ITEM_TIME_MS = 60_000


class QuizDefinitionError(ValueError):
    """Raised when an item or quiz definition is not gradable."""

    pass


@dataclass
class GradedResponse:
    """One graded answer."""

    item_id: str
    response: Any
    correct: bool
    points: float
    hints_used: int = 0
    time_spent_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "response": self.response,
            "correct": self.correct,
            "points": self.points,
            "hints_used": self.hints_used,
            "time_spent_ms": self.time_spent_ms,
        }


@dataclass
class QuizScore:
    earned: float = 0.0
    possible: float = 0.0
    responses: list[GradedResponse] = field(default_factory=list)
    skipped_item_ids: list[str] = field(default_factory=list)

    @property
    def percentage(self) -> float:
        if self.possible <= 0:
            return 0.0
        return self.earned / self.possible * 100

    @property
    def passed(self) -> bool:
        return self.percentage >= PASSING_PERCENTAGE

    @property
    def perfect(self) -> bool:
        return self.possible > 0 and self.percentage >= 100


@dataclass
class CompetencyPerformance:
    """Aggregated quiz performance on one competency."""

    correct: int = 0
    total: int = 0
    total_time_ms: int = 0
    hints_used: int = 0

    @property
    def correctness(self) -> float:
        return self.correct / self.total if self.total else 0.0

    @property
    def mean_time_ms(self) -> float:
        return self.total_time_ms / self.total if self.total else 0.0


def validate_item_definition(
    item_type: str,
    options: Sequence[Mapping[str, Any]],
    correct_answer: str | None,
) -> None:
    """Check a quiz item can be graded.

    Raises:
        QuizDefinitionError: Describing the first problem found.
    """
    if item_type not in ITEM_TYPES:
        raise QuizDefinitionError(f"Unknown item type: {item_type}")

    if item_type in CHOICE_TYPES:
        if not options:
            raise QuizDefinitionError(f"{item_type} items need options")
        ids = [o.get("id") for o in options]
        if len(set(ids)) != len(ids):
            raise QuizDefinitionError("Option ids must be unique")
        correct_count = sum(1 for o in options if o.get("correct"))
        if item_type == "mcq" and correct_count != 1:
            raise QuizDefinitionError("mcq items need exactly one correct option")
        if item_type == "multi-select" and correct_count < 1:
            raise QuizDefinitionError("multi-select items need at least one correct option")
        return

    if not (correct_answer or "").strip():
        raise QuizDefinitionError("short-answer items need a correct answer")


def grade_item(item: Any, response: Any, partial_credit: bool = False) -> tuple[bool, float]:
    """Grade one answer.

    Args:
        item: Object with ``item_type``, ``options`` and ``correct_answer``.
        response: Option id, list of option ids, or free text.
        partial_credit: Allow fractional multi-select points.

    Returns:
        Tuple of (correct, points).
    """
    options = item.options or []

    if item.item_type == "mcq":
        correct_ids = [o["id"] for o in options if o.get("correct")]
        correct = bool(correct_ids) and response == correct_ids[0]
        return correct, 1.0 if correct else 0.0

    if item.item_type == "multi-select":
        expected = {o["id"] for o in options if o.get("correct")}
        chosen = set(response) if isinstance(response, (list, tuple, set)) else {response}
        if chosen == expected:
            return True, 1.0
        if partial_credit and expected:
            right = len(chosen & expected)
            wrong = len(chosen - expected)
            return False, max(0.0, (right - wrong) / len(expected))
        return False, 0.0

    if item.item_type == "short-answer":
        if item.correct_answer is None or isinstance(response, (list, tuple)):
            return False, 0.0
        correct = str(response).strip().lower() == item.correct_answer.strip().lower()
        return correct, 1.0 if correct else 0.0

    return False, 0.0


def score_responses(
    items_by_id: Mapping[str, Any],
    responses: Sequence[Mapping[str, Any]],
    partial_credit: bool = False,
) -> QuizScore:
    """Grade submitted answers against the quiz's items.

    Answers to items that are not in the quiz are skipped and reported
    in ``skipped_item_ids``.

    Args:
        items_by_id: Quiz items keyed by id.
        responses: ``{"item_id", "response", "hints_used", "time_spent_ms"}``.
        partial_credit: Allow fractional multi-select points.

    Returns:
        QuizScore with per-item results.
    """
    score = QuizScore()
    for answer in responses:
        item_id = answer["item_id"]
        item = items_by_id.get(item_id)
        if item is None:
            score.skipped_item_ids.append(item_id)
            continue

        correct, points = grade_item(item, answer.get("response"), partial_credit)
        score.responses.append(
            GradedResponse(
                item_id=item_id,
                response=answer.get("response"),
                correct=correct,
                points=points,
                hints_used=int(answer.get("hints_used") or 0),
                time_spent_ms=int(answer.get("time_spent_ms") or 0),
            )
        )
        score.possible += 1
        score.earned += points
    return score


def competency_performance(
    responses: Sequence[Mapping[str, Any]],
    items_by_id: Mapping[str, Any],
) -> dict[str, CompetencyPerformance]:
    """Group graded responses by the competency their item assesses."""
    performance: dict[str, CompetencyPerformance] = {}
    for response in responses:
        item = items_by_id.get(response["item_id"])
        if item is None or not item.competency_id:
            continue
        perf = performance.setdefault(item.competency_id, CompetencyPerformance())
        perf.total += 1
        if response.get("correct"):
            perf.correct += 1
        perf.total_time_ms += int(response.get("time_spent_ms") or 0)
        perf.hints_used += int(response.get("hints_used") or 0)
    return performance


def quiz_statistics(percentages: Sequence[float]) -> dict[str, Any]:
    """Summarise a user's attempts.

    Args:
        percentages: Attempt scores, most recent first.

    Returns:
        attempt_count, best_score, last_score and average_score (None
        without attempts).
    """
    if not percentages:
        return {"attempt_count": 0, "best_score": None, "last_score": None, "average_score": None}
    return {
        "attempt_count": len(percentages),
        "best_score": max(percentages),
        "last_score": percentages[0],
        "average_score": sum(percentages) / len(percentages),
    }


def prepare_quiz_for_user(
    quiz: Any,
    items: Sequence[Any],
    language: str = "en",
    rng: random.Random | None = None,
) -> dict[str, Any]:
    """Select and sanitise items for a learner.

    Randomised quizzes draw a random sample of ``item_count`` items;
    others take the first ``item_count`` in pool order. Option order is
    shuffled on every delivery. Correctness flags, correct answers and
    explanations are removed, and text is localised.

    Args:
        quiz: Quiz with ``id``, ``title`` and ``config``.
        items: Item pool in quiz order.
        language: Display language.
        rng: Random source (tests pass a seeded one).

    Returns:
        Learner-safe quiz dictionary.
    """
    rng = rng or random.Random()
    config = quiz.config or {}
    count = int(config.get("item_count") or len(items))
    randomize = config.get("randomize", True)

    if randomize:
        selected = rng.sample(list(items), min(count, len(items)))
    else:
        selected = list(items)[:count]

    prepared_items = []
    for item in selected:
        prepared: dict[str, Any] = {
            "id": item.id,
            "item_type": item.item_type,
            "stem": localize(item.stem, language),
            "competency_id": item.competency_id,
            "difficulty": item.difficulty,
            "options": None,
        }
        if item.options:
            options = [{"id": o["id"], "text": localize(o.get("text"), language)} for o in item.options]
            rng.shuffle(options)
            prepared["options"] = options
        prepared_items.append(prepared)

    return {
        "id": quiz.id,
        "title": localize(quiz.title, language),
        "config": {
            "item_count": count,
            "time_limit": config.get("time_limit"),
            "attempts": config.get("attempts"),
        },
        "items": prepared_items,
    }
