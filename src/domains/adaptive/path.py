# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning path construction and next-lesson selection.

A lesson is available once every prerequisite lesson is completed and
every prerequisite competency of the competencies it teaches is
mastered. Available lessons are scored to pick the next one:

    score = 10 (teaches a recommended competency)
          + (1 - mean mastery of its competencies) * 5
          + (100 - path order) * 0.1

Everything here works on plain values so it can be tested without a
database.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from src.domains.mastery import MASTERED_THRESHOLD, CompetencyNode, mastery_status

DEFAULT_ESTIMATED_MINUTES = 30
DEFAULT_DIFFICULTY = 3
MAX_SUGGESTED_LESSONS = 3

RECOMMENDED_BONUS = 10.0
LOW_MASTERY_WEIGHT = 5.0
ORDER_WEIGHT = 0.1

REASON_COMPLETED = "Completed"
REASON_IN_PROGRESS = "In progress"
REASON_AVAILABLE = "Ready to start"
REASON_LOCKED = "Prerequisites not met"

NEXT_CONTINUE = "Continue from where you left off"
NEXT_RECOMMENDED = "Recommended based on your learning progress"
NEXT_IN_SEQUENCE = "Next in your learning sequence"
NO_LESSONS_AVAILABLE = (
    "No lessons available. You may have completed the course or need to unlock prerequisites."
)


@dataclass
class PathCompetency:
    competency_id: str
    code: str
    name: dict[str, Any]
    mastery: float
    status: str


@dataclass
class PathItem:
    """One lesson on a learner's path through a course."""

    lesson_id: str
    lesson_type: str
    title: dict[str, Any]
    module_id: str
    module_title: dict[str, Any]
    order: int
    status: str
    reason: str
    prerequisites_met: bool
    competencies: list[PathCompetency] = field(default_factory=list)
    estimated_minutes: int = DEFAULT_ESTIMATED_MINUTES
    difficulty: int = DEFAULT_DIFFICULTY

    @property
    def competency_ids(self) -> list[str]:
        return [c.competency_id for c in self.competencies]

    @property
    def mean_mastery(self) -> float:
        if not self.competencies:
            return 0.0
        return sum(c.mastery for c in self.competencies) / len(self.competencies)


@dataclass
class NextLesson:
    item: PathItem
    reason: str
    priority: str
    score: float | None = None


def lesson_prerequisites_met(
    lesson: Any,
    competencies: Mapping[str, CompetencyNode],
    progress_status: Mapping[str, str],
    mastery: Mapping[str, float],
) -> bool:
    """Check prerequisite lessons are completed and prerequisite competencies mastered."""
    for prerequisite_id in lesson.prerequisites or []:
        if progress_status.get(prerequisite_id) != "completed":
            return False

    for competency_id in lesson.competencies or []:
        node = competencies.get(competency_id)
        if node is None:
            continue
        for prerequisite_id in node.prerequisites:
            if mastery.get(prerequisite_id, 0.0) < MASTERED_THRESHOLD:
                return False
    return True


def build_learning_path(
    lessons: Sequence[Any],
    module_titles: Mapping[str, dict[str, Any]],
    competencies: Mapping[str, CompetencyNode],
    progress_status: Mapping[str, str],
    mastery: Mapping[str, float],
) -> list[PathItem]:
    """Annotate course lessons with the learner's status.

    Args:
        lessons: Lessons already ordered by module order then lesson order.
        module_titles: Bilingual module titles keyed by module id.
        competencies: Course competencies keyed by id.
        progress_status: Lesson progress status keyed by lesson id.
        mastery: Mastery keyed by competency id.

    Returns:
        Path items numbered from 1 in lesson order.
    """
    path: list[PathItem] = []
    for order, lesson in enumerate(lessons, start=1):
        met = lesson_prerequisites_met(lesson, competencies, progress_status, mastery)
        progress = progress_status.get(lesson.id)

        if progress == "completed":
            status, reason = "completed", REASON_COMPLETED
        elif progress == "in-progress":
            status, reason = "in-progress", REASON_IN_PROGRESS
        elif met:
            status, reason = "available", REASON_AVAILABLE
        else:
            status, reason = "locked", REASON_LOCKED

        lesson_competencies = []
        for competency_id in lesson.competencies or []:
            node = competencies.get(competency_id)
            if node is None:
                continue
            value = mastery.get(competency_id)
            lesson_competencies.append(
                PathCompetency(
                    competency_id=competency_id,
                    code=node.code,
                    name=node.name,
                    mastery=value or 0.0,
                    status=mastery_status(value).value if value is not None else "not-started",
                )
            )

        path.append(
            PathItem(
                lesson_id=lesson.id,
                lesson_type=lesson.lesson_type,
                title=lesson.title or {"th": "Untitled", "en": "Untitled"},
                module_id=lesson.module_id,
                module_title=module_titles.get(lesson.module_id, {}),
                order=order,
                status=status,
                reason=reason,
                prerequisites_met=met,
                competencies=lesson_competencies,
                estimated_minutes=lesson.estimated_minutes or DEFAULT_ESTIMATED_MINUTES,
                difficulty=lesson.difficulty or DEFAULT_DIFFICULTY,
            )
        )
    return path


def score_lesson(item: PathItem, recommended_ids: set[str]) -> float:
    score = 0.0
    if any(cid in recommended_ids for cid in item.competency_ids):
        score += RECOMMENDED_BONUS
    score += (1 - item.mean_mastery) * LOW_MASTERY_WEIGHT
    score += (100 - item.order) * ORDER_WEIGHT
    return score


def priority_for_score(score: float) -> str:
    if score > 15:
        return "high"
    if score > 10:
        return "medium"
    return "low"


def choose_next_lesson(path: Sequence[PathItem], recommended_ids: set[str]) -> NextLesson | None:
    """Pick the lesson to study next.

    An in-progress lesson always wins. Otherwise the best scoring
    available lesson is chosen; ties keep path order.

    Returns:
        The choice, or None when nothing is available.
    """
    in_progress = [item for item in path if item.status == "in-progress"]
    if in_progress:
        return NextLesson(item=in_progress[0], reason=NEXT_CONTINUE, priority="high")

    available = [item for item in path if item.status == "available"]
    if not available:
        return None

    scored = sorted(
        ((score_lesson(item, recommended_ids), item) for item in available),
        key=lambda pair: pair[0],
        reverse=True,
    )
    score, best = scored[0]
    recommended = any(cid in recommended_ids for cid in best.competency_ids)
    return NextLesson(
        item=best,
        reason=NEXT_RECOMMENDED if recommended else NEXT_IN_SEQUENCE,
        priority=priority_for_score(score),
        score=score,
    )


def completion_summary(path: Sequence[PathItem]) -> dict[str, Any]:
    """Lesson counts by status and the completed percentage."""
    counts = {"completed": 0, "in-progress": 0, "available": 0, "locked": 0}
    for item in path:
        counts[item.status] += 1

    total = len(path)
    return {
        "total": total,
        "completed": counts["completed"],
        "in_progress": counts["in-progress"],
        "available": counts["available"],
        "locked": counts["locked"],
        "completion_percentage": counts["completed"] / total * 100 if total else 0.0,
    }


def suggest_lessons(
    path: Sequence[PathItem],
    next_ids: set[str],
    remediation_ids: set[str],
) -> tuple[list[PathItem], list[PathItem]]:
    """Lessons to study next and completed lessons worth reviewing.

    Args:
        path: The learner's path.
        next_ids: Competencies recommended to learn next.
        remediation_ids: Competencies that need remediation.

    Returns:
        Up to three next lessons and up to three review lessons.
    """
    next_lessons = [
        item
        for item in path
        if item.status in ("available", "in-progress")
        and any(cid in next_ids for cid in item.competency_ids)
    ]
    review_lessons = [
        item
        for item in path
        if item.status == "completed" and any(cid in remediation_ids for cid in item.competency_ids)
    ]
    return next_lessons[:MAX_SUGGESTED_LESSONS], review_lessons[:MAX_SUGGESTED_LESSONS]
