# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Skill graph views and competency recommendations.

Pure functions over a course's competencies and a learner's mastery map
(competency id -> mastery). Competencies the learner has never been
assessed on count as mastery 0.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from src.domains.course.graph import dependents_map
from src.domains.mastery.calculator import (
    DEVELOPING_THRESHOLD,
    MASTERED_THRESHOLD,
    average_mastery,
    mastery_status,
)

MAX_RECOMMENDATIONS = 5

REASON_IN_PROGRESS = "Continue learning (in progress)"
REASON_FOUNDATION = "Foundation skill (no prerequisites)"
REASON_READY = "Ready to learn"


@dataclass(frozen=True)
class CompetencyNode:
    """Minimal view of a competency for graph computations."""

    id: str
    code: str
    name: dict[str, Any]
    prerequisites: tuple[str, ...] = ()

    @classmethod
    def from_model(cls, competency: Any) -> "CompetencyNode":
        return cls(
            id=competency.id,
            code=competency.code,
            name=dict(competency.name or {}),
            prerequisites=tuple(competency.prerequisites or ()),
        )


@dataclass
class CompetencyRecommendation:
    competency_id: str
    code: str
    name: dict[str, Any]
    mastery: float
    reason: str


@dataclass
class Recommendations:
    """Remediation and next-step suggestions for one course."""

    remediation: list[CompetencyRecommendation] = field(default_factory=list)
    next: list[CompetencyRecommendation] = field(default_factory=list)

    @property
    def competency_ids(self) -> set[str]:
        return {r.competency_id for r in self.remediation} | {r.competency_id for r in self.next}


def build_skill_graph(
    competencies: Sequence[CompetencyNode],
    mastery: Mapping[str, float],
) -> list[dict[str, Any]]:
    """Build one node per competency with prerequisites and dependents.

    Args:
        competencies: Competencies of the course.
        mastery: Learner mastery by competency id.

    Returns:
        Node dictionaries in the order the competencies were given.
    """
    graph = {c.id: list(c.prerequisites) for c in competencies}
    dependents = dependents_map(graph)

    nodes = []
    for competency in competencies:
        value = mastery.get(competency.id, 0.0)
        nodes.append(
            {
                "competency_id": competency.id,
                "code": competency.code,
                "name": competency.name,
                "prerequisites": list(competency.prerequisites),
                "dependents": dependents.get(competency.id, []),
                "mastery": value,
                "status": mastery_status(value).value,
            }
        )
    return nodes


def prerequisites_met(
    competency: CompetencyNode,
    mastery: Mapping[str, float],
    threshold: float = MASTERED_THRESHOLD,
) -> bool:
    """Check every prerequisite is mastered."""
    return all(mastery.get(p, 0.0) >= threshold for p in competency.prerequisites)


def recommend_competencies(
    competencies: Sequence[CompetencyNode],
    mastery: Mapping[str, float],
    limit: int = MAX_RECOMMENDATIONS,
) -> Recommendations:
    """Pick competencies to remediate and to learn next.

    Remediation targets started but weak competencies (0 < m < 0.5),
    weakest first. Next targets unmastered competencies whose
    prerequisites are all mastered, preferring ones already started and
    then ones with fewer prerequisites.

    Args:
        competencies: Competencies of the course.
        mastery: Learner mastery by competency id.
        limit: Maximum entries per list.

    Returns:
        Recommendations with both lists.
    """
    remediation = [
        c for c in competencies if 0 < mastery.get(c.id, 0.0) < DEVELOPING_THRESHOLD
    ]
    remediation.sort(key=lambda c: mastery.get(c.id, 0.0))

    candidates = [
        c
        for c in competencies
        if mastery.get(c.id, 0.0) < MASTERED_THRESHOLD and prerequisites_met(c, mastery)
    ]
    candidates.sort(key=lambda c: (mastery.get(c.id, 0.0) <= 0, len(c.prerequisites)))

    def _reason(c: CompetencyNode) -> str:
        if mastery.get(c.id, 0.0) > 0:
            return REASON_IN_PROGRESS
        if not c.prerequisites:
            return REASON_FOUNDATION
        return REASON_READY

    return Recommendations(
        remediation=[
            CompetencyRecommendation(
                competency_id=c.id,
                code=c.code,
                name=c.name,
                mastery=mastery.get(c.id, 0.0),
                reason="Needs remediation",
            )
            for c in remediation[:limit]
        ],
        next=[
            CompetencyRecommendation(
                competency_id=c.id,
                code=c.code,
                name=c.name,
                mastery=mastery.get(c.id, 0.0),
                reason=_reason(c),
            )
            for c in candidates[:limit]
        ],
    )


def summarize_progress(competency_ids: Sequence[str], mastery: Mapping[str, float]) -> dict[str, Any]:
    """Count competencies per mastery band for a course.

    Returns:
        Dict with total, mastered, developing, not_started and
        average_mastery.
    """
    values = [mastery.get(cid, 0.0) for cid in competency_ids]
    return {
        "total": len(values),
        "mastered": sum(1 for v in values if v >= MASTERED_THRESHOLD),
        "developing": sum(1 for v in values if DEVELOPING_THRESHOLD <= v < MASTERED_THRESHOLD),
        "not_started": sum(1 for v in values if v == 0),
        "average_mastery": average_mastery(values),
    }
