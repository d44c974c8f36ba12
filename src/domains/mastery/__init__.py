# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mastery tracking domain package.

This package provides:
- The mastery update and decay algorithm
- Skill graph and competency recommendations
- MasteryService for persisted learner mastery
"""

from src.domains.mastery.calculator import (
    DEVELOPING_THRESHOLD,
    MASTERED_THRESHOLD,
    MasteryEvidence,
    MasteryStatus,
    MasteryUpdate,
    apply_decay,
    average_mastery,
    calculate_mastery_update,
    decay_factor,
    mastery_status,
)
from src.domains.mastery.recommendations import (
    CompetencyNode,
    Recommendations,
    build_skill_graph,
    recommend_competencies,
    summarize_progress,
)
from src.domains.mastery.service import (
    MasteryCompetencyNotFoundError,
    MasteryNotFoundError,
    MasteryService,
    MasteryServiceError,
)

__all__ = [
    "DEVELOPING_THRESHOLD",
    "MASTERED_THRESHOLD",
    "MasteryEvidence",
    "MasteryStatus",
    "MasteryUpdate",
    "apply_decay",
    "average_mastery",
    "calculate_mastery_update",
    "decay_factor",
    "mastery_status",
    "CompetencyNode",
    "Recommendations",
    "build_skill_graph",
    "recommend_competencies",
    "summarize_progress",
    "MasteryService",
    "MasteryServiceError",
    "MasteryNotFoundError",
    "MasteryCompetencyNotFoundError",
]
