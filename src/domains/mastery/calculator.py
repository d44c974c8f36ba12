# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mastery update algorithm.

Mastery is an exponential moving average of a weighted evidence score:

    raw   = 0.7 * correctness + 0.2 * time_score + 0.1 * hint_score
    alpha = 0.3 / (1 + ln(attempt_number))
    new   = (1 - alpha) * current + alpha * raw

time_score rewards finishing within the expected time and hint_score
drops by 10% per hint. Later attempts move the estimate less. Every
function here is pure so it can be reused by the quiz grader, the sync
layer and the decay job.
"""

import math
from dataclasses import dataclass
from enum import Enum

CORRECTNESS_WEIGHT = 0.7
TIME_WEIGHT = 0.2
HINT_WEIGHT = 0.1

BASE_LEARNING_RATE = 0.3
HINT_PENALTY = 0.1
CONFIDENCE_STEP = 0.1
DEFAULT_DECAY_RATE = 0.05

MASTERED_THRESHOLD = 0.8
DEVELOPING_THRESHOLD = 0.5


class MasteryStatus(str, Enum):
    """Coarse mastery bands used in reports and recommendations."""

    MASTERED = "mastered"
    DEVELOPING = "developing"
    NEEDS_REMEDIATION = "needs_remediation"


@dataclass(frozen=True)
class MasteryEvidence:
    """Evidence from one assessment of a competency.

    Attributes:
        correctness: Fraction of items answered correctly (0-1).
        time_on_task: Time spent, in the same unit as expected_time.
        expected_time: Time an average learner needs.
        hints_used: Hints requested during the assessment.
        attempt_number: 1-based attempt counter.
    """

    correctness: float
    time_on_task: float
    expected_time: float
    hints_used: int = 0
    attempt_number: int = 1


@dataclass(frozen=True)
class MasteryUpdate:
    """Result of applying evidence to a mastery estimate."""

    mastery: float
    confidence: float
    raw_score: float


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def time_score(time_on_task: float, expected_time: float) -> float:
    """Score in [0, 1] for how quickly the task was done.

    Finishing at or under the expected time scores 1. A non-positive
    time on task is treated as instant.
    """
    if time_on_task <= 0:
        return 1.0
    return min(1.0, expected_time / time_on_task)


def hint_score(hints_used: int) -> float:
    """Score in [0, 1] that loses 0.1 per hint used."""
    return max(0.0, 1.0 - max(0, hints_used) * HINT_PENALTY)


def raw_evidence_score(evidence: MasteryEvidence) -> float:
    """Weighted combination of correctness, speed and hint usage."""
    return (
        _clamp(evidence.correctness) * CORRECTNESS_WEIGHT
        + time_score(evidence.time_on_task, evidence.expected_time) * TIME_WEIGHT
        + hint_score(evidence.hints_used) * HINT_WEIGHT
    )


def learning_rate(attempt_number: int) -> float:
    """EMA weight for new evidence, shrinking with repeated attempts."""
    attempt = max(1, attempt_number)
    return BASE_LEARNING_RATE * (1.0 / (1.0 + math.log(attempt)))


def calculate_mastery_update(
    current_mastery: float,
    current_confidence: float,
    evidence: MasteryEvidence,
) -> MasteryUpdate:
    """Apply one piece of evidence to a mastery estimate.

    Args:
        current_mastery: Mastery before the assessment (0-1).
        current_confidence: Confidence before the assessment (0-1).
        evidence: Assessment evidence.

    Returns:
        MasteryUpdate with the new mastery, confidence and raw score.
    """
    raw = raw_evidence_score(evidence)
    alpha = learning_rate(evidence.attempt_number)
    mastery = _clamp((1 - alpha) * current_mastery + alpha * raw)
    confidence = min(1.0, current_confidence + CONFIDENCE_STEP)
    return MasteryUpdate(mastery=mastery, confidence=confidence, raw_score=raw)


def apply_decay(mastery: float, days_since_assessed: float, decay_rate: float = DEFAULT_DECAY_RATE) -> float:
    """Continuous forgetting curve: mastery * exp(-rate * weeks)."""
    weeks = max(0.0, days_since_assessed) / 7
    return mastery * math.exp(-decay_rate * weeks)


def decay_factor(days_since_assessed: int, decay_rate: float = DEFAULT_DECAY_RATE) -> float:
    """Stepwise weekly decay factor used by the stored-record decay job.

    Args:
        days_since_assessed: Whole days since the last assessment.
        decay_rate: Fraction lost per week.

    Returns:
        (1 - decay_rate) ** (days / 7)
    """
    return (1 - decay_rate) ** (max(0, days_since_assessed) / 7)


def average_mastery(values: list[float]) -> float:
    """Arithmetic mean, 0 for an empty list."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def mastery_status(mastery: float) -> MasteryStatus:
    """Band a mastery value."""
    if mastery >= MASTERED_THRESHOLD:
        return MasteryStatus.MASTERED
    if mastery >= DEVELOPING_THRESHOLD:
        return MasteryStatus.DEVELOPING
    return MasteryStatus.NEEDS_REMEDIATION
