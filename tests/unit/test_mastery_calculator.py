# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the mastery update algorithm."""

import math

import pytest

from src.domains.mastery.calculator import (
    MasteryEvidence,
    MasteryStatus,
    apply_decay,
    average_mastery,
    calculate_mastery_update,
    decay_factor,
    hint_score,
    learning_rate,
    mastery_status,
    raw_evidence_score,
    time_score,
)


class TestEvidenceScores:
    """Tests for the component scores."""

    def test_time_score_under_expected_is_full(self) -> None:
        assert time_score(30, 60) == 1.0

    def test_time_score_slower_is_proportional(self) -> None:
        assert time_score(120, 60) == pytest.approx(0.5)

    def test_time_score_non_positive_time_is_full(self) -> None:
        assert time_score(0, 60) == 1.0

    def test_hint_score_drops_per_hint(self) -> None:
        assert hint_score(0) == 1.0
        assert hint_score(3) == pytest.approx(0.7)
        assert hint_score(15) == 0.0

    def test_raw_score_weights(self) -> None:
        evidence = MasteryEvidence(correctness=0.5, time_on_task=120, expected_time=60, hints_used=2)

        assert raw_evidence_score(evidence) == pytest.approx(0.35 + 0.1 + 0.08)

    def test_correctness_is_clamped(self) -> None:
        evidence = MasteryEvidence(correctness=1.5, time_on_task=10, expected_time=60)

        assert raw_evidence_score(evidence) == pytest.approx(1.0)


class TestMasteryUpdate:
    """Tests for calculate_mastery_update."""

    def test_first_attempt_moves_by_base_rate(self) -> None:
        evidence = MasteryEvidence(correctness=1.0, time_on_task=30, expected_time=60)

        update = calculate_mastery_update(0.5, 0.2, evidence)

        assert update.raw_score == pytest.approx(1.0)
        assert update.mastery == pytest.approx(0.65)
        assert update.confidence == pytest.approx(0.3)

    def test_later_attempts_move_less(self) -> None:
        first = MasteryEvidence(correctness=1.0, time_on_task=30, expected_time=60, attempt_number=1)
        fifth = MasteryEvidence(correctness=1.0, time_on_task=30, expected_time=60, attempt_number=5)

        assert calculate_mastery_update(0.2, 0.0, fifth).mastery < calculate_mastery_update(0.2, 0.0, first).mastery

    def test_learning_rate_shrinks_logarithmically(self) -> None:
        assert learning_rate(1) == pytest.approx(0.3)
        assert learning_rate(3) == pytest.approx(0.3 / (1 + math.log(3)))
        assert learning_rate(0) == learning_rate(1)

    def test_confidence_is_capped(self) -> None:
        evidence = MasteryEvidence(correctness=0.0, time_on_task=60, expected_time=60)

        assert calculate_mastery_update(0.4, 0.95, evidence).confidence == 1.0

    def test_mastery_stays_in_range(self) -> None:
        evidence = MasteryEvidence(correctness=0.0, time_on_task=600, expected_time=60, hints_used=20)

        update = calculate_mastery_update(0.0, 0.0, evidence)

        assert 0.0 <= update.mastery <= 1.0


class TestDecay:
    """Tests for forgetting curves."""

    def test_apply_decay_one_week(self) -> None:
        assert apply_decay(0.8, 7, 0.05) == pytest.approx(0.8 * math.exp(-0.05))

    def test_apply_decay_no_time(self) -> None:
        assert apply_decay(0.8, 0) == pytest.approx(0.8)

    def test_decay_factor_two_weeks(self) -> None:
        assert decay_factor(14, 0.1) == pytest.approx(0.81)

    def test_decay_factor_negative_days(self) -> None:
        assert decay_factor(-3) == 1.0


class TestBands:
    """Tests for mastery bands and averages."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0.95, MasteryStatus.MASTERED),
            (0.8, MasteryStatus.MASTERED),
            (0.65, MasteryStatus.DEVELOPING),
            (0.5, MasteryStatus.DEVELOPING),
            (0.2, MasteryStatus.NEEDS_REMEDIATION),
        ],
    )
    def test_mastery_status(self, value: float, expected: MasteryStatus) -> None:
        assert mastery_status(value) == expected

    def test_average_mastery(self) -> None:
        assert average_mastery([]) == 0.0
        assert average_mastery([0.2, 0.4, 0.9]) == pytest.approx(0.5)
