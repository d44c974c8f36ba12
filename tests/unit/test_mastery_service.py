# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for MasteryService."""

from datetime import datetime, timedelta, timezone

import pytest

from src.domains.mastery.calculator import MasteryEvidence
from src.domains.mastery.service import (
    MasteryCompetencyNotFoundError,
    MasteryNotFoundError,
    MasteryService,
)
from src.infrastructure.database.models import LearnerMastery

EVIDENCE = MasteryEvidence(
    correctness=1.0,
    time_on_task=45_000,
    expected_time=60_000,
    hints_used=0,
    attempt_number=1,
)


def _record(mastery: float, last_assessed: datetime) -> LearnerMastery:
    return LearnerMastery(
        user_id="user-1",
        competency_id="comp-1",
        mastery=mastery,
        confidence=0.5,
        last_assessed=last_assessed,
        decay_rate=0.05,
        history=[],
    )


@pytest.fixture
def service(mock_db):
    return MasteryService(db=mock_db)


class TestUpdateMastery:
    """Tests for MasteryService.update_mastery."""

    @pytest.mark.asyncio
    async def test_first_assessment_creates_record(self, service, mock_db, make_result) -> None:
        mock_db.execute.side_effect = [make_result(scalar=None), make_result(scalar="comp-1")]

        response = await service.update_mastery("user-1", "comp-1", EVIDENCE, event_type="quiz")

        record = mock_db.add.call_args[0][0]
        assert record.decay_rate == 0.05
        assert 0.0 < response.mastery <= 1.0
        assert response.history[-1].event_type == "quiz"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_competency(self, service, mock_db, make_result) -> None:
        mock_db.execute.side_effect = [make_result(scalar=None), make_result(scalar=None)]

        with pytest.raises(MasteryCompetencyNotFoundError):
            await service.update_mastery("user-1", "missing", EVIDENCE)
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_existing_record_keeps_history(self, service, mock_db, make_result) -> None:
        record = _record(0.5, datetime(2025, 3, 1, tzinfo=timezone.utc))
        record.add_history_event("practice", {})
        mock_db.execute.return_value = make_result(scalar=record)

        await service.update_mastery("user-1", "comp-1", EVIDENCE)

        assert len(record.history) == 2
        assert record.mastery > 0.5
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_mastery(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(MasteryNotFoundError):
            await service.get_competency_mastery("user-1", "comp-1")


class TestMasteryDecay:
    """Tests for MasteryService.apply_mastery_decay."""

    @pytest.mark.asyncio
    async def test_four_weeks_of_decay(self, service, mock_db, make_result) -> None:
        record = _record(0.8, datetime.now(timezone.utc) - timedelta(days=28))
        mock_db.execute.return_value = make_result(scalars=[record])

        updated = await service.apply_mastery_decay("user-1")

        assert updated == 1
        assert record.mastery == pytest.approx(0.8 * 0.95**4)
        assert record.history[-1]["event_type"] == "decay"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_tiny_change_is_skipped(self, service, mock_db, make_result) -> None:
        record = _record(0.05, datetime.now(timezone.utc) - timedelta(days=8))
        mock_db.execute.return_value = make_result(scalars=[record])

        assert await service.apply_mastery_decay("user-1") == 0
        assert record.mastery == 0.05
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mastery_map(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(rows=[("comp-1", 0.9), ("comp-2", 0.2)])

        assert await service.get_mastery_map("user-1") == {"comp-1": 0.9, "comp-2": 0.2}
        assert await service.get_mastery_map("user-1", []) == {}
