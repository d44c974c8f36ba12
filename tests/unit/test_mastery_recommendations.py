# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for skill graphs and competency recommendations."""

import pytest

from src.domains.mastery.recommendations import (
    REASON_FOUNDATION,
    REASON_IN_PROGRESS,
    REASON_READY,
    CompetencyNode,
    build_skill_graph,
    prerequisites_met,
    recommend_competencies,
    summarize_progress,
)


@pytest.fixture
def competencies() -> list[CompetencyNode]:
    return [
        CompetencyNode(id="a", code="MATH-1", name={"th": "การนับ", "en": "Counting"}),
        CompetencyNode(id="b", code="MATH-2", name={"en": "Addition"}, prerequisites=("a",)),
        CompetencyNode(id="c", code="MATH-3", name={"en": "Multiplication"}, prerequisites=("b",)),
        CompetencyNode(id="d", code="READ-1", name={"en": "Alphabet"}),
    ]


class TestSkillGraph:
    """Tests for build_skill_graph."""

    def test_nodes_carry_dependents_and_status(self, competencies: list[CompetencyNode]) -> None:
        nodes = build_skill_graph(competencies, {"a": 0.9, "b": 0.6})

        by_id = {n["competency_id"]: n for n in nodes}
        assert [n["competency_id"] for n in nodes] == ["a", "b", "c", "d"]
        assert by_id["a"]["dependents"] == ["b"]
        assert by_id["a"]["status"] == "mastered"
        assert by_id["b"]["status"] == "developing"
        assert by_id["c"]["mastery"] == 0.0
        assert by_id["c"]["status"] == "needs_remediation"


class TestRecommendations:
    """Tests for recommend_competencies."""

    def test_remediation_and_next(self, competencies: list[CompetencyNode]) -> None:
        result = recommend_competencies(competencies, {"a": 0.9, "b": 0.3})

        assert [r.competency_id for r in result.remediation] == ["b"]
        assert [r.competency_id for r in result.next] == ["b", "d"]
        assert result.next[0].reason == REASON_IN_PROGRESS
        assert result.next[1].reason == REASON_FOUNDATION
        assert result.competency_ids == {"b", "d"}

    def test_locked_competency_is_not_recommended(self, competencies: list[CompetencyNode]) -> None:
        result = recommend_competencies(competencies, {"a": 0.9, "b": 0.3})

        assert "c" not in {r.competency_id for r in result.next}

    def test_ready_reason_when_prerequisites_mastered(self, competencies: list[CompetencyNode]) -> None:
        result = recommend_competencies(competencies, {"a": 0.9, "b": 0.85, "d": 0.9})

        assert [(r.competency_id, r.reason) for r in result.next] == [("c", REASON_READY)]
        assert result.remediation == []

    def test_limit_applies_per_list(self, competencies: list[CompetencyNode]) -> None:
        result = recommend_competencies(competencies, {}, limit=1)

        assert len(result.next) == 1

    def test_prerequisites_met(self, competencies: list[CompetencyNode]) -> None:
        assert prerequisites_met(competencies[1], {"a": 0.8}) is True
        assert prerequisites_met(competencies[1], {"a": 0.79}) is False
        assert prerequisites_met(competencies[0], {}) is True


def test_summarize_progress() -> None:
    summary = summarize_progress(["a", "b", "c", "d"], {"a": 0.9, "b": 0.6, "c": 0.2})

    assert summary["total"] == 4
    assert summary["mastered"] == 1
    assert summary["developing"] == 1
    assert summary["not_started"] == 1
    assert summary["average_mastery"] == pytest.approx(0.425)
