# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for prerequisite graph helpers."""

from src.domains.course.graph import (
    dependents_map,
    has_cycle_from,
    prerequisite_closure,
    validate_dag,
)

# fractions -> decimals -> percentages, with counting as a shared root
CHAIN = {
    "counting": [],
    "fractions": ["counting"],
    "decimals": ["fractions"],
    "percentages": ["decimals", "fractions"],
}


class TestCycleDetection:
    """Tests for cycle detection."""

    def test_acyclic_graph_is_valid(self) -> None:
        assert validate_dag(CHAIN) is True

    def test_self_loop_is_a_cycle(self) -> None:
        assert has_cycle_from({"a": ["a"]}, "a") is True

    def test_long_cycle_is_detected(self) -> None:
        graph = {"a": ["b"], "b": ["c"], "c": ["a"]}

        assert validate_dag(graph) is False

    def test_cycle_only_checked_from_start(self) -> None:
        """A cycle not reachable from the start node is ignored."""
        graph = {"a": ["b"], "b": [], "x": ["y"], "y": ["x"]}

        assert validate_dag(graph, start="a") is True
        assert validate_dag(graph) is False

    def test_diamond_is_not_a_cycle(self) -> None:
        graph = {"top": ["left", "right"], "left": ["base"], "right": ["base"], "base": []}

        assert validate_dag(graph) is True

    def test_unknown_prerequisites_are_leaves(self) -> None:
        assert validate_dag({"a": ["missing"]}) is True


class TestClosure:
    """Tests for transitive prerequisites and dependents."""

    def test_prerequisite_closure_breadth_first(self) -> None:
        assert prerequisite_closure(CHAIN, "percentages") == ["decimals", "fractions", "counting"]

    def test_closure_of_root_is_empty(self) -> None:
        assert prerequisite_closure(CHAIN, "counting") == []

    def test_dependents_map(self) -> None:
        dependents = dependents_map(CHAIN)

        assert dependents["counting"] == ["fractions"]
        assert sorted(dependents["fractions"]) == ["decimals", "percentages"]
        assert dependents["percentages"] == []
