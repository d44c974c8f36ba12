# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Prerequisite graph helpers.

Competencies and lessons both declare prerequisites as lists of ids. The
graph is passed around as a mapping ``node_id -> prerequisite ids``;
unknown prerequisite ids are treated as leaves.
"""

from collections.abc import Mapping, Sequence

PrerequisiteGraph = Mapping[str, Sequence[str]]


def has_cycle_from(graph: PrerequisiteGraph, start: str) -> bool:
    """Check whether a cycle is reachable from ``start``.

    Iterative depth-first search with an explicit recursion stack.

    Args:
        graph: Mapping of node id to prerequisite ids.
        start: Node to start the search from.

    Returns:
        True if following prerequisites from start revisits a node
        still on the stack.
    """
    visited: set[str] = set()
    on_stack: set[str] = set()
    # Each frame is (node, iterator over its prerequisites)
    stack = [(start, iter(graph.get(start, ())))]
    on_stack.add(start)

    while stack:
        node, children = stack[-1]
        advanced = False
        for child in children:
            if child in on_stack:
                return True
            if child not in visited:
                on_stack.add(child)
                stack.append((child, iter(graph.get(child, ()))))
                advanced = True
                break
        if not advanced:
            stack.pop()
            on_stack.discard(node)
            visited.add(node)

    return False


def validate_dag(graph: PrerequisiteGraph, start: str | None = None) -> bool:
    """Check that the prerequisite graph is acyclic.

    Args:
        graph: Mapping of node id to prerequisite ids.
        start: Only check cycles reachable from this node.

    Returns:
        True when no cycle exists.
    """
    if start is not None:
        return not has_cycle_from(graph, start)
    return not any(has_cycle_from(graph, node) for node in graph)


def prerequisite_closure(graph: PrerequisiteGraph, node: str) -> list[str]:
    """All direct and transitive prerequisites of ``node``.

    Returns:
        Prerequisite ids in breadth-first discovery order, excluding node.
    """
    seen: set[str] = {node}
    ordered: list[str] = []
    frontier = list(graph.get(node, ()))

    while frontier:
        current = frontier.pop(0)
        if current in seen:
            continue
        seen.add(current)
        ordered.append(current)
        frontier.extend(graph.get(current, ()))

    return ordered


def dependents_map(graph: PrerequisiteGraph) -> dict[str, list[str]]:
    """Invert the graph: node id -> ids that list it as a prerequisite."""
    dependents: dict[str, list[str]] = {node: [] for node in graph}
    for node, prerequisites in graph.items():
        for prerequisite in prerequisites:
            dependents.setdefault(prerequisite, []).append(node)
    return dependents
