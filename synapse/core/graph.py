"""
Knowledge graph validation.

Prerequisites must reference nodes of the same graph and form a DAG.
A cycle would make every node on it (and everything depending on it)
permanently locked for Expansion sessions, so graphs are checked once at
import time:

- duplicate node ids are always rejected
- dangling prerequisites are dropped ("break") or rejected ("reject")
- cycles are broken deterministically ("break") or rejected ("reject")

Cycle breaking removes, for each cycle found, the prerequisite edge leaving
the cycle member with the highest node id, and repeats until acyclic.
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import replace
from typing import Literal

from loguru import logger

from synapse.core.exceptions import GraphValidationError
from synapse.core.models import KnowledgeGraph

CyclePolicy = Literal["reject", "break"]

_WHITE, _GRAY, _BLACK = 0, 1, 2


def _prerequisite_map(graph: KnowledgeGraph) -> dict[str, list[str]]:
    return {node.id: list(node.prerequisites) for node in graph.nodes}


def find_cycle(prerequisites: dict[str, list[str]], order: list[str]) -> list[str] | None:
    """
    Find one prerequisite cycle.

    Args:
        prerequisites: node id -> prerequisite ids (all ids must be keys)
        order: node visiting order (keeps the search deterministic)

    Returns:
        Cycle members [a, b, ...] where a requires b, ..., last requires a;
        None if the graph is acyclic
    """
    color = {node_id: _WHITE for node_id in order}

    for start in order:
        if color[start] != _WHITE:
            continue

        color[start] = _GRAY
        path = [start]
        stack = [(start, iter(prerequisites[start]))]

        while stack:
            node_id, children = stack[-1]
            advanced = False
            for child in children:
                if color[child] == _GRAY:
                    return path[path.index(child):]
                if color[child] == _WHITE:
                    color[child] = _GRAY
                    path.append(child)
                    stack.append((child, iter(prerequisites[child])))
                    advanced = True
                    break
            if not advanced:
                color[node_id] = _BLACK
                path.pop()
                stack.pop()

    return None


def topological_order(graph: KnowledgeGraph) -> list[str]:
    """
    Node ids ordered prerequisites-first (Kahn's algorithm).

    Ties keep graph order.

    Raises:
        GraphValidationError: If prerequisites contain a cycle or dangle
    """
    order = graph.node_ids
    known = set(order)
    dependents: dict[str, list[str]] = {node_id: [] for node_id in order}
    in_degree: dict[str, int] = {node_id: 0 for node_id in order}

    for node in graph.nodes:
        for prereq in dict.fromkeys(node.prerequisites):
            if prereq not in known:
                raise GraphValidationError(
                    f"Node {node.id} requires unknown node {prereq}", [node.id]
                )
            dependents[prereq].append(node.id)
            in_degree[node.id] += 1

    ready = deque(node_id for node_id in order if in_degree[node_id] == 0)
    result: list[str] = []
    while ready:
        node_id = ready.popleft()
        result.append(node_id)
        for dependent in dependents[node_id]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                ready.append(dependent)

    if len(result) != len(order):
        blocked = [node_id for node_id in order if in_degree[node_id] > 0]
        raise GraphValidationError(
            f"Prerequisite cycle involving {len(blocked)} node(s): {', '.join(blocked)}",
            blocked,
        )
    return result


def validate_graph(graph: KnowledgeGraph, policy: CyclePolicy = "break") -> KnowledgeGraph:
    """
    Check graph invariants and return a graph that satisfies them.

    Args:
        graph: Freshly imported graph
        policy: "reject" raises on dangling prerequisites or cycles,
            "break" repairs them

    Returns:
        The same graph if valid, otherwise a repaired copy

    Raises:
        GraphValidationError: On duplicate ids, or on any violation under "reject"
    """
    order = graph.node_ids
    if len(set(order)) != len(order):
        duplicates = sorted(node_id for node_id, count in Counter(order).items() if count > 1)
        raise GraphValidationError(
            f"Duplicate node ids in graph {graph.id}: {', '.join(duplicates)}",
            duplicates,
        )

    known = set(order)
    prerequisites: dict[str, list[str]] = {}
    changed = False

    for node_id, prereqs in _prerequisite_map(graph).items():
        unique = list(dict.fromkeys(prereqs))
        dangling = [p for p in unique if p not in known]
        if dangling:
            if policy == "reject":
                raise GraphValidationError(
                    f"Node {node_id} requires unknown node(s): {', '.join(dangling)}",
                    [node_id],
                )
            logger.warning(f"Dropping unknown prerequisite(s) {dangling} of node {node_id}")
        kept = [p for p in unique if p in known]
        changed = changed or kept != prereqs
        prerequisites[node_id] = kept

    while (cycle := find_cycle(prerequisites, order)) is not None:
        if policy == "reject":
            raise GraphValidationError(
                f"Prerequisite cycle in graph {graph.id}: {' -> '.join(cycle + cycle[:1])}",
                cycle,
            )
        breaker = max(cycle)
        target = cycle[(cycle.index(breaker) + 1) % len(cycle)]
        prerequisites[breaker].remove(target)
        changed = True
        logger.warning(f"Breaking prerequisite cycle in graph {graph.id}: {breaker} -/-> {target}")

    if not changed:
        return graph

    nodes = tuple(
        replace(node, prerequisites=tuple(prerequisites[node.id])) for node in graph.nodes
    )
    return replace(graph, nodes=nodes)
