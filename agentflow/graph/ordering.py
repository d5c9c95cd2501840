"""Execution ordering for agent graphs."""

from __future__ import annotations

from collections.abc import Sequence

from agentflow.errors import CycleError
from agentflow.graph.models import EdgeSpec, NodeSpec


def topological_order(nodes: Sequence[NodeSpec], edges: Sequence[EdgeSpec]) -> list[str]:
    """
    Compute a dependency-respecting execution order.

    Depth-first: before a node is emitted, every node feeding an edge into it
    is emitted. Roots are visited in ``nodes`` order and dependencies in
    ``edges`` order, so the result is stable for a given input. Isolated
    nodes still appear exactly once.

    Raises:
        CycleError: a node was reached again while still on the DFS stack.
    """
    dependencies: dict[str, list[str]] = {}
    for edge in edges:
        dependencies.setdefault(edge.target, []).append(edge.source)

    visited: set[str] = set()
    visiting: set[str] = set()
    order: list[str] = []

    def visit(node_id: str) -> None:
        if node_id in visiting:
            raise CycleError(node_id)
        if node_id in visited:
            return
        visiting.add(node_id)
        for dep in dependencies.get(node_id, ()):
            visit(dep)
        visiting.discard(node_id)
        visited.add(node_id)
        order.append(node_id)

    for node in nodes:
        if node.id not in visited:
            visit(node.id)

    return order
