"""
Output slots and input resolution.

A node's outputs live in a NodeValues map keyed by OutputSlot. A slot
without a handle is the node's default (bare) output; a slot with a handle
is one specific named output. Consumers look up the handle-scoped slot first
and fall back to the bare slot only when no scoped slot was ever written.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from agentflow.graph.models import EdgeSpec, NodeSpec

WORKFLOW_INPUT_KEY = "workflow-input"
TRIGGER_CONTEXT_KEY = "workflow-trigger-context"

# Edge target handle -> logical input name seen by executors
HANDLE_INPUT_NAMES: dict[str, str] = {
    "in-input": "input",
    "in-history": "history",
    "in-system-prompt": "systemPrompt",
    "response": "response",
    "in-character": "characterId",
    "in-toolset": "toolset",
}

TOOLSET_INPUT = "toolset"


@dataclass(frozen=True)
class OutputSlot:
    """Address of one value in NodeValues."""

    node_id: str
    handle: str | None = None

    @property
    def is_scoped(self) -> bool:
        return self.handle is not None

    def bare(self) -> OutputSlot:
        return OutputSlot(self.node_id)

    def __str__(self) -> str:
        if self.handle is None:
            return self.node_id
        return f"{self.node_id}::{self.handle}"


class NodeValues:
    """
    Values produced during one run, keyed by OutputSlot.

    Writing ``None`` to a slot records the slot as present-but-empty: a
    scoped slot cleared that way still shadows the node's bare value.
    """

    def __init__(self) -> None:
        self._values: dict[OutputSlot, Any] = {}

    def set(self, node_id: str, value: Any, handle: str | None = None) -> None:
        self._values[OutputSlot(node_id, handle)] = value

    def get(self, node_id: str, handle: str | None = None, default: Any = None) -> Any:
        return self._values.get(OutputSlot(node_id, handle), default)

    def has(self, node_id: str, handle: str | None = None) -> bool:
        return OutputSlot(node_id, handle) in self._values

    def resolve(self, node_id: str, handle: str | None) -> Any:
        """Look up a consumer-facing value: handle-scoped slot first, then bare."""
        if handle is not None and self.has(node_id, handle):
            return self.get(node_id, handle)
        return self.get(node_id)

    def slots(self) -> list[OutputSlot]:
        return list(self._values)

    def to_dict(self) -> dict[str, Any]:
        """Flatten to ``node`` / ``node::handle`` string keys for display."""
        return {str(slot): value for slot, value in self._values.items()}

    def __contains__(self, slot: object) -> bool:
        return slot in self._values

    def __iter__(self) -> Iterator[OutputSlot]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)


def map_handle_to_input_name(handle: str) -> str:
    """Translate an edge target handle into the executor's input name."""
    return HANDLE_INPUT_NAMES.get(handle, handle)


def resolve_inputs(
    node: NodeSpec,
    edges: Sequence[EdgeSpec],
    values: NodeValues,
) -> dict[str, Any]:
    """
    Resolve a node's logical inputs from upstream outputs.

    Edges whose upstream value is missing are skipped; downstream nodes
    tolerate absent optional inputs. ``toolset`` inputs from several edges
    are concatenated in edge order; every other input name is last-wins.
    """
    inputs: dict[str, Any] = {}
    for edge in edges:
        if edge.target != node.id:
            continue

        handle = edge.source_handle or None
        value = values.resolve(edge.source, handle)
        if value is None:
            continue

        name = map_handle_to_input_name(edge.target_handle)
        if name == TOOLSET_INPUT:
            accumulated = inputs.get(TOOLSET_INPUT)
            if not isinstance(accumulated, list):
                accumulated = []
            items = value if isinstance(value, list) else [value]
            inputs[TOOLSET_INPUT] = [*accumulated, *items]
        else:
            inputs[name] = value

    return inputs
