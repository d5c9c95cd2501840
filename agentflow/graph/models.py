"""
Graph Models - Nodes, edges, and agent graphs.

An agent graph is an unordered set of nodes plus a set of edges. Edges are
the only path by which data crosses node boundaries: each edge connects a
named output handle on its source node to a named input handle on its
target node.

Graphs exported by the desktop editor use camelCase keys (``sourceHandle``,
``targetHandle``); both spellings are accepted.

Example:
    AgentGraph(
        id="echo-agent",
        name="Echo",
        nodes=[
            NodeSpec(id="trigger", type="trigger"),
            NodeSpec(id="out", type="chatOutput"),
        ],
        edges=[
            EdgeSpec(
                id="e1",
                source="trigger",
                source_handle="out-message",
                target="out",
                target_handle="in-input",
            ),
        ],
    )
"""

from __future__ import annotations

import json
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class NodeType(StrEnum):
    """Type tags of the built-in node kinds.

    The set of tags is open: any string may be registered with a
    NodeExecutorRegistry. These are the ones the engine ships executors for.
    """

    TRIGGER = "trigger"
    TEXT = "text"
    JAVASCRIPT = "javascript"
    CHAT_HISTORY = "chatHistory"
    CHAT_OUTPUT = "chatOutput"
    AGENT = "agent"


class TriggerType(StrEnum):
    """What caused a workflow run."""

    MANUAL = "manual"
    AFTER_USER_MESSAGE = "after_user_message"
    BEFORE_USER_MESSAGE = "before_user_message"
    AFTER_CHARACTER_MESSAGE = "after_character_message"
    BEFORE_CHARACTER_MESSAGE = "before_character_message"
    AFTER_ANY_MESSAGE = "after_any_message"
    BEFORE_ANY_MESSAGE = "before_any_message"
    AFTER_ALL_PARTICIPANTS = "after_all_participants"
    EVERY_X_MESSAGES = "every_x_messages"


class NodePosition(BaseModel):
    """Canvas position of a node. Ignored by the engine."""

    x: float = 0.0
    y: float = 0.0


class NodeSpec(BaseModel):
    """A unit of work in a workflow graph."""

    id: str
    type: str = Field(description="Type tag used to look up the node's executor")
    label: str = ""
    position: NodePosition | None = None
    config: dict[str, Any] = Field(
        default_factory=dict, description="Type-specific configuration, opaque to the engine"
    )

    model_config = {"extra": "allow"}


class EdgeSpec(BaseModel):
    """A directed data dependency from a source output handle to a target input handle."""

    id: str = ""
    source: str = Field(description="Source node ID")
    source_handle: str = Field(default="", alias="sourceHandle")
    target: str = Field(description="Target node ID")
    target_handle: str = Field(default="", alias="targetHandle")
    edge_type: str | None = Field(default=None, alias="edgeType")

    model_config = {"extra": "allow", "populate_by_name": True}


class AgentGraph(BaseModel):
    """
    Complete definition of an agent workflow.

    Node order in ``nodes`` is significant only as the tie-break for
    execution ordering; edge order in ``edges`` is significant for inputs
    that overwrite rather than accumulate.
    """

    id: str
    name: str = ""
    description: str | None = None
    version: str = "1.0.0"
    nodes: list[NodeSpec] = Field(default_factory=list)
    edges: list[EdgeSpec] = Field(default_factory=list)
    settings: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "allow"}

    def get_node(self, node_id: str) -> NodeSpec | None:
        """Get a node by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_incoming_edges(self, node_id: str) -> list[EdgeSpec]:
        """Get all edges entering a node, in declaration order."""
        return [e for e in self.edges if e.target == node_id]

    def get_outgoing_edges(self, node_id: str) -> list[EdgeSpec]:
        """Get all edges leaving a node, in declaration order."""
        return [e for e in self.edges if e.source == node_id]

    def output_nodes(self) -> list[NodeSpec]:
        """Nodes whose value becomes the run's final output."""
        return [n for n in self.nodes if n.type == NodeType.CHAT_OUTPUT]

    def validate(self) -> list[str]:
        """Validate the graph structure.

        Cycles are not reported here; ordering detects them.
        """
        errors = []

        seen_ids: set[str] = set()
        for node in self.nodes:
            if node.id in seen_ids:
                errors.append(f"Duplicate node ID: '{node.id}'")
            seen_ids.add(node.id)

        for edge in self.edges:
            if edge.source not in seen_ids:
                errors.append(f"Edge '{edge.id}' references missing source '{edge.source}'")
            if edge.target not in seen_ids:
                errors.append(f"Edge '{edge.id}' references missing target '{edge.target}'")

        return errors

    @classmethod
    def from_file(cls, path: str | Path) -> AgentGraph:
        """Load a graph exported as JSON."""
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

    def to_file(self, path: str | Path) -> None:
        """Export the graph as JSON using the editor's camelCase keys."""
        data = self.model_dump(mode="json", by_alias=True)
        Path(path).write_text(json.dumps(data, indent=2), encoding="utf-8")


class TriggerContext(BaseModel):
    """
    The payload that starts a run.

    A bare string is the legacy form and means a manual trigger carrying a
    user message.
    """

    type: str = TriggerType.MANUAL
    message: str | None = None
    chat_id: str | None = Field(default=None, alias="chatId")
    participant_id: str | None = Field(default=None, alias="participantId")
    user_character_id: str | None = Field(default=None, alias="userCharacterId")
    message_count: int | None = Field(default=None, alias="messageCount")

    model_config = {"extra": "allow", "populate_by_name": True}

    @classmethod
    def normalize(cls, value: TriggerContext | str | dict[str, Any] | None) -> TriggerContext | None:
        """Coerce the accepted trigger forms into a TriggerContext."""
        if value is None:
            return None
        if isinstance(value, TriggerContext):
            return value
        if isinstance(value, str):
            return cls(type=TriggerType.MANUAL, message=value)
        return cls.model_validate(value)
