"""Chat history node: a filtered window of the current chat."""

from __future__ import annotations

from typing import Any

from agentflow.graph.context import ExecutionContext
from agentflow.graph.models import AgentGraph, NodeSpec
from agentflow.graph.registry import NodeExecutionResult, WorkflowDeps

DEFAULT_HISTORY_DEPTH = 10

# messageType config value -> stored message type
_MESSAGE_TYPES = {"assistant": "character", "user": "user", "system": "system"}


def filter_history(
    history: list[dict[str, Any]],
    participant_id: str | None = None,
    message_type: str = "all",
    depth: int = DEFAULT_HISTORY_DEPTH,
) -> list[dict[str, Any]]:
    """
    Filter chat messages by participant and type, keeping the last ``depth``.

    A participant id of ``"user"`` selects the user's messages; any other id
    selects that character's messages. ``depth <= 0`` keeps everything.
    """
    if participant_id:
        if participant_id == "user":
            history = [m for m in history if m.get("type") == "user"]
        else:
            history = [m for m in history if m.get("character_id") == participant_id]

    if message_type != "all":
        target = _MESSAGE_TYPES.get(message_type, message_type)
        history = [m for m in history if m.get("type") == target]

    if depth > 0:
        history = history[-depth:]

    return history


async def execute_chat_history_node(
    node: NodeSpec,
    inputs: dict[str, Any],
    context: ExecutionContext,
    graph: AgentGraph,
    deps: WorkflowDeps,
) -> NodeExecutionResult:
    if deps.get_chat_history is None:
        return NodeExecutionResult.ok([])

    try:
        history = await deps.get_chat_history()
    except Exception as e:
        return NodeExecutionResult.fail(f"Failed to read chat history: {e}")

    participant_id = inputs.get("characterId") or inputs.get("participantId")
    try:
        depth = int(node.config.get("depth", DEFAULT_HISTORY_DEPTH))
    except (TypeError, ValueError):
        depth = DEFAULT_HISTORY_DEPTH

    return NodeExecutionResult.ok(
        filter_history(
            list(history or []),
            participant_id=participant_id if isinstance(participant_id, str) else None,
            message_type=node.config.get("messageType", "all"),
            depth=depth,
        )
    )
