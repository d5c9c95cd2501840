"""Trigger, text, output, and scripted transform nodes."""

from __future__ import annotations

import logging
from typing import Any

from agentflow.graph.context import ExecutionContext
from agentflow.graph.handles import TRIGGER_CONTEXT_KEY
from agentflow.graph.models import AgentGraph, NodeSpec, TriggerContext
from agentflow.graph.registry import NodeExecutionResult, WorkflowDeps

logger = logging.getLogger(__name__)

# Raw handle name of the scripted node's input when it is not mapped to "input"
SCRIPT_PARAMS_INPUT = "in-code-params"


async def execute_trigger_node(
    node: NodeSpec,
    inputs: dict[str, Any],
    context: ExecutionContext,
    graph: AgentGraph,
    deps: WorkflowDeps,
) -> NodeExecutionResult:
    """
    Expose the trigger payload on the node's output handles.

    ``out-participant`` and ``out-chat-id`` default to empty strings;
    ``out-message`` carries the triggering message. The bare value is the
    participant id, or the message for manual triggers without one.
    """
    trigger = context.node_values.get(TRIGGER_CONTEXT_KEY)
    if not isinstance(trigger, TriggerContext):
        trigger = TriggerContext.normalize(trigger) or TriggerContext()

    participant_id = trigger.participant_id or ""
    chat_id = trigger.chat_id or ""

    context.node_values.set(node.id, participant_id, "out-participant")
    context.node_values.set(node.id, chat_id, "out-chat-id")
    context.node_values.set(node.id, trigger.message, "out-message")

    return NodeExecutionResult.ok(participant_id or trigger.message)


def execute_text_node(
    node: NodeSpec,
    inputs: dict[str, Any],
    context: ExecutionContext,
    graph: AgentGraph,
    deps: WorkflowDeps,
) -> NodeExecutionResult:
    content = node.config.get("content", node.config.get("text", ""))
    return NodeExecutionResult.ok(content if isinstance(content, str) else str(content))


def execute_chat_output_node(
    node: NodeSpec,
    inputs: dict[str, Any],
    context: ExecutionContext,
    graph: AgentGraph,
    deps: WorkflowDeps,
) -> NodeExecutionResult:
    return NodeExecutionResult.ok(inputs.get("input"))


async def execute_javascript_node(
    node: NodeSpec,
    inputs: dict[str, Any],
    context: ExecutionContext,
    graph: AgentGraph,
    deps: WorkflowDeps,
) -> NodeExecutionResult:
    """
    Run the node's script through the injected script runner.

    The script sees a single ``input`` value. A string result feeds the
    ``out-string`` handle and a list feeds ``out-toolset``; the runner does
    that reflection.
    """
    if deps.run_script is None:
        return NodeExecutionResult.fail("Javascript node requires a script runner")

    code = node.config.get("code") or ""
    script_input = inputs.get("input", inputs.get(SCRIPT_PARAMS_INPUT))

    try:
        value = await deps.run_script(code, script_input)
    except Exception as e:
        logger.warning(f"Script in node '{node.id}' failed: {e}")
        return NodeExecutionResult.fail(f"Script execution failed: {e}")

    return NodeExecutionResult.ok(value)
