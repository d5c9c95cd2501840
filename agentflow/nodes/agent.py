"""
Agent node - one tool-calling inference call.

Looks up the chat template, model, and manifest through the injected
dependencies, builds the prompt, and hands messages plus the accumulated
toolset to ``deps.run_inference``. Every failure becomes a failed node
result; nothing raises out of the executor.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from agentflow.graph.context import ExecutionContext
from agentflow.graph.models import AgentGraph, NodeSpec
from agentflow.graph.registry import NodeExecutionResult, WorkflowDeps
from agentflow.inference.types import InferenceMessage, ModelSpec

logger = logging.getLogger(__name__)

INPUT_PLACEHOLDER = "{{input}}"

# Stored chat message type -> inference role
_HISTORY_ROLES = {"user": "user", "character": "assistant", "system": "system"}


def build_input_prompt(template: str | None, value: Any) -> str:
    """Substitute the first ``{{input}}`` with a string input."""
    prompt = template or INPUT_PLACEHOLDER
    if isinstance(value, str):
        prompt = prompt.replace(INPUT_PLACEHOLDER, value, 1)
    return prompt


def history_to_messages(history: list[dict[str, Any]]) -> list[InferenceMessage]:
    messages = []
    for entry in history:
        role = _HISTORY_ROLES.get(entry.get("type", ""), entry.get("role", "user"))
        text = entry.get("text", entry.get("content", "")) or ""
        messages.append(InferenceMessage(role=role, text=text))
    return messages


async def _optional_lookup(
    lookup: Callable[[str], Awaitable[dict[str, Any] | None]] | None,
    key: str | None,
) -> dict[str, Any] | None:
    if lookup is None or not key:
        return None
    try:
        return await lookup(key)
    except Exception as e:
        logger.debug(f"Optional template lookup for '{key}' failed: {e}")
        return None


async def execute_agent_node(
    node: NodeSpec,
    inputs: dict[str, Any],
    context: ExecutionContext,
    graph: AgentGraph,
    deps: WorkflowDeps,
) -> NodeExecutionResult:
    cfg = node.config
    input_prompt = build_input_prompt(cfg.get("inputPrompt"), inputs.get("input"))
    system_prompt = inputs.get("systemPrompt") or cfg.get("systemPromptOverride") or ""
    history = inputs.get("history") if isinstance(inputs.get("history"), list) else []
    toolset = inputs.get("toolset") or []

    if (
        deps.run_inference is None
        or deps.get_chat_template_by_id is None
        or deps.get_model_by_id is None
        or deps.get_manifest_by_id is None
    ):
        return NodeExecutionResult.fail("Agent node missing workflow dependencies")

    chat_template_id = cfg.get("chatTemplateID")
    if not chat_template_id:
        return NodeExecutionResult.fail("Agent node is missing chat template configuration")

    if deps.cancel_inference is not None:
        context.add_cancel_callback(deps.cancel_inference)

    try:
        chat_template = await deps.get_chat_template_by_id(chat_template_id)
        if not chat_template:
            return NodeExecutionResult.fail(f"Chat template not found: {chat_template_id}")

        model_id = chat_template.get("model_id")
        model = await deps.get_model_by_id(model_id) if model_id else None
        if not model:
            return NodeExecutionResult.fail(f"Model not found for chat template {chat_template_id}")

        manifest = deps.get_manifest_by_id(model.get("manifest_id"))
        if not manifest:
            return NodeExecutionResult.fail(f"Manifest not found for model {model.get('id')}")

        inference_template = await _optional_lookup(
            deps.get_inference_template_by_id, model.get("inference_template_id")
        )
        format_template = await _optional_lookup(
            deps.get_format_template_by_id, chat_template.get("format_template_id")
        )

        stop_strings = None
        if deps.format_prompt is not None:
            character_id = inputs.get("characterId")
            prompt = await deps.format_prompt(
                {
                    "messageHistory": history,
                    "userPrompt": input_prompt,
                    "modelSettings": model,
                    "inferenceTemplate": inference_template,
                    "formatTemplate": format_template,
                    "chatTemplate": chat_template,
                    "systemOverridePrompt": system_prompt,
                    "chatConfig": {
                        "character": (
                            {"id": character_id} if character_id and character_id != "user" else None
                        ),
                        "user_character": (
                            {"name": "You", "custom": {"personality": ""}}
                            if character_id == "user"
                            else None
                        ),
                    },
                }
            )
            messages = prompt.get("inferenceMessages") or []
            formatted_system_prompt = prompt.get("systemPrompt")
            stop_strings = prompt.get("customStopStrings")
        else:
            messages = [
                *history_to_messages(history),
                InferenceMessage(role="user", text=input_prompt),
            ]
            formatted_system_prompt = system_prompt or None

        clean = deps.remove_nested_fields or (lambda fields: dict(fields))
        parameters = clean(
            {
                **clean(chat_template.get("config") or {}),
                **(cfg.get("parameters") or {}),
                **(inputs.get("parameters") or {}),
            }
        )
        if stop_strings:
            parameters["stop"] = [*(parameters.get("stop") or []), *stop_strings]

        model_spec = ModelSpec(
            id=model["id"],
            model_type="completion" if model.get("inference_template_id") else "chat",
            config=model.get("config") or {},
            max_concurrent_requests=model.get("max_concurrency") or 1,
            engine=manifest.get("engine", ""),
        )

        logger.info(
            f"   🤖 Agent node '{node.id}' calling model {model_spec.id} "
            f"with {len(toolset)} tools"
        )
        result = await deps.run_inference(
            messages,
            model_spec,
            system_prompt=formatted_system_prompt,
            parameters=parameters,
            toolset=toolset or None,
            stream=False,
        )
        if isinstance(result, str) and result:
            return NodeExecutionResult.ok(result)

        return NodeExecutionResult.fail("Agent inference returned no result")
    except Exception as e:
        logger.warning(f"Agent node '{node.id}' failed: {e}")
        return NodeExecutionResult.fail(str(e) or "Agent background inference failed")
    finally:
        if deps.cancel_inference is not None:
            context.remove_cancel_callback(deps.cancel_inference)
