"""
Node Executor Registry - Dispatch from node type tag to behavior.

The engine never branches on node type to decide what a node does; it looks
the tag up here. New node kinds register independently of the runner.

Example:
    registry = NodeExecutorRegistry()

    @registry.executor("uppercase")
    async def run_uppercase(node, inputs, context, graph, deps):
        return NodeExecutionResult.ok(str(inputs.get("input", "")).upper())
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from agentflow.graph.context import ExecutionContext
    from agentflow.graph.models import AgentGraph, NodeSpec

logger = logging.getLogger(__name__)


@dataclass
class NodeExecutionResult:
    """Outcome of one node execution."""

    success: bool
    value: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, value: Any = None) -> NodeExecutionResult:
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> NodeExecutionResult:
        return cls(success=False, error=error)


@dataclass
class WorkflowDeps:
    """
    External collaborators injected into executors.

    The engine never calls these itself; they exist so executors can reach
    inference, templates, and chat state without importing them, and so
    tests can pass fakes.
    """

    # Tool-calling inference: see ToolCallingOrchestrator.run_inference
    run_inference: Callable[..., Awaitable[str | None]] | None = None
    # Aborts in-flight inference; wired to the run's cancel callbacks
    cancel_inference: Callable[[], None] | None = None
    format_prompt: Callable[..., Awaitable[dict[str, Any]]] | None = None
    remove_nested_fields: Callable[[dict[str, Any]], dict[str, Any]] | None = None
    get_chat_template_by_id: Callable[[str], Awaitable[dict[str, Any] | None]] | None = None
    get_model_by_id: Callable[[str], Awaitable[dict[str, Any] | None]] | None = None
    get_inference_template_by_id: Callable[[str], Awaitable[dict[str, Any] | None]] | None = None
    get_format_template_by_id: Callable[[str], Awaitable[dict[str, Any] | None]] | None = None
    get_manifest_by_id: Callable[[str], dict[str, Any] | None] | None = None
    get_chat_history: Callable[[], Awaitable[list[dict[str, Any]]]] | None = None
    # (code, input) -> value; the scripted transform node delegates to this
    run_script: Callable[[str, Any], Awaitable[Any]] | None = None


class NodeExecutor(Protocol):
    """Callable implementing one node type. May be sync or async."""

    def __call__(
        self,
        node: NodeSpec,
        inputs: dict[str, Any],
        context: ExecutionContext,
        graph: AgentGraph,
        deps: WorkflowDeps,
    ) -> NodeExecutionResult | Awaitable[NodeExecutionResult]: ...


class NodeExecutorRegistry:
    """Maps node type tags to executors."""

    def __init__(self) -> None:
        self._executors: dict[str, NodeExecutor] = {}

    def register(self, node_type: str, executor: NodeExecutor) -> None:
        if node_type in self._executors:
            logger.warning(f"Node type '{node_type}' is already registered. Overwriting...")
        self._executors[node_type] = executor

    def executor(self, node_type: str) -> Callable[[NodeExecutor], NodeExecutor]:
        """Decorator form of register()."""

        def decorator(func: NodeExecutor) -> NodeExecutor:
            self.register(node_type, func)
            return func

        return decorator

    def unregister(self, node_type: str) -> None:
        self._executors.pop(node_type, None)

    def get_executor(self, node_type: str) -> NodeExecutor | None:
        return self._executors.get(node_type)

    def has(self, node_type: str) -> bool:
        return node_type in self._executors

    def registered_types(self) -> list[str]:
        return list(self._executors)
