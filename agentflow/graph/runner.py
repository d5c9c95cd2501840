"""
Workflow Runner - Executes agent graphs to completion.

The runner:
1. Registers an ExecutionContext for the graph's agent id
2. Seeds the trigger payload into the node values
3. Orders the nodes (a cycle fails the run before anything executes)
4. Resolves inputs, dispatches each node to its executor, records outputs
5. Returns the value of the graph's output node

Nodes run one at a time in order; independent branches are not
parallelized. Cancellation is checked between nodes only.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

from agentflow.errors import NodeExecutionError, UnregisteredExecutorError
from agentflow.graph.context import ExecutionContext
from agentflow.graph.handles import (
    TRIGGER_CONTEXT_KEY,
    WORKFLOW_INPUT_KEY,
    NodeValues,
    resolve_inputs,
)
from agentflow.graph.models import AgentGraph, NodeSpec, NodeType, TriggerContext
from agentflow.graph.ordering import topological_order
from agentflow.graph.registry import NodeExecutionResult, NodeExecutorRegistry, WorkflowDeps
from agentflow.graph.scheduler import WorkflowScheduler, default_scheduler
from agentflow.observability import reset_trace_context, set_trace_context

OnNodeExecuted = Callable[[str, NodeExecutionResult], None]

# Output handles of the scripted transform node
SCRIPT_TEXT_HANDLE = "out-string"
SCRIPT_TOOLSET_HANDLE = "out-toolset"


def reflect_script_outputs(node_id: str, value: Any, values: NodeValues) -> None:
    """
    Reflect a scripted node's value onto its two output handles.

    A script either produces text or a toolset depending on how it was
    written, and downstream edges target the two handles independently.
    The handle that was not produced is cleared so it does not fall back to
    the bare value.
    """
    if isinstance(value, str):
        values.set(node_id, value, SCRIPT_TEXT_HANDLE)
        values.set(node_id, [], SCRIPT_TOOLSET_HANDLE)
    elif isinstance(value, list):
        values.set(node_id, value, SCRIPT_TOOLSET_HANDLE)
        values.set(node_id, None, SCRIPT_TEXT_HANDLE)
    elif isinstance(value, dict):
        # Legacy shape: {"toolset": [...], "text": "..."}
        toolset = value.get("toolset")
        text = value.get("text")
        values.set(node_id, toolset if isinstance(toolset, list) else [], SCRIPT_TOOLSET_HANDLE)
        values.set(node_id, text if isinstance(text, str) else None, SCRIPT_TEXT_HANDLE)


def _coerce_result(node_id: str, raw: Any) -> NodeExecutionResult:
    if isinstance(raw, NodeExecutionResult):
        return raw
    if isinstance(raw, dict) and "success" in raw:
        return NodeExecutionResult(
            success=bool(raw["success"]),
            value=raw.get("value"),
            error=raw.get("error"),
        )
    return NodeExecutionResult.fail(
        f"Executor for node {node_id} returned {type(raw).__name__}, expected NodeExecutionResult"
    )


class WorkflowRunner:
    """
    Runs agent graphs against a registry of node executors.

    Example:
        runner = WorkflowRunner()
        output = await runner.execute_workflow(
            graph=graph,
            trigger_context="hello",
            deps=WorkflowDeps(run_inference=orchestrator.run_inference),
            on_node_executed=lambda node_id, result: print(node_id, result.success),
        )
    """

    def __init__(
        self,
        registry: NodeExecutorRegistry | None = None,
        scheduler: WorkflowScheduler | None = None,
    ):
        """
        Initialize the runner.

        Args:
            registry: Node executors by type tag (defaults to the built-in nodes)
            scheduler: Active-run registry used for cancellation and status queries
        """
        if registry is None:
            from agentflow.nodes import default_registry

            registry = default_registry()
        self.registry = registry
        self.scheduler = scheduler or default_scheduler()
        self.logger = logging.getLogger(__name__)

    async def execute_workflow(
        self,
        graph: AgentGraph,
        trigger_context: TriggerContext | str | dict[str, Any] | None = None,
        deps: WorkflowDeps | None = None,
        on_node_executed: OnNodeExecuted | None = None,
    ) -> Any | None:
        """
        Execute a graph to completion.

        Args:
            graph: The agent graph
            trigger_context: Initiating payload; a bare string is a manual user message
            deps: Collaborators handed to every executor
            on_node_executed: Progress callback, called after every node (success or failure)

        Returns:
            The output node's value, or None when no output node produced one.
            A cancelled run returns whatever output existed when it stopped.

        Raises:
            CycleError: the graph has a dependency cycle (no node runs)
            NodeExecutionError: a node returned a failed result, including one
                that failed because cancellation aborted its in-flight work
        """
        context = ExecutionContext(agent_id=graph.id)
        self.scheduler.register(graph.id, context)
        trace_token = set_trace_context(agent_id=graph.id, run_id=context.run_id)
        deps = deps or WorkflowDeps()

        try:
            self._seed_trigger(context, trigger_context)

            order = topological_order(graph.nodes, graph.edges)
            self.logger.info(f"▶ Running agent '{graph.id}' ({len(order)} nodes)")
            self.logger.debug(f"   Order: {' → '.join(order)}")

            for node_id in order:
                if not context.is_running:
                    self.logger.info(f"⏹ Run cancelled before node '{node_id}'")
                    break

                node = graph.get_node(node_id)
                if node is None:
                    continue

                context.current_node_id = node_id
                set_trace_context(node_id=node_id)
                self.logger.info(f"   Executing {node_id} ({node.type})")

                result = await self._execute_node(node, graph, context, deps)
                context.executed_nodes.append(node_id)

                if on_node_executed:
                    on_node_executed(node_id, result)

                if not result.success:
                    self.logger.error(f"   ✗ Node '{node_id}' failed: {result.error}")
                    raise NodeExecutionError(
                        node_id,
                        result.error or f"Node {node_id} failed",
                        context.executed_nodes,
                    )

                if result.value is not None:
                    context.node_values.set(node_id, result.value)
                self.logger.info(f"   ✓ {node_id}")

            cancelled = not context.is_running
            output = self._final_output(graph, context)
            self.logger.info(
                f"{'⏹' if cancelled else '✓'} Agent '{graph.id}' "
                f"{'cancelled' if cancelled else 'complete'}: "
                f"{len(context.executed_nodes)} nodes executed"
            )
            return output
        finally:
            context.is_running = False
            context.current_node_id = None
            self.scheduler.remove(graph.id, context)
            reset_trace_context(trace_token)

    def cancel_workflow(self, graph_id: str) -> None:
        """Request cancellation of the agent's active run. No-op if none is running."""
        self.scheduler.cancel(graph_id)

    def is_workflow_running(self, graph_id: str) -> bool:
        return self.scheduler.is_running(graph_id)

    def _seed_trigger(
        self,
        context: ExecutionContext,
        trigger_context: TriggerContext | str | dict[str, Any] | None,
    ) -> None:
        """Write the trigger payload under the well-known keys."""
        trigger = TriggerContext.normalize(trigger_context)
        if trigger is None:
            return
        context.node_values.set(TRIGGER_CONTEXT_KEY, trigger)
        if trigger.message:
            context.node_values.set(WORKFLOW_INPUT_KEY, trigger.message)

    async def _execute_node(
        self,
        node: NodeSpec,
        graph: AgentGraph,
        context: ExecutionContext,
        deps: WorkflowDeps,
    ) -> NodeExecutionResult:
        inputs = resolve_inputs(node, graph.edges, context.node_values)

        executor = self.registry.get_executor(node.type)
        if executor is None:
            return NodeExecutionResult.fail(UnregisteredExecutorError(node.type).message)

        raw = executor(node, inputs, context, graph, deps)
        if inspect.isawaitable(raw):
            raw = await raw
        result = _coerce_result(node.id, raw)

        if node.type == NodeType.JAVASCRIPT and result.success:
            reflect_script_outputs(node.id, result.value, context.node_values)

        return result

    def _final_output(self, graph: AgentGraph, context: ExecutionContext) -> Any | None:
        outputs = graph.output_nodes()
        if not outputs:
            return None
        value = context.node_values.get(outputs[0].id)
        return value or None


_default_runner: WorkflowRunner | None = None


def _get_default_runner() -> WorkflowRunner:
    global _default_runner
    if _default_runner is None:
        _default_runner = WorkflowRunner()
    return _default_runner


async def execute_workflow(
    graph: AgentGraph,
    trigger_context: TriggerContext | str | dict[str, Any] | None = None,
    deps: WorkflowDeps | None = None,
    on_node_executed: OnNodeExecuted | None = None,
) -> Any | None:
    """Execute a graph with the process-wide runner."""
    return await _get_default_runner().execute_workflow(
        graph, trigger_context, deps, on_node_executed
    )


def cancel_workflow(graph_id: str) -> None:
    """Cancel an agent's run on the process-wide runner."""
    _get_default_runner().cancel_workflow(graph_id)


def is_workflow_running(graph_id: str) -> bool:
    return _get_default_runner().is_workflow_running(graph_id)
