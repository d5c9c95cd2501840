"""
agentflow - run agent workflow graphs.

An agent is a directed acyclic graph of typed nodes. The runner orders the
nodes, routes each node's outputs to its consumers' inputs, and dispatches
every node to the executor registered for its type. Inference nodes go
through the tool-calling orchestrator.
"""

from agentflow.errors import (
    CycleError,
    InferenceCancelledError,
    InferenceError,
    InferenceTimeoutError,
    IterationBoundExceededError,
    MissingToolsetError,
    NodeExecutionError,
    ToolInvocationError,
    ToolResolutionError,
    UnregisteredExecutorError,
    WorkflowError,
)
from agentflow.graph import (
    AgentGraph,
    ChatEvent,
    EdgeSpec,
    ExecutionContext,
    NodeExecutionResult,
    NodeExecutorRegistry,
    NodeSpec,
    NodeType,
    TriggerContext,
    TriggerDispatcher,
    WorkflowDeps,
    WorkflowRunner,
    WorkflowScheduler,
    cancel_workflow,
    execute_workflow,
    is_workflow_running,
)
from agentflow.inference.orchestrator import ToolCallingOrchestrator, ToolLoopResult
from agentflow.tools import WorkflowTool

__all__ = [
    "AgentGraph",
    "EdgeSpec",
    "ExecutionContext",
    "NodeExecutionResult",
    "NodeExecutorRegistry",
    "NodeSpec",
    "NodeType",
    "TriggerContext",
    "TriggerDispatcher",
    "ChatEvent",
    "WorkflowDeps",
    "WorkflowRunner",
    "WorkflowScheduler",
    "cancel_workflow",
    "execute_workflow",
    "is_workflow_running",
    "ToolCallingOrchestrator",
    "ToolLoopResult",
    "WorkflowTool",
    "WorkflowError",
    "CycleError",
    "NodeExecutionError",
    "UnregisteredExecutorError",
    "ToolResolutionError",
    "ToolInvocationError",
    "MissingToolsetError",
    "InferenceError",
    "InferenceTimeoutError",
    "InferenceCancelledError",
    "IterationBoundExceededError",
]
