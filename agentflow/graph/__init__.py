"""Graph structures: models, ordering, input resolution, the runner, and triggers."""

from agentflow.graph.context import ExecutionContext
from agentflow.graph.handles import (
    HANDLE_INPUT_NAMES,
    TRIGGER_CONTEXT_KEY,
    WORKFLOW_INPUT_KEY,
    NodeValues,
    OutputSlot,
    map_handle_to_input_name,
    resolve_inputs,
)
from agentflow.graph.models import (
    AgentGraph,
    EdgeSpec,
    NodePosition,
    NodeSpec,
    NodeType,
    TriggerContext,
    TriggerType,
)
from agentflow.graph.ordering import topological_order
from agentflow.graph.registry import (
    NodeExecutionResult,
    NodeExecutor,
    NodeExecutorRegistry,
    WorkflowDeps,
)
from agentflow.graph.runner import (
    WorkflowRunner,
    cancel_workflow,
    execute_workflow,
    is_workflow_running,
    reflect_script_outputs,
)
from agentflow.graph.scheduler import WorkflowScheduler, default_scheduler
from agentflow.graph.triggers import (
    COUNTER_EVENT_TYPES,
    EVENT_TO_TRIGGER_TYPES,
    ChatEvent,
    TriggerDispatcher,
    get_trigger_config,
)

__all__ = [
    # Models
    "AgentGraph",
    "EdgeSpec",
    "NodePosition",
    "NodeSpec",
    "NodeType",
    "TriggerContext",
    "TriggerType",
    # Values and inputs
    "HANDLE_INPUT_NAMES",
    "TRIGGER_CONTEXT_KEY",
    "WORKFLOW_INPUT_KEY",
    "NodeValues",
    "OutputSlot",
    "map_handle_to_input_name",
    "resolve_inputs",
    # Execution
    "ExecutionContext",
    "NodeExecutionResult",
    "NodeExecutor",
    "NodeExecutorRegistry",
    "WorkflowDeps",
    "WorkflowRunner",
    "WorkflowScheduler",
    "default_scheduler",
    "topological_order",
    "reflect_script_outputs",
    "execute_workflow",
    "cancel_workflow",
    "is_workflow_running",
    # Triggers
    "ChatEvent",
    "COUNTER_EVENT_TYPES",
    "EVENT_TO_TRIGGER_TYPES",
    "TriggerDispatcher",
    "get_trigger_config",
]
