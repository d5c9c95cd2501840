"""
Workflow error taxonomy.

Every error here is fatal to the run that raised it: there is no partial
result, no automatic retry, and no node-level fallback. A user-cancelled run
is not an error and never raises.
"""

from __future__ import annotations

from typing import Any


class WorkflowError(Exception):
    """Base class for workflow engine failures."""

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class CycleError(WorkflowError):
    """The graph is not a DAG. Raised before any node executes."""

    def __init__(self, node_id: str) -> None:
        super().__init__(
            f"Circular dependency detected involving node {node_id}",
            detail={"node_id": node_id},
        )
        self.node_id = node_id


class NodeExecutionError(WorkflowError):
    """A node executor returned a failed result."""

    def __init__(
        self,
        node_id: str,
        message: str | None = None,
        executed_nodes: list[str] | None = None,
    ) -> None:
        super().__init__(
            message or f"Node {node_id} failed",
            detail={"node_id": node_id, "executed_nodes": list(executed_nodes or [])},
        )
        self.node_id = node_id
        self.executed_nodes = list(executed_nodes or [])


class UnregisteredExecutorError(WorkflowError):
    """No executor is registered for a node's type tag."""

    def __init__(self, node_type: str) -> None:
        super().__init__(
            f"No executor registered for node type: {node_type}",
            detail={"node_type": node_type},
        )
        self.node_type = node_type


class ToolResolutionError(WorkflowError):
    """The model asked for a tool that is not in the supplied toolset."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"No registered tool found for {tool_name}", detail={"tool": tool_name})
        self.tool_name = tool_name


class ToolInvocationError(WorkflowError):
    """A tool's own logic raised."""

    def __init__(self, tool_name: str, cause: BaseException) -> None:
        super().__init__(
            f"Tool {tool_name} execution failed: {cause}",
            detail={"tool": tool_name},
        )
        self.tool_name = tool_name
        self.__cause__ = cause


class MissingToolsetError(WorkflowError):
    """The model requested tool calls but no toolset was supplied."""

    def __init__(self) -> None:
        super().__init__("Model requested tool calls but no toolset is available")


class InferenceError(WorkflowError):
    """The inference backend reported an error for a request."""

    def __init__(self, request_id: str, message: str | None = None) -> None:
        super().__init__(message or "Inference error", detail={"request_id": request_id})
        self.request_id = request_id


class InferenceTimeoutError(InferenceError):
    """No terminal response arrived within the response window."""

    def __init__(self, request_id: str, timeout: float) -> None:
        super().__init__(request_id, f"Agent inference timed out after {timeout:g}s")
        self.timeout = timeout


class InferenceCancelledError(InferenceError):
    """The backend reported the request as cancelled."""

    def __init__(self, request_id: str) -> None:
        super().__init__(request_id, f"Inference request {request_id} was cancelled")


class IterationBoundExceededError(WorkflowError):
    """The tool-calling loop ran past its maximum round count."""

    def __init__(self, max_iterations: int) -> None:
        super().__init__(
            "Maximum tool execution depth exceeded",
            detail={"max_iterations": max_iterations},
        )
        self.max_iterations = max_iterations
