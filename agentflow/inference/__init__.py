"""Inference backend contract and message types.

The tool-calling loop lives in ``agentflow.inference.orchestrator``.
"""

from agentflow.inference.backend import CallableInferenceBackend, InferenceBackend
from agentflow.inference.types import (
    InferenceMessage,
    InferenceRequest,
    InferenceResponse,
    InferenceResult,
    InferenceStatus,
    ModelSpec,
    ToolCall,
    ToolDefinition,
)

__all__ = [
    "CallableInferenceBackend",
    "InferenceBackend",
    "InferenceMessage",
    "InferenceRequest",
    "InferenceResponse",
    "InferenceResult",
    "InferenceStatus",
    "ModelSpec",
    "ToolCall",
    "ToolDefinition",
]
