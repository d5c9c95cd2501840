"""Message, tool, and response types exchanged with the inference backend."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any


class InferenceStatus(StrEnum):
    """Status carried by a backend response."""

    COMPLETED = "completed"
    STREAMING = "streaming"
    CANCELLED = "cancelled"
    ERROR = "error"


TERMINAL_STATUSES = frozenset(
    {InferenceStatus.COMPLETED, InferenceStatus.CANCELLED, InferenceStatus.ERROR}
)


@dataclass
class ToolDefinition:
    """A tool as advertised to the model."""

    name: str
    description: str | None = None
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolCall:
    """A tool call requested by the model.

    ``arguments`` is whatever the backend produced: usually a dict, sometimes
    a JSON string.
    """

    name: str
    arguments: Any = None
    id: str | None = None

    @classmethod
    def from_value(cls, value: ToolCall | dict[str, Any]) -> ToolCall:
        if isinstance(value, ToolCall):
            return value
        return cls(name=value["name"], arguments=value.get("arguments"), id=value.get("id"))


@dataclass
class InferenceMessage:
    """One conversation turn."""

    role: str
    text: str = ""
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None

    @classmethod
    def from_value(cls, value: InferenceMessage | dict[str, Any]) -> InferenceMessage:
        if isinstance(value, InferenceMessage):
            return cls(
                role=value.role,
                text=value.text,
                tool_calls=list(value.tool_calls) if value.tool_calls else None,
                tool_call_id=value.tool_call_id,
            )
        tool_calls = value.get("tool_calls")
        return cls(
            role=value["role"],
            text=value.get("text", value.get("content", "")) or "",
            tool_calls=[ToolCall.from_value(tc) for tc in tool_calls] if tool_calls else None,
            tool_call_id=value.get("tool_call_id"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role, "text": self.text}
        if self.tool_calls:
            data["tool_calls"] = [asdict(tc) for tc in self.tool_calls]
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        return data


@dataclass
class ModelSpec:
    """Which model to run and how the backend should schedule it."""

    id: str
    model_type: str = "chat"  # "chat" or "completion"
    config: dict[str, Any] = field(default_factory=dict)
    max_concurrent_requests: int = 1
    engine: str = ""


@dataclass
class InferenceRequest:
    """A request submitted to the backend."""

    messages: list[InferenceMessage]
    model_spec: ModelSpec | dict[str, Any]
    system_prompt: str | None = None
    parameters: dict[str, Any] = field(default_factory=dict)
    stream: bool = False
    tools: list[ToolDefinition] | None = None


@dataclass
class InferenceResult:
    """Payload of a completed (or partially streamed) response."""

    text: str | None = None
    full_response: str | None = None
    reasoning: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)

    @property
    def response_text(self) -> str | None:
        return self.full_response or self.text or None


@dataclass
class InferenceResponse:
    """A response delivered on the backend's response channel."""

    request_id: str
    status: InferenceStatus
    result: InferenceResult | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
