"""Workflow-local tools handed to inference nodes."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from agentflow.inference.types import ToolDefinition

DEFAULT_TOOL_PARAMETERS: dict[str, Any] = {"type": "object", "properties": {}}

_JSON_TYPES: dict[Any, str] = {
    int: "integer",
    float: "number",
    bool: "boolean",
    dict: "object",
    list: "array",
}


@dataclass
class WorkflowTool:
    """
    A capability the model may call during inference.

    ``invoke`` receives the parsed argument object and may be sync or async.
    """

    name: str
    invoke: Callable[[dict[str, Any]], Any]
    description: str | None = None
    input_schema: dict[str, Any] | None = field(default=None)

    async def call(self, args: dict[str, Any]) -> Any:
        result = self.invoke(args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def to_definition(self) -> ToolDefinition:
        """Inference-ready definition; tools without a schema take an empty object."""
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.input_schema or dict(DEFAULT_TOOL_PARAMETERS),
        )

    @classmethod
    def from_value(cls, value: WorkflowTool | dict[str, Any] | Callable[..., Any]) -> WorkflowTool:
        """
        Coerce a toolset entry into a WorkflowTool.

        Accepts a WorkflowTool, a ``{name, description, inputSchema, invoke}``
        mapping, or a plain function (see ``from_function``).
        """
        if isinstance(value, WorkflowTool):
            return value
        if isinstance(value, dict):
            return cls(
                name=value["name"],
                invoke=value["invoke"],
                description=value.get("description"),
                input_schema=value.get("inputSchema", value.get("input_schema")),
            )
        if callable(value):
            return cls.from_function(value)
        raise TypeError(f"Cannot use {type(value).__name__} as a workflow tool")

    @classmethod
    def from_function(
        cls,
        func: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
    ) -> WorkflowTool:
        """
        Expose a function as a tool called with the model's arguments as keywords.

        Parameters without a default are required. Annotations map to JSON
        schema types; anything unmapped is a string.
        """
        properties: dict[str, Any] = {}
        required: list[str] = []
        for param in inspect.signature(func, eval_str=True).parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            properties[param.name] = {"type": _JSON_TYPES.get(param.annotation, "string")}
            if param.default is param.empty:
                required.append(param.name)

        async def invoke(args: dict[str, Any]) -> Any:
            result = func(**args)
            if inspect.isawaitable(result):
                result = await result
            return result

        tool_name = name or func.__name__
        return cls(
            name=tool_name,
            invoke=invoke,
            description=description or inspect.getdoc(func) or f"Execute {tool_name}",
            input_schema={"type": "object", "properties": properties, "required": required},
        )
