"""
Tool-Calling Orchestrator - "ask the model, maybe call tools, ask again".

One logical inference call becomes a bounded loop:

    Idle → Awaiting-Response → Responded-With-Text → Done
                             → Responded-With-Tools → Executing-Tools → Awaiting-Response
                             → Cancelled | Timed-Out | Error → Failed

Each round submits the whole conversation plus tool definitions to the
backend, waits for that request's terminal response, and either returns the
text or runs the requested tools and appends their results. Running past
``max_tool_iterations`` rounds is an error, never a silent truncation.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import OrderedDict
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from agentflow.config import (
    get_inference_timeout,
    get_max_tool_iterations,
)
from agentflow.errors import (
    InferenceCancelledError,
    InferenceError,
    InferenceTimeoutError,
    IterationBoundExceededError,
    MissingToolsetError,
    ToolInvocationError,
    ToolResolutionError,
)
from agentflow.inference.backend import InferenceBackend
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
from agentflow.tools import WorkflowTool

logger = logging.getLogger(__name__)

# Responses that arrive before anyone waits on them; bounded
_MAX_UNCLAIMED_RESPONSES = 256


@dataclass
class ToolLoopResult:
    """Outcome of a completed tool loop.

    ``conversation`` is the message list sent with the final request (input
    messages plus every assistant tool-call turn and tool result turn).
    """

    text: str | None
    conversation: list[InferenceMessage] = field(default_factory=list)
    round_trips: int = 0


def to_inference_tool_definition(
    tool: WorkflowTool | dict[str, Any] | Callable[..., Any],
) -> ToolDefinition:
    return WorkflowTool.from_value(tool).to_definition()


def parse_tool_arguments(arguments: Any) -> dict[str, Any]:
    """Accept pre-parsed objects or JSON strings; anything else is an empty object."""
    if not arguments:
        return {}
    if isinstance(arguments, str):
        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    if isinstance(arguments, dict):
        return arguments
    return {}


def serialize_tool_result(result: Any) -> str:
    """Strings pass through; everything else is JSON, or str() if not serializable."""
    if isinstance(result, str):
        return result
    try:
        return json.dumps(result)
    except (TypeError, ValueError):
        return str(result if result is not None else "")


class ToolCallingOrchestrator:
    """
    Drives an InferenceBackend through the tool-calling loop.

    Example:
        orchestrator = ToolCallingOrchestrator(backend)
        deps = WorkflowDeps(
            run_inference=orchestrator.run_inference,
            cancel_inference=orchestrator.cancel_pending,
        )
    """

    def __init__(
        self,
        backend: InferenceBackend,
        max_tool_iterations: int | None = None,
        response_timeout: float | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            backend: Transport that accepts requests and publishes responses
            max_tool_iterations: Tool loop bound (defaults to the engine configuration)
            response_timeout: Seconds to wait per response (defaults to the engine configuration)
        """
        self.backend = backend
        self.max_tool_iterations = max_tool_iterations or get_max_tool_iterations()
        self.response_timeout = response_timeout or get_inference_timeout()
        self._pending: dict[str, asyncio.Future[InferenceResponse]] = {}
        self._unclaimed: OrderedDict[str, InferenceResponse] = OrderedDict()
        backend.subscribe(self._on_response)

    def close(self) -> None:
        """Detach from the backend's response channel."""
        self.backend.unsubscribe(self._on_response)

    async def run_inference(
        self,
        messages: Sequence[InferenceMessage | dict[str, Any]],
        model_spec: ModelSpec | dict[str, Any],
        system_prompt: str | None = None,
        parameters: dict[str, Any] | None = None,
        toolset: Sequence[WorkflowTool | dict[str, Any]] | None = None,
        stream: bool = False,
    ) -> str | None:
        """
        Run the tool loop and return the model's final text.

        Returns:
            The final response text, or None if a request could not be queued
        """
        result = await self.run_tool_loop(
            messages,
            model_spec,
            system_prompt=system_prompt,
            parameters=parameters,
            toolset=toolset,
            stream=stream,
        )
        return result.text if result is not None else None

    async def run_tool_loop(
        self,
        messages: Sequence[InferenceMessage | dict[str, Any]],
        model_spec: ModelSpec | dict[str, Any],
        system_prompt: str | None = None,
        parameters: dict[str, Any] | None = None,
        toolset: Sequence[WorkflowTool | dict[str, Any]] | None = None,
        stream: bool = False,
    ) -> ToolLoopResult | None:
        """Run the loop and return the final text with the conversation that produced it."""
        tools = [WorkflowTool.from_value(t) for t in toolset or []]
        definitions = [t.to_definition() for t in tools]
        conversation = [InferenceMessage.from_value(m) for m in messages]
        iterations = 0

        while iterations < self.max_tool_iterations:
            request = InferenceRequest(
                messages=list(conversation),
                model_spec=model_spec,
                system_prompt=system_prompt,
                parameters=dict(parameters or {}),
                stream=stream,
                tools=definitions or None,
            )
            request_id = await self.backend.run_inference(request)
            if not request_id:
                logger.warning("Inference request could not be queued")
                return None

            logger.debug(
                f"Awaiting inference round {iterations + 1}",
                extra={"request_id": request_id, "iteration": iterations + 1},
            )
            response = await self._wait_for_response(request_id)

            if response.status == InferenceStatus.CANCELLED:
                raise InferenceCancelledError(request_id)
            if response.status == InferenceStatus.ERROR:
                raise InferenceError(request_id, response.error)

            result = response.result or InferenceResult()
            text = result.response_text
            calls = [ToolCall.from_value(c) for c in result.tool_calls or []]

            if not calls:
                return ToolLoopResult(
                    text=text, conversation=conversation, round_trips=iterations + 1
                )

            if not tools:
                raise MissingToolsetError()

            timestamp = int(time.time() * 1000)
            calls = [
                ToolCall(
                    name=call.name,
                    arguments=call.arguments,
                    id=call.id or f"{call.name}-{timestamp}-{index}",
                )
                for index, call in enumerate(calls)
            ]
            conversation.append(InferenceMessage(role="assistant", text=text or "", tool_calls=calls))

            for call in calls:
                conversation.append(await self._execute_tool_call(call, tools))

            iterations += 1

        raise IterationBoundExceededError(self.max_tool_iterations)

    def cancel_pending(self) -> None:
        """
        Abort every in-flight wait as cancelled and ask the backend to stop.

        Waits are not scoped to a workflow run: every request this
        orchestrator is waiting on is aborted, whichever run issued it.
        Give each run its own orchestrator when runs must be cancelled
        independently.

        Safe to call from any thread.
        """
        for request_id, future in list(self._pending.items()):
            loop = future.get_loop()
            cancelled = InferenceResponse(request_id=request_id, status=InferenceStatus.CANCELLED)
            loop.call_soon_threadsafe(self._resolve, cancelled)
            pending_cancel = asyncio.run_coroutine_threadsafe(
                self.backend.cancel_request(request_id), loop
            )
            pending_cancel.add_done_callback(self._log_cancel_failure)

    async def _execute_tool_call(self, call: ToolCall, tools: list[WorkflowTool]) -> InferenceMessage:
        tool = next((t for t in tools if t.name == call.name), None)
        if tool is None:
            raise ToolResolutionError(call.name)

        args = parse_tool_arguments(call.arguments)
        logger.info(f"   🔧 Calling tool {tool.name}", extra={"tool": tool.name})
        try:
            tool_result = await tool.call(args)
        except Exception as e:
            raise ToolInvocationError(tool.name, e) from e

        return InferenceMessage(
            role="tool",
            text=serialize_tool_result(tool_result),
            tool_call_id=call.id,
        )

    async def _wait_for_response(self, request_id: str) -> InferenceResponse:
        early = self._unclaimed.pop(request_id, None)
        if early is not None:
            return early

        future: asyncio.Future[InferenceResponse] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            return await asyncio.wait_for(future, timeout=self.response_timeout)
        except TimeoutError:
            logger.warning(
                f"Inference request {request_id} timed out after {self.response_timeout}s",
                extra={"request_id": request_id},
            )
            self._pending.pop(request_id, None)
            try:
                await self.backend.cancel_request(request_id)
            except Exception as e:
                logger.warning(f"Failed to cancel timed-out request {request_id}: {e}")
            raise InferenceTimeoutError(request_id, self.response_timeout) from None
        finally:
            self._pending.pop(request_id, None)

    def _on_response(self, response: InferenceResponse) -> None:
        if not response.is_terminal:
            return
        future = self._pending.get(response.request_id)
        if future is None:
            self._unclaimed[response.request_id] = response
            while len(self._unclaimed) > _MAX_UNCLAIMED_RESPONSES:
                self._unclaimed.popitem(last=False)
            return
        future.get_loop().call_soon_threadsafe(self._resolve, response)

    def _resolve(self, response: InferenceResponse) -> None:
        future = self._pending.pop(response.request_id, None)
        if future is not None and not future.done():
            future.set_result(response)

    @staticmethod
    def _log_cancel_failure(done: Any) -> None:
        if not done.cancelled() and done.exception() is not None:
            logger.warning(f"Backend cancellation failed: {done.exception()}")
