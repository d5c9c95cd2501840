"""Inference backend abstraction: queue a request, receive its response out of band."""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from agentflow.inference.types import (
    InferenceRequest,
    InferenceResponse,
    InferenceResult,
    InferenceStatus,
)

logger = logging.getLogger(__name__)

ResponseListener = Callable[[InferenceResponse], None]


class InferenceBackend(ABC):
    """
    Abstract inference backend - plug in any model runtime.

    Submitting a request returns a request id immediately. The backend later
    delivers exactly one terminal response (completed, cancelled, or error)
    for that id to every subscribed listener, possibly preceded by streaming
    responses.
    """

    def __init__(self) -> None:
        self._listeners: list[ResponseListener] = []

    @abstractmethod
    async def run_inference(self, request: InferenceRequest) -> str | None:
        """
        Queue a request.

        Returns:
            The request id, or None if the request could not be queued
        """

    @abstractmethod
    async def cancel_request(self, request_id: str) -> None:
        """Ask the backend to stop working on a request."""

    def subscribe(self, listener: ResponseListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ResponseListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, response: InferenceResponse) -> None:
        """Deliver a response to every listener."""
        for listener in list(self._listeners):
            try:
                listener(response)
            except Exception as e:
                logger.warning(f"Inference listener failed for {response.request_id}: {e}")


CompletionFunc = Callable[[InferenceRequest], Awaitable[InferenceResult]]


class CallableInferenceBackend(InferenceBackend):
    """
    Backend that runs each request as an asyncio task over a completion function.

    Useful for local models and tests: the completion function does the
    work, this class supplies request ids, cancellation, and the response
    channel.

    Example:
        async def complete(request: InferenceRequest) -> InferenceResult:
            return InferenceResult(text="hi")

        backend = CallableInferenceBackend(complete)
    """

    def __init__(self, complete: CompletionFunc) -> None:
        super().__init__()
        self._complete = complete
        self._tasks: dict[str, asyncio.Task] = {}

    async def run_inference(self, request: InferenceRequest) -> str | None:
        request_id = uuid.uuid4().hex
        task = asyncio.create_task(self._run(request_id, request))
        self._tasks[request_id] = task
        task.add_done_callback(lambda _t: self._tasks.pop(request_id, None))
        return request_id

    async def cancel_request(self, request_id: str) -> None:
        task = self._tasks.get(request_id)
        if task is not None and not task.done():
            task.cancel()

    def pending_requests(self) -> list[str]:
        return list(self._tasks)

    async def _run(self, request_id: str, request: InferenceRequest) -> None:
        try:
            result = await self._complete(request)
        except asyncio.CancelledError:
            self.emit(InferenceResponse(request_id=request_id, status=InferenceStatus.CANCELLED))
            raise
        except Exception as e:
            logger.error(f"Inference request {request_id} failed: {e}")
            self.emit(
                InferenceResponse(request_id=request_id, status=InferenceStatus.ERROR, error=str(e))
            )
            return
        self.emit(
            InferenceResponse(request_id=request_id, status=InferenceStatus.COMPLETED, result=result)
        )
