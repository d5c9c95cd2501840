"""
Workflow Scheduler - Tracks active runs by agent identity.

The scheduler is the one piece of shared mutable state in the engine: UI
callers may query or cancel runs while the runs themselves register and
deregister. Only one run per agent id is tracked at a time; registering a
second run for the same id replaces the first one's tracking (last writer
wins).
"""

from __future__ import annotations

import logging
import threading

from agentflow.graph.context import ExecutionContext

logger = logging.getLogger(__name__)


class WorkflowScheduler:
    """
    Registry of active execution contexts keyed by agent id.

    Example:
        scheduler = WorkflowScheduler()
        runner = WorkflowRunner(scheduler=scheduler)

        task = asyncio.create_task(runner.execute_workflow(graph, "hi", deps))
        if scheduler.is_running(graph.id):
            scheduler.cancel(graph.id)
    """

    def __init__(self) -> None:
        self._contexts: dict[str, ExecutionContext] = {}
        self._lock = threading.Lock()

    def register(self, key: str, context: ExecutionContext) -> None:
        with self._lock:
            previous = self._contexts.get(key)
            self._contexts[key] = context
        if previous is not None and previous is not context:
            logger.warning(
                f"Run {context.run_id} replaces tracking of run {previous.run_id} "
                f"for agent '{key}'"
            )

    def get(self, key: str) -> ExecutionContext | None:
        with self._lock:
            return self._contexts.get(key)

    def remove(self, key: str, context: ExecutionContext | None = None) -> None:
        """Stop tracking ``key``.

        When ``context`` is given, the entry is removed only if it is still
        that context, so a replaced run cannot evict its replacement.
        """
        with self._lock:
            current = self._contexts.get(key)
            if current is None:
                return
            if context is not None and current is not context:
                return
            del self._contexts[key]

    def cancel(self, key: str) -> bool:
        """Request cancellation of the tracked run. Returns False if none is tracked."""
        context = self.get(key)
        if context is None:
            return False
        context.cancel()
        logger.info(f"Cancellation requested for agent '{key}' (run {context.run_id})")
        return True

    def is_running(self, key: str) -> bool:
        context = self.get(key)
        return context.is_running if context is not None else False

    def active_ids(self) -> list[str]:
        with self._lock:
            return [key for key, ctx in self._contexts.items() if ctx.is_running]


_default_scheduler = WorkflowScheduler()


def default_scheduler() -> WorkflowScheduler:
    """Process-wide scheduler used by the module-level runner functions."""
    return _default_scheduler
