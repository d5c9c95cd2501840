"""Mutable state of one in-progress workflow run."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from agentflow.graph.handles import NodeValues

logger = logging.getLogger(__name__)


@dataclass
class ExecutionContext:
    """
    State of a single run.

    ``is_running`` is the only cancellation signal. The runner polls it
    between nodes; a node already executing is never interrupted by it.
    Cancel callbacks let in-flight work (e.g. an inference request) abort
    itself when the run is cancelled.
    """

    agent_id: str
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    node_values: NodeValues = field(default_factory=NodeValues)
    executed_nodes: list[str] = field(default_factory=list)
    is_running: bool = True
    current_node_id: str | None = None
    _cancel_callbacks: list[Callable[[], None]] = field(default_factory=list, repr=False)

    def add_cancel_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback fired once when the run is cancelled."""
        self._cancel_callbacks.append(callback)

    def remove_cancel_callback(self, callback: Callable[[], None]) -> None:
        if callback in self._cancel_callbacks:
            self._cancel_callbacks.remove(callback)

    def cancel(self) -> None:
        """Request cooperative cancellation. Idempotent."""
        was_running = self.is_running
        self.is_running = False
        if not was_running:
            return
        callbacks, self._cancel_callbacks = self._cancel_callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Cancel callback failed for run {self.run_id}: {e}")
