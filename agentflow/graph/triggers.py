"""
Trigger Dispatcher - Starts agent runs in response to chat events.

Each chat event maps to the trigger types it satisfies. An agent whose
configured trigger type is among them gets a fresh run. ``every_x_messages``
agents keep a per-agent counter that advances on user and participant
messages and fires when it reaches the agent's threshold.

Example:
    dispatcher = TriggerDispatcher(runner, deps=deps)

    dispatcher.dispatch(
        ChatEvent(type="after_user_message", chat_id="chat-1", message="hi"),
        agents=[summarizer, moderator],
    )
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from agentflow.graph.models import AgentGraph, NodeType, TriggerContext, TriggerType
from agentflow.graph.registry import WorkflowDeps

if TYPE_CHECKING:
    from agentflow.graph.runner import WorkflowRunner

logger = logging.getLogger(__name__)

EVENT_TO_TRIGGER_TYPES: dict[str, list[TriggerType]] = {
    "after_user_message": [TriggerType.AFTER_USER_MESSAGE, TriggerType.AFTER_ANY_MESSAGE],
    "before_user_message": [TriggerType.BEFORE_USER_MESSAGE, TriggerType.BEFORE_ANY_MESSAGE],
    "after_participant_message": [
        TriggerType.AFTER_ANY_MESSAGE,
        TriggerType.AFTER_CHARACTER_MESSAGE,
    ],
    "before_participant_message": [
        TriggerType.BEFORE_ANY_MESSAGE,
        TriggerType.BEFORE_CHARACTER_MESSAGE,
    ],
    "after_all_participants": [TriggerType.AFTER_ALL_PARTICIPANTS],
    "message_count": [TriggerType.EVERY_X_MESSAGES],
}

# Events that advance every_x_messages counters
COUNTER_EVENT_TYPES = frozenset({"after_user_message", "after_participant_message"})

DEFAULT_MESSAGE_THRESHOLD = 5


class ChatEvent(BaseModel):
    """Something that happened in a chat."""

    type: str
    chat_id: str | None = Field(default=None, alias="chatId")
    message: str | None = None
    participant_id: str | None = Field(default=None, alias="participantId")
    message_count: int | None = Field(default=None, alias="messageCount")
    # "system" events come from a generation loop that runs agents itself
    source: str = "user"

    model_config = {"extra": "allow", "populate_by_name": True}


def get_trigger_config(graph: AgentGraph) -> tuple[str, int | None]:
    """
    Return the agent's ``(trigger_type, message_count)``.

    The trigger node's config wins; graphs without one fall back to
    ``settings["run_on"]``. Agents with neither are manual.
    """
    trigger_node = next((n for n in graph.nodes if n.type == NodeType.TRIGGER), None)
    if trigger_node is not None and trigger_node.config:
        config = trigger_node.config
        trigger_type = config.get("triggerType") or TriggerType.MANUAL
        return trigger_type, _as_count(config.get("messageCount"))

    run_on = graph.settings.get("run_on") or {}
    run_on_config = run_on.get("config") or {}
    return run_on.get("type") or TriggerType.MANUAL, _as_count(run_on_config.get("messageCount"))


def _as_count(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class TriggerDispatcher:
    """
    Fans chat events out to the agents whose trigger they satisfy.

    Runs are started as tasks on the running event loop and are not awaited;
    a failed run is logged. An agent that is already running is not started
    again.
    """

    def __init__(self, runner: WorkflowRunner, deps: WorkflowDeps | None = None):
        self.runner = runner
        self.deps = deps
        self._message_counts: dict[str, int] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def reset_counters(self) -> None:
        """Forget every_x_messages progress, e.g. when switching chats."""
        self._message_counts.clear()

    def message_count(self, agent_id: str) -> int:
        return self._message_counts.get(agent_id, 0)

    def dispatch(
        self,
        event: ChatEvent | dict[str, Any],
        agents: list[AgentGraph],
        user_character_id: str | None = None,
    ) -> list[asyncio.Task]:
        """
        Start a run for every agent the event triggers.

        Must be called from the event loop the runs should execute on.

        Args:
            event: The chat event
            agents: Agents enabled in the event's chat
            user_character_id: The user's persona in the chat, passed to each run

        Returns:
            The started run tasks, one per triggered agent
        """
        if not isinstance(event, ChatEvent):
            event = ChatEvent.model_validate(event)
        if event.source == "system":
            return []

        matching = EVENT_TO_TRIGGER_TYPES.get(event.type, [])
        is_counter_event = event.type in COUNTER_EVENT_TYPES
        if not matching and not is_counter_event:
            return []

        started = []
        for agent in agents:
            trigger_type, message_count = get_trigger_config(agent)

            if trigger_type == TriggerType.MANUAL:
                continue

            if trigger_type == TriggerType.EVERY_X_MESSAGES:
                if not is_counter_event:
                    continue
                threshold = message_count or DEFAULT_MESSAGE_THRESHOLD
                current = self._message_counts.get(agent.id, 0) + 1
                if current < threshold:
                    self._message_counts[agent.id] = current
                    continue
                self._message_counts[agent.id] = 0
            elif trigger_type not in matching:
                continue

            if self._is_busy(agent.id):
                logger.debug(f"Skipping agent '{agent.id}': already running")
                continue

            trigger = TriggerContext(
                type=trigger_type,
                chat_id=event.chat_id,
                message=event.message,
                participant_id=event.participant_id or agent.id,
                user_character_id=user_character_id,
                message_count=event.message_count,
            )
            logger.info(f"⚡ {event.type} triggers agent '{agent.id}' ({trigger_type})")
            started.append(self._start(agent, trigger))

        return started

    def _is_busy(self, agent_id: str) -> bool:
        task = self._tasks.get(agent_id)
        if task is not None and not task.done():
            return True
        return self.runner.is_workflow_running(agent_id)

    def _start(self, agent: AgentGraph, trigger: TriggerContext) -> asyncio.Task:
        task = asyncio.create_task(self.runner.execute_workflow(agent, trigger, self.deps))
        self._tasks[agent.id] = task
        task.add_done_callback(lambda t: self._on_done(agent.id, t))
        return task

    def _on_done(self, agent_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(agent_id) is task:
            del self._tasks[agent_id]
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"✗ Agent '{agent_id}' failed: {error}")
