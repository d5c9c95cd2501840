"""
Tests for WorkflowScheduler and ExecutionContext cancellation.
"""

from agentflow.graph.context import ExecutionContext
from agentflow.graph.scheduler import WorkflowScheduler


def test_register_and_query():
    scheduler = WorkflowScheduler()
    context = ExecutionContext(agent_id="agent-1")

    scheduler.register("agent-1", context)

    assert scheduler.get("agent-1") is context
    assert scheduler.is_running("agent-1") is True
    assert scheduler.active_ids() == ["agent-1"]


def test_unknown_agent_is_not_running():
    scheduler = WorkflowScheduler()

    assert scheduler.get("nope") is None
    assert scheduler.is_running("nope") is False


def test_last_writer_wins():
    scheduler = WorkflowScheduler()
    first = ExecutionContext(agent_id="agent-1")
    second = ExecutionContext(agent_id="agent-1")

    scheduler.register("agent-1", first)
    scheduler.register("agent-1", second)

    assert scheduler.get("agent-1") is second


def test_replaced_run_cannot_evict_its_replacement():
    scheduler = WorkflowScheduler()
    first = ExecutionContext(agent_id="agent-1")
    second = ExecutionContext(agent_id="agent-1")
    scheduler.register("agent-1", first)
    scheduler.register("agent-1", second)

    scheduler.remove("agent-1", first)
    assert scheduler.get("agent-1") is second

    scheduler.remove("agent-1", second)
    assert scheduler.get("agent-1") is None


def test_unguarded_remove():
    scheduler = WorkflowScheduler()
    scheduler.register("agent-1", ExecutionContext(agent_id="agent-1"))

    scheduler.remove("agent-1")
    scheduler.remove("agent-1")

    assert scheduler.get("agent-1") is None


def test_cancel_unknown_is_noop():
    scheduler = WorkflowScheduler()

    assert scheduler.cancel("nope") is False


def test_cancel_flips_flag_and_keeps_entry():
    scheduler = WorkflowScheduler()
    context = ExecutionContext(agent_id="agent-1")
    scheduler.register("agent-1", context)

    assert scheduler.cancel("agent-1") is True

    assert context.is_running is False
    assert scheduler.is_running("agent-1") is False
    assert scheduler.get("agent-1") is context
    assert scheduler.active_ids() == []


# ---- Cancel callbacks ----


def test_cancel_callbacks_fire_once():
    context = ExecutionContext(agent_id="agent-1")
    calls = []
    context.add_cancel_callback(lambda: calls.append("cb"))

    context.cancel()
    context.cancel()

    assert calls == ["cb"]


def test_removed_callback_does_not_fire():
    context = ExecutionContext(agent_id="agent-1")
    calls = []

    def callback():
        calls.append("cb")

    context.add_cancel_callback(callback)
    context.remove_cancel_callback(callback)
    context.cancel()

    assert calls == []


def test_failing_callback_does_not_stop_others():
    context = ExecutionContext(agent_id="agent-1")
    calls = []

    def broken():
        raise RuntimeError("boom")

    context.add_cancel_callback(broken)
    context.add_cancel_callback(lambda: calls.append("second"))

    context.cancel()

    assert calls == ["second"]
    assert context.is_running is False


def test_each_context_gets_its_own_run_id():
    assert ExecutionContext(agent_id="a").run_id != ExecutionContext(agent_id="a").run_id
