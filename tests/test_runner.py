"""
Tests for WorkflowRunner execution paths.
Covers ordering, output routing, failures, cancellation and cleanup.
"""

import asyncio

import pytest

from agentflow.errors import CycleError, NodeExecutionError
from agentflow.graph.handles import TRIGGER_CONTEXT_KEY, WORKFLOW_INPUT_KEY
from agentflow.graph.models import AgentGraph, EdgeSpec, NodeSpec, TriggerContext
from agentflow.graph.registry import NodeExecutionResult, NodeExecutorRegistry, WorkflowDeps
from agentflow.graph.runner import WorkflowRunner
from agentflow.graph.scheduler import WorkflowScheduler
from agentflow.nodes import default_registry


def _edge(source, target, source_handle="", target_handle="in-input"):
    return EdgeSpec(
        id=f"{source}->{target}",
        source=source,
        source_handle=source_handle,
        target=target,
        target_handle=target_handle,
    )


def _runner(registry=None):
    return WorkflowRunner(registry=registry or default_registry(), scheduler=WorkflowScheduler())


async def echo_script(code, value):
    return value


# ---- Scenarios ----


@pytest.mark.asyncio
async def test_trigger_echo_output_scenario():
    graph = AgentGraph(
        id="echo-agent",
        nodes=[
            NodeSpec(id="trigger", type="trigger"),
            NodeSpec(id="echo", type="javascript", config={"code": "return input;"}),
            NodeSpec(id="out", type="chatOutput"),
        ],
        edges=[
            _edge("trigger", "echo", source_handle="out-message"),
            _edge("echo", "out", source_handle="out-string"),
        ],
    )
    executed = []

    output = await _runner().execute_workflow(
        graph,
        "hello",
        WorkflowDeps(run_script=echo_script),
        on_node_executed=lambda node_id, result: executed.append((node_id, result.success)),
    )

    assert output == "hello"
    assert executed == [("trigger", True), ("echo", True), ("out", True)]


@pytest.mark.asyncio
async def test_self_loop_fails_before_any_node_runs():
    graph = AgentGraph(
        id="loop-agent",
        nodes=[NodeSpec(id="a", type="text", config={"content": "x"})],
        edges=[_edge("a", "a")],
    )
    runner = _runner()
    calls = []

    with pytest.raises(CycleError):
        await runner.execute_workflow(
            graph, "hi", on_node_executed=lambda node_id, result: calls.append(node_id)
        )

    assert calls == []
    assert runner.is_workflow_running("loop-agent") is False
    assert runner.scheduler.get("loop-agent") is None


@pytest.mark.asyncio
async def test_nodes_run_in_dependency_order():
    registry = NodeExecutorRegistry()
    seen = []

    @registry.executor("step")
    def run_step(node, inputs, context, graph, deps):
        seen.append(node.id)
        return NodeExecutionResult.ok(node.id)

    graph = AgentGraph(
        id="order-agent",
        nodes=[NodeSpec(id=n, type="step") for n in ("c", "b", "a")],
        edges=[_edge("a", "b"), _edge("b", "c")],
    )

    await _runner(registry).execute_workflow(graph)

    assert seen == ["a", "b", "c"]


# ---- Output ----


@pytest.mark.asyncio
async def test_text_flows_to_output():
    graph = AgentGraph(
        id="text-agent",
        nodes=[
            NodeSpec(id="t", type="text", config={"content": "fixed"}),
            NodeSpec(id="out", type="chatOutput"),
        ],
        edges=[_edge("t", "out", source_handle="out-text")],
    )

    assert await _runner().execute_workflow(graph) == "fixed"


@pytest.mark.asyncio
async def test_no_output_node_returns_none():
    graph = AgentGraph(id="quiet", nodes=[NodeSpec(id="t", type="text", config={"content": "x"})])

    assert await _runner().execute_workflow(graph) is None


@pytest.mark.asyncio
async def test_empty_output_returns_none():
    graph = AgentGraph(
        id="empty",
        nodes=[
            NodeSpec(id="t", type="text", config={"content": ""}),
            NodeSpec(id="out", type="chatOutput"),
        ],
        edges=[_edge("t", "out")],
    )

    assert await _runner().execute_workflow(graph) is None


@pytest.mark.asyncio
async def test_first_output_node_wins():
    graph = AgentGraph(
        id="two-outputs",
        nodes=[
            NodeSpec(id="t1", type="text", config={"content": "one"}),
            NodeSpec(id="t2", type="text", config={"content": "two"}),
            NodeSpec(id="out1", type="chatOutput"),
            NodeSpec(id="out2", type="chatOutput"),
        ],
        edges=[_edge("t1", "out1"), _edge("t2", "out2")],
    )

    assert await _runner().execute_workflow(graph) == "one"


# ---- Failures ----


@pytest.mark.asyncio
async def test_failed_node_raises_and_stops_the_run():
    registry = NodeExecutorRegistry()
    seen = []

    @registry.executor("ok")
    def run_ok(node, inputs, context, graph, deps):
        seen.append(node.id)
        return NodeExecutionResult.ok("fine")

    @registry.executor("broken")
    def run_broken(node, inputs, context, graph, deps):
        return NodeExecutionResult.fail("boom")

    graph = AgentGraph(
        id="failing",
        nodes=[
            NodeSpec(id="a", type="ok"),
            NodeSpec(id="b", type="broken"),
            NodeSpec(id="c", type="ok"),
        ],
        edges=[_edge("a", "b"), _edge("b", "c")],
    )
    runner = _runner(registry)
    results = []

    with pytest.raises(NodeExecutionError) as exc_info:
        await runner.execute_workflow(
            graph, on_node_executed=lambda node_id, result: results.append((node_id, result.success))
        )

    assert exc_info.value.node_id == "b"
    assert exc_info.value.message == "boom"
    assert exc_info.value.executed_nodes == ["a", "b"]
    assert results == [("a", True), ("b", False)]
    assert seen == ["a"]
    assert runner.scheduler.get("failing") is None


@pytest.mark.asyncio
async def test_unregistered_node_type_fails_the_run():
    graph = AgentGraph(id="mystery-agent", nodes=[NodeSpec(id="m", type="mystery")])
    results = []

    with pytest.raises(NodeExecutionError) as exc_info:
        await _runner(NodeExecutorRegistry()).execute_workflow(
            graph, on_node_executed=lambda node_id, result: results.append(result)
        )

    assert "No executor registered for node type: mystery" in str(exc_info.value)
    assert results[0].success is False


@pytest.mark.asyncio
async def test_raising_executor_propagates_and_cleans_up():
    registry = NodeExecutorRegistry()

    @registry.executor("explode")
    async def run_explode(node, inputs, context, graph, deps):
        raise RuntimeError("kaboom")

    graph = AgentGraph(id="explosive", nodes=[NodeSpec(id="x", type="explode")])
    runner = _runner(registry)

    with pytest.raises(RuntimeError, match="kaboom"):
        await runner.execute_workflow(graph)

    assert runner.is_workflow_running("explosive") is False


@pytest.mark.asyncio
async def test_dict_results_are_accepted():
    registry = NodeExecutorRegistry()
    registry.register("legacy", lambda node, inputs, context, graph, deps: {"success": True, "value": 3})
    registry.register("chatOutput", lambda node, inputs, context, graph, deps: NodeExecutionResult.ok(inputs.get("input")))

    graph = AgentGraph(
        id="legacy-agent",
        nodes=[NodeSpec(id="l", type="legacy"), NodeSpec(id="out", type="chatOutput")],
        edges=[_edge("l", "out")],
    )

    assert await _runner(registry).execute_workflow(graph) == 3


# ---- Trigger seeding ----


@pytest.mark.asyncio
async def test_string_trigger_seeds_message_and_context():
    registry = NodeExecutorRegistry()
    captured = {}

    @registry.executor("capture")
    def run_capture(node, inputs, context, graph, deps):
        captured["input"] = context.node_values.get(WORKFLOW_INPUT_KEY)
        captured["trigger"] = context.node_values.get(TRIGGER_CONTEXT_KEY)
        return NodeExecutionResult.ok()

    graph = AgentGraph(id="capture-agent", nodes=[NodeSpec(id="p", type="capture")])
    await _runner(registry).execute_workflow(graph, "hi there")

    assert captured["input"] == "hi there"
    assert isinstance(captured["trigger"], TriggerContext)
    assert captured["trigger"].type == "manual"
    assert captured["trigger"].message == "hi there"


@pytest.mark.asyncio
async def test_trigger_without_message_does_not_write_workflow_input():
    registry = NodeExecutorRegistry()
    captured = {}

    @registry.executor("capture")
    def run_capture(node, inputs, context, graph, deps):
        captured["has_input"] = context.node_values.has(WORKFLOW_INPUT_KEY)
        captured["trigger"] = context.node_values.get(TRIGGER_CONTEXT_KEY)
        return NodeExecutionResult.ok()

    graph = AgentGraph(id="capture-agent", nodes=[NodeSpec(id="p", type="capture")])
    await _runner(registry).execute_workflow(
        graph, {"type": "after_user_message", "message": "", "participantId": "p1"}
    )

    assert captured["has_input"] is False
    assert captured["trigger"].participant_id == "p1"


# ---- Cancellation ----


@pytest.mark.asyncio
async def test_cancel_stops_at_node_boundary():
    registry = NodeExecutorRegistry()
    runner = _runner(registry)

    @registry.executor("step")
    def run_step(node, inputs, context, graph, deps):
        if node.id == "n2":
            runner.cancel_workflow(graph.id)
        return NodeExecutionResult.ok(node.id)

    graph = AgentGraph(
        id="cancel-agent",
        nodes=[NodeSpec(id=f"n{i}", type="step") for i in range(1, 5)],
        edges=[_edge("n1", "n2"), _edge("n2", "n3"), _edge("n3", "n4")],
    )
    executed = []

    output = await runner.execute_workflow(
        graph, on_node_executed=lambda node_id, result: executed.append(node_id)
    )

    assert output is None
    assert executed == ["n1", "n2"]
    assert runner.is_workflow_running("cancel-agent") is False


@pytest.mark.asyncio
async def test_cancelled_run_returns_partial_output():
    registry = default_registry()
    runner = _runner(registry)

    @registry.executor("stopper")
    def run_stopper(node, inputs, context, graph, deps):
        runner.cancel_workflow(graph.id)
        return NodeExecutionResult.ok()

    graph = AgentGraph(
        id="partial",
        nodes=[
            NodeSpec(id="t", type="text", config={"content": "early"}),
            NodeSpec(id="out", type="chatOutput"),
            NodeSpec(id="stop", type="stopper"),
            NodeSpec(id="after", type="text", config={"content": "late"}),
        ],
        edges=[_edge("t", "out"), _edge("out", "stop"), _edge("stop", "after")],
    )
    executed = []

    output = await runner.execute_workflow(
        graph, on_node_executed=lambda node_id, result: executed.append(node_id)
    )

    assert output == "early"
    assert "after" not in executed


@pytest.mark.asyncio
async def test_failure_after_cancel_still_fails_the_run():
    registry = NodeExecutorRegistry()
    runner = _runner(registry)

    @registry.executor("search")
    def run_search(node, inputs, context, graph, deps):
        runner.cancel_workflow(graph.id)
        return NodeExecutionResult.fail("Tool search execution failed: disk full")

    graph = AgentGraph(id="interrupted", nodes=[NodeSpec(id="s", type="search")])

    with pytest.raises(NodeExecutionError) as exc_info:
        await runner.execute_workflow(graph)

    assert exc_info.value.node_id == "s"
    assert "disk full" in exc_info.value.message
    assert runner.is_workflow_running("interrupted") is False
    assert runner.scheduler.get("interrupted") is None


@pytest.mark.asyncio
async def test_cancel_from_another_task():
    registry = NodeExecutorRegistry()
    runner = _runner(registry)
    started = asyncio.Event()
    release = asyncio.Event()

    @registry.executor("slow")
    async def run_slow(node, inputs, context, graph, deps):
        started.set()
        await release.wait()
        return NodeExecutionResult.ok(node.id)

    graph = AgentGraph(
        id="slow-agent",
        nodes=[NodeSpec(id="s1", type="slow"), NodeSpec(id="s2", type="slow")],
        edges=[_edge("s1", "s2")],
    )
    executed = []
    task = asyncio.create_task(
        runner.execute_workflow(graph, on_node_executed=lambda node_id, result: executed.append(node_id))
    )

    await started.wait()
    assert runner.is_workflow_running("slow-agent") is True
    runner.cancel_workflow("slow-agent")
    release.set()
    await task

    assert executed == ["s1"]
    assert runner.is_workflow_running("slow-agent") is False


@pytest.mark.asyncio
async def test_cancel_when_idle_is_noop():
    runner = _runner()

    runner.cancel_workflow("never-started")

    assert runner.is_workflow_running("never-started") is False
