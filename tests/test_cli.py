"""
Tests for the agentflow command-line interface.
"""

import json

import pytest

from agentflow import cli
from agentflow.graph.models import AgentGraph, EdgeSpec, NodeSpec


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)


def _write(tmp_path, graph):
    path = tmp_path / f"{graph.id}.json"
    graph.to_file(path)
    return str(path)


def _echo_graph():
    return AgentGraph(
        id="echo",
        name="Echo",
        nodes=[
            NodeSpec(id="trigger", type="trigger"),
            NodeSpec(id="out", type="chatOutput"),
        ],
        edges=[EdgeSpec(id="e1", source="trigger", source_handle="out-message", target="out", target_handle="in-input")],
    )


def _run(argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


def test_validate_ok(tmp_path, capsys):
    path = _write(tmp_path, _echo_graph())

    assert _run(["validate", path]) == 0
    assert "echo is valid" in capsys.readouterr().out


def test_validate_reports_cycle_and_unknown_type(tmp_path, capsys):
    graph = AgentGraph(
        id="broken",
        nodes=[NodeSpec(id="a", type="mystery")],
        edges=[EdgeSpec(id="loop", source="a", target="a")],
    )
    path = _write(tmp_path, graph)

    assert _run(["validate", path]) == 1
    out = capsys.readouterr().out
    assert "unregistered type 'mystery'" in out
    assert "Circular dependency detected involving node a" in out


def test_validate_missing_file(tmp_path, capsys):
    assert _run(["validate", str(tmp_path / "nope.json")]) == 1
    assert "not found" in capsys.readouterr().err


def test_order_prints_execution_order(tmp_path, capsys):
    path = _write(tmp_path, _echo_graph())

    assert _run(["order", path]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert "trigger (trigger)" in lines[0]
    assert "out (chatOutput)" in lines[1]


def test_info_json(tmp_path, capsys):
    path = _write(tmp_path, _echo_graph())

    assert _run(["info", path, "--json"]) == 0
    info = json.loads(capsys.readouterr().out)
    assert info["id"] == "echo"
    assert [n["id"] for n in info["nodes"]] == ["trigger", "out"]
    assert info["outputs"] == ["out"]
