"""
Command-line interface for agentflow.

Usage:
    agentflow validate exports/my-agent.json
    agentflow order exports/my-agent.json
    agentflow info exports/my-agent.json --json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from agentflow.config import EngineConfig
from agentflow.errors import CycleError
from agentflow.graph.models import AgentGraph
from agentflow.graph.ordering import topological_order
from agentflow.nodes import default_registry
from agentflow.observability import configure_logging

logger = logging.getLogger(__name__)


def _load_graph(path: str) -> AgentGraph | None:
    graph_path = Path(path)
    if not graph_path.exists():
        print(f"Error: graph file not found: {graph_path}", file=sys.stderr)
        return None
    try:
        return AgentGraph.from_file(graph_path)
    except ValidationError as e:
        print(f"Error: invalid graph file {graph_path}:\n{e}", file=sys.stderr)
        return None


def cmd_validate(args: argparse.Namespace) -> int:
    """Report structural problems, unknown node types, and cycles."""
    graph = _load_graph(args.graph)
    if graph is None:
        return 1

    problems = graph.validate()

    registry = default_registry()
    for node in graph.nodes:
        if not registry.has(node.type):
            problems.append(f"Node '{node.id}' has unregistered type '{node.type}'")

    try:
        topological_order(graph.nodes, graph.edges)
    except CycleError as e:
        problems.append(e.message)

    if problems:
        print(f"✗ {graph.id}: {len(problems)} problem(s)")
        for problem in problems:
            print(f"  - {problem}")
        return 1

    print(f"✓ {graph.id} is valid ({len(graph.nodes)} nodes, {len(graph.edges)} edges)")
    return 0


def cmd_order(args: argparse.Namespace) -> int:
    """Print the execution order, one node per line."""
    graph = _load_graph(args.graph)
    if graph is None:
        return 1

    try:
        order = topological_order(graph.nodes, graph.edges)
    except CycleError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    for index, node_id in enumerate(order, start=1):
        node = graph.get_node(node_id)
        node_type = node.type if node else "?"
        print(f"{index:>3}. {node_id} ({node_type})")
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Summarise a graph's nodes and edges."""
    graph = _load_graph(args.graph)
    if graph is None:
        return 1

    if args.json:
        info = {
            "id": graph.id,
            "name": graph.name,
            "description": graph.description,
            "version": graph.version,
            "nodes": [{"id": n.id, "type": n.type, "label": n.label} for n in graph.nodes],
            "edges": [
                {
                    "source": e.source,
                    "source_handle": e.source_handle,
                    "target": e.target,
                    "target_handle": e.target_handle,
                }
                for e in graph.edges
            ],
            "outputs": [n.id for n in graph.output_nodes()],
        }
        print(json.dumps(info, indent=2))
        return 0

    print(f"Agent: {graph.name or graph.id}")
    print(f"ID: {graph.id}")
    print(f"Version: {graph.version}")
    if graph.description:
        print(f"Description: {graph.description}")
    print()
    print(f"Nodes ({len(graph.nodes)}):")
    for node in graph.nodes:
        label = f" - {node.label}" if node.label else ""
        print(f"  {node.id} [{node.type}]{label}")
    print()
    print(f"Edges ({len(graph.edges)}):")
    for edge in graph.edges:
        source = f"{edge.source}:{edge.source_handle}" if edge.source_handle else edge.source
        target = f"{edge.target}:{edge.target_handle}" if edge.target_handle else edge.target
        print(f"  {source} → {target}")
    outputs = graph.output_nodes()
    print()
    print(f"Output: {outputs[0].id if outputs else '(none)'}")
    return 0


def main(argv: list[str] | None = None):
    config = EngineConfig()

    parser = argparse.ArgumentParser(
        prog="agentflow",
        description="agentflow - inspect and validate agent workflow graphs",
    )
    parser.add_argument(
        "--log-level",
        default=config.log_level,
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser("validate", help="Validate a graph file")
    validate_parser.add_argument("graph", help="Path to the exported graph JSON")
    validate_parser.set_defaults(func=cmd_validate)

    order_parser = subparsers.add_parser("order", help="Print the execution order")
    order_parser.add_argument("graph", help="Path to the exported graph JSON")
    order_parser.set_defaults(func=cmd_order)

    info_parser = subparsers.add_parser("info", help="Show graph details")
    info_parser.add_argument("graph", help="Path to the exported graph JSON")
    info_parser.add_argument("--json", action="store_true", help="Output as JSON")
    info_parser.set_defaults(func=cmd_info)

    args = parser.parse_args(argv)
    configure_logging(level=args.log_level, format=config.log_format)

    if hasattr(args, "func"):
        sys.exit(args.func(args))


if __name__ == "__main__":
    main()
