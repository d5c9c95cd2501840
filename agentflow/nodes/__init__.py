"""Built-in node executors."""

from agentflow.graph.models import NodeType
from agentflow.graph.registry import NodeExecutorRegistry
from agentflow.nodes.agent import execute_agent_node
from agentflow.nodes.basic import (
    execute_chat_output_node,
    execute_javascript_node,
    execute_text_node,
    execute_trigger_node,
)
from agentflow.nodes.chat_history import execute_chat_history_node


def register_builtin_nodes(registry: NodeExecutorRegistry) -> NodeExecutorRegistry:
    """Register the executors for every NodeType on ``registry``."""
    registry.register(NodeType.TRIGGER, execute_trigger_node)
    registry.register(NodeType.TEXT, execute_text_node)
    registry.register(NodeType.CHAT_OUTPUT, execute_chat_output_node)
    registry.register(NodeType.JAVASCRIPT, execute_javascript_node)
    registry.register(NodeType.CHAT_HISTORY, execute_chat_history_node)
    registry.register(NodeType.AGENT, execute_agent_node)
    return registry


def default_registry() -> NodeExecutorRegistry:
    """A fresh registry preloaded with the built-in executors."""
    return register_builtin_nodes(NodeExecutorRegistry())


__all__ = [
    "default_registry",
    "register_builtin_nodes",
    "execute_agent_node",
    "execute_chat_history_node",
    "execute_chat_output_node",
    "execute_javascript_node",
    "execute_text_node",
    "execute_trigger_node",
]
