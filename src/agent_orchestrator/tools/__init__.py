"""
Tool registry and decorators.

Concrete tools (file access, sandboxed commands, search) live with the
application that embeds the orchestrator and are registered on the
ToolRegistry handed to each AgentLoop.
"""

from agent_orchestrator.tools.decorators import tool, DecoratedTool
from agent_orchestrator.tools.registry import ToolRegistry

__all__ = [
    "tool",
    "DecoratedTool",
    "ToolRegistry",
]
