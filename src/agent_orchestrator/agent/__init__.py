"""
Agent turn execution.

This package provides:
- AgentLoop, which drives one user turn against a model backend
- CrossAgentAggregator, the cross-agent activity snapshot used in prompts
- History replay and sanitization
- Model backends (see agent.integrations)
"""

from agent_orchestrator.agent.aggregator import CrossAgentAggregator, CrossAgentSnapshot
from agent_orchestrator.agent.history import build_history, sanitize_history
from agent_orchestrator.agent.loop import AgentLoop
from agent_orchestrator.agent.prompts import PromptBuilder
from agent_orchestrator.agent.results import ToolInvocation, TurnEvent, TurnEventType, TurnResult

__all__ = [
    "AgentLoop",
    "CrossAgentAggregator",
    "CrossAgentSnapshot",
    "PromptBuilder",
    "ToolInvocation",
    "TurnEvent",
    "TurnEventType",
    "TurnResult",
    "build_history",
    "sanitize_history",
]
