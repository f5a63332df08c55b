"""Configuration management for the agent orchestrator."""

from agent_orchestrator.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
