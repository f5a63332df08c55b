"""
Database models for the agent orchestrator.

Importing this package registers every table on SQLModel.metadata.
"""

from .session import AgentSession
from .message import AgentMessage
from .context_item import ContextItem, SessionContextLink
from .job import AgentJob

__all__ = [
    "AgentSession",
    "AgentMessage",
    "ContextItem",
    "SessionContextLink",
    "AgentJob",
]
