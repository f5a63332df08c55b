"""
Observability infrastructure for the agent orchestrator.

This package provides:
- Structured logging
- Log context management
- Metrics collection
"""

from agent_orchestrator.infrastructure.observability.logging import (
    configure_logging,
    get_logger,
)
from agent_orchestrator.infrastructure.observability.context import (
    log_context,
    turn_context,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "log_context",
    "turn_context",
]
