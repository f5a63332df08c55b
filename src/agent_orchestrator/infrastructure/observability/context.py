"""
Log context management for adding contextual information to structured logs.

Usage:
    from agent_orchestrator.infrastructure.observability.context import log_context

    with log_context(session_id=42, project_id=7):
        logger.info("turn_started")  # Includes session_id and project_id
"""
from typing import Any
from contextlib import contextmanager
import structlog

@contextmanager
def log_context(**kwargs: Any):
    """
    Context manager for adding context to logs.

    All key-value pairs passed to this context manager will be automatically
    included in all log entries made within the context. Keys whose value is
    None are skipped.

    Args:
        **kwargs: Key-value pairs to add to log context

    Example:
        >>> with log_context(session_id=42, agent_type="terminal"):
        ...     logger.info("model_called")  # Includes session_id and agent_type
        >>> logger.info("outside")  # Does not
    """
    context = {key: value for key, value in kwargs.items() if value is not None}
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())

@contextmanager
def turn_context(session_id: int, project_id: int, agent_type: str, **kwargs: Any):
    """
    Specialized context manager for one agent turn.

    Adds session_id, project_id and agent_type to every log entry made while
    the turn runs, plus any additional context.
    """
    with log_context(
        session_id=session_id,
        project_id=project_id,
        agent_type=agent_type,
        **kwargs,
    ):
        yield


__all__ = [
    "log_context",
    "turn_context",
]
