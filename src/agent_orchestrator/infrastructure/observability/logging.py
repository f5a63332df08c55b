"""
Structured logging configuration.

Use `get_logger(__name__)` from this module, not print() or logging.getLogger().
"""
from typing import Any, Optional
import structlog
from agent_orchestrator.config.settings import Settings, get_settings


# Keys whose values never reach the log output
SENSITIVE_KEYS = frozenset({
    "api_key",
    "llm_api_key",
    "apikey",
    "authorization",
    "password",
    "secret",
    "access_token",
    "database_url",
})


def mask_secrets_processor(logger_obj: Any, method_name: str, event_dict: dict) -> dict:
    """
    Structlog processor that masks values of sensitive keys.

    Only top-level keys are checked; tool inputs and outputs are logged
    by name, never by value, so nested payloads do not reach this point.
    """
    for key in list(event_dict.keys()):
        if key.lower() in SENSITIVE_KEYS and event_dict[key]:
            event_dict[key] = "****"
    return event_dict


def console_renderer_with_colors():
    """
    Create a console renderer with colors for development.

    Returns:
        Configured ConsoleRenderer instance
    """
    return structlog.dev.ConsoleRenderer(
        colors=True,
        pad_event=25,
        exception_formatter=structlog.dev.plain_traceback,
    )


def json_renderer():
    """Create a JSON renderer for production."""
    return structlog.processors.JSONRenderer()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure structured logging.

    This sets up the logging system with:
    - Context variable merging (for log_context usage)
    - Log level and ISO timestamp on every event
    - Secret masking for credential-like keys
    - JSON formatting for production or colored console for development

    Args:
        settings: Settings to read level and format from (defaults to get_settings())
    """
    settings = settings or get_settings()

    if settings.log_format == "json":
        renderer = json_renderer()
    else:
        renderer = console_renderer_with_colors()

    processors = [
        # 1. Merge context variables (allows log_context to work)
        structlog.contextvars.merge_contextvars,

        # 2. Add log level
        structlog.processors.add_log_level,

        # 3. Add timestamp
        structlog.processors.TimeStamper(fmt="iso"),

        # 4. Mask secrets
        mask_secrets_processor,

        # 5. Add stack info if requested
        structlog.processors.StackInfoRenderer(),

        # 6. Format exceptions
        structlog.processors.format_exc_info,

        # 7. Final rendering (JSON or Console)
        renderer,
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Get a logger instance with structured logging support.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        BoundLogger instance with all configured processors

    Usage:
        >>> from agent_orchestrator.infrastructure.observability.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("tool_executed", tool="read_file", status="success")

    Note:
        Use log_context for adding context to multiple log entries:
        >>> from agent_orchestrator.infrastructure.observability.context import log_context
        >>> with log_context(session_id=42):
        ...     logger.info("turn_started")  # Includes session_id
    """
    return structlog.get_logger(name)
