"""Domain vocabulary and exceptions."""

from agent_orchestrator.domain.exceptions import (
    ErrorCode,
    AppError,
    ValidationError,
    InvalidParameter,
    InvalidJobTransition,
    NotFound,
    SessionNotFound,
    JobNotFound,
    ToolNotFound,
    ToolError,
    ToolInputError,
    ToolExecutionError,
    ExternalError,
    LLMError,
    LLMRateLimitError,
    DatabaseError,
    DatabaseConnectionError,
    TurnFailed,
)
from agent_orchestrator.domain.models import (
    SessionType,
    SessionStatus,
    MessageRole,
    AgentType,
    ContentType,
    ToolStatus,
    ContextItemType,
    JobType,
    JobStatus,
)

__all__ = [
    # Base exceptions
    "ErrorCode",
    "AppError",
    "ExternalError",
    "ToolError",
    # Validation errors
    "ValidationError",
    "InvalidParameter",
    "InvalidJobTransition",
    # Not found errors
    "NotFound",
    "SessionNotFound",
    "JobNotFound",
    "ToolNotFound",
    # Tool errors
    "ToolInputError",
    "ToolExecutionError",
    # External service errors
    "LLMError",
    "LLMRateLimitError",
    "DatabaseError",
    "DatabaseConnectionError",
    # Turn errors
    "TurnFailed",
    # Vocabulary
    "SessionType",
    "SessionStatus",
    "MessageRole",
    "AgentType",
    "ContentType",
    "ToolStatus",
    "ContextItemType",
    "JobType",
    "JobStatus",
]
