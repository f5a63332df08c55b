"""
Exception hierarchy for the agent orchestrator.

All exceptions inherit from AppError which provides:
- error_code: Machine-readable error code (from ErrorCode enum)
- status_code: HTTP-style status code, for whichever transport wraps the core
- message: Human-readable error message
- details: Optional dictionary with additional context
- suggested_action: Optional user-friendly suggestion for resolution

Errors fall into five groups that drive how the agent loop reacts:
- validation (ValidationError and subclasses): bad input, never retried
- not found (NotFound and subclasses): missing session, job or tool
- tool execution (ToolError and subclasses): caught per call and reported
  back to the model, the turn continues
- storage (DatabaseError): aborts the current turn
- model backend (LLMError and subclasses): aborts the current turn

Usage:
    from agent_orchestrator.domain.exceptions import SessionNotFound, InvalidJobTransition

    raise SessionNotFound(details={"session_id": 42})

    raise InvalidJobTransition(
        "Cannot move job from completed to running",
        details={"job_id": 3, "from": "completed", "to": "running"},
    )
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from agent_orchestrator.agent.results import TurnResult


class ErrorCode(str, Enum):
    """
    Standard error codes.

    Use these codes consistently so callers can branch on them without
    parsing messages.
    """

    # ===== Validation Errors (400) =====
    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Input validation failed (400)"""

    INVALID_PARAMETER = "INVALID_PARAMETER"
    """Invalid parameter value (400)"""

    INVALID_JOB_TRANSITION = "INVALID_JOB_TRANSITION"
    """Requested job status change is not allowed (409)"""

    # ===== Not Found Errors (404) =====
    NOT_FOUND = "NOT_FOUND"
    """Resource not found (404)"""

    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    """Session not found or deleted (404)"""

    JOB_NOT_FOUND = "JOB_NOT_FOUND"
    """Job not found (404)"""

    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    """No tool registered under the requested name (404)"""

    # ===== Tool Errors (422) =====
    TOOL_INPUT_INVALID = "TOOL_INPUT_INVALID"
    """Tool input failed schema validation (422)"""

    TOOL_EXECUTION_FAILED = "TOOL_EXECUTION_FAILED"
    """Tool raised while executing (422)"""

    # ===== Server Errors (500) =====
    INTERNAL_ERROR = "INTERNAL_ERROR"
    """Internal error (500)"""

    TURN_FAILED = "TURN_FAILED"
    """Agent turn aborted by a fatal error (500)"""

    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    """External service call failed (502)"""

    # ===== Rate Limiting (429) =====
    RATE_LIMITED = "RATE_LIMITED"
    """Rate limit exceeded (429)"""

    # ===== Service Unavailable (503) =====
    DATABASE_UNAVAILABLE = "DATABASE_UNAVAILABLE"
    """Database unavailable (503)"""


class AppError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        error_code: Machine-readable error code (from ErrorCode enum)
        status_code: Status code (default: 500)
        message: Human-readable error message
        details: Optional dictionary with additional error context
        suggested_action: Optional user-friendly suggestion for resolution
    """

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500
    default_message: str = "An unexpected error occurred"
    default_suggested_action: Optional[str] = None

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        suggested_action: Optional[str] = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Custom error message (uses default_message if not provided)
            details: Additional context about the error
            suggested_action: User-friendly suggestion (uses default_suggested_action if not provided)
        """
        self.message = message or self.default_message
        self.details = details or {}
        self.suggested_action = suggested_action or self.default_suggested_action
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"error_code={self.error_code.value}, "
            f"status_code={self.status_code}, "
            f"message={self.message!r}, "
            f"details={self.details!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns:
            Dictionary with error information
        """
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }

        if self.details:
            result["details"] = self.details

        if self.suggested_action:
            result["suggested_action"] = self.suggested_action

        return result


# ========================================
# Validation Errors (400)
# ========================================


class ValidationError(AppError):
    """Input validation failed."""

    status_code = 400
    error_code = ErrorCode.VALIDATION_ERROR
    default_message = "Validation failed"
    default_suggested_action = "Please check your input and try again"


class InvalidParameter(ValidationError):
    """A single parameter has an invalid value (unknown enum member, out of range)."""

    error_code = ErrorCode.INVALID_PARAMETER
    default_message = "Invalid parameter provided"
    default_suggested_action = "Please check the parameter values and try again"


class InvalidJobTransition(ValidationError):
    """Job status change not allowed from the current status."""

    status_code = 409
    error_code = ErrorCode.INVALID_JOB_TRANSITION
    default_message = "Job status transition is not allowed"
    default_suggested_action = "Completed, failed and cancelled jobs cannot change status; create a new job instead"


# ========================================
# Resource Errors (404)
# ========================================


class NotFound(AppError):
    """Resource not found."""

    status_code = 404
    error_code = ErrorCode.NOT_FOUND
    default_message = "Resource not found"
    default_suggested_action = "Please check the resource ID and try again"


class SessionNotFound(NotFound):
    """Session not found or soft-deleted."""

    error_code = ErrorCode.SESSION_NOT_FOUND
    default_message = "Session not found"
    default_suggested_action = "Please verify the session ID or create a new session"


class JobNotFound(NotFound):
    """Job not found."""

    error_code = ErrorCode.JOB_NOT_FOUND
    default_message = "Job not found"
    default_suggested_action = "Please verify the job ID is correct"


class ToolNotFound(NotFound):
    """No tool registered under the requested name."""

    error_code = ErrorCode.TOOL_NOT_FOUND
    default_message = "Tool not found"
    default_suggested_action = "Use one of the registered tool names"


# ========================================
# Tool Errors
# ========================================


class ToolError(AppError):
    """Base class for errors raised while dispatching a tool call."""

    status_code = 422
    error_code = ErrorCode.TOOL_EXECUTION_FAILED
    default_message = "Tool call failed"


class ToolInputError(ToolError):
    """Tool input did not match the tool's input schema."""

    error_code = ErrorCode.TOOL_INPUT_INVALID
    default_message = "Tool input is invalid"
    default_suggested_action = "Call the tool again with arguments matching its schema"


class ToolExecutionError(ToolError):
    """Tool raised while executing."""

    error_code = ErrorCode.TOOL_EXECUTION_FAILED
    default_message = "Tool execution failed"


# ========================================
# External Service Errors
# ========================================


class ExternalError(AppError):
    """Base class for external service errors."""

    default_message = "An external service error occurred"
    default_suggested_action = "An external service is currently unavailable. Please try again later"


class LLMError(ExternalError):
    """Language model backend error."""

    status_code = 502
    error_code = ErrorCode.EXTERNAL_SERVICE_ERROR
    default_message = "Language model service error"
    default_suggested_action = "The AI service is currently unavailable. Please try again in a few moments"


class LLMRateLimitError(LLMError):
    """Language model rate limit exceeded."""

    status_code = 429
    error_code = ErrorCode.RATE_LIMITED
    default_message = "Language model rate limit exceeded"
    default_suggested_action = "Too many requests to the AI service. Please wait a moment and try again"


class DatabaseError(ExternalError):
    """Database operation failed."""

    status_code = 503
    error_code = ErrorCode.DATABASE_UNAVAILABLE
    default_message = "Database operation failed"
    default_suggested_action = "The database is currently unavailable. Please try again later"


class DatabaseConnectionError(DatabaseError):
    """Database connection failed."""

    default_message = "Failed to connect to database"


# ========================================
# Turn Errors
# ========================================


class TurnFailed(AppError):
    """
    An agent turn was aborted by a fatal error.

    Wraps the underlying cause (storage, model backend, prompt construction)
    and carries the partial result: whatever the turn had already persisted
    before it failed.
    """

    error_code = ErrorCode.TURN_FAILED
    default_message = "Agent turn failed"
    default_suggested_action = "The conversation so far has been saved. Please retry the message"

    def __init__(
        self,
        cause: BaseException,
        partial: "TurnResult",
        message: Optional[str] = None,
    ):
        self.cause = cause
        self.partial = partial
        details = {
            "session_id": partial.session_id,
            "iterations": partial.iterations,
            "cause": type(cause).__name__,
        }
        if isinstance(cause, AppError):
            details["cause_code"] = cause.error_code.value
        super().__init__(message or f"Agent turn failed: {cause}", details=details)
