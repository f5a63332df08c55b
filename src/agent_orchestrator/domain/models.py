# src/agent_orchestrator/domain/models.py
"""
Domain vocabulary shared by the stores, the registry and the agent loop.

Columns store the plain string values; stores convert incoming values
through these enums so an unknown value fails as InvalidParameter before
it reaches the database.
"""

from enum import Enum
from typing import Type, TypeVar

from agent_orchestrator.domain.exceptions import InvalidParameter


class SessionType(str, Enum):
    CODE = "code"
    TERMINAL = "terminal"
    HYBRID = "hybrid"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class AgentType(str, Enum):
    """Which agent role produced a message."""

    CODE = "code"
    TERMINAL = "terminal"
    SYSTEM = "system"


class ContentType(str, Enum):
    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"
    ERROR = "error"


class ToolStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class ContextItemType(str, Enum):
    FILE = "file"
    TERMINAL_OUTPUT = "terminal_output"
    ERROR = "error"
    ENV_VAR = "env_var"
    GIT_COMMIT = "git_commit"
    CUSTOM = "custom"


class JobType(str, Enum):
    CODE_GENERATION = "code_generation"
    TERMINAL_EXECUTION = "terminal_execution"
    FILE_OPERATION = "file_operation"
    GIT_OPERATION = "git_operation"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_JOB_STATUSES


TERMINAL_JOB_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.ERROR, JobStatus.CANCELLED})
ACTIVE_JOB_STATUSES = frozenset({JobStatus.PENDING, JobStatus.RUNNING})

# Status -> statuses it may move to. Terminal statuses accept nothing.
JOB_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PENDING, JobStatus.RUNNING, JobStatus.CANCELLED}),
    JobStatus.RUNNING: frozenset({
        JobStatus.RUNNING,
        JobStatus.COMPLETED,
        JobStatus.ERROR,
        JobStatus.CANCELLED,
    }),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.ERROR: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}


E = TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: Type[E], value, field: str) -> E:
    """
    Convert a raw value into a member of enum_cls.

    Raises:
        InvalidParameter: If value is not one of the enum's values
    """
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidParameter(
            f"Invalid {field}: {value!r}",
            details={"field": field, "value": value, "allowed": [m.value for m in enum_cls]},
        ) from None
