# src/agent_orchestrator/agent/results.py
"""Turn outputs: the finished TurnResult and the events streamed while a turn runs."""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from agent_orchestrator.domain.models import ToolStatus


@dataclass
class ToolInvocation:
    """One tool call made during a turn, in call order."""
    name: str
    input: Any
    output: Any
    status: ToolStatus
    tool_use_id: str = ""
    message_id: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status == ToolStatus.SUCCESS


@dataclass
class TurnResult:
    """
    What one turn produced.

    A turn with failed tool calls is still a successful turn; check each
    invocation's status. `truncated` is set when the iteration cap stopped
    the turn.
    """
    session_id: int
    text: str = ""
    tool_invocations: list[ToolInvocation] = field(default_factory=list)
    files_touched: list[str] = field(default_factory=list)
    commands_run: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    iterations: int = 0
    truncated: bool = False
    user_message_id: Optional[int] = None
    assistant_message_id: Optional[int] = None

    @property
    def tools_used(self) -> list[str]:
        return [invocation.name for invocation in self.tool_invocations]

    def summary(self) -> dict[str, Any]:
        """Compact JSON-serialisable description, used as job output."""
        return {
            "session_id": self.session_id,
            "iterations": self.iterations,
            "truncated": self.truncated,
            "tools_used": self.tools_used,
            "files_touched": self.files_touched,
            "commands_run": self.commands_run,
            "errors": self.errors,
            "assistant_message_id": self.assistant_message_id,
        }


class TurnEventType(str, Enum):
    TEXT = "text"
    TOOL_START = "tool_start"
    TOOL_END = "tool_end"
    ERROR = "error"
    DONE = "done"


@dataclass
class TurnEvent:
    """
    Event emitted during a streamed turn.

    TEXT carries a text block as the model produced it; TOOL_START and
    TOOL_END bracket each tool call; ERROR reports a failed tool call (the
    turn goes on); DONE is always last and carries the TurnResult.
    """
    type: TurnEventType
    content: str = ""
    metadata: dict[str, Any] | None = None
    result: Optional[TurnResult] = None
