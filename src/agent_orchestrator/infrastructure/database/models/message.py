"""SQLModel model for session messages."""

from typing import Any, Dict, Optional

from sqlalchemy import Column, Index, Text
from sqlmodel import Field

from agent_orchestrator.domain.models import ContentType
from agent_orchestrator.infrastructure.database.base_model import BaseModel, JSONType


class AgentMessage(BaseModel, table=True):
    """
    One entry in a session's transcript.

    Rows are ordered by (created_at, id) within a session. Content is
    always text; structured content is stored as its JSON encoding with
    content_type "json". Tool rows carry tool_name/tool_input/tool_output
    and a tool_status; a row is never edited after it is written except
    to complete a tool row left in status "running".
    """

    __tablename__ = "agent_messages"

    session_id: int = Field(
        foreign_key="agent_sessions.id",
        nullable=False,
        index=True,
        ondelete="CASCADE",
    )
    role: str = Field(nullable=False, max_length=20)
    agent_type: Optional[str] = Field(default=None, max_length=20)

    content: str = Field(default="", sa_column=Column(Text, nullable=False))
    content_type: str = Field(default=ContentType.TEXT.value, nullable=False, max_length=20)

    tool_name: Optional[str] = Field(default=None, max_length=255)
    tool_input: Optional[Any] = Field(default=None, sa_column=Column(JSONType))
    tool_output: Optional[Any] = Field(default=None, sa_column=Column(JSONType))
    tool_status: Optional[str] = Field(default=None, max_length=20)

    context_snapshot: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONType))
    meta: Dict[str, Any] = Field(default_factory=dict, sa_column=Column("metadata", JSONType))

    __table_args__ = (
        Index("ix_agent_messages_session_order", "session_id", "created_at", "id"),
        Index("ix_agent_messages_agent_type", "agent_type", "created_at"),
    )
