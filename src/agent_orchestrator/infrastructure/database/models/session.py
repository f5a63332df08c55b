"""
SQLModel model for agent conversation sessions.

A session is a bounded conversation between a user and one agent role
(or both, for hybrid sessions), anchored to a project. It carries:
- the shared-context blob and its content hash
- activity tracking used to order a project's sessions
- soft deletion
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Column, DateTime, Index
from sqlmodel import Field

from agent_orchestrator.domain.models import SessionStatus, SessionType
from agent_orchestrator.infrastructure.database.base_model import (
    BaseModel,
    JSONType,
    SoftDeleteMixin,
    TimestampMixin,
    utcnow,
)


class AgentSession(BaseModel, TimestampMixin, SoftDeleteMixin, table=True):
    """
    Session model for agent conversation tracking.

    Attributes:
        id: Autoincrement identifier
        project_id: Project the session belongs to
        user_id: Owner of the session
        session_type: code, terminal or hybrid
        title: Optional human-friendly title
        status: active, paused, completed or error
        shared_context: Versioned key-value map shared with tools and prompts
        context_hash: SHA-256 of the canonical shared_context encoding
        meta: Free-form metadata (column "metadata")
        last_activity_at: Never moves backwards; bumped by every append/touch
        created_at / updated_at / deleted_at: Row timestamps

    Invariant:
        context_hash == hash_shared_context(shared_context) for every row
        written through SessionStore.
    """

    __tablename__ = "agent_sessions"

    project_id: int = Field(nullable=False, index=True)
    user_id: str = Field(nullable=False, max_length=255, index=True)

    session_type: str = Field(
        default=SessionType.CODE.value,
        nullable=False,
        max_length=20,
        sa_column_kwargs={"comment": "code, terminal or hybrid"},
    )
    title: Optional[str] = Field(default=None, max_length=500)
    status: str = Field(
        default=SessionStatus.ACTIVE.value,
        nullable=False,
        max_length=20,
        sa_column_kwargs={"comment": "active, paused, completed or error"},
    )

    shared_context: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSONType))
    context_hash: Optional[str] = Field(default=None, max_length=64)
    meta: Dict[str, Any] = Field(default_factory=dict, sa_column=Column("metadata", JSONType))

    last_activity_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, nullable=False)

    __table_args__ = (
        Index("ix_agent_sessions_project_activity", "project_id", "last_activity_at"),
        Index("ix_agent_sessions_project_type", "project_id", "session_type"),
    )

    def __repr__(self) -> str:
        return (
            f"AgentSession(id={self.id}, "
            f"project_id={self.project_id}, "
            f"session_type={self.session_type!r}, "
            f"status={self.status!r})"
        )
