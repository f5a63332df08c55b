"""SQLModel models for the project-wide context index."""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Column, DateTime, Index, Text, UniqueConstraint
from sqlmodel import Field

from agent_orchestrator.infrastructure.database.base_model import (
    BaseModel,
    JSONType,
    TimestampMixin,
    utcnow,
)


class ContextItem(BaseModel, TimestampMixin, table=True):
    """
    A durable, keyed artifact visible to every agent working on a project:
    a file snapshot, a terminal output, an error, and so on.

    Unique per (project_id, item_type, item_key); writers upsert.
    """

    __tablename__ = "context_items"

    project_id: int = Field(nullable=False, index=True)
    item_type: str = Field(nullable=False, max_length=50)
    item_key: str = Field(nullable=False, max_length=1024)
    content: Optional[str] = Field(default=None, sa_column=Column(Text))
    content_hash: Optional[str] = Field(default=None, max_length=64)
    meta: Dict[str, Any] = Field(default_factory=dict, sa_column=Column("metadata", JSONType))

    last_accessed_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, nullable=False)
    access_count: int = Field(default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("project_id", "item_type", "item_key", name="uq_context_items_key"),
        Index("ix_context_items_project_type_accessed", "project_id", "item_type", "last_accessed_at"),
    )


class SessionContextLink(BaseModel, table=True):
    """Relevance-weighted join between a session and a context item."""

    __tablename__ = "session_context_links"

    session_id: int = Field(
        foreign_key="agent_sessions.id",
        nullable=False,
        index=True,
        ondelete="CASCADE",
    )
    context_item_id: int = Field(
        foreign_key="context_items.id",
        nullable=False,
        index=True,
        ondelete="CASCADE",
    )
    relevance_score: float = Field(default=1.0, nullable=False)
    added_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("session_id", "context_item_id", name="uq_session_context_links_pair"),
    )
