# src/agent_orchestrator/infrastructure/database/base_model.py
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import SQLModel, Field


# JSONB on PostgreSQL, plain JSON (text) everywhere else
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every timestamp column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseModel(SQLModel):
    """
    Base for all database models.

    Integer autoincrement ids double as the ordering tie-breaker for rows
    written within the same clock tick.

    Example:
        class AgentJob(BaseModel, table=True):
            __tablename__ = "agent_jobs"
            session_id: int = Field(foreign_key="agent_sessions.id", index=True)
            input_data: Optional[dict] = Field(default=None, sa_column=Column(JSONType))
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, nullable=False, index=True)


class TimestampMixin(SQLModel):
    """Add updated_at to models whose rows change after insert."""
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, nullable=False)


class SoftDeleteMixin(SQLModel):
    """Add soft delete to any model."""
    deleted_at: Optional[datetime] = Field(default=None, sa_type=DateTime, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
