"""SQLModel model for tracked agent jobs."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Column, DateTime, Index, Text
from sqlmodel import Field

from agent_orchestrator.domain.models import JobStatus
from agent_orchestrator.infrastructure.database.base_model import BaseModel, JSONType


class AgentJob(BaseModel, table=True):
    """
    A tracked unit of longer-running work belonging to one session.

    Status moves pending -> running -> completed | error | cancelled, and
    either non-terminal status may move straight to cancelled.
    """

    __tablename__ = "agent_jobs"

    session_id: int = Field(
        foreign_key="agent_sessions.id",
        nullable=False,
        index=True,
        ondelete="CASCADE",
    )
    job_type: str = Field(nullable=False, max_length=50)
    status: str = Field(default=JobStatus.PENDING.value, nullable=False, max_length=20, index=True)
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    input_data: Optional[Any] = Field(default=None, sa_column=Column(JSONType))
    output_data: Optional[Any] = Field(default=None, sa_column=Column(JSONType))
    error_message: Optional[str] = Field(default=None, sa_column=Column(Text))
    progress_percentage: int = Field(default=0, nullable=False)
    started_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    completed_at: Optional[datetime] = Field(default=None, sa_type=DateTime)

    __table_args__ = (
        Index("ix_agent_jobs_session_created", "session_id", "created_at"),
    )

    @property
    def is_terminal(self) -> bool:
        return JobStatus(self.status).is_terminal
