# src/agent_orchestrator/infrastructure/database/repositories/job.py
"""
Job tracker: lifecycle of AgentJob rows.

Status moves pending -> running -> completed | error | cancelled, and a
pending job may be cancelled directly. Re-entering the current
non-terminal status is allowed (progress updates). Terminal statuses
accept no further transitions.
"""

from typing import Any, Optional, Sequence

from sqlalchemy import select

from agent_orchestrator.domain.exceptions import (
    InvalidJobTransition,
    InvalidParameter,
    JobNotFound,
    SessionNotFound,
)
from agent_orchestrator.domain.models import (
    ACTIVE_JOB_STATUSES,
    JOB_TRANSITIONS,
    JobStatus,
    JobType,
    coerce_enum,
)
from agent_orchestrator.infrastructure.database.base_model import utcnow
from agent_orchestrator.infrastructure.database.models.job import AgentJob
from agent_orchestrator.infrastructure.database.models.session import AgentSession
from agent_orchestrator.infrastructure.database.repositories.base import BaseRepository
from agent_orchestrator.infrastructure.observability.logging import get_logger
from agent_orchestrator.infrastructure.observability.metrics import JOB_TRANSITIONS_TOTAL

logger = get_logger(__name__)


class JobTracker(BaseRepository[AgentJob]):
    """Store for AgentJob with the status state machine."""

    model = AgentJob

    async def create(
        self,
        session_id: int,
        job_type: JobType | str,
        description: Optional[str] = None,
        input_data: Any = None,
    ) -> AgentJob:
        """
        Create a pending job.

        Raises:
            InvalidParameter: If job_type is unknown
            SessionNotFound: If the session does not exist or was deleted
        """
        job_type = coerce_enum(JobType, job_type, "job_type")
        job = AgentJob(
            session_id=session_id,
            job_type=job_type.value,
            status=JobStatus.PENDING.value,
            description=description,
            input_data=input_data,
            progress_percentage=0,
            created_at=utcnow(),
        )
        async with self._db.session() as session:
            owner = await session.get(AgentSession, session_id)
            if owner is None or owner.is_deleted:
                raise SessionNotFound(details={"session_id": session_id})
            session.add(job)
            await session.flush()
            await session.refresh(job)

        JOB_TRANSITIONS_TOTAL.labels(job_type=job_type.value, status=JobStatus.PENDING.value).inc()
        logger.info("job_created", job_id=job.id, session_id=session_id, job_type=job_type.value)
        return job

    async def get(self, job_id: int) -> Optional[AgentJob]:
        async with self._db.session() as session:
            return await self._get(session, job_id)

    async def require(self, job_id: int) -> AgentJob:
        """
        Raises:
            JobNotFound: If the job does not exist
        """
        job = await self.get(job_id)
        if job is None:
            raise JobNotFound(details={"job_id": job_id})
        return job

    async def update_status(
        self,
        job_id: int,
        status: JobStatus | str,
        *,
        progress: Optional[int] = None,
        output_data: Any = None,
        error_message: Optional[str] = None,
    ) -> AgentJob:
        """
        Move a job to `status`.

        - running sets started_at the first time only
        - terminal statuses set completed_at and default progress to 100
        - non-terminal statuses default progress to 0
        - output_data / error_message are written when given

        Raises:
            InvalidParameter: If status is unknown or progress is outside 0-100
            JobNotFound: If the job does not exist
            InvalidJobTransition: If the job cannot move from its current status to `status`
        """
        status = coerce_enum(JobStatus, status, "status")
        if progress is not None and not 0 <= progress <= 100:
            raise InvalidParameter(
                "progress must be between 0 and 100",
                details={"field": "progress", "value": progress},
            )

        now = utcnow()
        async with self._db.session() as session:
            job = await self._get(session, job_id)
            if job is None:
                raise JobNotFound(details={"job_id": job_id})

            current = JobStatus(job.status)
            if status not in JOB_TRANSITIONS[current]:
                raise InvalidJobTransition(
                    f"Cannot move job from {current.value} to {status.value}",
                    details={"job_id": job_id, "from": current.value, "to": status.value},
                )

            job.status = status.value
            if status == JobStatus.RUNNING and job.started_at is None:
                job.started_at = now

            if status.is_terminal:
                job.completed_at = now
                job.progress_percentage = 100 if progress is None else progress
            else:
                job.progress_percentage = 0 if progress is None else progress

            if output_data is not None:
                job.output_data = output_data
            if error_message is not None:
                job.error_message = error_message

            await session.flush()
            await session.refresh(job)

        JOB_TRANSITIONS_TOTAL.labels(job_type=job.job_type, status=status.value).inc()
        logger.info(
            "job_status_updated",
            job_id=job_id,
            from_status=current.value,
            to_status=status.value,
            progress=job.progress_percentage,
        )
        return job

    async def list_for_session(self, session_id: int) -> Sequence[AgentJob]:
        """All jobs of a session, newest first."""
        query = select(AgentJob).where(AgentJob.session_id == session_id)
        query = self.apply_sorting(query, "created_at", "desc")

        async with self._db.session() as session:
            result = await session.execute(query)
            return result.scalars().all()

    async def list_active_for_project(self, project_id: int) -> Sequence[AgentJob]:
        """Pending and running jobs across a project's live sessions, newest first."""
        query = (
            select(AgentJob)
            .join(AgentSession, AgentSession.id == AgentJob.session_id)
            .where(
                AgentSession.project_id == project_id,
                AgentSession.deleted_at.is_(None),
                AgentJob.status.in_([status.value for status in ACTIVE_JOB_STATUSES]),
            )
        )
        query = self.apply_sorting(query, "created_at", "desc")

        async with self._db.session() as session:
            result = await session.execute(query)
            return result.scalars().all()
