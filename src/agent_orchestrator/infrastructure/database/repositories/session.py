# src/agent_orchestrator/infrastructure/database/repositories/session.py
"""
Session store: lifecycle of AgentSession rows.

Sessions are soft-deleted only; every read path excludes rows with
deleted_at set. `last_activity_at` never moves backwards: bumps are
written as a single UPDATE that keeps the larger of the stored and the
new timestamp, so concurrent writers cannot regress it.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import Update, case, select, update

from agent_orchestrator.domain.exceptions import SessionNotFound
from agent_orchestrator.domain.models import SessionStatus, SessionType, coerce_enum
from agent_orchestrator.domain.shared_context import hash_shared_context, normalize_shared_context
from agent_orchestrator.infrastructure.database.base_model import utcnow
from agent_orchestrator.infrastructure.database.models.session import AgentSession
from agent_orchestrator.infrastructure.database.repositories.base import BaseRepository
from agent_orchestrator.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def touch_statement(
    session_id: int,
    now: datetime,
    status: Optional[SessionStatus] = None,
) -> Update:
    """UPDATE bumping last_activity_at to max(stored, now) for a live session."""
    values: Dict[str, Any] = {
        "last_activity_at": case(
            (AgentSession.last_activity_at < now, now),
            else_=AgentSession.last_activity_at,
        ),
        "updated_at": now,
    }
    if status is not None:
        values["status"] = status.value
    return (
        update(AgentSession)
        .where(AgentSession.id == session_id, AgentSession.deleted_at.is_(None))
        .values(**values)
        .execution_options(synchronize_session=False)
    )


class SessionStore(BaseRepository[AgentSession]):
    """
    Store for AgentSession with activity and shared-context operations.

    Example:
        >>> store = SessionStore(db)
        >>> session = await store.create(project_id=7, user_id="u1", session_type="terminal")
        >>> await store.touch(session.id, status="paused")
    """

    model = AgentSession

    async def create(
        self,
        project_id: int,
        user_id: str,
        session_type: SessionType | str,
        title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        shared_context: Optional[Dict[str, Any]] = None,
    ) -> AgentSession:
        """
        Create a new active session.

        Raises:
            InvalidParameter: If session_type is unknown
            DatabaseError: If the row cannot be persisted
        """
        session_type = coerce_enum(SessionType, session_type, "session_type")
        context = normalize_shared_context(shared_context)
        now = utcnow()

        entity = AgentSession(
            project_id=project_id,
            user_id=user_id,
            session_type=session_type.value,
            title=title,
            status=SessionStatus.ACTIVE.value,
            shared_context=context,
            context_hash=hash_shared_context(context),
            meta=metadata or {},
            created_at=now,
            updated_at=now,
            last_activity_at=now,
        )
        async with self._db.session() as session:
            session.add(entity)
            await session.flush()
            await session.refresh(entity)

        logger.info(
            "session_created",
            session_id=entity.id,
            project_id=project_id,
            session_type=session_type.value,
        )
        return entity

    async def get(self, session_id: int) -> Optional[AgentSession]:
        """Get a session by ID; soft-deleted sessions are not returned."""
        async with self._db.session() as session:
            return await self._get(session, session_id)

    async def require(self, session_id: int) -> AgentSession:
        """
        Get a session by ID.

        Raises:
            SessionNotFound: If the session does not exist or was deleted
        """
        entity = await self.get(session_id)
        if entity is None:
            raise SessionNotFound(details={"session_id": session_id})
        return entity

    async def list_for_project(
        self,
        project_id: int,
        session_type: SessionType | str | None = None,
    ) -> Sequence[AgentSession]:
        """List a project's sessions, most recently active first."""
        query = select(AgentSession).where(AgentSession.project_id == project_id)
        if session_type is not None:
            session_type = coerce_enum(SessionType, session_type, "session_type")
            query = query.where(AgentSession.session_type == session_type.value)
        query = self._exclude_deleted(query)
        query = self.apply_sorting(query, "last_activity_at", "desc")

        async with self._db.session() as session:
            result = await session.execute(query)
            return result.scalars().all()

    async def touch(
        self,
        session_id: int,
        status: SessionStatus | str | None = None,
    ) -> None:
        """
        Record activity on a session, optionally changing its status.

        Raises:
            InvalidParameter: If status is unknown
            SessionNotFound: If the session does not exist or was deleted
        """
        if status is not None:
            status = coerce_enum(SessionStatus, status, "status")

        async with self._db.session() as session:
            result = await session.execute(touch_statement(session_id, utcnow(), status))
            if result.rowcount == 0:
                raise SessionNotFound(details={"session_id": session_id})

    async def update_shared_context(
        self,
        session_id: int,
        context: Dict[str, Any],
    ) -> AgentSession:
        """
        Replace a session's shared context and its hash in one write.

        The stored blob carries the `_version` stamp and hashes to the
        stored context_hash.

        Raises:
            ValidationError: If the context is not a JSON-serialisable string-keyed map
            SessionNotFound: If the session does not exist or was deleted
        """
        normalized = normalize_shared_context(context)
        context_hash = hash_shared_context(normalized)
        now = utcnow()

        async with self._db.session() as session:
            entity = await self._get(session, session_id)
            if entity is None:
                raise SessionNotFound(details={"session_id": session_id})
            entity.shared_context = normalized
            entity.context_hash = context_hash
            entity.updated_at = now
            if entity.last_activity_at < now:
                entity.last_activity_at = now
            await session.flush()
            await session.refresh(entity)

        logger.debug("shared_context_updated", session_id=session_id, context_hash=context_hash)
        return entity

    async def soft_delete(self, session_id: int) -> bool:
        """
        Soft delete a session (sets deleted_at).

        Returns:
            True if deleted, False if not found or already deleted
        """
        now = utcnow()
        async with self._db.session() as session:
            entity = await self._get(session, session_id)
            if entity is None:
                return False
            entity.deleted_at = now
            entity.updated_at = now

        logger.info("session_deleted", session_id=session_id)
        return True
