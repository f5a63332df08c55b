# src/agent_orchestrator/infrastructure/database/repositories/base.py
from typing import TypeVar, Generic, Literal, Optional

from sqlalchemy import Select, Table, asc, desc
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from agent_orchestrator.infrastructure.database.connection import DatabaseManager

T = TypeVar("T", bound=SQLModel)


class BaseRepository(Generic[T]):
    """
    Base for the entity stores.

    Stores hold a DatabaseManager rather than a session: every public
    operation opens its own session through `self._db.session()` and
    commits on exit, so no two operations share a transaction.

    Extend this for entity-specific stores.

    Example:
        class JobTracker(BaseRepository[AgentJob]):
            model = AgentJob

            async def get(self, job_id: int) -> AgentJob | None:
                async with self._db.session() as session:
                    return await self._get(session, job_id)
    """

    model: type[T]

    def __init__(self, db: DatabaseManager):
        self._db = db

    def _has_soft_delete(self) -> bool:
        """Check if model supports soft delete."""
        return hasattr(self.model, "deleted_at")

    def _exclude_deleted(self, query: Select, include_deleted: bool = False) -> Select:
        """Exclude soft-deleted records from query unless include_deleted=True."""
        if not include_deleted and self._has_soft_delete():
            query = query.where(self.model.deleted_at.is_(None))
        return query

    async def _get(
        self,
        session: AsyncSession,
        id: int,
        include_deleted: bool = False,
    ) -> Optional[T]:
        """Get entity by ID within an open session."""
        entity = await session.get(self.model, id)
        if entity and not include_deleted and self._has_soft_delete():
            if getattr(entity, "deleted_at", None) is not None:
                return None
        return entity

    def apply_sorting(
        self,
        query: Select,
        sort_by: str = "created_at",
        order: Literal["asc", "desc"] = "desc",
    ) -> Select:
        """
        Apply sorting to query, with id as the tie-breaker in the same direction.

        Unknown fields fall back to created_at.
        """
        field = getattr(self.model, sort_by, None)
        if field is None:
            field = self.model.created_at

        direction = asc if order == "asc" else desc
        return query.order_by(direction(field), direction(self.model.id))

    @staticmethod
    def _upsert_insert(session: AsyncSession, table: Table):
        """
        Dialect-specific INSERT supporting ON CONFLICT DO UPDATE.

        Raises:
            NotImplementedError: For dialects without native upsert support
        """
        dialect = session.bind.dialect.name
        if dialect == "postgresql":
            return postgresql.insert(table)
        if dialect == "sqlite":
            return sqlite.insert(table)
        raise NotImplementedError(f"Upsert is not supported on {dialect}")
