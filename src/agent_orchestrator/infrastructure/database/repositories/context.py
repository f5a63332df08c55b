# src/agent_orchestrator/infrastructure/database/repositories/context.py
"""
Context index: per-project keyed artifacts and their session links.

Writes go through the database's native INSERT ... ON CONFLICT DO UPDATE
so concurrent writers never need in-process locking. Reads count
themselves: every `get` hit schedules an atomic access_count increment
that runs in its own unit of work, and the read returns without waiting
for it.
"""

import asyncio
from typing import Any, Dict, Literal, Optional, Sequence, Set

from sqlalchemy import desc, select, update

from agent_orchestrator.domain.models import ContextItemType, coerce_enum
from agent_orchestrator.domain.shared_context import sha256_hex
from agent_orchestrator.infrastructure.database.base_model import utcnow
from agent_orchestrator.infrastructure.database.models.context_item import (
    ContextItem,
    SessionContextLink,
)
from agent_orchestrator.infrastructure.database.repositories.base import BaseRepository
from agent_orchestrator.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ContextIndex(BaseRepository[ContextItem]):
    """
    Store for ContextItem and SessionContextLink rows.

    The only in-process state is the set of outstanding access-bookkeeping
    tasks; call `drain()` before shutting the database down.
    """

    model = ContextItem

    def __init__(self, db):
        super().__init__(db)
        self._pending: Set[asyncio.Task] = set()

    async def upsert(
        self,
        project_id: int,
        item_type: ContextItemType | str,
        item_key: str,
        content: Optional[str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ContextItem:
        """
        Insert or overwrite the item at (project_id, item_type, item_key).

        Content, content hash, metadata and updated_at are replaced on
        conflict; access bookkeeping and created_at are kept.

        Raises:
            InvalidParameter: If item_type is unknown
        """
        item_type = coerce_enum(ContextItemType, item_type, "item_type")
        content_hash = sha256_hex(content) if content is not None else None
        now = utcnow()
        table = ContextItem.__table__

        async with self._db.session() as session:
            stmt = self._upsert_insert(session, table).values(
                project_id=project_id,
                item_type=item_type.value,
                item_key=item_key,
                content=content,
                content_hash=content_hash,
                metadata=metadata or {},
                last_accessed_at=now,
                access_count=0,
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[table.c.project_id, table.c.item_type, table.c.item_key],
                set_={
                    "content": stmt.excluded["content"],
                    "content_hash": stmt.excluded["content_hash"],
                    "metadata": stmt.excluded["metadata"],
                    "updated_at": stmt.excluded["updated_at"],
                },
            ).returning(table.c.id)
            item_id = (await session.execute(stmt)).scalar_one()

            result = await session.execute(
                select(ContextItem)
                .where(ContextItem.id == item_id)
                .execution_options(populate_existing=True)
            )
            item = result.scalar_one()

        logger.debug(
            "context_item_upserted",
            project_id=project_id,
            item_type=item_type.value,
            item_key=item_key,
            item_id=item.id,
        )
        return item

    async def get(
        self,
        project_id: int,
        item_type: ContextItemType | str,
        item_key: str,
    ) -> Optional[ContextItem]:
        """
        Get the item at (project_id, item_type, item_key).

        A hit schedules the access_count / last_accessed_at update in the
        background; the returned object reflects the row as it was read.
        """
        item_type = coerce_enum(ContextItemType, item_type, "item_type")
        query = select(ContextItem).where(
            ContextItem.project_id == project_id,
            ContextItem.item_type == item_type.value,
            ContextItem.item_key == item_key,
        )

        async with self._db.session() as session:
            item = (await session.execute(query)).scalar_one_or_none()

        if item is not None:
            task = asyncio.create_task(self._record_access(item.id))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return item

    async def _record_access(self, item_id: int) -> None:
        try:
            async with self._db.session() as session:
                await session.execute(
                    update(ContextItem)
                    .where(ContextItem.id == item_id)
                    .values(
                        access_count=ContextItem.access_count + 1,
                        last_accessed_at=utcnow(),
                    )
                    .execution_options(synchronize_session=False)
                )
        except Exception as e:
            # Nothing awaits this task; a failed increment must not surface as
            # an unretrieved task exception.
            logger.warning("context_access_update_failed", item_id=item_id, error=str(e))

    async def drain(self) -> None:
        """Wait for every outstanding access-bookkeeping update to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def link(
        self,
        session_id: int,
        context_item_id: int,
        relevance: float = 1.0,
    ) -> SessionContextLink:
        """Link an item to a session; linking again overwrites the relevance score."""
        now = utcnow()
        table = SessionContextLink.__table__

        async with self._db.session() as session:
            stmt = self._upsert_insert(session, table).values(
                session_id=session_id,
                context_item_id=context_item_id,
                relevance_score=relevance,
                added_at=now,
                created_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[table.c.session_id, table.c.context_item_id],
                set_={"relevance_score": stmt.excluded["relevance_score"]},
            ).returning(table.c.id)
            link_id = (await session.execute(stmt)).scalar_one()

            result = await session.execute(
                select(SessionContextLink)
                .where(SessionContextLink.id == link_id)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one()

    async def list_for_session(self, session_id: int) -> list[tuple[ContextItem, float]]:
        """Items linked to a session with their scores, most relevant then most recently accessed first."""
        query = (
            select(ContextItem, SessionContextLink.relevance_score)
            .join(SessionContextLink, SessionContextLink.context_item_id == ContextItem.id)
            .where(SessionContextLink.session_id == session_id)
            .order_by(
                desc(SessionContextLink.relevance_score),
                desc(ContextItem.last_accessed_at),
                desc(ContextItem.id),
            )
        )

        async with self._db.session() as session:
            result = await session.execute(query)
            return [(item, score) for item, score in result.all()]

    async def recent(
        self,
        project_id: int,
        item_type: ContextItemType | str,
        limit: int,
        order_by: Literal["last_accessed_at", "updated_at"] = "last_accessed_at",
    ) -> Sequence[ContextItem]:
        """Newest items of one type in a project, by access or by update time."""
        item_type = coerce_enum(ContextItemType, item_type, "item_type")
        query = select(ContextItem).where(
            ContextItem.project_id == project_id,
            ContextItem.item_type == item_type.value,
        )
        query = self.apply_sorting(query, order_by, "desc").limit(limit)

        async with self._db.session() as session:
            result = await session.execute(query)
            return result.scalars().all()
