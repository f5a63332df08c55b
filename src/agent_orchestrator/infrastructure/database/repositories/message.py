# src/agent_orchestrator/infrastructure/database/repositories/message.py
"""
Message log: append-only, time-ordered transcript per session.

Rows are ordered by (created_at, id). Appending a message touches the
owning session's activity in the same unit of work.
"""

import json
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import select

from agent_orchestrator.domain.exceptions import NotFound, SessionNotFound, ValidationError
from agent_orchestrator.domain.models import (
    AgentType,
    ContentType,
    MessageRole,
    ToolStatus,
    coerce_enum,
)
from agent_orchestrator.infrastructure.database.base_model import utcnow
from agent_orchestrator.infrastructure.database.models.message import AgentMessage
from agent_orchestrator.infrastructure.database.models.session import AgentSession
from agent_orchestrator.infrastructure.database.repositories.base import BaseRepository
from agent_orchestrator.infrastructure.database.repositories.session import touch_statement
from agent_orchestrator.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class MessageLog(BaseRepository[AgentMessage]):
    """
    Store for AgentMessage rows.

    Content is always stored as text. Structured (non-string) content is
    JSON-encoded and, unless told otherwise, marked content_type "json".
    """

    model = AgentMessage

    async def append(
        self,
        session_id: int,
        role: MessageRole | str,
        content: Any,
        *,
        agent_type: AgentType | str | None = None,
        content_type: ContentType | str | None = None,
        tool_name: Optional[str] = None,
        tool_input: Any = None,
        tool_output: Any = None,
        tool_status: ToolStatus | str | None = None,
        context_snapshot: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AgentMessage:
        """
        Persist a message and bump the session's activity.

        Raises:
            InvalidParameter: If role, agent_type, content_type or tool_status is unknown
            SessionNotFound: If the session does not exist or was deleted
            DatabaseError: If the row cannot be persisted
        """
        role = coerce_enum(MessageRole, role, "role")
        if agent_type is not None:
            agent_type = coerce_enum(AgentType, agent_type, "agent_type")
        if tool_status is not None:
            tool_status = coerce_enum(ToolStatus, tool_status, "tool_status")

        if isinstance(content, str):
            text = content
            default_type = ContentType.TEXT
        else:
            text = json.dumps(content, default=str)
            default_type = ContentType.JSON
        content_type = coerce_enum(ContentType, content_type or default_type, "content_type")

        now = utcnow()
        message = AgentMessage(
            session_id=session_id,
            role=role.value,
            agent_type=agent_type.value if agent_type else None,
            content=text,
            content_type=content_type.value,
            tool_name=tool_name,
            tool_input=tool_input,
            tool_output=tool_output,
            tool_status=tool_status.value if tool_status else None,
            context_snapshot=context_snapshot,
            meta=metadata or {},
            created_at=now,
        )

        async with self._db.session() as session:
            owner = await session.get(AgentSession, session_id)
            if owner is None or owner.is_deleted:
                raise SessionNotFound(details={"session_id": session_id})
            session.add(message)
            await session.flush()
            await session.refresh(message)
            await session.execute(touch_statement(session_id, now))

        return message

    async def read(self, session_id: int, limit: Optional[int] = None) -> Sequence[AgentMessage]:
        """
        Read a session's messages oldest to newest.

        With a limit this returns the earliest `limit` messages, not the
        latest. Callers that need a trailing window read everything and
        slice.
        """
        query = select(AgentMessage).where(AgentMessage.session_id == session_id)
        query = self.apply_sorting(query, "created_at", "asc")
        if limit is not None:
            query = query.limit(limit)

        async with self._db.session() as session:
            result = await session.execute(query)
            return result.scalars().all()

    async def complete_tool_call(
        self,
        message_id: int,
        output: Any,
        status: ToolStatus | str,
        *,
        content: Optional[Any] = None,
        content_type: ContentType | str | None = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AgentMessage:
        """
        Finish a tool message that was written with status "running".

        This is the only in-place change a message row accepts, and only
        running -> success | error is allowed.

        Raises:
            NotFound: If the message does not exist
            ValidationError: If the row is not a running tool call or status is not final
        """
        status = coerce_enum(ToolStatus, status, "tool_status")
        if status not in (ToolStatus.SUCCESS, ToolStatus.ERROR):
            raise ValidationError(
                "Tool calls can only be completed as success or error",
                details={"message_id": message_id, "status": status.value},
            )

        async with self._db.session() as session:
            message = await session.get(AgentMessage, message_id)
            if message is None:
                raise NotFound("Message not found", details={"message_id": message_id})
            if message.role != MessageRole.TOOL.value or message.tool_status != ToolStatus.RUNNING.value:
                raise ValidationError(
                    "Only running tool messages can be completed",
                    details={"message_id": message_id, "tool_status": message.tool_status},
                )

            message.tool_output = output
            message.tool_status = status.value
            if content is not None:
                message.content = content if isinstance(content, str) else json.dumps(content, default=str)
            if content_type is not None:
                message.content_type = coerce_enum(ContentType, content_type, "content_type").value
            if metadata:
                message.meta = {**(message.meta or {}), **metadata}
            await session.flush()
            await session.refresh(message)
            await session.execute(touch_statement(message.session_id, utcnow()))

        return message

    async def recent_for_agent(
        self,
        project_id: int,
        agent_type: AgentType | str,
        limit: int,
    ) -> Sequence[AgentMessage]:
        """Newest-first messages of one agent role across a project's live sessions."""
        agent_type = coerce_enum(AgentType, agent_type, "agent_type")
        query = (
            select(AgentMessage)
            .join(AgentSession, AgentSession.id == AgentMessage.session_id)
            .where(
                AgentSession.project_id == project_id,
                AgentSession.deleted_at.is_(None),
                AgentMessage.agent_type == agent_type.value,
            )
        )
        query = self.apply_sorting(query, "created_at", "desc").limit(limit)

        async with self._db.session() as session:
            result = await session.execute(query)
            return result.scalars().all()
