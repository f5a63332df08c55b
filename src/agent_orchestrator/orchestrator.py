# src/agent_orchestrator/orchestrator.py
"""
Orchestrator: the entry point for callers.

Wires the stores, the tool registry, the aggregator, the model backend and
the agent loop around one DatabaseManager, and exposes the operations a
transport layer (HTTP, websocket, worker) needs. It owns no transport
itself.

Usage:
    orchestrator = await Orchestrator.from_settings(registry=registry)
    session = await orchestrator.create_session(project_id=7, user_id="u1", session_type="terminal")
    result = await orchestrator.submit_turn(session.id, "list files")
    await orchestrator.close()
"""

from __future__ import annotations
from typing import Any, AsyncIterator, Dict, Optional, Sequence

from agent_orchestrator.agent.aggregator import CrossAgentAggregator, CrossAgentSnapshot
from agent_orchestrator.agent.integrations import create_model_backend
from agent_orchestrator.agent.loop import AgentLoop
from agent_orchestrator.agent.results import TurnEvent, TurnResult
from agent_orchestrator.config.settings import Settings, get_settings
from agent_orchestrator.domain.models import AgentType, ContextItemType, JobStatus, JobType, SessionType
from agent_orchestrator.infrastructure.database import DatabaseManager
from agent_orchestrator.infrastructure.database.models import (
    AgentJob,
    AgentMessage,
    AgentSession,
    ContextItem,
    SessionContextLink,
)
from agent_orchestrator.infrastructure.database.repositories import (
    ContextIndex,
    JobTracker,
    MessageLog,
    SessionStore,
)
from agent_orchestrator.infrastructure.observability import configure_logging, get_logger
from agent_orchestrator.interfaces import IContextRetriever, IModelBackend
from agent_orchestrator.tools.registry import ToolRegistry

logger = get_logger(__name__)


class Orchestrator:
    """Facade over the session, message, context and job stores and the agent loop."""

    def __init__(
        self,
        db: DatabaseManager,
        backend: IModelBackend,
        registry: Optional[ToolRegistry] = None,
        settings: Optional[Settings] = None,
        retriever: Optional[IContextRetriever] = None,
    ):
        self.settings = settings or get_settings()
        self.db = db
        self.registry = registry if registry is not None else ToolRegistry()
        self.sessions = SessionStore(db)
        self.messages = MessageLog(db)
        self.context = ContextIndex(db)
        self.jobs = JobTracker(db)
        self.aggregator = CrossAgentAggregator(self.messages, self.context, self.jobs, self.settings)
        self.loop = AgentLoop(
            sessions=self.sessions,
            messages=self.messages,
            context=self.context,
            jobs=self.jobs,
            registry=self.registry,
            aggregator=self.aggregator,
            backend=backend,
            settings=self.settings,
            retriever=retriever,
        )

    @classmethod
    async def from_settings(
        cls,
        settings: Optional[Settings] = None,
        registry: Optional[ToolRegistry] = None,
        backend: Optional[IModelBackend] = None,
        retriever: Optional[IContextRetriever] = None,
    ) -> "Orchestrator":
        """
        Configure logging, connect the database and build the backend from settings.

        Raises:
            DatabaseConnectionError: If no database_url is configured
        """
        settings = settings or get_settings()
        configure_logging(settings)
        db = DatabaseManager()
        await db.connect_from_settings(settings)
        logger.info("orchestrator_started", llm_provider=settings.llm_provider, model=settings.llm_model)
        return cls(
            db,
            backend or create_model_backend(settings),
            registry=registry,
            settings=settings,
            retriever=retriever,
        )

    async def close(self) -> None:
        """Wait for background bookkeeping, then release database connections."""
        await self.context.drain()
        await self.db.disconnect()

    # Turns

    async def submit_turn(
        self,
        session_id: int,
        message: str,
        *,
        agent_type: AgentType | str | None = None,
        workspace_id: Optional[str] = None,
        job_id: Optional[int] = None,
    ) -> TurnResult:
        """
        Run one user turn and return its result.

        Raises:
            SessionNotFound: If the session does not exist or was deleted
            TurnFailed: If the turn was aborted by a storage or model failure
        """
        return await self.loop.run(
            session_id,
            message,
            agent_type=agent_type,
            workspace_id=workspace_id,
            job_id=job_id,
        )

    def stream_turn(
        self,
        session_id: int,
        message: str,
        *,
        agent_type: AgentType | str | None = None,
        workspace_id: Optional[str] = None,
        job_id: Optional[int] = None,
    ) -> AsyncIterator[TurnEvent]:
        """Run one user turn, yielding TurnEvents; the last one is DONE."""
        return self.loop.stream(
            session_id,
            message,
            agent_type=agent_type,
            workspace_id=workspace_id,
            job_id=job_id,
        )

    # Sessions

    async def create_session(
        self,
        project_id: int,
        user_id: str,
        session_type: SessionType | str,
        title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        shared_context: Optional[Dict[str, Any]] = None,
    ) -> AgentSession:
        return await self.sessions.create(
            project_id,
            user_id,
            session_type,
            title=title,
            metadata=metadata,
            shared_context=shared_context,
        )

    async def get_session(self, session_id: int) -> Optional[AgentSession]:
        return await self.sessions.get(session_id)

    async def list_sessions(
        self,
        project_id: int,
        session_type: SessionType | str | None = None,
    ) -> Sequence[AgentSession]:
        return await self.sessions.list_for_project(project_id, session_type)

    async def delete_session(self, session_id: int) -> bool:
        return await self.sessions.soft_delete(session_id)

    async def update_shared_context(self, session_id: int, context: Dict[str, Any]) -> AgentSession:
        return await self.sessions.update_shared_context(session_id, context)

    async def list_messages(self, session_id: int, limit: Optional[int] = None) -> Sequence[AgentMessage]:
        """Messages oldest first; with a limit, the earliest `limit` of them."""
        return await self.messages.read(session_id, limit)

    # Jobs

    async def create_job(
        self,
        session_id: int,
        job_type: JobType | str,
        description: Optional[str] = None,
        input_data: Any = None,
    ) -> AgentJob:
        return await self.jobs.create(session_id, job_type, description, input_data)

    async def update_job(
        self,
        job_id: int,
        status: JobStatus | str,
        *,
        progress: Optional[int] = None,
        output_data: Any = None,
        error_message: Optional[str] = None,
    ) -> AgentJob:
        return await self.jobs.update_status(
            job_id,
            status,
            progress=progress,
            output_data=output_data,
            error_message=error_message,
        )

    async def get_job(self, job_id: int) -> Optional[AgentJob]:
        return await self.jobs.get(job_id)

    async def list_jobs(self, session_id: int) -> Sequence[AgentJob]:
        return await self.jobs.list_for_session(session_id)

    # Context

    async def upsert_context(
        self,
        project_id: int,
        item_type: ContextItemType | str,
        item_key: str,
        content: Optional[str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ContextItem:
        return await self.context.upsert(project_id, item_type, item_key, content, metadata)

    async def get_context(
        self,
        project_id: int,
        item_type: ContextItemType | str,
        item_key: str,
    ) -> Optional[ContextItem]:
        return await self.context.get(project_id, item_type, item_key)

    async def link_context(
        self,
        session_id: int,
        context_item_id: int,
        relevance: float = 1.0,
    ) -> SessionContextLink:
        return await self.context.link(session_id, context_item_id, relevance)

    async def session_context(self, session_id: int) -> list[tuple[ContextItem, float]]:
        return await self.context.list_for_session(session_id)

    async def cross_agent_snapshot(self, project_id: int) -> CrossAgentSnapshot:
        return await self.aggregator.snapshot(project_id)
