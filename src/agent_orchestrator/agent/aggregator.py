# src/agent_orchestrator/agent/aggregator.py
"""
Cross-agent aggregation.

Builds a read-only snapshot of what is happening in a project: the
latest messages of each agent role, recently accessed files, recent
errors and the jobs still in flight. The snapshot is recomputed on every
call and only feeds prompt construction; nothing is cached or persisted.
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass

from agent_orchestrator.config.settings import Settings
from agent_orchestrator.domain.models import AgentType, ContextItemType
from agent_orchestrator.infrastructure.database.models import AgentJob, AgentMessage, ContextItem
from agent_orchestrator.infrastructure.database.repositories import ContextIndex, JobTracker, MessageLog


@dataclass(frozen=True)
class CrossAgentSnapshot:
    """Recent activity across agent roles in one project. Sequences are newest first."""
    project_id: int
    code_messages: tuple[AgentMessage, ...]
    terminal_messages: tuple[AgentMessage, ...]
    recent_files: tuple[ContextItem, ...]
    recent_errors: tuple[ContextItem, ...]
    active_jobs: tuple[AgentJob, ...]

    def messages_for(self, agent_type: AgentType | str) -> tuple[AgentMessage, ...]:
        if AgentType(agent_type) == AgentType.CODE:
            return self.code_messages
        if AgentType(agent_type) == AgentType.TERMINAL:
            return self.terminal_messages
        return ()

    @property
    def is_empty(self) -> bool:
        return not (
            self.code_messages
            or self.terminal_messages
            or self.recent_files
            or self.recent_errors
            or self.active_jobs
        )


class CrossAgentAggregator:
    """
    Assembles CrossAgentSnapshot from the stores.

    Limits come from settings: aggregator_messages_per_agent,
    aggregator_recent_files and aggregator_recent_errors.
    """

    def __init__(
        self,
        messages: MessageLog,
        context: ContextIndex,
        jobs: JobTracker,
        settings: Settings,
    ):
        self._messages = messages
        self._context = context
        self._jobs = jobs
        self._settings = settings

    async def snapshot(self, project_id: int) -> CrossAgentSnapshot:
        settings = self._settings
        code, terminal, files, errors, jobs = await asyncio.gather(
            self._messages.recent_for_agent(
                project_id, AgentType.CODE, settings.aggregator_messages_per_agent
            ),
            self._messages.recent_for_agent(
                project_id, AgentType.TERMINAL, settings.aggregator_messages_per_agent
            ),
            self._context.recent(
                project_id, ContextItemType.FILE, settings.aggregator_recent_files, "last_accessed_at"
            ),
            self._context.recent(
                project_id, ContextItemType.ERROR, settings.aggregator_recent_errors, "updated_at"
            ),
            self._jobs.list_active_for_project(project_id),
        )
        return CrossAgentSnapshot(
            project_id=project_id,
            code_messages=tuple(code),
            terminal_messages=tuple(terminal),
            recent_files=tuple(files),
            recent_errors=tuple(errors),
            active_jobs=tuple(jobs),
        )
