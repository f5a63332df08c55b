# src/agent_orchestrator/agent/prompts.py
"""
System prompt construction.

The prompt is rebuilt on every turn from the session's role, the tools
on offer, the cross-agent snapshot and (optionally) retrieval results,
so each agent sees what the other one has been doing.
"""

from __future__ import annotations
from typing import Optional, Sequence

from agent_orchestrator.agent.aggregator import CrossAgentSnapshot
from agent_orchestrator.config.settings import Settings
from agent_orchestrator.domain.models import AgentType, SessionType
from agent_orchestrator.infrastructure.database.models import AgentSession
from agent_orchestrator.interfaces import IContextRetriever, RetrievedChunk, ToolSchema
from agent_orchestrator.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

ROLE_PREAMBLES = {
    SessionType.CODE: (
        "You are the code agent of a cloud development environment. You write and "
        "change source files in the user's project. A terminal agent works on the "
        "same project and runs commands; its recent activity is listed below."
    ),
    SessionType.TERMINAL: (
        "You are the terminal agent of a cloud development environment. You run "
        "commands and inspect files in the user's workspace. A code agent works on "
        "the same project and edits source files; its recent activity is listed below."
    ),
    SessionType.HYBRID: (
        "You are a development agent that both edits source files and runs commands "
        "in the user's project. Recent activity of the project's code and terminal "
        "agents is listed below."
    ),
}

GUIDELINES = """# Guidelines

- Gather facts with your tools before answering.
- Take recent errors and the other agent's changes into account when debugging.
- Say what a destructive command will do before running it.
- If a tool call fails, read the error and decide whether to retry, try another tool or report back."""


def _clip(text: Optional[str], limit: int) -> str:
    text = (text or "").replace("\n", " ").strip()
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def _other_roles(session_type: SessionType) -> list[AgentType]:
    if session_type == SessionType.CODE:
        return [AgentType.TERMINAL]
    if session_type == SessionType.TERMINAL:
        return [AgentType.CODE]
    return [AgentType.CODE, AgentType.TERMINAL]


class PromptBuilder:
    """Renders the system prompt for one turn."""

    def __init__(self, settings: Settings, retriever: Optional[IContextRetriever] = None):
        self._settings = settings
        self._retriever = retriever

    async def retrieve(self, project_id: int, query: str) -> list[RetrievedChunk]:
        """Search the retriever; a failing retriever yields no results."""
        if self._retriever is None:
            return []
        try:
            return list(
                await self._retriever.search(project_id, query, self._settings.prompt_retrieval_results)
            )
        except Exception as e:
            logger.warning("context_retrieval_failed", project_id=project_id, error=str(e))
            return []

    def render(
        self,
        session: AgentSession,
        tools: Sequence[ToolSchema],
        snapshot: CrossAgentSnapshot,
        retrieved: Sequence[RetrievedChunk] = (),
        workspace_id: Optional[str] = None,
    ) -> str:
        settings = self._settings
        session_type = SessionType(session.session_type)
        sections = [ROLE_PREAMBLES[session_type]]

        if tools:
            sections.append(
                "# Tools\n\n" + "\n".join(f"- {tool.name}: {tool.description}" for tool in tools)
            )
        else:
            sections.append("# Tools\n\nNo tools are available in this session; answer directly.")

        sections.append(
            "# Environment\n\n"
            f"- Project: {session.project_id}\n"
            f"- Session: {session.id}\n"
            f"- Workspace: {workspace_id or 'none'}"
        )

        for role in _other_roles(session_type):
            messages = snapshot.messages_for(role)[: settings.prompt_activity_items]
            lines = [
                f"- [{message.created_at.isoformat()}] {message.role}: "
                f"{_clip(message.content, settings.prompt_activity_chars)}"
                for message in messages
            ]
            sections.append(
                f"# Recent {role.value} agent activity\n\n"
                + ("\n".join(lines) if lines else f"No recent {role.value} agent activity.")
            )

        errors = snapshot.recent_errors[: settings.prompt_error_items]
        sections.append(
            "# Recent errors\n\n"
            + (
                "\n".join(
                    f"- {item.item_key}: {_clip(item.content, settings.prompt_error_chars)}"
                    for item in errors
                )
                if errors else "No recent errors."
            )
        )

        jobs = snapshot.active_jobs
        sections.append(
            "# Active jobs\n\n"
            + (
                "\n".join(
                    f"- {job.job_type}: {job.description or 'no description'} "
                    f"({job.status}, {job.progress_percentage}%)"
                    for job in jobs
                )
                if jobs else "No active jobs."
            )
        )

        files = snapshot.recent_files[: settings.prompt_file_items]
        sections.append(
            "# Recently accessed files\n\n"
            + (
                "\n".join(f"- {item.item_key} (read {item.access_count} times)" for item in files)
                if files else "No recently accessed files."
            )
        )

        if retrieved:
            chunks = []
            for index, chunk in enumerate(retrieved, start=1):
                score = f" (relevance {chunk.score * 100:.1f}%)" if chunk.score is not None else ""
                content = chunk.content
                if len(content) > settings.prompt_retrieval_chars:
                    content = content[: settings.prompt_retrieval_chars] + "..."
                chunks.append(f"## {index}. {chunk.source}{score}\n```\n{content}\n```")
            sections.append("# Related code\n\n" + "\n\n".join(chunks))

        sections.append(GUIDELINES)
        return "\n\n".join(sections)
