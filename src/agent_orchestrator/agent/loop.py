# src/agent_orchestrator/agent/loop.py
"""
The agent loop: drives one user turn from inbound message to final answer.

    AwaitingModel -> ModelResponded -> Done
                                    -> ExecutingTools -> AwaitingModel ...

A turn ends when a model response carries no tool calls, or when the
number of model round-trips reaches `agent_max_iterations`. Reaching the
cap is not an error; the turn returns what it has with truncated=True.

Tool calls run one at a time in the order the model requested them. Each
call is written to the message log as a `running` tool row before the
tool runs and completed in place afterwards, so a crash mid-call leaves a
visible trace. A failing tool never aborts the turn: the failure goes
back to the model as an error result and is indexed as an `error`
context item for the other agents.
"""

from __future__ import annotations
import functools
import json
import time
import uuid
from typing import Any, AsyncIterator, Optional

from agent_orchestrator.agent.aggregator import CrossAgentAggregator
from agent_orchestrator.agent.history import build_history, merge_adjacent_roles, render_tool_output
from agent_orchestrator.agent.prompts import PromptBuilder
from agent_orchestrator.agent.results import ToolInvocation, TurnEvent, TurnEventType, TurnResult
from agent_orchestrator.config.settings import Settings
from agent_orchestrator.domain.exceptions import (
    AppError,
    ToolError,
    ToolNotFound,
    TurnFailed,
    ValidationError,
)
from agent_orchestrator.domain.models import (
    AgentType,
    ContentType,
    ContextItemType,
    JobStatus,
    MessageRole,
    SessionType,
    ToolStatus,
    coerce_enum,
)
from agent_orchestrator.infrastructure.database.models import AgentSession
from agent_orchestrator.infrastructure.database.repositories import (
    ContextIndex,
    JobTracker,
    MessageLog,
    SessionStore,
)
from agent_orchestrator.infrastructure.observability.context import turn_context
from agent_orchestrator.infrastructure.observability.logging import get_logger
from agent_orchestrator.infrastructure.observability.metrics import (
    AGENT_TOKENS_USED_TOTAL,
    MODEL_ROUND_TRIPS_TOTAL,
    TURN_DURATION_SECONDS,
    TURNS_TOTAL,
    TURNS_TRUNCATED_TOTAL,
)
from agent_orchestrator.interfaces import (
    ArtifactKind,
    IContextRetriever,
    IModelBackend,
    TextBlock,
    ToolArtifact,
    ToolCallBlock,
    ToolContext,
)
from agent_orchestrator.tools.registry import ToolRegistry

logger = get_logger(__name__)

# Agent role that writes a session's messages when the caller does not say
SESSION_AGENT_TYPES = {
    SessionType.CODE: AgentType.CODE,
    SessionType.TERMINAL: AgentType.TERMINAL,
    SessionType.HYBRID: AgentType.CODE,
}


def _jsonable(value: Any) -> Any:
    """Round-trip through JSON so tool output fits a JSON column."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return json.loads(json.dumps(value, default=str))


class AgentLoop:
    """
    Runs turns for sessions of any type.

    The loop holds no per-turn state; one instance can serve many sessions
    concurrently.

    Example:
        >>> loop = AgentLoop(sessions, messages, context, jobs, registry, aggregator, backend, settings)
        >>> result = await loop.run(session.id, "list files")
        >>> result.tools_used
        ['ls']
    """

    def __init__(
        self,
        sessions: SessionStore,
        messages: MessageLog,
        context: ContextIndex,
        jobs: JobTracker,
        registry: ToolRegistry,
        aggregator: CrossAgentAggregator,
        backend: IModelBackend,
        settings: Settings,
        retriever: Optional[IContextRetriever] = None,
    ):
        self._sessions = sessions
        self._messages = messages
        self._context = context
        self._jobs = jobs
        self._registry = registry
        self._aggregator = aggregator
        self._backend = backend
        self._settings = settings
        self._prompts = PromptBuilder(settings, retriever)

    async def run(
        self,
        session_id: int,
        user_message: str,
        *,
        agent_type: AgentType | str | None = None,
        workspace_id: Optional[str] = None,
        job_id: Optional[int] = None,
    ) -> TurnResult:
        """
        Run one turn to completion.

        Raises:
            ValidationError: If user_message is empty
            SessionNotFound: If the session does not exist or was deleted
            TurnFailed: If the turn was aborted; carries the partial result
        """
        result: Optional[TurnResult] = None
        async for event in self.stream(
            session_id,
            user_message,
            agent_type=agent_type,
            workspace_id=workspace_id,
            job_id=job_id,
        ):
            if event.type == TurnEventType.DONE:
                result = event.result
        return result

    async def stream(
        self,
        session_id: int,
        user_message: str,
        *,
        agent_type: AgentType | str | None = None,
        workspace_id: Optional[str] = None,
        job_id: Optional[int] = None,
    ) -> AsyncIterator[TurnEvent]:
        """
        Run one turn, yielding events as it goes. The last event is DONE.

        Raises:
            ValidationError: If user_message is empty
            SessionNotFound: If the session does not exist or was deleted
            TurnFailed: If the turn was aborted; carries the partial result
        """
        if not user_message or not user_message.strip():
            raise ValidationError("user_message must not be empty", details={"session_id": session_id})

        session = await self._sessions.require(session_id)
        if agent_type is None:
            agent_type = SESSION_AGENT_TYPES[SessionType(session.session_type)]
        else:
            agent_type = coerce_enum(AgentType, agent_type, "agent_type")

        result = TurnResult(session_id=session.id)
        steps = self._turn(session, agent_type, user_message, workspace_id, job_id, result)
        # Bound per step, never while the caller holds an event
        bound = functools.partial(
            turn_context, session.id, session.project_id, agent_type.value, job_id=job_id
        )
        start = time.perf_counter()

        with bound():
            logger.info("turn_started")
        try:
            while True:
                with bound():
                    try:
                        event = await steps.__anext__()
                    except StopAsyncIteration:
                        break
                yield event
        except Exception as e:
            with bound():
                TURNS_TOTAL.labels(agent_type=agent_type.value, outcome="failed").inc()
                logger.error(
                    "turn_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    iterations=result.iterations,
                )
                if job_id is not None:
                    await self._fail_job(job_id, e)
            raise TurnFailed(e, result) from e
        finally:
            await steps.aclose()
            TURN_DURATION_SECONDS.labels(agent_type=agent_type.value).observe(
                time.perf_counter() - start
            )

        with bound():
            outcome = "truncated" if result.truncated else "completed"
            TURNS_TOTAL.labels(agent_type=agent_type.value, outcome=outcome).inc()
            logger.info(
                "turn_completed",
                iterations=result.iterations,
                truncated=result.truncated,
                tools_used=result.tools_used,
                errors=len(result.errors),
            )
        yield TurnEvent(type=TurnEventType.DONE, content=result.text, result=result)

    async def _turn(
        self,
        session: AgentSession,
        agent_type: AgentType,
        user_message: str,
        workspace_id: Optional[str],
        job_id: Optional[int],
        result: TurnResult,
    ) -> AsyncIterator[TurnEvent]:
        settings = self._settings

        if job_id is not None:
            await self._jobs.update_status(job_id, JobStatus.RUNNING)

        user_row = await self._messages.append(
            session.id, MessageRole.USER, user_message, agent_type=agent_type
        )
        result.user_message_id = user_row.id

        # read() without a limit; the trailing window is applied here
        prior = [row for row in await self._messages.read(session.id) if row.id != user_row.id]
        history = build_history(prior, settings.agent_history_window)
        messages = merge_adjacent_roles(
            [*history, {"role": MessageRole.USER.value, "content": user_message}]
        )

        tools = self._registry.list_tools()
        snapshot = await self._aggregator.snapshot(session.project_id)
        retrieved = await self._prompts.retrieve(session.project_id, user_message)
        system = self._prompts.render(session, tools, snapshot, retrieved, workspace_id)

        tool_context = ToolContext(
            project_id=session.project_id,
            session_id=session.id,
            user_id=session.user_id,
            agent_type=agent_type.value,
            workspace_id=workspace_id,
        )

        text_parts: list[str] = []
        finished = False
        while result.iterations < settings.agent_max_iterations:
            response = await self._backend.complete(system, messages, tools)
            result.iterations += 1
            MODEL_ROUND_TRIPS_TOTAL.labels(agent_type=agent_type.value).inc()
            AGENT_TOKENS_USED_TOTAL.labels(agent_type=agent_type.value, token_type="input").inc(
                response.usage.input_tokens
            )
            AGENT_TOKENS_USED_TOTAL.labels(agent_type=agent_type.value, token_type="output").inc(
                response.usage.output_tokens
            )

            for block in response.blocks:
                if isinstance(block, TextBlock) and block.text:
                    text_parts.append(block.text)
                    yield TurnEvent(
                        type=TurnEventType.TEXT,
                        content=block.text,
                        metadata={"iteration": result.iterations},
                    )

            calls = response.tool_calls
            logger.debug(
                "model_responded",
                iteration=result.iterations,
                stop_reason=response.stop_reason,
                tool_calls=[call.name for call in calls],
            )
            if not calls:
                finished = True
                break

            messages.append({"role": MessageRole.ASSISTANT.value, "content": response.to_message_content()})
            tool_results = []
            for call in calls:
                yield TurnEvent(
                    type=TurnEventType.TOOL_START,
                    content=call.name,
                    metadata={"tool": call.name, "input": call.input, "tool_use_id": call.id},
                )
                invocation = await self._call_tool(call, session, agent_type, tool_context, result)
                result.tool_invocations.append(invocation)

                is_error = not invocation.succeeded
                tool_results.append({
                    "type": "tool_result",
                    "tool_use_id": call.id,
                    "content": render_tool_output(invocation.output),
                    "is_error": is_error,
                })
                if is_error:
                    yield TurnEvent(
                        type=TurnEventType.ERROR,
                        content=render_tool_output(invocation.output),
                        metadata={"tool": call.name, "tool_use_id": call.id},
                    )
                yield TurnEvent(
                    type=TurnEventType.TOOL_END,
                    content=call.name,
                    metadata={
                        "tool": call.name,
                        "tool_use_id": call.id,
                        "status": invocation.status.value,
                        "output": invocation.output,
                    },
                )
            messages.append({"role": MessageRole.USER.value, "content": tool_results})

        if not finished:
            result.truncated = True
            TURNS_TRUNCATED_TOTAL.labels(agent_type=agent_type.value).inc()
            logger.warning("turn_truncated", iterations=result.iterations)

        result.text = "\n\n".join(text_parts)
        assistant_row = await self._messages.append(
            session.id,
            MessageRole.ASSISTANT,
            result.text,
            agent_type=agent_type,
            metadata={
                "tools_used": result.tools_used,
                "iterations": result.iterations,
                "truncated": result.truncated,
            },
        )
        result.assistant_message_id = assistant_row.id

        if job_id is not None:
            await self._jobs.update_status(job_id, JobStatus.COMPLETED, output_data=result.summary())

    async def _call_tool(
        self,
        call: ToolCallBlock,
        session: AgentSession,
        agent_type: AgentType,
        tool_context: ToolContext,
        result: TurnResult,
    ) -> ToolInvocation:
        row = await self._messages.append(
            session.id,
            MessageRole.TOOL,
            "",
            agent_type=agent_type,
            tool_name=call.name,
            tool_input=_jsonable(call.input),
            tool_status=ToolStatus.RUNNING,
            metadata={"tool_use_id": call.id},
        )

        try:
            output = await self._registry.execute(call.name, call.input, tool_context)
        except (ToolNotFound, ToolError) as e:
            return await self._record_failure(call, row.id, e, session, agent_type, result)

        output = _jsonable(output)
        await self._messages.complete_tool_call(
            row.id,
            output,
            ToolStatus.SUCCESS,
            content=render_tool_output(output),
            content_type=ContentType.TEXT if isinstance(output, str) else ContentType.JSON,
        )
        logger.info("tool_succeeded", tool=call.name, message_id=row.id)

        tool = self._registry.get(call.name)
        if tool is not None:
            try:
                artifacts = tool.artifacts(call.input, output)
            except Exception as e:
                logger.warning("tool_artifacts_failed", tool=call.name, error=str(e))
                artifacts = []
            for artifact in artifacts:
                await self._index_artifact(artifact, call, session, agent_type, result)

        return ToolInvocation(
            name=call.name,
            input=call.input,
            output=output,
            status=ToolStatus.SUCCESS,
            tool_use_id=call.id,
            message_id=row.id,
        )

    async def _record_failure(
        self,
        call: ToolCallBlock,
        message_id: int,
        error: AppError,
        session: AgentSession,
        agent_type: AgentType,
        result: TurnResult,
    ) -> ToolInvocation:
        reason = error.message
        await self._messages.complete_tool_call(
            message_id,
            {"error": reason, "error_code": error.error_code.value},
            ToolStatus.ERROR,
            content=reason,
            content_type=ContentType.ERROR,
        )

        item = await self._context.upsert(
            session.project_id,
            ContextItemType.ERROR,
            f"error_{uuid.uuid4().hex}",
            f"{call.name}: {reason}",
            metadata={
                "tool": call.name,
                "input": _jsonable(call.input),
                "error_code": error.error_code.value,
                "session_id": session.id,
                "agent_type": agent_type.value,
            },
        )
        await self._context.link(session.id, item.id)
        result.errors.append(f"{call.name}: {reason}")

        logger.warning(
            "tool_failed",
            tool=call.name,
            message_id=message_id,
            error=reason,
            error_code=error.error_code.value,
        )
        return ToolInvocation(
            name=call.name,
            input=call.input,
            output=reason,
            status=ToolStatus.ERROR,
            tool_use_id=call.id,
            message_id=message_id,
        )

    async def _index_artifact(
        self,
        artifact: ToolArtifact,
        call: ToolCallBlock,
        session: AgentSession,
        agent_type: AgentType,
        result: TurnResult,
    ) -> None:
        metadata = {"tool": call.name, "session_id": session.id, "agent_type": agent_type.value}
        if artifact.kind == ArtifactKind.FILE:
            item = await self._context.upsert(
                session.project_id, ContextItemType.FILE, artifact.key, artifact.content, metadata
            )
            if artifact.key not in result.files_touched:
                result.files_touched.append(artifact.key)
        else:
            item = await self._context.upsert(
                session.project_id,
                ContextItemType.TERMINAL_OUTPUT,
                f"cmd_{uuid.uuid4().hex}",
                artifact.content,
                {**metadata, "command": artifact.key},
            )
            result.commands_run.append(artifact.key)
        await self._context.link(session.id, item.id)

    async def _fail_job(self, job_id: int, error: Exception) -> None:
        try:
            await self._jobs.update_status(job_id, JobStatus.ERROR, error_message=str(error))
        except AppError as job_error:
            # The turn's own failure is what the caller sees
            logger.warning("job_failure_not_recorded", job_id=job_id, error=str(job_error))
