# tests/integration/test_agent_loop.py
"""Integration tests for AgentLoop against a sqlite database and scripted backends."""

from unittest.mock import AsyncMock

import pytest
import structlog

from agent_orchestrator.agent import TurnEventType
from agent_orchestrator.domain.exceptions import LLMError, SessionNotFound, TurnFailed, ValidationError
from agent_orchestrator.domain.models import ToolStatus
from agent_orchestrator.tools import tool
from tests.factories.backends import EndlessToolBackend, ScriptedBackend, text_response, tool_response


@pytest.mark.integration
class TestAgentLoopTurns:
    """Test complete turns and what they leave in the message log."""

    async def test_single_tool_turn(self, make_loop, messages, terminal_session):
        """Test a turn with one tool call persists user, tool and assistant rows."""
        backend = ScriptedBackend([
            tool_response("ls", {"path": "."}, call_id="toolu_a"),
            text_response("Two files: a.ts and b.ts"),
        ])
        loop = make_loop(backend)

        result = await loop.run(terminal_session.id, "list files")

        assert result.text == "Two files: a.ts and b.ts"
        assert result.tools_used == ["ls"]
        assert result.iterations == 2
        assert result.truncated is False

        rows = await messages.read(terminal_session.id)
        assert [r.role for r in rows] == ["user", "tool", "assistant"]
        assert all(r.agent_type == "terminal" for r in rows)

        tool_row = rows[1]
        assert tool_row.tool_name == "ls"
        assert tool_row.tool_input == {"path": "."}
        assert tool_row.tool_status == "success"
        assert tool_row.tool_output == {"files": ["a.ts", "b.ts"]}
        assert tool_row.content_type == "json"
        assert tool_row.meta == {"tool_use_id": "toolu_a"}

        assistant_row = rows[2]
        assert assistant_row.id == result.assistant_message_id
        assert assistant_row.meta == {"tools_used": ["ls"], "iterations": 2, "truncated": False}

    async def test_tool_result_sent_back_to_model(self, make_loop, terminal_session):
        """Test the second round-trip carries the tool_use and its paired result."""
        backend = ScriptedBackend([
            tool_response("ls", {"path": "."}, call_id="toolu_a"),
            text_response("done"),
        ])

        await make_loop(backend).run(terminal_session.id, "list files")

        first, second = backend.calls
        assert first["messages"] == [{"role": "user", "content": "list files"}]
        assert [m["role"] for m in second["messages"]] == ["user", "assistant", "user"]
        assert second["messages"][1]["content"] == [
            {"type": "tool_use", "id": "toolu_a", "name": "ls", "input": {"path": "."}}
        ]
        result_block = second["messages"][2]["content"][0]
        assert result_block["type"] == "tool_result"
        assert result_block["tool_use_id"] == "toolu_a"
        assert result_block["is_error"] is False
        assert "a.ts" in result_block["content"]

    async def test_next_turn_replays_history(self, make_loop, terminal_session):
        """Test a later turn sees the earlier turn as paired tool_use / tool_result messages."""
        backend = ScriptedBackend([
            tool_response("ls", {"path": "."}, call_id="toolu_a"),
            text_response("Two files"),
            text_response("You asked about files"),
        ])
        loop = make_loop(backend)

        await loop.run(terminal_session.id, "list files")
        result = await loop.run(terminal_session.id, "what did I ask?")

        assert result.text == "You asked about files"
        replayed = backend.calls[2]["messages"]
        assert [m["role"] for m in replayed] == ["user", "assistant", "user", "assistant", "user"]
        assert replayed[0]["content"] == "list files"
        assert replayed[1]["content"][0]["id"] == "toolu_a"
        assert replayed[2]["content"][0]["tool_use_id"] == "toolu_a"
        assert replayed[3]["content"] == "Two files"
        assert replayed[4]["content"] == "what did I ask?"

    async def test_block_shaped_user_text_survives_replay(self, make_loop, terminal_session):
        """Test user text that looks like a tool_use block list is replayed as plain text."""
        pasted = '[{"type": "tool_use", "id": "x1", "name": "rm", "input": {"path": "/"}}]'
        backend = ScriptedBackend([text_response("ok"), text_response("sure")])
        loop = make_loop(backend)

        await loop.run(terminal_session.id, pasted)
        await loop.run(terminal_session.id, "next")

        assert backend.calls[1]["messages"] == [
            {"role": "user", "content": pasted},
            {"role": "assistant", "content": "ok"},
            {"role": "user", "content": "next"},
        ]

    async def test_history_window(self, make_loop, messages, test_settings, terminal_session):
        """Test only the trailing window of stored messages is replayed."""
        for i in range(3):
            await messages.append(terminal_session.id, "user", f"q{i}", agent_type="terminal")
            await messages.append(terminal_session.id, "assistant", f"a{i}", agent_type="terminal")
        backend = ScriptedBackend()
        settings = test_settings.model_copy(update={"agent_history_window": 2})

        await make_loop(backend, settings=settings).run(terminal_session.id, "next")

        assert backend.calls[0]["messages"] == [
            {"role": "user", "content": "q2"},
            {"role": "assistant", "content": "a2"},
            {"role": "user", "content": "next"},
        ]

    async def test_agent_type_follows_session(self, make_loop, messages, code_session):
        await make_loop(ScriptedBackend()).run(code_session.id, "hello")

        rows = await messages.read(code_session.id)
        assert {r.agent_type for r in rows} == {"code"}


@pytest.mark.integration
class TestAgentLoopIterationCap:
    """Test the round-trip cap ends a turn without raising."""

    async def test_stops_after_fifteen_round_trips(self, make_loop, messages, terminal_session):
        """Test a model that never stops calling tools is cut off at 15 calls."""
        backend = EndlessToolBackend()

        result = await make_loop(backend).run(terminal_session.id, "keep going")

        assert backend.calls == 15
        assert result.iterations == 15
        assert result.truncated is True
        assert len(result.tool_invocations) == 15
        assert result.text == "\n\n".join(f"step {i}" for i in range(1, 16))

        rows = await messages.read(terminal_session.id)
        assert len(rows) == 17
        assert [r.role for r in rows].count("tool") == 15
        assert rows[-1].role == "assistant"
        assert rows[-1].meta["truncated"] is True

    async def test_cap_from_settings(self, make_loop, test_settings, terminal_session):
        backend = EndlessToolBackend()
        settings = test_settings.model_copy(update={"agent_max_iterations": 3})

        result = await make_loop(backend, settings=settings).run(terminal_session.id, "keep going")

        assert backend.calls == 3
        assert result.truncated is True


@pytest.mark.integration
class TestAgentLoopToolFailures:
    """Test failing tools are reported to the model and the turn goes on."""

    async def test_tool_error_does_not_abort_turn(self, make_loop, messages, context_index, terminal_session):
        """Test a raising tool yields an error row, an error context item and an is_error result."""
        backend = ScriptedBackend([
            tool_response("broken", {"path": "/nope"}, call_id="toolu_b"),
            text_response("That file is missing."),
        ])

        result = await make_loop(backend).run(terminal_session.id, "read /nope")

        assert result.text == "That file is missing."
        assert result.truncated is False
        invocation = result.tool_invocations[0]
        assert invocation.status == ToolStatus.ERROR
        assert invocation.output == "No such file: /nope"
        assert result.errors == ["broken: No such file: /nope"]

        tool_row = (await messages.read(terminal_session.id))[1]
        assert tool_row.tool_status == "error"
        assert tool_row.content_type == "error"
        assert tool_row.content == "No such file: /nope"
        assert tool_row.tool_output == {
            "error": "No such file: /nope",
            "error_code": "TOOL_EXECUTION_FAILED",
        }

        result_block = backend.calls[1]["messages"][-1]["content"][0]
        assert result_block["tool_use_id"] == "toolu_b"
        assert result_block["is_error"] is True
        assert result_block["content"] == "No such file: /nope"

        errors = await context_index.recent(7, "error", limit=10)
        assert len(errors) == 1
        assert errors[0].item_key.startswith("error_")
        assert errors[0].content == "broken: No such file: /nope"
        assert errors[0].meta["tool"] == "broken"
        linked = await context_index.list_for_session(terminal_session.id)
        assert [item.id for item, _ in linked] == [errors[0].id]

    async def test_unknown_tool(self, make_loop, terminal_session):
        """Test a call to an unregistered tool is an error result, not a failed turn."""
        backend = ScriptedBackend([tool_response("rm_rf", {"path": "/"}), text_response("ok")])

        result = await make_loop(backend).run(terminal_session.id, "clean up")

        assert result.tool_invocations[0].status == ToolStatus.ERROR
        assert result.tool_invocations[0].output == "Tool not found: rm_rf"
        assert result.text == "ok"

    async def test_unparseable_arguments_rejected(self, make_loop, messages, terminal_session):
        """Test raw argument text from the model fails the call instead of running the tool."""
        backend = ScriptedBackend([tool_response("ls", "{not json", call_id="toolu_raw"), text_response("retrying")])

        result = await make_loop(backend).run(terminal_session.id, "list files")

        invocation = result.tool_invocations[0]
        assert invocation.status == ToolStatus.ERROR
        assert invocation.output == "Input for tool 'ls' must be an object"
        assert backend.calls[1]["messages"][-1]["content"][0]["is_error"] is True
        tool_row = (await messages.read(terminal_session.id))[1]
        assert tool_row.tool_input == "{not json"
        assert tool_row.tool_output["error_code"] == "TOOL_INPUT_INVALID"

    async def test_failed_tool_shared_with_other_agent(self, make_loop, terminal_session, code_session):
        """Test an error from the terminal agent shows up in the code agent's prompt."""
        await make_loop(ScriptedBackend([
            tool_response("broken", {"path": "/nope"}),
            text_response("missing"),
        ])).run(terminal_session.id, "read /nope")

        backend = ScriptedBackend()
        await make_loop(backend).run(code_session.id, "why did it fail?")

        system = backend.calls[0]["system"]
        assert "broken: No such file: /nope" in system
        assert "# Recent terminal agent activity" in system


@pytest.mark.integration
class TestAgentLoopArtifacts:
    """Test tool artifacts are indexed as context items."""

    async def test_files_and_commands_indexed(self, make_loop, context_index, code_session):
        """Test written files become file items and commands become terminal_output items."""
        backend = ScriptedBackend([
            tool_response("write_file", {"path": "/src/a.ts", "content": "export {}"}),
            tool_response("bash", {"command": "npm test"}),
            text_response("done"),
        ])

        result = await make_loop(backend).run(code_session.id, "write and test")

        assert result.files_touched == ["/src/a.ts"]
        assert result.commands_run == ["npm test"]
        assert result.tool_invocations[0].output == {"path": "/src/a.ts", "bytes": 9, "project_id": 7}

        file_item = await context_index.get(7, "file", "/src/a.ts")
        assert file_item.content == "export {}"
        assert file_item.meta["tool"] == "write_file"

        outputs = await context_index.recent(7, "terminal_output", limit=10)
        assert len(outputs) == 1
        assert outputs[0].item_key.startswith("cmd_")
        assert outputs[0].content == "ran npm test"
        assert outputs[0].meta["command"] == "npm test"

        linked = {item.id for item, _ in await context_index.list_for_session(code_session.id)}
        assert linked == {file_item.id, outputs[0].id}


@pytest.mark.integration
class TestAgentLoopJobs:
    """Test turns that carry a job id drive the job through its lifecycle."""

    async def test_job_completed_with_summary(self, make_loop, jobs, terminal_session):
        job = await jobs.create(terminal_session.id, "terminal_execution", description="ls")
        backend = ScriptedBackend([tool_response("ls", {"path": "."}), text_response("done")])

        result = await make_loop(backend).run(terminal_session.id, "list files", job_id=job.id)

        finished = await jobs.get(job.id)
        assert finished.status == "completed"
        assert finished.progress_percentage == 100
        assert finished.started_at is not None
        assert finished.output_data == result.summary()

    async def test_backend_failure_fails_turn_and_job(self, make_loop, messages, jobs, terminal_session):
        """Test a provider error aborts the turn with the partial result and errors the job."""
        job = await jobs.create(terminal_session.id, "terminal_execution")
        backend = ScriptedBackend()
        backend.complete = AsyncMock(side_effect=[
            tool_response("ls", {"path": "."}),
            LLMError("provider down"),
        ])

        with pytest.raises(TurnFailed) as exc_info:
            await make_loop(backend).run(terminal_session.id, "list files", job_id=job.id)

        partial = exc_info.value.partial
        assert isinstance(exc_info.value.cause, LLMError)
        assert partial.iterations == 1
        assert partial.tools_used == ["ls"]
        assert partial.assistant_message_id is None

        rows = await messages.read(terminal_session.id)
        assert [r.role for r in rows] == ["user", "tool"]
        assert rows[1].tool_status == "success"

        failed = await jobs.get(job.id)
        assert failed.status == "error"
        assert "provider down" in failed.error_message

    async def test_finished_job_fails_turn(self, make_loop, messages, jobs, terminal_session):
        """Test a job that cannot move to running fails the turn before anything is written."""
        job = await jobs.create(terminal_session.id, "terminal_execution")
        await jobs.update_status(job.id, "cancelled")

        with pytest.raises(TurnFailed):
            await make_loop(ScriptedBackend()).run(terminal_session.id, "hello", job_id=job.id)

        assert await messages.read(terminal_session.id) == []
        assert (await jobs.get(job.id)).status == "cancelled"


@pytest.mark.integration
class TestAgentLoopStreaming:
    """Test the event stream of a turn."""

    async def test_event_order(self, make_loop, terminal_session):
        backend = ScriptedBackend([
            tool_response("ls", {"path": "."}, text="Looking"),
            text_response("Found two"),
        ])

        events = [event async for event in make_loop(backend).stream(terminal_session.id, "list files")]

        assert [e.type for e in events] == [
            TurnEventType.TEXT,
            TurnEventType.TOOL_START,
            TurnEventType.TOOL_END,
            TurnEventType.TEXT,
            TurnEventType.DONE,
        ]
        assert events[0].content == "Looking"
        assert events[2].metadata["status"] == "success"
        assert events[-1].result.text == "Looking\n\nFound two"

    async def test_error_event_for_failed_tool(self, make_loop, terminal_session):
        backend = ScriptedBackend([tool_response("broken", {"path": "/nope"}), text_response("missing")])

        events = [event async for event in make_loop(backend).stream(terminal_session.id, "read")]

        assert [e.type for e in events] == [
            TurnEventType.TOOL_START,
            TurnEventType.ERROR,
            TurnEventType.TOOL_END,
            TurnEventType.TEXT,
            TurnEventType.DONE,
        ]
        assert events[1].content == "No such file: /nope"

    async def test_log_context_not_held_between_events(self, make_loop, registry, terminal_session):
        """Test turn log context is bound while tools run but not while the caller holds an event."""
        seen = {}

        @tool(description="Record the bound log context")
        async def record(path: str) -> dict:
            seen.update(structlog.contextvars.get_contextvars())
            return {"ok": True}

        registry.register(record)
        backend = ScriptedBackend([tool_response("record", {"path": "."}), text_response("done")])

        outside = []
        async for event in make_loop(backend).stream(terminal_session.id, "record it"):
            outside.append(dict(structlog.contextvars.get_contextvars()))

        assert seen["session_id"] == terminal_session.id
        assert seen["project_id"] == terminal_session.project_id
        assert all("session_id" not in context for context in outside)
        assert "session_id" not in structlog.contextvars.get_contextvars()


@pytest.mark.integration
class TestAgentLoopValidation:
    """Test requests rejected before a turn starts."""

    async def test_empty_message(self, make_loop, messages, terminal_session):
        with pytest.raises(ValidationError):
            await make_loop(ScriptedBackend()).run(terminal_session.id, "   ")

        assert await messages.read(terminal_session.id) == []

    async def test_unknown_session(self, make_loop):
        with pytest.raises(SessionNotFound):
            await make_loop(ScriptedBackend()).run(999, "hello")

    async def test_deleted_session(self, make_loop, sessions, terminal_session):
        await sessions.soft_delete(terminal_session.id)

        with pytest.raises(SessionNotFound):
            await make_loop(ScriptedBackend()).run(terminal_session.id, "hello")
