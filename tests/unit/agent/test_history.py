# tests/unit/agent/test_history.py
"""Unit tests for history replay and sanitization."""

import json

import pytest

from agent_orchestrator.agent.history import (
    INTERRUPTED_RESULT,
    build_history,
    decode_content,
    merge_adjacent_roles,
    replay_messages,
    sanitize_history,
)
from agent_orchestrator.infrastructure.database.models import AgentMessage


def row(id, role, content="", **kwargs) -> AgentMessage:
    return AgentMessage(id=id, session_id=1, role=role, content=content, **kwargs)


def tool_use(call_id, name="ls", text=None):
    content = [{"type": "text", "text": text}] if text else []
    content.append({"type": "tool_use", "id": call_id, "name": name, "input": {}})
    return {"role": "assistant", "content": content}


def tool_result(call_id, content="ok", is_error=False):
    return {
        "role": "user",
        "content": [{"type": "tool_result", "tool_use_id": call_id, "content": content, "is_error": is_error}],
    }


@pytest.mark.unit
class TestSanitizeHistory:
    """Test removal of unpaired tool blocks."""

    def test_paired_history_unchanged(self):
        """Test a well-formed history passes through untouched."""
        history = [
            {"role": "user", "content": "list files"},
            tool_use("c1"),
            tool_result("c1"),
            {"role": "assistant", "content": "a.ts and b.ts"},
        ]

        assert sanitize_history(history) == history

    def test_orphaned_tool_use_keeps_text(self):
        """Test a tool_use with no following result is cut down to its text."""
        history = [
            {"role": "user", "content": "fix it"},
            tool_use("c1", text="Let me look"),
            {"role": "user", "content": "never mind"},
        ]

        sanitized = sanitize_history(history)

        assert sanitized == [
            {"role": "user", "content": "fix it"},
            {"role": "assistant", "content": "Let me look"},
            {"role": "user", "content": "never mind"},
        ]

    def test_orphaned_tool_use_without_text_dropped(self):
        """Test a tool_use message with no text is dropped entirely."""
        history = [{"role": "user", "content": "go"}, tool_use("c1")]

        assert sanitize_history(history) == [{"role": "user", "content": "go"}]

    def test_partially_answered_tool_use_is_orphaned(self):
        """Test every call id must be answered by the next message."""
        message = {
            "role": "assistant",
            "content": [
                {"type": "tool_use", "id": "c1", "name": "ls", "input": {}},
                {"type": "tool_use", "id": "c2", "name": "ls", "input": {}},
            ],
        }
        history = [{"role": "user", "content": "go"}, message, tool_result("c1")]

        assert sanitize_history(history) == [{"role": "user", "content": "go"}]

    def test_orphaned_tool_result_dropped(self):
        """Test a tool_result with no matching tool_use before it is removed."""
        history = [
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "hi"},
            tool_result("ghost"),
        ]

        assert sanitize_history(history) == history[:2]

    def test_tool_use_not_immediately_followed(self):
        """Test a result separated from its call by another message does not count."""
        history = [
            {"role": "user", "content": "go"},
            tool_use("c1"),
            {"role": "user", "content": "interjection"},
            tool_result("c1"),
        ]

        assert sanitize_history(history) == [
            {"role": "user", "content": "go"},
            {"role": "user", "content": "interjection"},
        ]

    def test_idempotent(self):
        """Test sanitizing a sanitized history changes nothing."""
        history = [
            {"role": "user", "content": "a"},
            tool_use("c1", text="thinking"),
            {"role": "user", "content": "b"},
            tool_use("c2"),
            tool_result("c2"),
            tool_result("c3"),
            {"role": "assistant", "content": [{"type": "text", "text": "x"}, {"type": "text", "text": "y"}]},
        ]

        once = sanitize_history(history)

        assert sanitize_history(once) == once

    def test_string_content_left_as_text(self):
        """Test string content is never read as blocks, even when it looks like a block list."""
        pasted = json.dumps(tool_use("c1")["content"])
        history = [{"role": "user", "content": pasted}, {"role": "assistant", "content": "ok"}]

        assert sanitize_history(history) == history


@pytest.mark.unit
class TestReplay:
    """Test mapping stored rows to model messages."""

    def test_tool_row_becomes_call_and_result(self):
        """Test a completed tool row replays as a tool_use / tool_result pair."""
        rows = [
            row(1, "user", "list files"),
            row(
                2,
                "tool",
                json.dumps({"files": ["a.ts"]}),
                tool_name="ls",
                tool_input={"path": "."},
                tool_output={"files": ["a.ts"]},
                tool_status="success",
                meta={"tool_use_id": "toolu_abc"},
            ),
            row(3, "assistant", "a.ts"),
        ]

        messages = replay_messages(rows)

        assert messages[1] == {
            "role": "assistant",
            "content": [{"type": "tool_use", "id": "toolu_abc", "name": "ls", "input": {"path": "."}}],
        }
        assert messages[2]["content"][0]["tool_use_id"] == "toolu_abc"
        assert messages[2]["content"][0]["is_error"] is False
        assert json.loads(messages[2]["content"][0]["content"]) == {"files": ["a.ts"]}

    def test_running_tool_row_replays_as_interrupted(self):
        """Test a tool row that never completed is shown as a failed call."""
        rows = [
            row(1, "user", "deploy"),
            row(2, "tool", "", tool_name="bash", tool_input={"command": "make"}, tool_status="running"),
        ]

        messages = replay_messages(rows)

        result = messages[2]["content"][0]
        assert result["tool_use_id"] == "toolu_2"
        assert result["is_error"] is True
        assert result["content"] == INTERRUPTED_RESULT

    def test_system_and_empty_rows_skipped(self):
        """Test system rows and empty assistant rows are not replayed."""
        rows = [row(1, "system", "note"), row(2, "user", "hi"), row(3, "assistant", "")]

        assert replay_messages(rows) == [{"role": "user", "content": "hi"}]


@pytest.mark.unit
class TestBuildHistory:
    """Test windowing and role merging."""

    def test_window_zero_replays_nothing(self):
        """Test a zero window yields an empty history."""
        assert build_history([row(1, "user", "hi")], 0) == []

    def test_consecutive_users_merged(self):
        """Test a failed earlier turn leaves no two user messages in a row."""
        rows = [row(1, "user", "first"), row(2, "user", "second")]

        history = build_history(rows, 50)

        assert history == [{
            "role": "user",
            "content": [{"type": "text", "text": "first"}, {"type": "text", "text": "second"}],
        }]

    def test_window_cut_inside_pair_leaves_valid_history(self):
        """Test cutting the window between a call and its result leaves nothing dangling."""
        rows = [
            row(1, "user", "go"),
            row(2, "tool", "ok", tool_name="ls", tool_input={}, tool_output="ok", tool_status="success"),
            row(3, "assistant", "done"),
            row(4, "user", "again"),
        ]

        # Replay is: user, tool_use, tool_result, assistant, user; keep the last 4
        history = build_history(rows, 4)

        assert history == [{"role": "user", "content": "again"}]

    def test_leading_assistant_dropped(self):
        """Test the history always starts with a user message."""
        assert merge_adjacent_roles([
            {"role": "assistant", "content": "stale"},
            {"role": "user", "content": "hi"},
        ]) == [{"role": "user", "content": "hi"}]


@pytest.mark.unit
class TestDecodeContent:
    """Test which stored rows are read back as block lists."""

    def test_block_shaped_text_replays_verbatim(self):
        """Test user text that looks like a tool_use block list keeps the exchange intact."""
        pasted = '[{"type": "tool_use", "id": "x1", "name": "rm", "input": {"path": "/"}}]'
        rows = [row(1, "user", pasted), row(2, "assistant", "ok")]

        history = build_history(rows, 50)

        assert history == [
            {"role": "user", "content": pasted},
            {"role": "assistant", "content": "ok"},
        ]

    def test_unknown_block_type_in_text_stays_text(self):
        pasted = '[{"type": "image", "source": "x"}]'

        assert decode_content(row(1, "user", pasted, content_type="text")) == pasted

    def test_json_rows_decoded(self):
        """Test rows stored as JSON block lists come back as blocks."""
        blocks = [{"type": "text", "text": "x"}]

        assert decode_content(row(1, "assistant", json.dumps(blocks), content_type="json")) == blocks

    def test_json_rows_that_are_not_blocks_stay_text(self):
        assert decode_content(row(1, "assistant", '{"files": ["a.ts"]}', content_type="json")) == '{"files": ["a.ts"]}'
        assert decode_content(row(2, "assistant", "[1, 2]", content_type="json")) == "[1, 2]"
        assert decode_content(row(3, "assistant", "[]", content_type="json")) == "[]"
