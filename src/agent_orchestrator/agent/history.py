# src/agent_orchestrator/agent/history.py
"""
Turning persisted messages back into model messages.

Replay maps each stored row to block-format messages; a tool row becomes
an assistant tool_use message followed by a user tool_result message.
The sanitizer then guarantees that every tool_use block is answered by
the very next message and every tool_result block answers the message
right before it. Whatever does not pair up is cut down to its text, or
dropped when no text remains. Sanitizing twice gives the same result as
sanitizing once.
"""

from __future__ import annotations
import json
from typing import Any, Iterable, Optional, Sequence

from agent_orchestrator.domain.models import ContentType, MessageRole, ToolStatus
from agent_orchestrator.infrastructure.database.models import AgentMessage

INTERRUPTED_RESULT = "Tool call was interrupted before a result was recorded"

Message = dict[str, Any]


def tool_use_id_for(row: AgentMessage) -> str:
    """The call id a tool row was recorded under, or a stable stand-in."""
    return (row.meta or {}).get("tool_use_id") or f"toolu_{row.id}"


def render_tool_output(output: Any) -> str:
    if output is None:
        return ""
    if isinstance(output, str):
        return output
    return json.dumps(output, default=str)


def decode_content(row: AgentMessage) -> Any:
    """
    Model message content for a stored user or assistant row.

    Only rows stored with content_type "json" are decoded, and only a JSON
    array of typed blocks comes back as a block list. Text rows are
    replayed exactly as written, whatever they look like.
    """
    if row.content_type != ContentType.JSON.value:
        return row.content
    try:
        decoded = json.loads(row.content)
    except ValueError:
        return row.content
    if decoded and isinstance(decoded, list) and all(isinstance(b, dict) and "type" in b for b in decoded):
        return decoded
    return row.content


def replay_messages(rows: Iterable[AgentMessage]) -> list[Message]:
    """Map stored rows, oldest first, to block-format model messages."""
    messages: list[Message] = []
    for row in rows:
        if row.role in (MessageRole.USER.value, MessageRole.ASSISTANT.value):
            # A turn cut short by the cap can leave an empty assistant row
            if row.content:
                messages.append({"role": row.role, "content": decode_content(row)})
        elif row.role == MessageRole.TOOL.value:
            call_id = tool_use_id_for(row)
            if row.tool_status in (ToolStatus.SUCCESS.value, ToolStatus.ERROR.value):
                result = render_tool_output(row.tool_output)
                is_error = row.tool_status == ToolStatus.ERROR.value
            else:
                # Written before the tool ran and never completed
                result = INTERRUPTED_RESULT
                is_error = True
            messages.append({
                "role": MessageRole.ASSISTANT.value,
                "content": [{
                    "type": "tool_use",
                    "id": call_id,
                    "name": row.tool_name or "unknown",
                    "input": row.tool_input if isinstance(row.tool_input, dict) else {},
                }],
            })
            messages.append({
                "role": MessageRole.USER.value,
                "content": [{
                    "type": "tool_result",
                    "tool_use_id": call_id,
                    "content": result,
                    "is_error": is_error,
                }],
            })
        # system rows are not replayed; the system prompt is rebuilt every turn
    return messages


def _block_ids(message: Optional[Message], block_type: str, id_key: str) -> list[str]:
    if message is None or not isinstance(message.get("content"), list):
        return []
    return [
        block.get(id_key)
        for block in message["content"]
        if isinstance(block, dict) and block.get("type") == block_type
    ]


def _text_of(blocks: Sequence[Any]) -> str:
    return "\n".join(
        block.get("text", "")
        for block in blocks
        if isinstance(block, dict) and block.get("type") == "text" and block.get("text")
    )


def sanitize_history(messages: Sequence[Message]) -> list[Message]:
    """
    Remove unpaired tool_use and tool_result blocks.

    A tool_use message is kept whole only if the next message carries a
    tool_result for each of its call ids. Otherwise its tool_use blocks are
    removed and its text blocks are joined with newlines; a message left
    with no text is dropped. tool_result blocks that do not answer a kept
    tool_use in the previous message are removed the same way.
    """
    history = list(messages)

    # paired[i] holds the call ids of message i that message i + 1 answers in full
    paired: list[set[str]] = []
    for index, message in enumerate(history):
        use_ids = _block_ids(message, "tool_use", "id")
        following = history[index + 1] if index + 1 < len(history) else None
        answered = set(_block_ids(following, "tool_result", "tool_use_id"))
        if use_ids and all(call_id in answered for call_id in use_ids):
            paired.append(set(use_ids))
        else:
            paired.append(set())

    sanitized: list[Message] = []
    for index, message in enumerate(history):
        content = message["content"]
        if not isinstance(content, list):
            sanitized.append(message)
            continue

        answerable = paired[index - 1] if index > 0 else set()
        kept = []
        changed = False
        for block in content:
            block_type = block.get("type") if isinstance(block, dict) else None
            if block_type == "tool_use" and block.get("id") not in paired[index]:
                changed = True
                continue
            if block_type == "tool_result" and block.get("tool_use_id") not in answerable:
                changed = True
                continue
            kept.append(block)

        if not changed:
            sanitized.append(message)
            continue

        has_tool_blocks = any(
            isinstance(block, dict) and block.get("type") in ("tool_use", "tool_result")
            for block in kept
        )
        if has_tool_blocks:
            sanitized.append({**message, "content": kept})
            continue

        text = _text_of(kept)
        if text:
            sanitized.append({**message, "content": text})

    return sanitized


def _as_blocks(content: Any) -> list[dict[str, Any]]:
    if isinstance(content, list):
        return list(content)
    if content:
        return [{"type": "text", "text": str(content)}]
    return []


def merge_adjacent_roles(messages: Sequence[Message]) -> list[Message]:
    """
    Merge consecutive messages of the same role and drop leading assistant messages.

    Providers expect the conversation to start with a user message and to
    alternate; a turn that failed before its answer was stored leaves two
    user messages in a row.
    """
    merged: list[Message] = []
    for message in messages:
        if not merged and message["role"] != MessageRole.USER.value:
            continue
        if merged and merged[-1]["role"] == message["role"]:
            previous = merged[-1]
            merged[-1] = {
                **previous,
                "content": _as_blocks(previous["content"]) + _as_blocks(message["content"]),
            }
        else:
            merged.append(message)
    return merged


def build_history(rows: Sequence[AgentMessage], window: int) -> list[Message]:
    """
    Replay stored rows as model messages, keep the trailing `window`, sanitize.

    A window of 0 replays nothing.
    """
    if window <= 0:
        return []
    history = sanitize_history(replay_messages(rows)[-window:])
    while True:
        # Dropping a leading tool_use message can orphan the result after it
        merged = merge_adjacent_roles(history)
        history = sanitize_history(merged)
        if history == merged:
            return history
