# tests/factories/backends.py
"""Scripted IModelBackend for driving the agent loop without a provider."""

import copy
import itertools
from typing import Any

from agent_orchestrator.interfaces import (
    IModelBackend,
    ModelResponse,
    ModelUsage,
    TextBlock,
    ToolCallBlock,
    ToolSchema,
)

_call_ids = itertools.count(1)


def text_response(text: str) -> ModelResponse:
    """A response that ends the turn."""
    return ModelResponse(
        blocks=[TextBlock(text=text)],
        stop_reason="end_turn",
        model="scripted",
        usage=ModelUsage(input_tokens=10, output_tokens=5),
    )


def tool_response(name: str, input: Any, call_id: str | None = None, text: str = "") -> ModelResponse:
    """A response requesting one tool call, optionally preceded by text."""
    blocks = [TextBlock(text=text)] if text else []
    blocks.append(ToolCallBlock(id=call_id or f"toolu_{next(_call_ids):04d}", name=name, input=input))
    return ModelResponse(
        blocks=blocks,
        stop_reason="tool_use",
        model="scripted",
        usage=ModelUsage(input_tokens=10, output_tokens=5),
    )


class ScriptedBackend(IModelBackend):
    """
    Returns queued responses in order and records every request.

    When the script runs out, `default` is returned (a closing text
    response unless set otherwise).
    """

    def __init__(self, responses: list[ModelResponse] | None = None, default: ModelResponse | None = None):
        self.responses = list(responses or [])
        self.default = default or text_response("done")
        self.calls: list[dict[str, Any]] = []

    @property
    def model(self) -> str:
        return "scripted"

    async def complete(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[ToolSchema],
    ) -> ModelResponse:
        # Deep copy: the loop keeps appending to the same list
        self.calls.append({
            "system": system,
            "messages": copy.deepcopy(messages),
            "tools": [t.name for t in tools],
        })
        if self.responses:
            return self.responses.pop(0)
        return self.default


class EndlessToolBackend(IModelBackend):
    """Requests one more tool call on every round-trip."""

    def __init__(self, tool_name: str = "ls"):
        self.tool_name = tool_name
        self.calls = 0

    @property
    def model(self) -> str:
        return "endless"

    async def complete(self, system, messages, tools) -> ModelResponse:
        self.calls += 1
        return tool_response(
            self.tool_name,
            {"path": f"dir{self.calls}"},
            call_id=f"toolu_endless_{self.calls}",
            text=f"step {self.calls}",
        )
