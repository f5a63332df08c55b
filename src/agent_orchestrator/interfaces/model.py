# src/agent_orchestrator/interfaces/model.py
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Union

from agent_orchestrator.interfaces.tool import ToolSchema


@dataclass(frozen=True)
class TextBlock:
    text: str
    type: str = "text"


@dataclass(frozen=True)
class ToolCallBlock:
    """
    A request from the model to run tool `name` with `input`; `id` pairs it with its result.

    `input` is the argument object, or the raw argument text when the
    provider sent something that is not a JSON object.
    """
    id: str
    name: str
    input: Any
    type: str = "tool_use"


ContentBlock = Union[TextBlock, ToolCallBlock]


@dataclass
class ModelUsage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class ModelResponse:
    """Ordered content blocks of one model round-trip."""
    blocks: list[ContentBlock]
    stop_reason: str | None = None
    model: str | None = None
    usage: ModelUsage = field(default_factory=ModelUsage)

    @property
    def text(self) -> str:
        return "".join(block.text for block in self.blocks if isinstance(block, TextBlock))

    @property
    def tool_calls(self) -> list[ToolCallBlock]:
        return [block for block in self.blocks if isinstance(block, ToolCallBlock)]

    def to_message_content(self) -> list[dict[str, Any]]:
        """The blocks as an assistant message content list, ready to replay."""
        content: list[dict[str, Any]] = []
        for block in self.blocks:
            if isinstance(block, TextBlock):
                if block.text:
                    content.append({"type": "text", "text": block.text})
            else:
                content.append({
                    "type": "tool_use",
                    "id": block.id,
                    "name": block.name,
                    "input": block.input,
                })
        return content


class IModelBackend(ABC):
    """
    Interface for a language-model backend.

    Messages use the block format: each message is
    {"role": "user" | "assistant", "content": str | list[block]} where a
    block is one of
        {"type": "text", "text": ...}
        {"type": "tool_use", "id": ..., "name": ..., "input": {...}}
        {"type": "tool_result", "tool_use_id": ..., "content": str, "is_error": bool}
    Backends translate to and from their provider's wire format and must
    accept replayed tool_use / tool_result pairs verbatim.
    """

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier sent to the provider."""
        pass

    @abstractmethod
    async def complete(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[ToolSchema],
    ) -> ModelResponse:
        """
        Run one round-trip.

        Raises:
            LLMRateLimitError: If the provider rejects the call for rate limiting
            LLMError: For any other provider failure
        """
        pass
