"""
Anthropic Messages API backend.

The loop's block-format messages are the Messages API format, so they go
over the wire unchanged; only the response is mapped back to blocks.
"""

from __future__ import annotations
from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from agent_orchestrator.domain.exceptions import LLMError, LLMRateLimitError
from agent_orchestrator.infrastructure.observability.logging import get_logger
from agent_orchestrator.interfaces import (
    IModelBackend,
    ModelResponse,
    ModelUsage,
    TextBlock,
    ToolCallBlock,
    ToolSchema,
)

logger = get_logger(__name__)


class AnthropicBackend(IModelBackend):
    """
    IModelBackend for Claude models.

    Example:
        >>> backend = AnthropicBackend(model="claude-sonnet-4-5-20250929", api_key="sk-ant-...")
        >>> response = await backend.complete("You are ...", [{"role": "user", "content": "hi"}], [])
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        max_tokens: int = 8192,
        temperature: float | None = None,
        client: AsyncAnthropic | None = None,
    ):
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

        if client is None:
            client_kwargs = {}
            if api_key:
                client_kwargs["api_key"] = api_key
            if base_url:
                client_kwargs["base_url"] = base_url
            client = AsyncAnthropic(**client_kwargs)
        self._client = client

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[ToolSchema],
    ) -> ModelResponse:
        api_params: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "system": system,
            "messages": messages,
        }
        if tools:
            api_params["tools"] = [t.to_anthropic() for t in tools]
        if self._temperature is not None:
            api_params["temperature"] = self._temperature

        try:
            response = await self._client.messages.create(**api_params)
        except anthropic.RateLimitError as e:
            logger.warning("llm_rate_limited", provider="anthropic", model=self._model)
            raise LLMRateLimitError(details={"provider": "anthropic", "model": self._model}) from e
        except anthropic.APIError as e:
            logger.error("llm_request_failed", provider="anthropic", model=self._model, error=str(e))
            raise LLMError(
                f"Anthropic request failed: {e}",
                details={"provider": "anthropic", "model": self._model},
            ) from e

        blocks = []
        for block in response.content:
            if block.type == "text":
                blocks.append(TextBlock(text=block.text))
            elif block.type == "tool_use":
                blocks.append(ToolCallBlock(id=block.id, name=block.name, input=dict(block.input or {})))

        usage = ModelUsage()
        if response.usage is not None:
            usage = ModelUsage(
                input_tokens=response.usage.input_tokens or 0,
                output_tokens=response.usage.output_tokens or 0,
            )

        return ModelResponse(
            blocks=blocks,
            stop_reason=response.stop_reason,
            model=response.model,
            usage=usage,
        )
