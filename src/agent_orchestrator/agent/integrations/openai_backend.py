"""
OpenAI chat completions backend with function calling.

Works with any OpenAI-compatible endpoint (set base_url). Block-format
messages are translated to chat messages: tool_use blocks become the
assistant's tool_calls and each tool_result block becomes a `tool` message.
"""

from __future__ import annotations
from typing import Any
import json

import openai
from openai import AsyncOpenAI

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


def _text_of(blocks: list[dict[str, Any]]) -> str:
    return "\n".join(b.get("text", "") for b in blocks if b.get("type") == "text" and b.get("text"))


def _arguments_of(block: dict[str, Any]) -> str:
    # Unparseable arguments are kept as the text the model sent
    arguments = block.get("input")
    if isinstance(arguments, str):
        return arguments
    return json.dumps(arguments or {})


def to_chat_messages(system: str, messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Translate block-format messages into OpenAI chat messages.

    Example:
        >>> to_chat_messages("sys", [{"role": "user", "content": "hi"}])
        [{'role': 'system', 'content': 'sys'}, {'role': 'user', 'content': 'hi'}]
    """
    chat: list[dict[str, Any]] = [{"role": "system", "content": system}]

    for message in messages:
        role = message["role"]
        content = message["content"]
        if isinstance(content, str):
            chat.append({"role": role, "content": content})
            continue

        if role == "assistant":
            entry: dict[str, Any] = {"role": "assistant", "content": _text_of(content) or None}
            tool_calls = [
                {
                    "id": block["id"],
                    "type": "function",
                    "function": {"name": block["name"], "arguments": _arguments_of(block)},
                }
                for block in content
                if block.get("type") == "tool_use"
            ]
            if tool_calls:
                entry["tool_calls"] = tool_calls
            chat.append(entry)
            continue

        # Tool messages must directly follow the assistant message that called them
        for block in content:
            if block.get("type") == "tool_result":
                result = block.get("content") or ""
                if block.get("is_error"):
                    # Chat tool messages have no error flag
                    result = f"Error: {result}"
                chat.append({
                    "role": "tool",
                    "tool_call_id": block["tool_use_id"],
                    "content": result,
                })
        text = _text_of(content)
        if text:
            chat.append({"role": "user", "content": text})

    return chat


class OpenAIBackend(IModelBackend):
    """
    IModelBackend for OpenAI and OpenAI-compatible chat completion APIs.

    Example:
        >>> backend = OpenAIBackend(model="gpt-4o", base_url="https://openrouter.ai/api/v1")
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        max_tokens: int = 8192,
        temperature: float | None = None,
        client: AsyncOpenAI | None = None,
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
            client = AsyncOpenAI(**client_kwargs)
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
            "messages": to_chat_messages(system, messages),
            "max_tokens": self._max_tokens,
        }
        if tools:
            api_params["tools"] = [t.to_openai() for t in tools]
            api_params["tool_choice"] = "auto"
        if self._temperature is not None:
            api_params["temperature"] = self._temperature

        try:
            response = await self._client.chat.completions.create(**api_params)
        except openai.RateLimitError as e:
            logger.warning("llm_rate_limited", provider="openai", model=self._model)
            raise LLMRateLimitError(details={"provider": "openai", "model": self._model}) from e
        except openai.APIError as e:
            logger.error("llm_request_failed", provider="openai", model=self._model, error=str(e))
            raise LLMError(
                f"OpenAI request failed: {e}",
                details={"provider": "openai", "model": self._model},
            ) from e

        if not response.choices:
            raise LLMError("OpenAI response has no choices", details={"model": self._model})
        choice = response.choices[0]
        message = choice.message

        blocks = []
        if message.content:
            blocks.append(TextBlock(text=message.content))
        for tool_call in message.tool_calls or []:
            raw_arguments = tool_call.function.arguments or "{}"
            try:
                arguments = json.loads(raw_arguments)
            except json.JSONDecodeError:
                arguments = None
            if not isinstance(arguments, dict):
                # Passed on as text: the registry rejects it and the model gets an error result
                logger.warning(
                    "tool_arguments_unparseable",
                    tool=tool_call.function.name,
                    arguments=raw_arguments[:200],
                )
                arguments = raw_arguments
            blocks.append(ToolCallBlock(id=tool_call.id, name=tool_call.function.name, input=arguments))

        usage = ModelUsage()
        if response.usage is not None:
            usage = ModelUsage(
                input_tokens=response.usage.prompt_tokens or 0,
                output_tokens=response.usage.completion_tokens or 0,
            )

        return ModelResponse(
            blocks=blocks,
            stop_reason=choice.finish_reason,
            model=response.model,
            usage=usage,
        )
