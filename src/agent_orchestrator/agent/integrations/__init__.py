"""
Language model backends.

Examples:
    >>> backend = create_model_backend(get_settings())
    >>> response = await backend.complete(system, messages, registry.list_tools())
"""

from __future__ import annotations

from agent_orchestrator.agent.integrations.anthropic_backend import AnthropicBackend
from agent_orchestrator.agent.integrations.openai_backend import OpenAIBackend, to_chat_messages
from agent_orchestrator.config.settings import Settings
from agent_orchestrator.interfaces import IModelBackend


def create_model_backend(settings: Settings) -> IModelBackend:
    """Build the backend selected by settings.llm_provider."""
    api_key = settings.llm_api_key.get_secret_value() if settings.llm_api_key else None
    backend_cls = OpenAIBackend if settings.llm_provider == "openai" else AnthropicBackend
    return backend_cls(
        model=settings.llm_model,
        api_key=api_key,
        base_url=settings.llm_base_url,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
    )


__all__ = [
    "AnthropicBackend",
    "OpenAIBackend",
    "create_model_backend",
    "to_chat_messages",
]
