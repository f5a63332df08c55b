# src/agent_orchestrator/interfaces/retriever.py
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RetrievedChunk:
    """One search hit from a retriever."""
    source: str
    content: str
    score: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class IContextRetriever(ABC):
    """
    Optional semantic search over project content (code index, vector store).

    The agent loop calls search() while building the system prompt. Failures
    are logged and the prompt is built without results.
    """

    @abstractmethod
    async def search(self, project_id: int, query: str, limit: int) -> list[RetrievedChunk]:
        pass
