# src/agent_orchestrator/interfaces/__init__.py
from .tool import ITool, ToolSchema, ToolContext, ToolArtifact, ArtifactKind
from .model import (
    IModelBackend,
    ModelResponse,
    ModelUsage,
    TextBlock,
    ToolCallBlock,
    ContentBlock,
)
from .retriever import IContextRetriever, RetrievedChunk

__all__ = [
    "ITool",
    "ToolSchema",
    "ToolContext",
    "ToolArtifact",
    "ArtifactKind",
    "IModelBackend",
    "ModelResponse",
    "ModelUsage",
    "TextBlock",
    "ToolCallBlock",
    "ContentBlock",
    "IContextRetriever",
    "RetrievedChunk",
]
