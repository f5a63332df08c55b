# src/agent_orchestrator/interfaces/tool.py
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel


class ToolSchema(BaseModel):
    """JSON Schema for tool parameters."""
    name: str
    description: str
    parameters: dict[str, Any]  # JSON Schema format

    def to_openai(self) -> dict[str, Any]:
        """OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def to_anthropic(self) -> dict[str, Any]:
        """Anthropic tool use format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.parameters,
        }


@dataclass(frozen=True)
class ToolContext:
    """Where a tool call runs: passed to every ITool.execute."""
    project_id: int
    session_id: int
    user_id: str
    agent_type: str
    workspace_id: Optional[str] = None


class ArtifactKind(str, Enum):
    FILE = "file"
    COMMAND = "command"


@dataclass(frozen=True)
class ToolArtifact:
    """
    Something a tool call touched that other agents should see.

    FILE artifacts are indexed as `file` context items keyed by path;
    COMMAND artifacts as `terminal_output` items holding the output.
    """
    kind: ArtifactKind
    key: str
    content: Optional[str] = None


class ITool(ABC):
    """
    Interface for any tool implementation.

    Implement this interface to add a new tool. Set `input_model` to a
    pydantic model to have the registry validate input before execute()
    is called; execute() then receives the model's dumped dict.

    Example:
        class ReadFileInput(BaseModel):
            path: str

        class ReadFileTool(ITool):
            input_model = ReadFileInput

            @property
            def schema(self) -> ToolSchema:
                return ToolSchema(
                    name="read_file",
                    description="Read a file from the workspace",
                    parameters=ReadFileInput.model_json_schema(),
                )

            async def execute(self, input: dict, context: ToolContext) -> Any:
                return {"content": await workspace.read(context.workspace_id, input["path"])}

            def artifacts(self, input: dict, output: Any) -> list[ToolArtifact]:
                return [ToolArtifact(ArtifactKind.FILE, input["path"], output["content"])]
    """

    input_model: Optional[type[BaseModel]] = None

    @property
    @abstractmethod
    def schema(self) -> ToolSchema:
        """Return tool schema for LLM function calling."""
        pass

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def description(self) -> str:
        return self.schema.description

    @abstractmethod
    async def execute(self, input: dict[str, Any], context: ToolContext) -> Any:
        """
        Execute the tool.

        Args:
            input: Arguments matching the schema (validated when input_model is set)
            context: Project, session and user the call runs for

        Returns:
            JSON-serialisable tool output

        Raises:
            Exception: Any failure; the registry reports it as ToolExecutionError
        """
        pass

    def artifacts(self, input: dict[str, Any], output: Any) -> list[ToolArtifact]:
        """Files and commands a successful call touched. Override to report them."""
        return []
