# src/agent_orchestrator/tools/registry.py
"""
Tool registry for managing tool instances.

Supports both class-based tools (ITool implementations) and
decorator-based tools created with the @tool decorator. Each agent loop
receives its registry explicitly; there is no process-wide instance.
"""
import time
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from agent_orchestrator.domain.exceptions import (
    ToolExecutionError,
    ToolInputError,
    ToolNotFound,
)
from agent_orchestrator.infrastructure.observability.logging import get_logger
from agent_orchestrator.infrastructure.observability.metrics import (
    TOOL_EXECUTION_DURATION_SECONDS,
    TOOL_EXECUTIONS,
)
from agent_orchestrator.interfaces import ITool, ToolContext, ToolSchema

logger = get_logger(__name__)


class ToolRegistry:
    """
    Registry for tool implementations, indexed by name.

    Registering a name that already exists replaces the earlier tool, so
    the last registration wins.

    Example:
        >>> registry = ToolRegistry()
        >>> registry.register(ReadFileTool())
        >>> result = await registry.execute("read_file", {"path": "a.ts"}, context)
    """

    def __init__(self):
        self._tools: dict[str, ITool] = {}

    def register(self, tool: ITool) -> None:
        """
        Register a tool, replacing any tool with the same name.

        Args:
            tool: Tool instance (ITool implementation)
        """
        name = tool.schema.name
        if name in self._tools:
            logger.warning("tool_overwritten", tool=name)
        self._tools[name] = tool

    def unregister(self, name: str) -> None:
        """Unregister a tool by name. Unknown names are ignored."""
        if name in self._tools:
            del self._tools[name]

    def get(self, name: str) -> ITool | None:
        """
        Get a tool by name.

        Returns:
            Tool instance or None if not found
        """
        return self._tools.get(name)

    def list_tools(self) -> list[ToolSchema]:
        """List all registered tool schemas, in registration order."""
        return [t.schema for t in self._tools.values()]

    def list_tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def to_openai_format(self) -> list[dict[str, Any]]:
        """
        Export tools in OpenAI function calling format.

        Example:
            >>> tools = registry.to_openai_format()
            >>> response = await client.chat.completions.create(
            ...     model="gpt-4o",
            ...     messages=[...],
            ...     tools=tools
            ... )
        """
        return [schema.to_openai() for schema in self.list_tools()]

    def to_anthropic_format(self) -> list[dict[str, Any]]:
        """
        Export tools in Anthropic Claude format.

        Example:
            >>> tools = registry.to_anthropic_format()
            >>> response = await client.messages.create(
            ...     model="claude-sonnet-4-5",
            ...     messages=[...],
            ...     tools=tools
            ... )
        """
        return [schema.to_anthropic() for schema in self.list_tools()]

    @staticmethod
    def _validate_input(tool: ITool, name: str, input: Any) -> dict[str, Any]:
        if input is None:
            input = {}
        if not isinstance(input, dict):
            raise ToolInputError(
                f"Input for tool '{name}' must be an object",
                details={"tool": name, "input_type": type(input).__name__},
            )

        model = getattr(tool, "input_model", None)
        if not (isinstance(model, type) and issubclass(model, BaseModel)):
            return input

        try:
            return model.model_validate(input).model_dump()
        except PydanticValidationError as e:
            raise ToolInputError(
                f"Invalid input for tool '{name}': {e.error_count()} validation error(s)",
                details={
                    "tool": name,
                    "errors": [
                        {"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()
                    ],
                },
            ) from e

    async def execute(self, name: str, input: Any, context: ToolContext) -> Any:
        """
        Execute a tool by name.

        Args:
            name: Tool name
            input: Tool arguments (validated against the tool's input_model if it has one)
            context: Project, session and user the call runs for

        Returns:
            Tool execution result

        Raises:
            ToolNotFound: If no tool is registered under name
            ToolInputError: If input fails validation
            ToolExecutionError: If the tool raises; the message is the tool's error text
        """
        tool = self.get(name)
        if tool is None:
            TOOL_EXECUTIONS.labels(tool_name=name, status="not_found").inc()
            raise ToolNotFound(f"Tool not found: {name}", details={"tool": name})

        try:
            validated = self._validate_input(tool, name, input)
        except ToolInputError:
            TOOL_EXECUTIONS.labels(tool_name=name, status="invalid_input").inc()
            raise

        start = time.perf_counter()
        try:
            result = await tool.execute(validated, context)
        except ToolExecutionError:
            TOOL_EXECUTIONS.labels(tool_name=name, status="error").inc()
            raise
        except Exception as e:
            TOOL_EXECUTIONS.labels(tool_name=name, status="error").inc()
            logger.warning(
                "tool_execution_failed",
                tool=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ToolExecutionError(
                str(e) or type(e).__name__,
                details={"tool": name, "error_type": type(e).__name__},
            ) from e
        finally:
            TOOL_EXECUTION_DURATION_SECONDS.labels(tool_name=name).observe(time.perf_counter() - start)

        TOOL_EXECUTIONS.labels(tool_name=name, status="success").inc()
        return result

    def clear(self) -> None:
        """Clear all registered tools."""
        self._tools.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
