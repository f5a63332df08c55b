"""
Tool decorator for easy tool creation.

Builds an ITool from a plain async function. The function's signature
and type annotations produce both the JSON schema shown to the model and
a pydantic input model the registry validates against. A parameter named
`context` receives the ToolContext and is left out of the schema.
"""

from __future__ import annotations
from typing import Callable, Any, Awaitable, get_type_hints
import asyncio
import inspect

from pydantic import BaseModel, create_model

from agent_orchestrator.interfaces import ITool, ToolArtifact, ToolContext, ToolSchema

CONTEXT_PARAM = "context"

ArtifactsFn = Callable[[dict[str, Any], Any], list[ToolArtifact]]


def _build_input_model(func: Callable, name: str) -> type[BaseModel]:
    """
    Create a pydantic model from the function signature.

    Example:
        >>> async def read_file(path: str, max_bytes: int = 65536) -> dict: ...
        >>> _build_input_model(read_file, "read_file").model_json_schema()["required"]
        ['path']
    """
    sig = inspect.signature(func)
    type_hints = get_type_hints(func)

    fields: dict[str, Any] = {}
    for param_name, param in sig.parameters.items():
        if param_name == CONTEXT_PARAM:
            continue
        if param.kind in (inspect.Parameter.VAR_KEYWORD, inspect.Parameter.VAR_POSITIONAL):
            continue

        param_type = type_hints.get(param_name, Any)
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[param_name] = (param_type, default)

    model_name = "".join(part.capitalize() for part in name.split("_")) + "Input"
    return create_model(model_name, **fields)


class DecoratedTool(ITool):
    """
    ITool implementation that wraps a decorated function.

    Handles schema generation, optional timeout, and artifact reporting via
    an optional `artifacts` callable.
    """

    def __init__(
        self,
        func: Callable[..., Awaitable[Any]],
        name: str,
        description: str,
        timeout: float | None = None,
        artifacts: ArtifactsFn | None = None,
    ):
        self._func = func
        self._name = name
        self._description = description
        self._timeout = timeout
        self._artifacts = artifacts
        self._wants_context = CONTEXT_PARAM in inspect.signature(func).parameters

        self.input_model = _build_input_model(func, name)
        parameters = self.input_model.model_json_schema()
        parameters.pop("title", None)
        self._parameters = parameters

    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name=self._name,
            description=self._description,
            parameters=self._parameters,
        )

    async def execute(self, input: dict[str, Any], context: ToolContext) -> Any:
        """
        Call the wrapped function with input as keyword arguments.

        Raises:
            TimeoutError: If a timeout is set and the call exceeds it
            Exception: Any exception from the tool function
        """
        kwargs = dict(input)
        if self._wants_context:
            kwargs[CONTEXT_PARAM] = context

        if self._timeout:
            try:
                return await asyncio.wait_for(self._func(**kwargs), timeout=self._timeout)
            except asyncio.TimeoutError:
                raise TimeoutError(
                    f"Tool '{self._name}' execution timed out after {self._timeout}s"
                ) from None
        return await self._func(**kwargs)

    def artifacts(self, input: dict[str, Any], output: Any) -> list[ToolArtifact]:
        if self._artifacts is None:
            return []
        return self._artifacts(input, output)


def tool(
    name: str | None = None,
    description: str | None = None,
    timeout: float | None = None,
    artifacts: ArtifactsFn | None = None,
) -> Callable[[Callable[..., Awaitable[Any]]], DecoratedTool]:
    """
    Decorator to create a tool from a simple async function.

    The decorated object is a DecoratedTool; register it on a ToolRegistry.

    Args:
        name: Tool name (defaults to function name)
        description: Tool description (defaults to function docstring)
        timeout: Timeout in seconds (None = no timeout)
        artifacts: Callable (input, output) -> list[ToolArtifact] reporting what the call touched

    Example:
        >>> @tool(
        ...     description="Run a shell command in the workspace",
        ...     artifacts=lambda input, output: [
        ...         ToolArtifact(ArtifactKind.COMMAND, input["command"], output["stdout"])
        ...     ],
        ... )
        ... async def bash(command: str, context: ToolContext) -> dict:
        ...     return await sandbox.run(context.workspace_id, command)
        >>> registry.register(bash)
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> DecoratedTool:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(
                f"Tool function '{func.__name__}' must be async (use 'async def')"
            )

        tool_name = name or func.__name__
        tool_description = description or inspect.getdoc(func) or f"Tool: {tool_name}"

        return DecoratedTool(
            func=func,
            name=tool_name,
            description=tool_description,
            timeout=timeout,
            artifacts=artifacts,
        )

    return decorator
