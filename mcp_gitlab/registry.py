"""Tool definitions and the name-keyed registry used by the protocol core."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from inspect import cleandoc
from typing import Any, Protocol

from mcp import types
from pydantic import BaseModel, ValidationError

from mcp_gitlab.context import HandlerContext
from mcp_gitlab.utils.formatting import format_response, invalid_params

logger = logging.getLogger(__name__)

HandlerFunc = Callable[[Any, HandlerContext], Awaitable[Any]]


class ToolHandler(Protocol):
    """Capability resolved by the registry: validated arguments in, content envelope out."""

    async def __call__(self, arguments: dict[str, Any] | None, context: HandlerContext) -> list[types.TextContent]: ...


def _field_name(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc)


def describe_validation_error(error: ValidationError) -> str:
    """Turn a pydantic ValidationError into an invalid-params message naming the fields."""
    missing = [_field_name(e["loc"]) for e in error.errors() if e["type"] == "missing"]
    if missing:
        verb = "is" if len(missing) == 1 else "are"
        return f"{', '.join(missing)} {verb} required"
    problems = []
    for e in error.errors():
        name = _field_name(e["loc"])
        message = e["msg"].removeprefix("Value error, ")
        problems.append(f"{name}: {message}" if name else message)
    return f"Invalid arguments: {'; '.join(problems)}"


@dataclass(frozen=True)
class ToolDefinition:
    """A named tool: description, input model and the coroutine that serves it."""

    name: str
    description: str
    input_model: type[BaseModel]
    handler: HandlerFunc

    def to_tool(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_model.model_json_schema(by_alias=True),
        )

    def parse_arguments(self, arguments: dict[str, Any] | None) -> BaseModel:
        """Validate raw call arguments against the input model.

        Raises:
            McpError: INVALID_PARAMS naming every missing or malformed field
        """
        try:
            return self.input_model.model_validate(arguments or {})
        except ValidationError as e:
            raise invalid_params(describe_validation_error(e)) from e

    async def __call__(self, arguments: dict[str, Any] | None, context: HandlerContext) -> list[types.TextContent]:
        params = self.parse_arguments(arguments)
        payload = await self.handler(params, context)
        return format_response(payload)


def tool(
    name: str, input_model: type[BaseModel], description: str | None = None
) -> Callable[[HandlerFunc], ToolDefinition]:
    """Decorator turning an async handler into a ToolDefinition.

    The handler's docstring is used as the description unless one is given.
    """

    def decorator(func: HandlerFunc) -> ToolDefinition:
        return ToolDefinition(
            name=name,
            description=description or cleandoc(func.__doc__ or ""),
            input_model=input_model,
            handler=func,
        )

    return decorator


class ToolRegistry:
    """Mapping from tool name to handler, read-only once frozen."""

    def __init__(self) -> None:
        self._handlers: dict[str, ToolDefinition] = {}
        self._frozen = False

    def register(self, name: str, handler: ToolDefinition) -> None:
        """Register a handler under a unique name.

        Raises:
            ValueError: If the name is already registered
            RuntimeError: If the registry has been frozen
        """
        if self._frozen:
            raise RuntimeError(f"Cannot register tool '{name}': registry is frozen")
        if name in self._handlers:
            raise ValueError(f"Duplicate tool name: {name}")
        self._handlers[name] = handler

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        logger.debug(f"Tool registry frozen with {len(self._handlers)} tools")
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def resolve(self, name: str) -> ToolDefinition | None:
        return self._handlers.get(name)

    def definitions(self) -> list[ToolDefinition]:
        """All registered tools in registration order."""
        return list(self._handlers.values())

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

