"""In-memory tool registry: name -> (definition, handler)."""

import copy
from typing import Any, Awaitable, Callable, Iterable, NamedTuple

import httpx

from cashcat_mcp.gateway.exceptions import ToolArgumentError
from cashcat_mcp.gateway.schemas import RpcContext

from .schemas import ToolDefinition
from .validation import coerce_value


ToolHandler = Callable[[dict[str, Any], RpcContext, httpx.AsyncClient], Awaitable[dict[str, Any]]]


class RegisteredTool(NamedTuple):
    """A catalogue entry paired with the coroutine that executes it."""

    definition: ToolDefinition
    handler: ToolHandler


class ToolRegistry:
    """Static catalogue of callable tools.

    Tools are registered once at start-up. Registration rejects duplicate
    names, ``required`` fields that are not declared as properties, and
    defaults that violate their own constraints.
    """

    def __init__(self, tools: Iterable[tuple[ToolDefinition, ToolHandler]] = ()):
        self._tools: dict[str, RegisteredTool] = {}
        for definition, handler in tools:
            self.register(definition, handler)

    def register(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        """Add one tool to the catalogue.

        Raises:
            ValueError: If the definition is inconsistent or the name is taken.
        """
        if definition.name in self._tools:
            raise ValueError(f"duplicate tool name in registry: {definition.name}")

        schema = definition.inputSchema
        undeclared = [name for name in schema.required if name not in schema.properties]
        if undeclared:
            raise ValueError(
                f"tool {definition.name} requires undeclared field(s): {', '.join(undeclared)}"
            )

        for name, prop in schema.properties.items():
            if not prop.has_default:
                continue
            try:
                coerce_value(name, prop, prop.default)
            except ToolArgumentError as e:
                raise ValueError(f"tool {definition.name} has invalid default: {e.message}") from e

        self._tools[definition.name] = RegisteredTool(definition=definition, handler=handler)

    def resolve(self, name: str) -> RegisteredTool | None:
        return self._tools.get(name)

    def list_definitions(self) -> list[dict[str, Any]]:
        """Return the catalogue as published by tools/list.

        Each call returns fresh copies so callers cannot mutate the registry.
        """
        return [copy.deepcopy(tool.definition.to_catalogue_entry()) for tool in self._tools.values()]

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
