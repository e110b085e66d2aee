"""Tool registry: ordered, append-only catalog of callable tools."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from ralph.errors import RegistryError
from ralph.tool.base import BaseTool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry of available tools.

    Static tools are registered first, then any tools discovered from a
    tool-provider process. Names are unique. Once the loop starts the
    registry is frozen and further registration raises.
    """

    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}
        self._frozen = False

    def register(self, tool: BaseTool) -> None:
        """Register a tool instance."""
        if self._frozen:
            raise RegistryError(
                f"Cannot register {tool.name}: registry is frozen"
            )
        if tool.name in self._tools:
            raise RegistryError(f"Tool {tool.name} is already registered")
        self._tools[tool.name] = tool
        logger.debug("Registered tool %s", tool.name)

    def register_many(self, tools: list[BaseTool]) -> None:
        """Register multiple tools."""
        for tool in tools:
            self.register(tool)

    def freeze(self) -> None:
        """Make the registry read-only. Idempotent."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> BaseTool | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def names(self) -> list[str]:
        """Get all registered tool names, in registration order."""
        return list(self._tools.keys())

    def get_specs(self) -> list[dict[str, Any]]:
        """OpenAI function specs for every tool, in registration order."""
        return [t.to_openai_spec() for t in self._tools.values()]

    async def dispatch(self, name: str, arguments: dict[str, Any]) -> tuple[str, bool]:
        """Run the named tool.

        Returns:
            (content, is_error) tuple. Unknown names produce an error string.
        """
        tool = self._tools.get(name)
        if tool is None:
            return (
                f"Unknown tool: {name}. Available tools: {', '.join(self.names())}",
                True,
            )
        return await tool(arguments)

    def __iter__(self) -> Iterator[BaseTool]:
        return iter(list(self._tools.values()))

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
