"""Tool system — base classes, registry, and output truncation."""

from ralph.tool.base import BaseTool, NoParams, ToolContext, ToolError, ToolOk, ToolResult
from ralph.tool.registry import ToolRegistry
from ralph.tool.truncation import truncate_output

__all__ = [
    "BaseTool",
    "NoParams",
    "ToolContext",
    "ToolResult",
    "ToolOk",
    "ToolError",
    "ToolRegistry",
    "truncate_output",
]
