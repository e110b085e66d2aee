"""File tools confined to a workspace root."""

from __future__ import annotations

import os
from typing import ClassVar

from pydantic import BaseModel, Field

from ralph.tool.base import BaseTool, NoParams, ToolError, ToolOk, ToolResult

MAX_LISTED = 1000
_SKIP_DIRS = {".git", "__pycache__", "node_modules", ".venv", "bin", "obj"}


class OutsideWorkspace(ValueError):
    pass


def resolve_in_root(root: str, path: str) -> str:
    """Resolve ``path`` against ``root`` and refuse anything that escapes it."""
    root = os.path.realpath(root)
    full = os.path.realpath(os.path.join(root, path))
    if os.path.commonpath([root, full]) != root:
        raise OutsideWorkspace(f"Path is outside the workspace: {path}")
    return full


class _WorkspaceTool:
    def __init__(self, root: str) -> None:
        self._root = os.path.realpath(root)


class ReadFileParams(BaseModel):
    path: str = Field(description="Path relative to the workspace root.")


class ReadFileTool(_WorkspaceTool, BaseTool[ReadFileParams]):
    name: ClassVar[str] = "read_file"
    description: ClassVar[str] = (
        "Read the contents of a file in the workspace. "
        "Returns a not-found message if the file does not exist."
    )
    param_model: ClassVar[type[BaseModel]] = ReadFileParams

    async def execute(self, params: ReadFileParams) -> ToolResult:
        try:
            path = resolve_in_root(self._root, params.path)
        except OutsideWorkspace as e:
            return ToolError(output=str(e))

        if not os.path.isfile(path):
            return ToolOk(output=f"File not found: {params.path}")

        try:
            with open(path, "r", errors="replace") as f:
                return ToolOk(output=f.read())
        except OSError as e:
            return ToolError(output=f"Error reading file: {e}")


class WriteFileParams(BaseModel):
    path: str = Field(description="Path relative to the workspace root.")
    content: str = Field(description="Content to write to the file.")


class WriteFileTool(_WorkspaceTool, BaseTool[WriteFileParams]):
    """Write content to a file, creating directories as needed."""

    name: ClassVar[str] = "write_file"
    description: ClassVar[str] = (
        "Write content to a file in the workspace. Creates the file and parent "
        "directories if they don't exist. Overwrites existing content."
    )
    param_model: ClassVar[type[BaseModel]] = WriteFileParams

    async def execute(self, params: WriteFileParams) -> ToolResult:
        try:
            path = resolve_in_root(self._root, params.path)
        except OutsideWorkspace as e:
            return ToolError(output=str(e))

        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "w") as f:
                f.write(params.content)
        except OSError as e:
            return ToolError(output=f"Error writing file: {e}")

        lines = params.content.count("\n") + 1
        return ToolOk(output=f"Wrote {lines} lines to {params.path}")


class ListFilesTool(_WorkspaceTool, BaseTool[NoParams]):
    name: ClassVar[str] = "list_files"
    description: ClassVar[str] = "List all files in the workspace, one relative path per line."
    param_model: ClassVar[type[BaseModel]] = NoParams

    async def execute(self, params: NoParams) -> ToolResult:
        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self._root):
            dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
            for fname in sorted(filenames):
                found.append(
                    os.path.relpath(os.path.join(dirpath, fname), self._root)
                )
                if len(found) >= MAX_LISTED:
                    found.append(f"[stopped after {MAX_LISTED} files]")
                    return ToolOk(output="\n".join(found))

        if not found:
            return ToolOk(output="Workspace is empty.")
        return ToolOk(output="\n".join(found))
