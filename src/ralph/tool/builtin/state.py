"""Tools that read and write the durable state directly."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, Field

from ralph.state import StateStore
from ralph.tool.base import BaseTool, NoParams, ToolOk, ToolResult


class SaveApiKeyParams(BaseModel):
    key: str = Field(description="The API key / credential to store.")


class SaveApiKeyTool(BaseTool[SaveApiKeyParams]):
    """Store a credential by hand when automatic extraction failed."""

    name: ClassVar[str] = "save_api_key"
    description: ClassVar[str] = (
        "Manually save the API key if registration auto-save fails. "
        "The key is persisted and used for every later authenticated call."
    )
    param_model: ClassVar[type[BaseModel]] = SaveApiKeyParams

    def __init__(self, state: StateStore) -> None:
        self._state = state

    async def execute(self, params: SaveApiKeyParams) -> ToolResult:
        await self._state.update(credential=params.key)
        return ToolOk(output="API key saved.")


class ReadMemoryTool(BaseTool[NoParams]):
    name: ClassVar[str] = "read_memory"
    description: ClassVar[str] = "Reads the agent's persisted memory state as JSON."
    param_model: ClassVar[type[BaseModel]] = NoParams

    def __init__(self, state: StateStore) -> None:
        self._state = state

    async def execute(self, params: NoParams) -> ToolResult:
        return ToolOk(output=self._state.snapshot())
