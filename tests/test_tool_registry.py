"""Tests for ralph.tool.base and ralph.tool.registry."""

from __future__ import annotations

from typing import ClassVar

import pytest
from pydantic import BaseModel

from ralph.errors import RegistryError
from ralph.tool.base import BaseTool, NoParams, ToolError, ToolOk, ToolResult
from ralph.tool.registry import ToolRegistry


class EchoParams(BaseModel):
    text: str


class EchoTool(BaseTool[EchoParams]):
    name: ClassVar[str] = "echo"
    description: ClassVar[str] = "Repeat the input"
    param_model: ClassVar[type[BaseModel]] = EchoParams

    async def execute(self, params: EchoParams) -> ToolResult:
        return ToolOk(output=params.text)


class ExplodingTool(BaseTool[NoParams]):
    name: ClassVar[str] = "explode"
    description: ClassVar[str] = "Always raises"
    param_model: ClassVar[type[BaseModel]] = NoParams

    async def execute(self, params: NoParams) -> ToolResult:
        raise RuntimeError("kaboom")


class RefusingTool(BaseTool[NoParams]):
    name: ClassVar[str] = "refuse"
    description: ClassVar[str] = "Returns an error result"
    param_model: ClassVar[type[BaseModel]] = NoParams

    async def execute(self, params: NoParams) -> ToolResult:
        return ToolError(output="nope")


# ---------------------------------------------------------------------------
# BaseTool
# ---------------------------------------------------------------------------


class TestBaseTool:
    async def test_success(self) -> None:
        content, is_error = await EchoTool()({"text": "hi"})
        assert content == "hi"
        assert is_error is False

    async def test_invalid_parameters(self) -> None:
        content, is_error = await EchoTool()({})
        assert is_error is True
        assert content.startswith("Invalid parameters for echo")

    async def test_exception_becomes_error_string(self) -> None:
        content, is_error = await ExplodingTool()({})
        assert is_error is True
        assert "Error executing explode" in content
        assert "kaboom" in content

    async def test_error_result_passthrough(self) -> None:
        content, is_error = await RefusingTool()({})
        assert (content, is_error) == ("nope", True)

    def test_openai_spec(self) -> None:
        spec = EchoTool().to_openai_spec()
        assert spec["type"] == "function"
        assert spec["function"]["name"] == "echo"
        params = spec["function"]["parameters"]
        assert "title" not in params
        assert params["properties"]["text"]["type"] == "string"
        assert params["required"] == ["text"]


# ---------------------------------------------------------------------------
# ToolRegistry
# ---------------------------------------------------------------------------


class TestToolRegistry:
    def test_registration_order(self) -> None:
        registry = ToolRegistry()
        registry.register_many([EchoTool(), ExplodingTool(), RefusingTool()])
        assert registry.names() == ["echo", "explode", "refuse"]
        assert len(registry) == 3
        assert "echo" in registry
        assert [s["function"]["name"] for s in registry.get_specs()] == registry.names()

    def test_duplicate_name_rejected(self) -> None:
        registry = ToolRegistry()
        registry.register(EchoTool())
        with pytest.raises(RegistryError):
            registry.register(EchoTool())
        assert len(registry) == 1

    def test_frozen_registry_rejects(self) -> None:
        registry = ToolRegistry()
        registry.register(EchoTool())
        registry.freeze()
        registry.freeze()
        assert registry.frozen
        with pytest.raises(RegistryError):
            registry.register(ExplodingTool())
        assert registry.names() == ["echo"]

    def test_get(self) -> None:
        registry = ToolRegistry()
        tool = EchoTool()
        registry.register(tool)
        assert registry.get("echo") is tool
        assert registry.get("missing") is None

    async def test_dispatch(self) -> None:
        registry = ToolRegistry()
        registry.register(EchoTool())
        assert await registry.dispatch("echo", {"text": "yo"}) == ("yo", False)

    async def test_dispatch_unknown(self) -> None:
        registry = ToolRegistry()
        registry.register(EchoTool())
        content, is_error = await registry.dispatch("nope", {})
        assert is_error is True
        assert "Unknown tool: nope" in content
        assert "echo" in content

    async def test_dispatch_raising_tool(self) -> None:
        registry = ToolRegistry()
        registry.register(ExplodingTool())
        content, is_error = await registry.dispatch("explode", {})
        assert is_error is True
        assert "kaboom" in content
