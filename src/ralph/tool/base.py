"""Base tool classes with Pydantic parameter validation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from ralph.tool.truncation import truncate_output

if TYPE_CHECKING:
    from ralph.api import ApiClient
    from ralph.config import VerificationConfig
    from ralph.state import StateStore

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


@dataclass
class ToolResult:
    """Base result from a tool execution."""

    output: str = ""
    is_error: bool = False


@dataclass
class ToolOk(ToolResult):
    """Successful tool result."""

    is_error: bool = False


@dataclass
class ToolError(ToolResult):
    """Failed tool result."""

    is_error: bool = True


@dataclass
class ToolContext:
    """Everything a static tool may touch, handed over at registry build time.

    Tools never reach for module-level state; the API client reads the
    credential from ``state`` on every request.
    """

    state: StateStore
    api: ApiClient | None = None
    workspace: str = "."
    verification: VerificationConfig | None = None


class BaseTool(ABC, Generic[T]):
    """Base class for all tools.

    A tool takes validated arguments, performs one effect and returns text.
    ``__call__`` is the failure boundary: bad arguments and any exception
    raised by ``execute`` come back as an error string, never as an
    exception, so a misbehaving tool cannot end a turn or the run.

    Usage:
        class EchoParams(BaseModel):
            text: str

        class EchoTool(BaseTool[EchoParams]):
            name = "echo"
            description = "Repeat the input"
            param_model = EchoParams

            async def execute(self, params: EchoParams) -> ToolResult:
                return ToolOk(output=params.text)
    """

    name: ClassVar[str]
    description: ClassVar[str]
    param_model: ClassVar[type[BaseModel]]

    async def __call__(self, arguments: dict[str, Any]) -> tuple[str, bool]:
        """Validate arguments, execute, truncate output.

        Returns:
            (content, is_error) tuple suitable for tool result messages.
        """
        try:
            params = self.param_model.model_validate(arguments)
        except Exception as e:
            return f"Invalid parameters for {self.name}: {e}", True

        try:
            result = await self.execute(params)  # type: ignore[arg-type]
        except Exception as e:
            logger.error("Tool %s execution error: %s", self.name, e, exc_info=True)
            return f"Error executing {self.name}: {e}", True

        return truncate_output(result.output), result.is_error

    @abstractmethod
    async def execute(self, params: T) -> ToolResult:
        """Execute the tool with validated parameters."""
        ...

    def parameters_schema(self) -> dict[str, Any]:
        """JSON schema of the arguments, without Pydantic's title and $defs."""
        schema = self.param_model.model_json_schema()
        schema.pop("title", None)
        schema.pop("$defs", None)
        return schema

    def to_openai_spec(self) -> dict[str, Any]:
        """Convert to OpenAI function tool specification."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }


class NoParams(BaseModel):
    """Argument model for tools that take nothing."""
