"""Remote tool bridge: expose an MCP tool-provider's tools as local tools.

At startup each configured server is spawned over stdio, its tools are
listed, and every remote tool becomes a :class:`RemoteTool` in the
registry. Calls forward the argument map verbatim and return the first text
block of the reply.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, ConfigDict

from ralph.errors import BridgeError
from ralph.tool.base import BaseTool, ToolError, ToolOk, ToolResult

if TYPE_CHECKING:
    from mcp import ClientSession

    from ralph.config import McpServerConfig
    from ralph.tool.registry import ToolRegistry

logger = logging.getLogger(__name__)


class RemoteArguments(BaseModel):
    """Accepts any argument map; the remote side does the real validation."""

    model_config = ConfigDict(extra="allow")


def first_text(content: list[Any] | None) -> str | None:
    """Return the text of the first text-typed content block, if any."""
    for block in content or []:
        if getattr(block, "type", None) == "text":
            return getattr(block, "text", "")
    return None


class RemoteTool(BaseTool[RemoteArguments]):
    """A tool whose implementation lives in the tool-provider process."""

    param_model: ClassVar[type[BaseModel]] = RemoteArguments

    def __init__(
        self,
        session: ClientSession,
        name: str,
        description: str,
        input_schema: dict[str, Any] | None = None,
        server: str = "",
    ) -> None:
        self.name = name  # type: ignore[misc]
        self.description = description  # type: ignore[misc]
        self.server = server
        self._session = session
        self._schema = _normalize_schema(input_schema)

    @property
    def parameter_names(self) -> list[str]:
        return list(self._schema.get("properties", {}).keys())

    def parameters_schema(self) -> dict[str, Any]:
        return self._schema

    async def execute(self, params: RemoteArguments) -> ToolResult:
        arguments = dict(params.model_extra or {})
        try:
            result = await self._session.call_tool(self.name, arguments)
        except Exception as e:
            logger.error("Remote tool %s failed: %s", self.name, e)
            return ToolError(output=f"Error: {e}")

        text = first_text(result.content)
        if text is None:
            text = "No output"
        if result.isError:
            return ToolError(output=text)
        return ToolOk(output=text)


def _normalize_schema(schema: dict[str, Any] | None) -> dict[str, Any]:
    parameters = dict(schema or {})
    parameters.setdefault("type", "object")
    if not isinstance(parameters.get("properties"), dict):
        parameters["properties"] = {}
    return parameters


class RemoteToolBridge:
    """Discovers the tools of one connected tool-provider session."""

    def __init__(
        self,
        session: ClientSession,
        server: str = "remote",
        descriptions: dict[str, str] | None = None,
    ) -> None:
        self._session = session
        self._server = server
        self._descriptions = descriptions or {}

    async def discover(self) -> list[RemoteTool]:
        listing = await self._session.list_tools()
        tools = []
        for tool in listing.tools:
            description = (
                self._descriptions.get(tool.name)
                or tool.description
                or f"Remote tool {tool.name} from {self._server}."
            )
            tools.append(
                RemoteTool(
                    self._session,
                    name=tool.name,
                    description=description,
                    input_schema=tool.inputSchema,
                    server=self._server,
                )
            )
        logger.info("Found %d tools from %s", len(tools), self._server)
        return tools

    async def register_into(self, registry: ToolRegistry) -> list[str]:
        """Add every discovered tool whose name is still free. Returns the names added."""
        added = []
        for tool in await self.discover():
            if tool.name in registry:
                logger.warning(
                    "Skipping remote tool %s from %s: name already registered",
                    tool.name,
                    self._server,
                )
                continue
            registry.register(tool)
            added.append(tool.name)
            logger.info(
                "Added remote tool: %s(%s)", tool.name, ", ".join(tool.parameter_names)
            )
        return added


async def open_session(server: McpServerConfig, stack: AsyncExitStack) -> ClientSession:
    """Spawn ``server`` over stdio and return an initialized client session.

    The session and the subprocess are closed when ``stack`` unwinds. If
    startup fails, whatever was already opened is closed right away.
    """
    from mcp import ClientSession
    from mcp.client.stdio import StdioServerParameters, stdio_client

    params = StdioServerParameters(
        command=server.command,
        args=server.args,
        env=server.env,
        cwd=server.cwd,
    )
    async with AsyncExitStack() as server_stack:
        read_stream, write_stream = await server_stack.enter_async_context(
            stdio_client(params)
        )
        session = await server_stack.enter_async_context(
            ClientSession(read_stream, write_stream)
        )
        await asyncio.wait_for(session.initialize(), timeout=server.init_timeout)
        stack.push_async_callback(server_stack.pop_all().aclose)
    return session


async def connect_servers(
    servers: list[McpServerConfig],
    registry: ToolRegistry,
    stack: AsyncExitStack,
) -> list[str]:
    """Connect every configured server and register its tools.

    Servers that fail to start or to list their tools are logged and
    skipped, unless marked ``required``, in which case
    :class:`BridgeError` is raised.
    """
    added: list[str] = []
    for server in servers:
        try:
            session = await open_session(server, stack)
            bridge = RemoteToolBridge(session, server.name, server.descriptions)
            added += await bridge.register_into(registry)
        except Exception as e:
            if server.required:
                raise BridgeError(
                    f"Tool provider {server.name} failed to start: {e}"
                ) from e
            logger.error("Tool provider %s unavailable, continuing without it: %s", server.name, e)
    return added


__all__ = [
    "RemoteArguments",
    "RemoteTool",
    "RemoteToolBridge",
    "connect_servers",
    "first_text",
    "open_session",
]
