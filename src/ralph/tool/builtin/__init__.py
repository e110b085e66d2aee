"""Built-in tools, grouped into toolsets that a deployment switches on."""

from __future__ import annotations

import logging

from ralph.tool.base import BaseTool, ToolContext
from ralph.tool.builtin.api import (
    CommentTool,
    CreatePostTool,
    GetFeedTool,
    RegisterAgentTool,
    SearchTool,
)
from ralph.tool.builtin.files import ListFilesTool, ReadFileTool, WriteFileTool
from ralph.tool.builtin.state import ReadMemoryTool, SaveApiKeyTool
from ralph.tool.builtin.verify import RunVerificationTool

logger = logging.getLogger(__name__)


def build_static_tools(ctx: ToolContext, toolsets: list[str]) -> list[BaseTool]:
    """Instantiate the tools of each requested toolset, in a stable order."""
    tools: list[BaseTool] = []

    if "state" in toolsets:
        tools += [SaveApiKeyTool(ctx.state), ReadMemoryTool(ctx.state)]

    if "api" in toolsets:
        if ctx.api is None:
            logger.warning("api toolset requested without an API client; skipping")
        else:
            tools += [
                RegisterAgentTool(ctx.api, ctx.state),
                GetFeedTool(ctx.api, ctx.state),
                CreatePostTool(ctx.api, ctx.state),
                SearchTool(ctx.api, ctx.state),
                CommentTool(ctx.api, ctx.state),
            ]

    if "files" in toolsets:
        tools += [
            ReadFileTool(ctx.workspace),
            WriteFileTool(ctx.workspace),
            ListFilesTool(ctx.workspace),
        ]

    if "verify" in toolsets:
        if ctx.verification is None or not ctx.verification.command:
            logger.warning("verify toolset requested without a command; skipping")
        else:
            tools.append(
                RunVerificationTool(
                    command=ctx.verification.command,
                    cwd=ctx.workspace,
                    timeout=ctx.verification.timeout,
                )
            )

    return tools


__all__ = [
    "build_static_tools",
    "CommentTool",
    "CreatePostTool",
    "GetFeedTool",
    "ListFilesTool",
    "ReadFileTool",
    "ReadMemoryTool",
    "RegisterAgentTool",
    "RunVerificationTool",
    "SaveApiKeyTool",
    "SearchTool",
    "WriteFileTool",
]
