"""Verification tool: run the project's check command and summarize it."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import ClassVar

from pydantic import BaseModel

from ralph.tool.base import BaseTool, NoParams, ToolError, ToolOk, ToolResult
from ralph.tool.truncation import strip_ansi

logger = logging.getLogger(__name__)


class RunVerificationTool(BaseTool[NoParams]):
    """Launch the configured command (e.g. a test runner) in the workspace.

    The result always starts with ``PASSED`` or ``FAILED`` and the exit code,
    followed by the captured stdout and stderr.
    """

    name: ClassVar[str] = "run_verification"
    description: ClassVar[str] = (
        "Run the project's verification command (for example the test suite) "
        "and report PASSED or FAILED with the captured output."
    )
    param_model: ClassVar[type[BaseModel]] = NoParams

    def __init__(self, command: str, cwd: str, timeout: int = 300) -> None:
        self._command = command
        self._cwd = cwd
        self._timeout = timeout

    async def execute(self, params: NoParams) -> ToolResult:
        logger.info("Running verification: %s", self._command)
        process = await asyncio.create_subprocess_shell(
            self._command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self._cwd,
            start_new_session=True,
            env={**os.environ, "TERM": "dumb"},
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            try:
                os.killpg(process.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
            await process.wait()
            return ToolError(
                output=f"FAILED (timeout after {self._timeout}s): {self._command}"
            )

        exit_code = process.returncode or 0
        out = strip_ansi(stdout.decode("utf-8", errors="replace")).strip()
        err = strip_ansi(stderr.decode("utf-8", errors="replace")).strip()

        status = "PASSED" if exit_code == 0 else "FAILED"
        sections = [f"{status} (exit code {exit_code}): {self._command}"]
        if out:
            sections.append(f"--- stdout ---\n{out}")
        if err:
            sections.append(f"--- stderr ---\n{err}")
        summary = "\n".join(sections)

        if exit_code != 0:
            return ToolError(output=summary)
        return ToolOk(output=summary)
