"""Bounded engine sessions.

A session owns its own short conversation: one system message, one user
turn, and whatever assistant/tool exchanges the engine needs to finish that
turn. Progress is reported as :class:`SessionEvent` values on a buffered
queue, so a consumer that starts reading after :meth:`EngineSession.send`
still sees every event.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Protocol

from ralph.engine.events import SessionEvent
from ralph.engine.message import Message, ToolCall
from ralph.engine.provider import ChatProvider, is_unreachable
from ralph.engine.streaming import generate
from ralph.tool.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class SessionConfig:
    system_message: str
    tools: ToolRegistry
    max_steps: int = 25


class Session(Protocol):
    """What the loop needs from a session."""

    async def send(self, prompt: str) -> None: ...

    def events(self) -> AsyncIterator[SessionEvent]: ...

    async def close(self) -> None: ...


class SessionFactory(Protocol):
    async def create_session(self, config: SessionConfig) -> Session: ...


class EngineSession:
    """One bounded session against a ChatProvider."""

    def __init__(self, provider: ChatProvider, config: SessionConfig) -> None:
        self.id = uuid.uuid4().hex[:8]
        self._provider = provider
        self._config = config
        self._messages: list[Message] = []
        self._queue: asyncio.Queue[SessionEvent | None] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    async def send(self, prompt: str) -> None:
        """Submit the user turn and start working on it in the background."""
        if self._closed:
            raise RuntimeError(f"Session {self.id} is closed")
        if self._task is not None:
            raise RuntimeError(f"Session {self.id} already has a turn in flight")
        self._messages.append(Message.user(prompt))
        self._task = asyncio.create_task(self._run(), name=f"session-{self.id}")

    async def events(self) -> AsyncIterator[SessionEvent]:
        """Yield events until the session is closed."""
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    async def close(self) -> None:
        """Stop any in-flight work and end the event stream. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._queue.put_nowait(None)
        logger.debug("Session %s closed", self.id)

    async def __aenter__(self) -> EngineSession:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def _emit(self, event: SessionEvent) -> None:
        if self._closed:
            return
        if event.terminal:
            logger.debug("Session %s settled: %s", self.id, event.type.value)
        self._queue.put_nowait(event)

    async def _run(self) -> None:
        tools = self._config.tools.get_specs() or None
        try:
            for step_no in range(1, self._config.max_steps + 1):
                logger.debug("Session %s: step %d", self.id, step_no)
                result = await generate(
                    self._provider,
                    self._config.system_message,
                    self._messages,
                    tools,
                )
                self._messages.append(result.message)

                if result.message.content:
                    self._emit(SessionEvent.assistant_message(result.message.content))

                if not result.has_tool_calls:
                    self._emit(SessionEvent.idle("end_turn"))
                    return

                # The engine may ask for several tools at once; run them together.
                tool_results = await asyncio.gather(
                    *(self._run_tool(tc) for tc in result.tool_calls)
                )
                self._messages.extend(tool_results)

            logger.warning(
                "Session %s hit the step limit (%d)", self.id, self._config.max_steps
            )
            self._emit(SessionEvent.idle("max_steps"))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Session %s failed: %s", self.id, e, exc_info=True)
            self._emit(
                SessionEvent.error(f"{type(e).__name__}: {e}", unreachable=is_unreachable(e))
            )

    async def _run_tool(self, tc: ToolCall) -> Message:
        self._emit(SessionEvent.tool_start(tc.id, tc.name, tc.arguments))
        try:
            arguments = tc.parsed_arguments()
        except ValueError as e:
            content, is_error = f"Invalid JSON arguments for {tc.name}: {e}", True
        else:
            try:
                content, is_error = await self._config.tools.dispatch(tc.name, arguments)
            except Exception as e:
                logger.error("Tool %s failed: %s", tc.name, e)
                content, is_error = f"Error: {e}", True

        self._emit(SessionEvent.tool_complete(tc.id, tc.name, content, is_error))
        return Message.tool_result(tc.id, content)


class EngineClient:
    """Opens a fresh :class:`EngineSession` per call."""

    def __init__(self, provider: ChatProvider) -> None:
        self._provider = provider

    @property
    def provider(self) -> ChatProvider:
        return self._provider

    async def create_session(self, config: SessionConfig) -> EngineSession:
        session = EngineSession(self._provider, config)
        logger.debug(
            "Opened session %s with %d tools", session.id, len(config.tools)
        )
        return session
