"""Turn event processor: reduce one session's event stream to an outcome."""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Callable

from ralph.engine.events import EventType, SessionEvent
from ralph.engine.session import Session

logger = logging.getLogger(__name__)

EventObserver = Callable[[SessionEvent], None]


class TurnOutcome(enum.Enum):
    """How did one iteration end?"""

    CONTINUE = "continue"  # Idle without the sentinel
    SUCCEEDED = "succeeded"  # Idle after the sentinel was seen
    ABORTED = "aborted"  # Session error, or the stream died


class TurnCompletion:
    """Single-resolution completion signal for one turn.

    The first :meth:`resolve` wins; later calls return False and change
    nothing. This absorbs duplicate idles and an error arriving after idle.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future[TurnOutcome] = (
            asyncio.get_running_loop().create_future()
        )

    @property
    def done(self) -> bool:
        return self._future.done()

    def resolve(self, outcome: TurnOutcome) -> bool:
        if self._future.done():
            return False
        self._future.set_result(outcome)
        return True

    async def wait(self) -> TurnOutcome:
        return await self._future


@dataclass
class TurnTrace:
    """What happened during one turn, kept for logging and tests."""

    sentinel_seen: bool = False
    assistant_messages: list[str] = field(default_factory=list)
    tool_calls: list[str] = field(default_factory=list)
    error: str | None = None
    engine_unreachable: bool = False


class TurnEventProcessor:
    """Consumes a session's events and resolves the turn exactly once.

    * assistant.message: checks for the sentinel, keeps draining
    * tool.execution_*: recorded only
    * session.idle: resolves SUCCEEDED or CONTINUE
    * session.error: resolves ABORTED, even after the sentinel
    """

    def __init__(self, sentinel: str = "SUCCESS", observer: EventObserver | None = None) -> None:
        if not sentinel:
            raise ValueError("sentinel must be a non-empty string")
        self.sentinel = sentinel
        self._observer = observer
        self.last_trace: TurnTrace | None = None

    async def drain(self, session: Session) -> TurnOutcome:
        """Suspend until the session's turn is resolved."""
        trace = TurnTrace()
        completion = TurnCompletion()
        self.last_trace = trace

        consumer = asyncio.create_task(self._consume(session, trace, completion))
        try:
            return await completion.wait()
        finally:
            if not consumer.done():
                consumer.cancel()
            try:
                await consumer
            except asyncio.CancelledError:
                pass

    async def _consume(
        self, session: Session, trace: TurnTrace, completion: TurnCompletion
    ) -> None:
        try:
            async for event in session.events():
                self.handle(event, trace, completion)
                if completion.done:
                    return
        except Exception as e:
            logger.error("Event stream failed: %s", e, exc_info=True)
            trace.error = str(e)
            completion.resolve(TurnOutcome.ABORTED)
            return

        if completion.resolve(TurnOutcome.ABORTED):
            logger.warning("Event stream ended before the session went idle")

    def handle(
        self, event: SessionEvent, trace: TurnTrace, completion: TurnCompletion
    ) -> None:
        """Apply one event to the turn."""
        if completion.done:
            logger.debug("Ignoring %s after the turn resolved", event.type.value)
            return

        self._notify(event)
        d = event.data

        if event.type is EventType.ASSISTANT_MESSAGE:
            content = d.get("content") or ""
            trace.assistant_messages.append(content)
            logger.debug("[AI]: %s", content)
            if self.sentinel in content:
                trace.sentinel_seen = True

        elif event.type is EventType.TOOL_EXECUTION_START:
            trace.tool_calls.append(d.get("tool_name", "?"))
            logger.debug("[Tool]: Executing %s...", d.get("tool_name", "?"))
            if d.get("arguments"):
                logger.debug("[Tool Args]: %s", d["arguments"])

        elif event.type is EventType.TOOL_EXECUTION_COMPLETE:
            logger.debug("[Tool Result]: %s", d.get("result", ""))

        elif event.type is EventType.SESSION_IDLE:
            completion.resolve(
                TurnOutcome.SUCCEEDED if trace.sentinel_seen else TurnOutcome.CONTINUE
            )

        elif event.type is EventType.SESSION_ERROR:
            trace.error = d.get("message", "unknown error")
            trace.engine_unreachable = bool(d.get("unreachable"))
            logger.error("[Error]: %s", trace.error)
            completion.resolve(TurnOutcome.ABORTED)

    def _notify(self, event: SessionEvent) -> None:
        if self._observer is None:
            return
        try:
            self._observer(event)
        except Exception as e:
            logger.warning("Event observer failed on %s: %s", event.type.value, e)
