"""The core iteration loop.

Each iteration opens a brand-new session, primes it with the goal, the
skills and the serialized durable state, asks for the next move, and waits
for the turn to settle. Nothing from one session is carried into the next:
the engine re-derives what to do from the state and the files every time.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable

from ralph.engine.session import Session, SessionConfig, SessionFactory
from ralph.errors import EngineUnreachableError, LoopFatalError
from ralph.loop.processor import TurnEventProcessor, TurnOutcome
from ralph.loop.prompt import (
    TextDocument,
    build_system_prompt,
    next_move_prompt,
    read_document,
)
from ralph.state import StateStore
from ralph.tool.registry import ToolRegistry

logger = logging.getLogger(__name__)


class TerminalStatus(enum.Enum):
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass
class RunResult:
    status: TerminalStatus
    iterations: int
    outcomes: list[TurnOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status is TerminalStatus.SUCCEEDED


class SessionOrchestrator:
    """Bounded, sequential retry controller.

    Args:
        client: Opens one session per iteration.
        processor: Drains each session. Its sentinel is also the one the
            prompt asks the engine to emit.
        max_steps_per_turn: Engine round-trips allowed inside one session.
        max_consecutive_failures: Raise LoopFatalError after this many
            iterations in a row either could not open a session or aborted
            because the engine was unreachable. None disables.
        on_iteration: Called with (iteration, max_iterations) before each turn.
    """

    def __init__(
        self,
        client: SessionFactory,
        processor: TurnEventProcessor | None = None,
        max_steps_per_turn: int = 25,
        max_consecutive_failures: int | None = 3,
        on_iteration: Callable[[int, int], None] | None = None,
    ) -> None:
        self._client = client
        self._processor = processor or TurnEventProcessor()
        self._max_steps = max_steps_per_turn
        self._max_consecutive_failures = max_consecutive_failures
        self._on_iteration = on_iteration

    @property
    def sentinel(self) -> str:
        return self._processor.sentinel

    async def run(
        self,
        goal: str | TextDocument,
        skills: str | TextDocument,
        state: StateStore,
        tools: ToolRegistry,
        max_iterations: int,
    ) -> RunResult:
        """Iterate until the sentinel shows up or ``max_iterations`` is spent."""
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

        tools.freeze()
        outcomes: list[TurnOutcome] = []
        consecutive_failures = 0
        iteration = 0

        while iteration < max_iterations:
            iteration += 1
            logger.info("--- Iteration %d/%d ---", iteration, max_iterations)
            if self._on_iteration:
                self._on_iteration(iteration, max_iterations)

            prompt = build_system_prompt(
                goal=read_document(goal),
                skills=read_document(skills),
                memory=state.snapshot(indent=None),
                sentinel=self.sentinel,
            )

            try:
                session = await self._client.create_session(
                    SessionConfig(
                        system_message=prompt,
                        tools=tools,
                        max_steps=self._max_steps,
                    )
                )
            except Exception as e:
                consecutive_failures += 1
                outcomes.append(TurnOutcome.ABORTED)
                logger.error(
                    "Iteration %d: could not open a session (%d in a row): %s",
                    iteration,
                    consecutive_failures,
                    e,
                    exc_info=True,
                )
                self._check_failures(iteration, consecutive_failures, e)
                continue

            try:
                outcome = await self._run_turn(session, iteration)
            finally:
                await _close_quietly(session, iteration)
            outcomes.append(outcome)

            trace = self._processor.last_trace
            if outcome is TurnOutcome.ABORTED and trace and trace.engine_unreachable:
                consecutive_failures += 1
                logger.error(
                    "Iteration %d: engine unreachable (%d in a row): %s",
                    iteration,
                    consecutive_failures,
                    trace.error,
                )
                self._check_failures(
                    iteration, consecutive_failures, EngineUnreachableError(trace.error)
                )
                continue
            consecutive_failures = 0

            if outcome is TurnOutcome.SUCCEEDED:
                logger.info("Goal reached at iteration %d", iteration)
                return RunResult(TerminalStatus.SUCCEEDED, iteration, outcomes)
            if outcome is TurnOutcome.ABORTED:
                logger.warning("Iteration %d aborted, moving on", iteration)

        logger.warning("Max iterations reached (%d)", max_iterations)
        return RunResult(TerminalStatus.EXHAUSTED, iteration, outcomes)

    def _check_failures(self, iteration: int, count: int, cause: BaseException) -> None:
        if self._max_consecutive_failures is not None and count >= self._max_consecutive_failures:
            raise LoopFatalError(iteration, cause) from cause

    async def _run_turn(self, session: Session, iteration: int) -> TurnOutcome:
        self._processor.last_trace = None
        try:
            await session.send(next_move_prompt(iteration))
        except Exception as e:
            logger.error("Iteration %d: sending the prompt failed: %s", iteration, e)
            return TurnOutcome.ABORTED
        return await self._processor.drain(session)


async def _close_quietly(session: Session, iteration: int) -> None:
    try:
        await session.close()
    except Exception as e:
        logger.warning("Iteration %d: closing the session failed: %s", iteration, e)
