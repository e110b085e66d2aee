"""The iteration loop: orchestrator, turn processor, prompt."""

from ralph.loop.orchestrator import RunResult, SessionOrchestrator, TerminalStatus
from ralph.loop.processor import TurnCompletion, TurnEventProcessor, TurnOutcome
from ralph.loop.prompt import TextDocument, build_system_prompt

__all__ = [
    "RunResult",
    "SessionOrchestrator",
    "TerminalStatus",
    "TextDocument",
    "TurnCompletion",
    "TurnEventProcessor",
    "TurnOutcome",
    "build_system_prompt",
]
