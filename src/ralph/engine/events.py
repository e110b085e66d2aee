"""Typed events a session emits while it works through one user turn."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class EventType(enum.Enum):
    ASSISTANT_MESSAGE = "assistant.message"
    TOOL_EXECUTION_START = "tool.execution_start"
    TOOL_EXECUTION_COMPLETE = "tool.execution_complete"
    SESSION_IDLE = "session.idle"
    SESSION_ERROR = "session.error"


TERMINAL_EVENTS = frozenset({EventType.SESSION_IDLE, EventType.SESSION_ERROR})


@dataclass
class SessionEvent:
    """An event on a session's stream."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def terminal(self) -> bool:
        return self.type in TERMINAL_EVENTS

    @classmethod
    def assistant_message(cls, content: str) -> SessionEvent:
        return cls(EventType.ASSISTANT_MESSAGE, {"content": content})

    @classmethod
    def tool_start(cls, call_id: str, tool_name: str, arguments: str) -> SessionEvent:
        return cls(
            EventType.TOOL_EXECUTION_START,
            {"id": call_id, "tool_name": tool_name, "arguments": arguments},
        )

    @classmethod
    def tool_complete(
        cls, call_id: str, tool_name: str, result: str, is_error: bool
    ) -> SessionEvent:
        return cls(
            EventType.TOOL_EXECUTION_COMPLETE,
            {"id": call_id, "tool_name": tool_name, "result": result, "is_error": is_error},
        )

    @classmethod
    def idle(cls, reason: str = "end_turn") -> SessionEvent:
        return cls(EventType.SESSION_IDLE, {"reason": reason})

    @classmethod
    def error(cls, message: str, unreachable: bool = False) -> SessionEvent:
        return cls(
            EventType.SESSION_ERROR, {"message": message, "unreachable": unreachable}
        )
