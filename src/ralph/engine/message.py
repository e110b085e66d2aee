"""Message types exchanged with the reasoning engine inside one session."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

logger = logging.getLogger(__name__)


@dataclass
class ToolCall:
    """A tool call as produced by the engine. ``arguments`` is raw JSON text."""

    id: str
    name: str
    arguments: str = ""

    def parsed_arguments(self) -> dict[str, Any]:
        """Decode the argument JSON. Raises ValueError if it is not an object."""
        if not self.arguments:
            return {}
        data = json.loads(self.arguments)
        if not isinstance(data, dict):
            raise ValueError(f"arguments must be a JSON object, got {type(data).__name__}")
        return data


@dataclass
class TokenUsage:
    """Token usage stats from an engine call."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass
class Message:
    role: Literal["system", "user", "assistant", "tool"]
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_call_id: str | None = None
    # Extended thinking; the signature is only set by Anthropic models.
    thinking: str = ""
    thinking_signature: str = ""

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role="user", content=text)

    @classmethod
    def assistant(cls, text: str = "", tool_calls: list[ToolCall] | None = None) -> Message:
        return cls(role="assistant", content=text, tool_calls=list(tool_calls or []))

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> Message:
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    def to_openai_dict(self) -> dict[str, Any]:
        """Convert to the OpenAI chat format litellm accepts."""
        if self.role == "tool":
            return {
                "role": "tool",
                "tool_call_id": self.tool_call_id or "",
                "content": self.content,
            }

        if self.role == "assistant":
            result: dict[str, Any] = {
                "role": "assistant",
                "content": self.content or None,
            }
            if self.tool_calls:
                result["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {"name": tc.name, "arguments": tc.arguments or "{}"},
                    }
                    for tc in self.tool_calls
                ]
            if self.thinking:
                # Anthropic rejects a tool follow-up whose thinking block is missing.
                result["thinking_blocks"] = [
                    {
                        "type": "thinking",
                        "thinking": self.thinking,
                        "signature": self.thinking_signature,
                    }
                ]
                result["reasoning_content"] = self.thinking
            return result

        return {"role": self.role, "content": self.content}
