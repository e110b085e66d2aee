"""Accumulate one streamed engine response into a Message."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ralph.engine.message import Message, TokenUsage, ToolCall
from ralph.engine.provider import ChatProvider


@dataclass
class GenerateResult:
    message: Message
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: str | None = None

    @property
    def tool_calls(self) -> list[ToolCall]:
        return self.message.tool_calls

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.message.tool_calls)


@dataclass
class _PendingCall:
    """A tool call being assembled from deltas that share one ``index``.

    The id and name arrive once; the argument JSON arrives in fragments.
    """

    id: str = ""
    name: str = ""
    arguments: list[str] = field(default_factory=list)

    def merge(self, delta: dict[str, Any]) -> None:
        if delta.get("id"):
            self.id = delta["id"]
        fn = delta.get("function") or {}
        if fn.get("name"):
            self.name = fn["name"]
        if fn.get("arguments"):
            self.arguments.append(fn["arguments"])

    def build(self) -> ToolCall:
        return ToolCall(id=self.id, name=self.name, arguments="".join(self.arguments))


async def generate(
    provider: ChatProvider,
    system: str,
    messages: list[Message],
    tools: list[dict[str, Any]] | None = None,
) -> GenerateResult:
    """One provider call, one assistant message."""
    text: list[str] = []
    thinking = ""
    signature = ""
    pending: dict[int, _PendingCall] = {}
    result = GenerateResult(message=Message.assistant())

    async for chunk in provider.stream(
        system, [m.to_openai_dict() for m in messages], tools
    ):
        result.finish_reason = chunk.get("finish_reason") or result.finish_reason

        delta = chunk.get("delta", {})
        if delta.get("reasoning_content"):
            thinking += delta["reasoning_content"]
        # Anthropic repeats the reasoning here and adds the signature.
        for block in delta.get("thinking_blocks") or []:
            signature = block.get("signature") or signature
            block_text = block.get("thinking", "")
            if block_text and block_text not in thinking:
                thinking += block_text
        if delta.get("content"):
            text.append(delta["content"])
        for tc_delta in delta.get("tool_calls") or []:
            pending.setdefault(tc_delta.get("index", 0), _PendingCall()).merge(tc_delta)

        if "usage" in chunk:
            u = chunk["usage"]
            result.usage = TokenUsage(
                input_tokens=u.get("prompt_tokens", 0),
                output_tokens=u.get("completion_tokens", 0),
                total_tokens=u.get("total_tokens", 0),
            )

    result.message = Message.assistant(
        "".join(text), [pending[i].build() for i in sorted(pending)]
    )
    result.message.thinking = thinking
    result.message.thinking_signature = signature
    return result
