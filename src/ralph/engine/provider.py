"""Engine provider — streaming chat completions through litellm.

Each chunk litellm streams back is flattened to a plain dict before it
leaves this module, so ``streaming.generate`` never touches litellm types:

    {
        "finish_reason": str | None,
        "delta": {"content": str, "reasoning_content": str,
                  "thinking_blocks": [...], "tool_calls": [...]},  # keys only when present
        "usage": {"prompt_tokens": int, "completion_tokens": int, "total_tokens": int},
    }
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

if TYPE_CHECKING:
    from litellm import CustomStreamWrapper, ModelResponse, ModelResponseStream

logger = logging.getLogger(__name__)

# Retried by _acompletion; anything else surfaces as a session.error.
TRANSIENT_ERRORS = (ConnectionError, TimeoutError, OSError)
MAX_ATTEMPTS = 3


@dataclass
class ProviderConfig:
    model: str
    temperature: float | None = None
    max_tokens: int | None = None
    reasoning_effort: str | None = None  # "low", "medium", or "high"

    def request_options(self) -> dict[str, Any]:
        """Sampling options that were explicitly set, as litellm kwargs."""
        options = {
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "reasoning_effort": self.reasoning_effort or None,
        }
        return {k: v for k, v in options.items() if v is not None}


@runtime_checkable
class ChatProvider(Protocol):
    """Anything that can stream one chat completion as normalized chunk dicts."""

    @property
    def config(self) -> ProviderConfig: ...

    def stream(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[dict[str, Any]]: ...


@dataclass
class LiteLLMProvider:
    """ChatProvider backed by ``litellm.acompletion``.

    The backend is picked from the model prefix ("anthropic/...",
    "openai/...", "gemini/...") and its API key from the environment.
    """

    _config: ProviderConfig

    @property
    def config(self) -> ProviderConfig:
        return self._config

    async def stream(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        if self._config.reasoning_effort:
            import litellm

            # Lets litellm fill in thinking blocks it cannot find on earlier turns.
            litellm.modify_params = True

        request: dict[str, Any] = {
            "model": self._config.model,
            "messages": [{"role": "system", "content": system}, *messages],
            "stream": True,
            "stream_options": {"include_usage": True},
            **self._config.request_options(),
        }
        if tools:
            request["tools"] = tools

        response = await _acompletion(**request)
        async for chunk in response:  # type: ignore[union-attr]
            yield normalize_chunk(chunk)


@retry(
    retry=retry_if_exception_type(TRANSIENT_ERRORS),
    stop=stop_after_attempt(MAX_ATTEMPTS),
    wait=wait_exponential(multiplier=1, min=1, max=30),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def _acompletion(**request: Any) -> CustomStreamWrapper | ModelResponse:
    import litellm

    return await litellm.acompletion(**request)


def is_unreachable(error: BaseException) -> bool:
    """True when ``error`` means the engine could not be contacted at all."""
    import litellm

    return isinstance(
        error,
        (
            *TRANSIENT_ERRORS,
            litellm.APIConnectionError,
            litellm.Timeout,
            litellm.ServiceUnavailableError,
        ),
    )


def normalize_chunk(chunk: ModelResponseStream) -> dict[str, Any]:
    """Flatten one streamed chunk to the dict shape described above."""
    normalized: dict[str, Any] = {"finish_reason": None, "delta": {}}

    choices = getattr(chunk, "choices", None) or []
    if choices:
        normalized["finish_reason"] = choices[0].finish_reason
        delta = choices[0].delta
        if delta.content is not None:
            normalized["delta"]["content"] = delta.content
        reasoning = getattr(delta, "reasoning_content", None)
        if reasoning:
            normalized["delta"]["reasoning_content"] = reasoning
        thinking_blocks = getattr(delta, "thinking_blocks", None)
        if thinking_blocks:
            normalized["delta"]["thinking_blocks"] = [dict(b) for b in thinking_blocks]
        if delta.tool_calls:
            normalized["delta"]["tool_calls"] = [
                _tool_call_delta(tc) for tc in delta.tool_calls
            ]

    usage = getattr(chunk, "usage", None)
    if usage:
        normalized["usage"] = _usage(usage)
    return normalized


def _tool_call_delta(tc: Any) -> dict[str, Any]:
    fn = tc.function
    return {
        "index": tc.index,
        "id": tc.id,
        "function": {
            "name": getattr(fn, "name", None),
            "arguments": getattr(fn, "arguments", None),
        },
    }


def _usage(usage: Any) -> dict[str, int]:
    return {
        key: getattr(usage, key, 0) or 0
        for key in ("prompt_tokens", "completion_tokens", "total_tokens")
    }


def create_provider(
    model: str,
    temperature: float | None = None,
    max_tokens: int | None = None,
    reasoning_effort: str | None = None,
) -> ChatProvider:
    return LiteLLMProvider(
        ProviderConfig(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            reasoning_effort=reasoning_effort,
        )
    )
