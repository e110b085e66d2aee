"""Tests for ralph.engine.provider (retry, chunk normalization, request shape)."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, patch

import litellm
import pytest

from ralph.engine.provider import (
    LiteLLMProvider,
    ProviderConfig,
    _acompletion,
    create_provider,
    is_unreachable,
    normalize_chunk,
)


class TestProviderConfig:
    def test_only_set_options_sent(self) -> None:
        assert ProviderConfig(model="m").request_options() == {}

    def test_zero_temperature_is_set(self) -> None:
        options = ProviderConfig(model="m", temperature=0.0, max_tokens=100).request_options()
        assert options == {"temperature": 0.0, "max_tokens": 100}

    def test_empty_reasoning_effort_dropped(self) -> None:
        assert ProviderConfig(model="m", reasoning_effort="").request_options() == {}


class TestCreateProvider:
    def test_config_propagated(self) -> None:
        provider = create_provider(
            "openai/gpt-4o", temperature=0.2, max_tokens=512, reasoning_effort="low"
        )
        assert isinstance(provider, LiteLLMProvider)
        assert provider.config == ProviderConfig(
            model="openai/gpt-4o", temperature=0.2, max_tokens=512, reasoning_effort="low"
        )


# ---------------------------------------------------------------------------
# _acompletion
# ---------------------------------------------------------------------------


class TestRetry:
    async def test_retries_transient_error(self) -> None:
        mock_acompletion = AsyncMock(side_effect=[ConnectionError("reset"), "ok"])
        with patch("litellm.acompletion", mock_acompletion):
            assert await _acompletion(model="m", messages=[]) == "ok"
        assert mock_acompletion.call_count == 2

    async def test_gives_up_after_three_attempts(self) -> None:
        mock_acompletion = AsyncMock(
            side_effect=[TimeoutError("1"), TimeoutError("2"), TimeoutError("3")]
        )
        with patch("litellm.acompletion", mock_acompletion):
            with pytest.raises(TimeoutError, match="3"):
                await _acompletion(model="m", messages=[])
        assert mock_acompletion.call_count == 3

    async def test_no_retry_on_value_error(self) -> None:
        mock_acompletion = AsyncMock(side_effect=ValueError("bad request"))
        with patch("litellm.acompletion", mock_acompletion):
            with pytest.raises(ValueError):
                await _acompletion(model="m", messages=[])
        assert mock_acompletion.call_count == 1


# ---------------------------------------------------------------------------
# normalize_chunk
# ---------------------------------------------------------------------------


class _Obj:
    def __init__(self, **kwargs: Any) -> None:
        self.__dict__.update(kwargs)


def _chunk(content: str | None = None, tool_calls: list | None = None,
           finish_reason: str | None = None, usage: Any = None, **extra: Any) -> _Obj:
    delta = _Obj(content=content, tool_calls=tool_calls, **extra)
    return _Obj(choices=[_Obj(delta=delta, finish_reason=finish_reason)], usage=usage)


class TestNormalizeChunk:
    def test_text(self) -> None:
        d = normalize_chunk(_chunk(content="hi"))
        assert d == {"finish_reason": None, "delta": {"content": "hi"}}

    def test_no_choices(self) -> None:
        d = normalize_chunk(_Obj(choices=[], usage=None))
        assert d == {"finish_reason": None, "delta": {}}

    def test_tool_call_delta(self) -> None:
        tc = _Obj(index=0, id="call_1", function=_Obj(name="search", arguments='{"q'))
        d = normalize_chunk(_chunk(tool_calls=[tc], finish_reason="tool_calls"))
        assert d["finish_reason"] == "tool_calls"
        assert d["delta"]["tool_calls"] == [
            {"index": 0, "id": "call_1", "function": {"name": "search", "arguments": '{"q'}}
        ]

    def test_usage(self) -> None:
        usage = _Obj(prompt_tokens=10, completion_tokens=5, total_tokens=15)
        d = normalize_chunk(_chunk(usage=usage))
        assert d["usage"] == {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}

    def test_reasoning(self) -> None:
        block = {"type": "thinking", "thinking": "hmm", "signature": "s1"}
        d = normalize_chunk(_chunk(reasoning_content="hmm", thinking_blocks=[block]))
        assert d["delta"] == {"reasoning_content": "hmm", "thinking_blocks": [block]}


# ---------------------------------------------------------------------------
# LiteLLMProvider.stream
# ---------------------------------------------------------------------------


class _FakeStream:
    def __init__(self, chunks: list[Any]) -> None:
        self._chunks = chunks

    def __aiter__(self) -> "_FakeStream":
        return self

    async def __anext__(self) -> Any:
        if not self._chunks:
            raise StopAsyncIteration
        return self._chunks.pop(0)


class TestLiteLLMProviderStream:
    async def test_request_shape(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(litellm, "modify_params", False)
        provider = create_provider("anthropic/test", temperature=0.0, reasoning_effort="high")
        mock_call = AsyncMock(return_value=_FakeStream([_chunk(content="ok")]))
        tools = [{"type": "function", "function": {"name": "t", "parameters": {}}}]

        with patch("ralph.engine.provider._acompletion", mock_call):
            chunks = [c async for c in provider.stream("SYS", [{"role": "user", "content": "u"}], tools)]

        assert chunks == [{"finish_reason": None, "delta": {"content": "ok"}}]
        kwargs = mock_call.call_args.kwargs
        assert kwargs["model"] == "anthropic/test"
        assert kwargs["messages"][0] == {"role": "system", "content": "SYS"}
        assert kwargs["messages"][1] == {"role": "user", "content": "u"}
        assert kwargs["stream"] is True
        assert kwargs["tools"] == tools
        assert kwargs["temperature"] == 0.0
        assert kwargs["reasoning_effort"] == "high"
        assert "max_tokens" not in kwargs

    async def test_no_tools_key_when_empty(self) -> None:
        provider = create_provider("anthropic/test")
        mock_call = AsyncMock(return_value=_FakeStream([]))
        with patch("ralph.engine.provider._acompletion", mock_call):
            _ = [c async for c in provider.stream("SYS", [], None)]
        assert "tools" not in mock_call.call_args.kwargs
        assert "temperature" not in mock_call.call_args.kwargs

    async def test_reasoning_lets_litellm_fix_history(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(litellm, "modify_params", False)
        provider = create_provider("anthropic/test", reasoning_effort="medium")
        with patch("ralph.engine.provider._acompletion", AsyncMock(return_value=_FakeStream([]))):
            _ = [c async for c in provider.stream("SYS", [], None)]
        assert litellm.modify_params is True

    async def test_no_reasoning_leaves_litellm_alone(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(litellm, "modify_params", False)
        provider = create_provider("anthropic/test")
        with patch("ralph.engine.provider._acompletion", AsyncMock(return_value=_FakeStream([]))):
            _ = [c async for c in provider.stream("SYS", [], None)]
        assert litellm.modify_params is False


class TestIsUnreachable:
    def test_transport_errors(self) -> None:
        assert is_unreachable(ConnectionError("refused"))
        assert is_unreachable(TimeoutError())
        assert is_unreachable(
            litellm.APIConnectionError(message="down", llm_provider="openai", model="m")
        )

    def test_request_errors(self) -> None:
        assert not is_unreachable(ValueError("bad request"))
        assert not is_unreachable(KeyError("choices"))
