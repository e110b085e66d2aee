"""Reasoning engine adapter: litellm streaming behind a session interface."""

from ralph.engine.events import EventType, SessionEvent
from ralph.engine.message import Message, TokenUsage, ToolCall
from ralph.engine.provider import (
    ChatProvider,
    LiteLLMProvider,
    ProviderConfig,
    create_provider,
)
from ralph.engine.session import (
    EngineClient,
    EngineSession,
    Session,
    SessionConfig,
    SessionFactory,
)
from ralph.engine.streaming import GenerateResult, generate

__all__ = [
    "ChatProvider",
    "EngineClient",
    "EngineSession",
    "EventType",
    "GenerateResult",
    "LiteLLMProvider",
    "Message",
    "ProviderConfig",
    "Session",
    "SessionConfig",
    "SessionEvent",
    "SessionFactory",
    "TokenUsage",
    "ToolCall",
    "create_provider",
    "generate",
]
