"""Type definitions for the bridge's egress formats."""

from .chat import (
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChatMessage,
    Choice,
    Delta,
    ErrorBody,
    Usage,
)

__all__ = [
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "ChatMessage",
    "Choice",
    "Delta",
    "ErrorBody",
    "Usage",
]
