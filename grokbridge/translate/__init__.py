"""Egress translation into OpenAI chat-completion formats."""

from .chunks import DeltaChunk, DoneMarker, EgressChunk, ErrorChunk, FinalChunk, RoleChunk
from .completion import build_chat_completion, collect_chat_completion, zero_usage
from .errors import build_error_body, error_status_and_type
from .stream_adapter import ChatCompletionStreamAdapter, adapt_turn_to_chat_stream, new_completion_id

__all__ = [
    "ChatCompletionStreamAdapter",
    "DeltaChunk",
    "DoneMarker",
    "EgressChunk",
    "ErrorChunk",
    "FinalChunk",
    "RoleChunk",
    "adapt_turn_to_chat_stream",
    "build_chat_completion",
    "build_error_body",
    "collect_chat_completion",
    "error_status_and_type",
    "new_completion_id",
    "zero_usage",
]
