"""Conversation state tracking and turn orchestration."""

from .client import ConversationClient, Turn
from .context import (
    ConversationContext,
    ConversationTracker,
    OutboundRequest,
    TurnOptions,
    build_payload,
    resolve_options,
)

__all__ = [
    "ConversationClient",
    "ConversationContext",
    "ConversationTracker",
    "OutboundRequest",
    "Turn",
    "TurnOptions",
    "build_payload",
    "resolve_options",
]
