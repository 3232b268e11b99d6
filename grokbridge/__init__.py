"""grokbridge - conversation-aware client and OpenAI-compatible proxy for Grok

A small bridge that drives the Grok web chat backend with browser cookies
and re-exposes it through the OpenAI chat completions API.

This module provides:
- ConversationClient: Multi-turn client that tracks conversation ids
- Stream reading: Turns the upstream line stream into token and final events
- Translation: Renders events as OpenAI chat.completion chunks
- OpenAI-compatible API endpoints

Example:
    >>> from grokbridge.main import create_app
    >>> import uvicorn
    >>> uvicorn.run(create_app(), host="127.0.0.1", port=8080)
"""

from .config_loader import load_config
from .conversation import ConversationClient, ConversationContext, Turn, TurnOptions
from .core import (
    BridgeError,
    CredentialError,
    DecodeError,
    StreamingError,
    TransportError,
    UpstreamTransport,
)
from .logging import logger, setup_logging
from .stream import Final, Token, TurnResult

__all__ = [
    "BridgeError",
    "ConversationClient",
    "ConversationContext",
    "CredentialError",
    "DecodeError",
    "Final",
    "StreamingError",
    "Token",
    "TransportError",
    "Turn",
    "TurnOptions",
    "TurnResult",
    "UpstreamTransport",
    "load_config",
    "logger",
    "setup_logging",
]
