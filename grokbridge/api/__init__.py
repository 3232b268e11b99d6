"""API module for the bridge."""

from .bridge import ProxyBridge
from .routes import chat_completions, list_models, parse_chat_request

__all__ = [
    "ProxyBridge",
    "chat_completions",
    "list_models",
    "parse_chat_request",
]
