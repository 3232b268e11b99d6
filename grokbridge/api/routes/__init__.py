"""API routes for the bridge."""

from .chat import chat_completions, parse_chat_request
from .models import list_models

__all__ = [
    "chat_completions",
    "list_models",
    "parse_chat_request",
]
