"""Testing utilities for in-process upstream simulations."""

from .fake_upstream import BASE_PATH, FakeUpstream, UpstreamResponse
from .response_builders import (
    build_chat_request,
    build_conversation_record,
    build_error_record,
    build_model_response_record,
    build_soft_stop_record,
    build_token_record,
    build_turn_records,
)

__all__ = [
    # Core simulation classes
    "BASE_PATH",
    "FakeUpstream",
    "UpstreamResponse",
    # Record builders
    "build_chat_request",
    "build_conversation_record",
    "build_error_record",
    "build_model_response_record",
    "build_soft_stop_record",
    "build_token_record",
    "build_turn_records",
]
