"""Non-streaming chat completion built from one aggregated turn."""

from __future__ import annotations

import time
from typing import Optional

from ..conversation.client import Turn
from ..stream.events import TurnResult
from ..types.chat import ChatCompletionResponse, Usage
from .stream_adapter import new_completion_id


def zero_usage() -> Usage:
    """Usage block with every counter at zero; the upstream reports none."""
    return {
        "prompt_tokens": 0,
        "completion_tokens": 0,
        "total_tokens": 0,
        "prompt_tokens_details": {"cached_tokens": 0, "audio_tokens": 0},
        "completion_tokens_details": {
            "reasoning_tokens": 0,
            "audio_tokens": 0,
            "accepted_prediction_tokens": 0,
            "rejected_prediction_tokens": 0,
        },
    }


def build_chat_completion(
    result: TurnResult,
    model: str,
    completion_id: Optional[str] = None,
    created: Optional[int] = None,
    finish_reason: str = "stop",
) -> ChatCompletionResponse:
    """Build a ``chat.completion`` object from a completed turn."""
    response: ChatCompletionResponse = {
        "id": completion_id or new_completion_id(),
        "object": "chat.completion",
        "created": created if created is not None else int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": result.message,
                    "refusal": None,
                    "annotations": [],
                },
                "logprobs": None,
                "finish_reason": finish_reason,
            }
        ],
        "usage": zero_usage(),
        "service_tier": "default",
    }
    if result.metadata:
        response["metadata"] = result.metadata
    return response


async def collect_chat_completion(turn: Turn, model: str) -> ChatCompletionResponse:
    """Consume ``turn`` fully and return one aggregate chat completion.

    Errors propagate unchanged; no partial result is ever returned.
    """
    try:
        result = await turn.collect()
    finally:
        await turn.aclose()
    return build_chat_completion(result, model)
