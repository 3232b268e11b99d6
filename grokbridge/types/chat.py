"""OpenAI-compatible chat completion wire types.

These describe what the bridge emits on its egress side:
- ``ChatCompletionChunk``: one ``data:`` record of a streaming response
- ``ChatCompletionResponse``: the single object of a non-streaming response
Both may carry a ``metadata`` field with the upstream's side-channel data
(web search results, referenced posts), which OpenAI clients ignore.
"""

from typing import Any
from typing_extensions import TypedDict


class ChatMessage(TypedDict, total=False):
    """A message in a chat conversation (OpenAI format).

    Attributes:
        role: "system", "user" or "assistant".
        content: Text content of the message.
        refusal: Always None; the upstream never reports refusals.
        annotations: Always empty.
    """
    role: str
    content: str | None
    refusal: str | None
    annotations: list[Any]


class Delta(TypedDict, total=False):
    """A streamed delta of a choice (OpenAI format).

    Attributes:
        role: "assistant" on the first content-bearing chunk only.
        content: Only the newly produced fragment, never the accumulated text.
    """
    role: str
    content: str


class Choice(TypedDict, total=False):
    """A choice in a chat completion response or chunk.

    Attributes:
        index: Always 0; the bridge produces a single choice.
        delta: The incremental content for streaming responses.
        message: The complete message for non-streaming responses.
        finish_reason: "stop" on the final chunk/response, otherwise None.
        logprobs: Always None.
    """
    index: int
    delta: Delta
    message: ChatMessage
    finish_reason: str | None
    logprobs: dict[str, Any] | None


class Usage(TypedDict, total=False):
    """Token usage; always zero because the upstream exposes no accounting."""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    prompt_tokens_details: dict[str, int]
    completion_tokens_details: dict[str, int]


class ChatCompletionChunk(TypedDict, total=False):
    """A streamed chunk of a chat completion response."""
    id: str
    object: str
    created: int
    model: str
    system_fingerprint: str
    choices: list[Choice]
    metadata: dict[str, Any] | None


class ChatCompletionResponse(TypedDict, total=False):
    """A complete (non-streaming) chat completion response."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Usage
    service_tier: str
    metadata: dict[str, Any] | None


class ErrorBody(TypedDict, total=False):
    """OpenAI-style error envelope body."""
    message: str
    type: str
    code: str | None
