"""Stream adapter for rendering turn events as OpenAI chat-completion SSE.

Turn events:
    Token("Hel"), Token("lo"), Final("", metadata)

Chat completion records:
    data: {"choices":[{"delta":{"role":"assistant","content":"Hel"},"index":0}]}
    data: {"choices":[{"delta":{"content":"lo"},"index":0}]}
    data: {"choices":[{"delta":{},"finish_reason":"stop","index":0}],"metadata":{...}}
    data: [DONE]

On failure the stream ends with an error record followed by ``[DONE]``.
"""

import json
import logging
import time
import uuid
from typing import Any, AsyncIterable, AsyncIterator, Awaitable, Callable, Optional

from ..core.exceptions import BridgeError
from ..stream.events import Final, StreamEvent, Token
from ..types.chat import ChatCompletionChunk, Delta
from .chunks import (
    DONE_RECORD,
    DeltaChunk,
    DoneMarker,
    EgressChunk,
    ErrorChunk,
    FinalChunk,
    RoleChunk,
)
from .errors import error_message, error_status_and_type

logger = logging.getLogger("grokbridge")

DisconnectChecker = Callable[[], Awaitable[bool]]


def new_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex}"


class ChatCompletionStreamAdapter:
    """Converts a turn's event sequence into chat-completion chunks.

    This adapter maintains state during streaming to:
    - Declare the assistant role exactly once, on the first content chunk
    - Track the text already sent so a final payload never re-sends it
    - Guarantee a single terminating ``[DONE]`` record
    """

    def __init__(
        self,
        model: str,
        completion_id: Optional[str] = None,
        created: Optional[int] = None,
    ):
        """Initialize the stream adapter.

        Args:
            model: Model name echoed in every chunk
            completion_id: Chunk id (defaults to a fresh "chatcmpl-..." id)
            created: Unix timestamp (defaults to now)
        """
        self.model = model
        self.completion_id = completion_id or new_completion_id()
        self.created = created if created is not None else int(time.time())
        self.system_fingerprint = f"fp_{uuid.uuid4().hex[:12]}"

        self.role_sent = False
        self._streamed: list[str] = []
        self.finished = False
        self.done_sent = False
        self.cancelled = False
        self.error: Optional[str] = None

    @property
    def streamed_text(self) -> str:
        return "".join(self._streamed)

    def translate_event(self, event: StreamEvent) -> list[EgressChunk]:
        """Translate one event into the chunks of a single wire record.

        Args:
            event: Event forwarded by the turn

        Returns:
            Chunks to render together; empty when the event produces nothing
        """
        if self.finished:
            return []

        if isinstance(event, Token):
            if not event.text:
                return []
            return self._content(event.text)

        if isinstance(event, Final):
            return self._final(event)

        # Soft stops and unparseable records never reach the client
        return []

    def _content(self, fragment: str) -> list[EgressChunk]:
        chunks: list[EgressChunk] = []
        if not self.role_sent:
            chunks.append(RoleChunk())
            self.role_sent = True
        chunks.append(DeltaChunk(fragment))
        self._streamed.append(fragment)
        return chunks

    def _final(self, event: Final) -> list[EgressChunk]:
        chunks: list[EgressChunk] = []
        streamed = self.streamed_text
        message = event.message
        if message:
            if not streamed:
                chunks.extend(self._content(message))
            elif len(message) > len(streamed) and message.startswith(streamed):
                chunks.extend(self._content(message[len(streamed):]))
            elif message != streamed:
                logger.debug(
                    "Final message diverges from streamed text; not re-sending content"
                )
        if not self.role_sent:
            chunks.append(RoleChunk())
            self.role_sent = True
        chunks.append(FinalChunk("stop", event.metadata))
        self.finished = True
        return chunks

    async def adapt_events(
        self,
        events: AsyncIterable[StreamEvent],
        disconnect_checker: Optional[DisconnectChecker] = None,
    ) -> AsyncIterator[list[EgressChunk]]:
        """Yield one chunk group per wire record, ending with ``DoneMarker``.

        Args:
            events: The turn's event sequence
            disconnect_checker: Optional coroutine returning True once the
                client went away; the upstream turn is then closed and
                nothing more is emitted

        Yields:
            Lists of chunks, each rendered as one ``data:`` record
        """
        try:
            async for event in events:
                if disconnect_checker is not None and await disconnect_checker():
                    logger.info("Client disconnected, cancelling upstream turn")
                    self.cancelled = True
                    return
                group = self.translate_event(event)
                if group:
                    yield group
        except BridgeError as exc:
            logger.error("Streaming turn failed: %s", exc.message)
            yield [self._error_chunk(exc)]
        except Exception as exc:
            logger.exception("Unexpected error while streaming turn")
            yield [self._error_chunk(exc)]
        finally:
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()

        if not self.done_sent:
            self.done_sent = True
            yield [DoneMarker()]

    def _error_chunk(self, exc: BaseException) -> ErrorChunk:
        _, error_type = error_status_and_type(exc)
        self.error = error_message(exc)
        return ErrorChunk(self.error, error_type)

    async def adapt_stream(
        self,
        events: AsyncIterable[StreamEvent],
        disconnect_checker: Optional[DisconnectChecker] = None,
    ) -> AsyncIterator[bytes]:
        """Transform a turn's events into chat-completion SSE bytes.

        Args:
            events: The turn's event sequence
            disconnect_checker: See ``adapt_events``

        Yields:
            ``data: ...`` records as bytes
        """
        async for group in self.adapt_events(events, disconnect_checker):
            yield self.render(group)

    def render(self, group: list[EgressChunk]) -> bytes:
        """Render a chunk group as one SSE record.

        Args:
            group: Chunks returned by ``translate_event`` or ``adapt_events``

        Returns:
            SSE formatted bytes
        """
        if any(isinstance(chunk, DoneMarker) for chunk in group):
            return DONE_RECORD
        for chunk in group:
            if isinstance(chunk, ErrorChunk):
                return self._format_sse({"error": {"message": chunk.message, "type": chunk.type}})
        return self._format_sse(self.build_chunk(group))

    def build_chunk(self, group: list[EgressChunk]) -> ChatCompletionChunk:
        """Build the chat.completion.chunk object for a content/final group.

        Args:
            group: Role, delta and final chunks of one record

        Returns:
            The chunk object
        """
        delta: Delta = {}
        finish_reason: Optional[str] = None
        metadata: Optional[dict[str, Any]] = None
        for chunk in group:
            if isinstance(chunk, RoleChunk):
                delta["role"] = chunk.role
            elif isinstance(chunk, DeltaChunk):
                delta["content"] = delta.get("content", "") + chunk.fragment
            elif isinstance(chunk, FinalChunk):
                finish_reason = chunk.finish_reason
                metadata = chunk.metadata

        payload: ChatCompletionChunk = {
            "id": self.completion_id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model,
            "system_fingerprint": self.system_fingerprint,
            "choices": [
                {
                    "index": 0,
                    "delta": delta,
                    "logprobs": None,
                    "finish_reason": finish_reason,
                }
            ],
        }
        if metadata:
            payload["metadata"] = metadata
        return payload

    def _format_sse(self, data: Any) -> bytes:
        json_str = json.dumps(data, ensure_ascii=False)
        return f"data: {json_str}\n\n".encode("utf-8")


async def adapt_turn_to_chat_stream(
    model: str,
    events: AsyncIterable[StreamEvent],
    disconnect_checker: Optional[DisconnectChecker] = None,
) -> AsyncIterator[bytes]:
    """Convenience function to render a turn as chat-completion SSE.

    Args:
        model: Model name
        events: The turn's event sequence
        disconnect_checker: Optional client-disconnect check

    Yields:
        Chat completion SSE records
    """
    adapter = ChatCompletionStreamAdapter(model)
    async for record in adapter.adapt_stream(events, disconnect_checker):
        yield record
