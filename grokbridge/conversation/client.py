"""Single entry point that drives one conversation turn end to end."""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Mapping, Optional

from ..core.exceptions import BridgeError, InvalidRequestError
from ..core.transport import UpstreamTransport, transport_from_config
from ..stream.accumulator import EventAccumulator
from ..stream.events import Final, StreamEvent, TurnResult
from ..stream.reader import read_stream_events
from .context import (
    DEFAULT_MODEL_NAME,
    ConversationContext,
    ConversationTracker,
    OutboundRequest,
    TurnOptions,
)

logger = logging.getLogger("grokbridge")


class Turn:
    """One in-flight turn.

    Iterate it (``async for event in turn``) to receive ``Token`` and
    ``Final`` events as they arrive, or ``await turn.collect()`` for the
    aggregate result. A turn can be consumed only once. Closing it before
    the final event cancels the upstream read and leaves the conversation
    context untouched.
    """

    def __init__(self, client: "ConversationClient", message: str, request: OutboundRequest) -> None:
        self._client = client
        self.message = message
        self.request = request
        self.warnings: list[str] = list(request.warnings)
        self.result: Optional[TurnResult] = None
        self._events: Optional[AsyncIterator[StreamEvent]] = None
        self._released = False

    @property
    def is_new(self) -> bool:
        return self.request.is_new

    @property
    def completed(self) -> bool:
        return self.result is not None

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        if self._events is not None or self._released:
            raise RuntimeError("a turn can only be consumed once")
        self._events = self._run()
        return self._events

    async def __aenter__(self) -> "Turn":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def collect(self) -> TurnResult:
        """Consume the whole turn and return the aggregate result."""
        async for _ in self:
            pass
        if self.result is None:
            # read_stream_events always ends with a Final or raises
            raise RuntimeError("turn ended without a final event")
        return self.result

    async def aclose(self) -> None:
        """Cancel the turn, releasing the upstream connection."""
        if self._events is not None:
            await self._events.aclose()
        self._release()

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        if self.result is None:
            self._client.tracker.abandon(self.request.generation)

    def _complete(self, accumulator: EventAccumulator) -> None:
        result = accumulator.result()
        result.warnings = list(self.warnings)
        self._client.tracker.record(result, self.request.generation)
        self.result = result
        logger.info(
            "Turn completed: %d chars, response_id=%s, conversation_id=%s",
            len(result.message),
            result.response_id or "-",
            self._client.context.conversation_id or "-",
        )

    async def _run(self) -> AsyncIterator[StreamEvent]:
        transport = self._client.transport
        accumulator = EventAccumulator()
        try:
            async with transport.open_stream(self.request.path, self.request.payload) as lines:
                async with aclosing(read_stream_events(lines)) as events:
                    async for event in events:
                        forwarded = accumulator.add(event)
                        if forwarded is None:
                            continue
                        if isinstance(forwarded, Final):
                            self._complete(accumulator)
                        yield forwarded
                        if accumulator.finished:
                            break
        except BridgeError as exc:
            logger.error("Turn failed: %s: %s", exc.__class__.__name__, exc.message)
            raise
        finally:
            if self.result is None and accumulator.token_count:
                logger.info("Turn closed before completion after %d tokens", accumulator.token_count)
            self._release()


class ConversationClient:
    """Conversation-aware client for the upstream chat service.

    Owns one ``ConversationContext``; use one client per conversation
    thread. Turns on the same client must not overlap.
    """

    def __init__(
        self,
        transport: UpstreamTransport,
        context: Optional[ConversationContext] = None,
        model_name: str = DEFAULT_MODEL_NAME,
    ) -> None:
        self.transport = transport
        self.tracker = ConversationTracker(context, model_name=model_name)

    @classmethod
    def from_config(
        cls, config: Mapping[str, Any], context: Optional[ConversationContext] = None
    ) -> "ConversationClient":
        """Build a client from the loaded configuration mapping."""
        upstream = config.get("upstream") or {}
        model_name = str(upstream.get("model_name") or DEFAULT_MODEL_NAME)
        return cls(transport_from_config(config), context=context, model_name=model_name)

    @property
    def context(self) -> ConversationContext:
        return self.tracker.context

    def send_turn(self, message: str, options: Optional[TurnOptions] = None) -> Turn:
        """Start a turn; the new or continue shape follows the context state.

        Raises:
            InvalidRequestError: If ``message`` is empty.
            TurnInProgressError: If the previous turn is still in flight.
        """
        if not isinstance(message, str) or not message.strip():
            raise InvalidRequestError("message must not be empty", code="empty_message")
        is_new, request = self.tracker.begin_or_continue(message, options)
        logger.info(
            "Sending %s turn (%d chars) to %s",
            "new" if is_new else "continue",
            len(message),
            request.path,
        )
        return Turn(self, message, request)

    async def stream_turn(
        self, message: str, options: Optional[TurnOptions] = None
    ) -> AsyncIterator[StreamEvent]:
        """Send a turn and yield its events; the turn is closed when iteration stops."""
        async with self.send_turn(message, options) as turn:
            async for event in turn:
                yield event

    async def ask(self, message: str, options: Optional[TurnOptions] = None) -> TurnResult:
        """Send a turn and wait for the aggregate result."""
        return await self.send_turn(message, options).collect()

    def reset(self) -> None:
        self.tracker.reset()
