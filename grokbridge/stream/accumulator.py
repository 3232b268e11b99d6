"""Classify stream events and accumulate them into one turn result."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .events import Final, SoftStop, StreamEvent, Token, TurnResult, Unparseable

logger = logging.getLogger("grokbridge")


class EventAccumulator:
    """Running state for one turn.

    ``add`` returns the event when it should be forwarded to the caller and
    None when it is dropped (soft stops, unparseable records, anything after
    the final event).
    """

    def __init__(self) -> None:
        self._parts: list[str] = []
        self.final: Optional[Final] = None
        self.token_count = 0
        self.dropped_count = 0

    @property
    def finished(self) -> bool:
        return self.final is not None

    @property
    def text(self) -> str:
        """The message as currently known."""
        if self.final is not None and self.final.message:
            return self.final.message
        return "".join(self._parts)

    @property
    def metadata(self) -> Optional[dict[str, Any]]:
        return self.final.metadata if self.final is not None else None

    def add(self, event: StreamEvent) -> Optional[StreamEvent]:
        if self.final is not None:
            logger.debug("Ignoring %s received after final event", type(event).__name__)
            return None

        if isinstance(event, (SoftStop, Unparseable)):
            self.dropped_count += 1
            return None

        if isinstance(event, Token):
            self._parts.append(event.text)
            self.token_count += 1
            return event

        if isinstance(event, Final):
            if event.message and self._parts:
                logger.debug(
                    "Final payload replaces %d accumulated tokens", self.token_count
                )
            self.final = event
            return event

        raise TypeError(f"unknown stream event: {event!r}")

    def result(self) -> TurnResult:
        """Build the turn result; only valid once the final event arrived."""
        if self.final is None:
            raise RuntimeError("turn has not finished")
        return TurnResult(
            message=self.text,
            sender="agent",
            response_id=self.final.response_id,
            conversation_id=self.final.conversation_id,
            metadata=self.final.metadata,
        )
