"""Tagged events decoded from the upstream line-delimited stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union


@dataclass(frozen=True)
class Token:
    """An incremental content fragment."""

    text: str
    response_id: Optional[str] = None


@dataclass(frozen=True)
class Final:
    """The terminal record of a turn.

    Attributes:
        message: Complete message text. Empty when the upstream only signalled
            completion and the token accumulation is authoritative.
        metadata: Side-channel data (web search results, referenced posts).
        response_id: Identifier of the agent response.
        conversation_id: Identifier of the conversation, when announced.
    """

    message: str = ""
    metadata: Optional[dict[str, Any]] = None
    response_id: Optional[str] = None
    conversation_id: Optional[str] = None


@dataclass(frozen=True)
class SoftStop:
    """Heartbeat: the upstream is still working but sent no content."""

    response_id: Optional[str] = None


@dataclass(frozen=True)
class Unparseable:
    """A record that could not be decoded; always skipped."""

    raw: str = ""
    reason: str = ""


StreamEvent = Union[Token, Final, SoftStop, Unparseable]


@dataclass
class TurnResult:
    """One completed conversation turn as seen by the caller."""

    message: str
    sender: str = "agent"
    response_id: Optional[str] = None
    conversation_id: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    warnings: list[str] = field(default_factory=list)


def is_usable(event: StreamEvent) -> bool:
    """Return True for events that carry content or terminate a turn."""
    return isinstance(event, (Token, Final))
