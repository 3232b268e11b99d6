"""Egress chunks for the chat-completion streaming protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True)
class RoleChunk:
    role: str = "assistant"


@dataclass(frozen=True)
class DeltaChunk:
    fragment: str


@dataclass(frozen=True)
class FinalChunk:
    finish_reason: str = "stop"
    metadata: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class ErrorChunk:
    message: str
    type: str = "upstream_error"


@dataclass(frozen=True)
class DoneMarker:
    pass


EgressChunk = Union[RoleChunk, DeltaChunk, FinalChunk, ErrorChunk, DoneMarker]

DONE_RECORD = b"data: [DONE]\n\n"
