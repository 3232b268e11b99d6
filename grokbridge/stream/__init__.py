"""Upstream stream decoding and accumulation."""

from .accumulator import EventAccumulator
from .events import Final, SoftStop, StreamEvent, Token, TurnResult, Unparseable, is_usable
from .reader import UpstreamStreamReader, parse_record, read_stream_events

__all__ = [
    "EventAccumulator",
    "Final",
    "SoftStop",
    "StreamEvent",
    "Token",
    "TurnResult",
    "Unparseable",
    "UpstreamStreamReader",
    "is_usable",
    "parse_record",
    "read_stream_events",
]
