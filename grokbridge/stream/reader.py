"""Decoder for the upstream's line-delimited JSON stream.

Every line of the response body is an independent JSON record. The shapes we
care about look like this (the continuation endpoint drops the ``response``
wrapper and puts the payload straight under ``result``):

    {"result": {"conversation": {"conversationId": "abc"}}}
    {"result": {"response": {"token": "Hel", "responseId": "r1"}}}
    {"result": {"response": {"token": "", "isSoftStop": true}}}
    {"result": {"response": {"modelResponse": {"message": "Hello", ...}}}}
    {"result": {"token": "lo", "responseId": "r2"}}
    {"error": {"code": 7, "message": "rate limited"}}

Anything else (user echo, title updates, final metadata before content) is
control data and produces no event.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterable, AsyncIterator, Optional, Union

from ..core.exceptions import DecodeError, StreamingError, TransportError
from .events import Final, SoftStop, StreamEvent, Token, Unparseable, is_usable

logger = logging.getLogger("grokbridge")

RAW_PREVIEW = 200


def parse_record(line: Union[str, bytes]) -> Optional[dict[str, Any]]:
    """Parse one body line into a JSON object.

    Returns None for blank lines.

    Raises:
        DecodeError: If the line is not a JSON object.
    """
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    text = line.strip()
    if not text:
        return None
    try:
        record = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"invalid JSON: {exc.msg}", raw=text) from exc
    if not isinstance(record, dict):
        raise DecodeError("record is not a JSON object", raw=text)
    return record


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        message = error.get("message") or str(error)
        code = error.get("code")
        if code is not None:
            return f"upstream stream error: {message} (code={code})"
        return f"upstream stream error: {message}"
    return f"upstream stream error: {error}"


def _extract_metadata(model_response: dict[str, Any]) -> Optional[dict[str, Any]]:
    metadata: dict[str, Any] = {}
    search_results = model_response.get("webSearchResults")
    if isinstance(search_results, list) and search_results:
        metadata["web_search_results"] = search_results
    posts = model_response.get("xposts") or model_response.get("xpostIds")
    if isinstance(posts, list) and posts:
        metadata["xposts"] = posts
    return metadata or None


class UpstreamStreamReader:
    """Stateful decoder for a single turn's stream.

    Tracks the conversation and response identifiers announced along the way
    so the terminal ``Final`` event always carries the latest ones.
    """

    def __init__(self) -> None:
        self.conversation_id: Optional[str] = None
        self.response_id: Optional[str] = None
        self.usable_events = 0
        self.skipped_records = 0
        self.finished = False

    def decode_line(self, line: Union[str, bytes]) -> Optional[StreamEvent]:
        """Decode a line into an event, or None for blank/control records.

        Raises:
            TransportError: If the record is an in-band upstream error.
        """
        try:
            record = parse_record(line)
        except DecodeError as exc:
            return Unparseable(raw=exc.raw[:RAW_PREVIEW], reason=exc.message)
        if record is None:
            return None

        error = record.get("error")
        if error:
            raise TransportError(_error_message(error))

        result = record.get("result")
        if not isinstance(result, dict):
            return None

        conversation = result.get("conversation")
        if isinstance(conversation, dict):
            conversation_id = conversation.get("conversationId")
            if isinstance(conversation_id, str) and conversation_id and not self.conversation_id:
                self.conversation_id = conversation_id

        payload = result.get("response")
        if not isinstance(payload, dict):
            payload = result
        return self._classify(payload)

    def _classify(self, payload: dict[str, Any]) -> Optional[StreamEvent]:
        response_id = payload.get("responseId")
        if isinstance(response_id, str) and response_id:
            self.response_id = response_id

        model_response = payload.get("modelResponse")
        if isinstance(model_response, dict):
            return self._final_from(model_response)

        if "token" in payload:
            token = payload.get("token")
            if not isinstance(token, str):
                return Unparseable(raw=repr(token)[:RAW_PREVIEW], reason="token is not a string")
            if not token:
                if payload.get("isSoftStop"):
                    return SoftStop(response_id=self.response_id)
                return None
            # A soft stop that still carries text is treated as content
            return Token(text=token, response_id=self.response_id)

        if payload.get("isDone") is True or ("finalMetadata" in payload and self.usable_events):
            return Final(response_id=self.response_id, conversation_id=self.conversation_id)

        return None

    def _final_from(self, model_response: dict[str, Any]) -> Final:
        response_id = model_response.get("responseId")
        if isinstance(response_id, str) and response_id:
            self.response_id = response_id
        message = model_response.get("message")
        return Final(
            message=message if isinstance(message, str) else "",
            metadata=_extract_metadata(model_response),
            response_id=self.response_id,
            conversation_id=self.conversation_id,
        )

    async def iter_events(self, lines: AsyncIterable[Union[str, bytes]]) -> AsyncIterator[StreamEvent]:
        """Yield events as lines arrive, stopping at the first ``Final``.

        Raises:
            StreamingError: If the stream ends without any usable event.
            TransportError: If the upstream reports an in-band error.
        """
        async for line in lines:
            event = self.decode_line(line)
            if event is None:
                continue
            if isinstance(event, Unparseable):
                self.skipped_records += 1
                logger.debug("Skipping unparseable upstream record: %s", event.reason)
            elif is_usable(event):
                self.usable_events += 1
            yield event
            if isinstance(event, Final):
                self.finished = True
                return

        if not self.usable_events:
            if self.skipped_records:
                raise StreamingError(
                    f"upstream stream produced no usable events "
                    f"({self.skipped_records} unparseable records skipped)"
                )
            raise StreamingError()

        logger.debug("Upstream stream closed without a completion record; closing turn")
        self.finished = True
        yield Final(response_id=self.response_id, conversation_id=self.conversation_id)


async def read_stream_events(lines: AsyncIterable[Union[str, bytes]]) -> AsyncIterator[StreamEvent]:
    """Decode ``lines`` into an ordered, lazy sequence of stream events."""
    reader = UpstreamStreamReader()
    async for event in reader.iter_events(lines):
        yield event
