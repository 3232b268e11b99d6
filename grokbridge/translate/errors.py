"""Map bridge errors onto OpenAI-style error envelopes."""

from __future__ import annotations

from typing import Any

from ..core.exceptions import (
    BridgeError,
    CredentialError,
    DecodeError,
    InvalidRequestError,
    NotFoundError,
    StreamingError,
    TransportError,
    TurnInProgressError,
    UnauthorizedError,
)
from ..types.chat import ErrorBody

# Checked in order; subclasses before their bases
_ERROR_KINDS: list[tuple[type[BaseException], int, str]] = [
    (InvalidRequestError, 400, "invalid_request_error"),
    (TurnInProgressError, 409, "conflict_error"),
    (CredentialError, 401, "authentication_error"),
    (UnauthorizedError, 401, "authentication_error"),
    (NotFoundError, 404, "not_found_error"),
    (StreamingError, 502, "streaming_error"),
    (DecodeError, 502, "decode_error"),
    (TransportError, 502, "upstream_error"),
]


def error_status_and_type(exc: BaseException) -> tuple[int, str]:
    """Return the HTTP status and error type for ``exc``."""
    for kind, status, error_type in _ERROR_KINDS:
        if isinstance(exc, kind):
            return status, error_type
    return 500, "internal_error"


def error_message(exc: BaseException) -> str:
    if isinstance(exc, BridgeError):
        return exc.message
    return str(exc) or exc.__class__.__name__


def build_error_body(exc: BaseException) -> dict[str, Any]:
    """Build the ``{"error": {...}}`` envelope for ``exc``."""
    _, error_type = error_status_and_type(exc)
    body: ErrorBody = {
        "message": error_message(exc),
        "type": error_type,
    }
    code = getattr(exc, "code", None)
    if isinstance(exc, InvalidRequestError) and code:
        body["code"] = code
    return {"error": body}
