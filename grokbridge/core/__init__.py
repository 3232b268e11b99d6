"""Core module initialization."""

from .credentials import Credentials, load_credentials, parse_cookie_string
from .exceptions import (
    BridgeError,
    ConfigurationError,
    CredentialError,
    DecodeError,
    InvalidRequestError,
    NotFoundError,
    StreamingError,
    TransportError,
    TurnInProgressError,
    UnauthorizedError,
)
from .registry import get_bridge, set_bridge
from .transport import UpstreamTransport, format_httpx_error, transport_from_config

__all__ = [
    "BridgeError",
    "ConfigurationError",
    "CredentialError",
    "Credentials",
    "DecodeError",
    "InvalidRequestError",
    "NotFoundError",
    "StreamingError",
    "TransportError",
    "TurnInProgressError",
    "UnauthorizedError",
    "UpstreamTransport",
    "format_httpx_error",
    "get_bridge",
    "load_credentials",
    "parse_cookie_string",
    "set_bridge",
    "transport_from_config",
]
