"""Core exceptions for the bridge."""

from typing import Optional


class BridgeError(Exception):
    """Base exception for bridge errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class CredentialError(BridgeError):
    """Raised when no usable credential set is available."""
    pass


class TransportError(BridgeError):
    """Connectivity or HTTP failure talking to the upstream service."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnauthorizedError(TransportError):
    """The upstream rejected the credential set."""

    def __init__(self, message: str = "upstream rejected credentials", status_code: int = 401) -> None:
        super().__init__(message, status_code=status_code)


class NotFoundError(TransportError):
    """The upstream endpoint or conversation does not exist."""

    def __init__(self, message: str = "upstream resource not found") -> None:
        super().__init__(message, status_code=404)


class DecodeError(BridgeError):
    """Raised when a single upstream record cannot be decoded."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class StreamingError(BridgeError):
    """The upstream stream closed without producing any usable event."""

    def __init__(self, message: str = "upstream stream produced no usable events") -> None:
        super().__init__(message)


class ConfigurationError(BridgeError):
    """Raised when there's an issue with the configuration."""
    pass


class InvalidRequestError(BridgeError):
    """Raised when an incoming request is invalid."""

    def __init__(self, message: str, code: str = "invalid_request") -> None:
        super().__init__(message)
        self.code = code


class TurnInProgressError(BridgeError):
    """A second turn was started on a context before the first finished."""
    pass
