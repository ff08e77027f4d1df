"""
Error types raised by the gateway.

Only failures a caller can act on are raised: exhausted network retries,
unrecovered throttling and server errors. Decode problems and "no data"
responses are absorbed by the fetch engine and never reach callers.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for all gateway errors."""


class InvalidRequestError(GatewayError):
    """The endpoint produced a URL that cannot be requested."""

    def __init__(self, url: str):
        super().__init__(f"Invalid URL: {url}")
        self.url = url


class ThrottledError(GatewayError):
    """The portal kept answering 429 after all retry attempts."""

    def __init__(self, attempts: int):
        super().__init__(f"Rate limit exceeded after {attempts} attempts")
        self.attempts = attempts


class ServerError(GatewayError):
    """The portal answered with a status the gateway does not absorb."""

    def __init__(self, status: int, message: str = ""):
        super().__init__(f"HTTP {status}: {message}" if message else f"HTTP {status}")
        self.status = status


class DecodeError(GatewayError):
    """A response row could not be decoded into its record type."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NetworkError(GatewayError):
    """Transient I/O failures persisted through every retry attempt."""


class CancelledRequestError(GatewayError):
    """The request was cancelled underneath the caller on every attempt."""
