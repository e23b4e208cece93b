"""Errors raised while talking to the routing API.

Every failure is reported with its cause chained (`raise ... from exc`), so
the original transport or decoding error is never lost.
"""

from __future__ import annotations


class RoutingAPIError(Exception):
    """Base class for all client errors."""


class APIConnectionError(RoutingAPIError):
    """The connection could not be established or was lost."""


class APIResponseError(RoutingAPIError):
    """The routing API answered with a non-success status."""

    def __init__(self, status_code: int, message: str, *, name: str | None = None) -> None:
        self.status_code = status_code
        self.name = name
        self.message = message
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.name:
            return f"{self.name}: {self.message}"
        return f"HTTP {self.status_code}: {self.message}"


class AuthError(APIResponseError):
    """The bearer token was rejected (401/403)."""


class TokenFetchError(RoutingAPIError):
    """The OAuth server did not hand out a usable token."""


class StreamError(RoutingAPIError):
    """Terminal failure of an event stream."""


class StreamClosedError(StreamError, APIConnectionError):
    """The server ended the stream, or it was read after being closed."""


class StreamConnectionError(StreamError, APIConnectionError):
    """The transport failed while reading the stream."""


class FramingError(StreamError):
    """The stream is not valid event-stream framing."""


class DecodeError(StreamError):
    """An event payload does not decode into the expected route mapping."""
