"""Errors raised by remote banking API clients."""

from typing import Optional


class RemoteAPIError(Exception):
    """Base class for failures talking to the remote banking API."""


class RemoteTransportError(RemoteAPIError):
    """Request never produced a usable response (timeout, connection reset)."""


class RemoteAuthorizationError(RemoteAPIError):
    """The API rejected the token (HTTP 401/403)."""


class RemoteRateLimitError(RemoteAPIError):
    """The API throttled the request (HTTP 429).

    Attributes:
        retry_after: Seconds the server asked us to wait, if it said so.
    """

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class RemoteServerError(RemoteTransportError):
    """Any other non-2xx response."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class RemoteDecodeError(RemoteTransportError):
    """Response body was not the JSON shape we expected."""
