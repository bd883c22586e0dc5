"""Exceptions raised by the remote service layer."""

from __future__ import annotations

TIMEOUT_MESSAGE = "The remote service is taking too long to respond. Please try again."


class RemoteError(Exception):
    """A logical call to the remote service failed after all attempts.

    Attributes:
        endpoint: The request target (path relative to the base URL).
        attempts: Number of transport attempts made.
    """

    def __init__(self, message: str, *, endpoint: str, attempts: int) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.attempts = attempts


class RemoteTimeoutError(RemoteError):
    """The last attempt exceeded its timeout budget."""

    def __init__(self, *, endpoint: str, attempts: int) -> None:
        super().__init__(TIMEOUT_MESSAGE, endpoint=endpoint, attempts=attempts)


class RemoteConnectionError(RemoteError):
    """The last attempt failed for any reason other than a timeout."""

    def __init__(self, cause: str, *, endpoint: str, attempts: int) -> None:
        super().__init__(f"Connection failed: {cause}", endpoint=endpoint, attempts=attempts)
