"""Structured results for soft-failing remote operations."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


def utc_timestamp() -> str:
    """Current time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class ChatResult:
    """Outcome of a chat send. Always returned, never raised.

    Attributes:
        success: True when the remote service answered.
        session_id: Session token the message was sent under.
        timestamp: Client-side completion time.
        response: Assistant reply text (success only).
        error: Human-readable failure (failure only).
        error_kind: "in_flight", "timeout", "connection" or "internal".
    """

    success: bool
    session_id: str
    timestamp: str
    response: str | None = None
    error: str | None = None
    error_kind: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class ChatHistory:
    """Chat history for the current session.

    ``available`` is False when the service could not be reached, which
    tells that case apart from an empty history.
    """

    messages: list[Any] = field(default_factory=list)
    available: bool = True
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.error is None:
            data.pop("error")
        return data


@dataclass
class ConnectionStatus:
    """Connectivity verdict from a health probe."""

    connected: bool
    session_id: str
    status: str | None = None
    version: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None}
