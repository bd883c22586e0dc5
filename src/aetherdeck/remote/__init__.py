"""Resilient client for the remote Aether service."""

from aetherdeck.remote.client import RemoteServiceClient
from aetherdeck.remote.errors import RemoteConnectionError, RemoteError, RemoteTimeoutError
from aetherdeck.remote.executor import (
    AttemptState,
    PendingRequest,
    RequestExecutor,
    RequestOptions,
    RetryPolicy,
)
from aetherdeck.remote.results import ChatHistory, ChatResult, ConnectionStatus
from aetherdeck.remote.transport import HttpxTransport, Transport

__all__ = [
    "AttemptState",
    "ChatHistory",
    "ChatResult",
    "ConnectionStatus",
    "HttpxTransport",
    "PendingRequest",
    "RemoteConnectionError",
    "RemoteError",
    "RemoteServiceClient",
    "RemoteTimeoutError",
    "RequestExecutor",
    "RequestOptions",
    "RetryPolicy",
    "Transport",
]
