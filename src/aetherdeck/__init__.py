"""aetherdeck: resilient session layer between a desktop control panel, the Aether service and a local assistant terminal."""

__version__ = "0.1.0"

# Public API
from aetherdeck.config import Config, get_config, load_config
from aetherdeck.remote import (
    ChatHistory,
    ChatResult,
    ConnectionStatus,
    RemoteConnectionError,
    RemoteError,
    RemoteServiceClient,
    RemoteTimeoutError,
    RequestExecutor,
    RetryPolicy,
)
from aetherdeck.session import SessionIdentity, StateStore
from aetherdeck.terminal import (
    ClaudeLauncher,
    CommandComposer,
    PtySession,
    SessionState,
    TaskInfo,
)

__all__ = [
    # Config
    "Config",
    "load_config",
    "get_config",
    # Remote service
    "RemoteServiceClient",
    "RequestExecutor",
    "RetryPolicy",
    "ChatResult",
    "ChatHistory",
    "ConnectionStatus",
    "RemoteError",
    "RemoteTimeoutError",
    "RemoteConnectionError",
    # Session
    "SessionIdentity",
    "StateStore",
    # Terminal
    "PtySession",
    "SessionState",
    "CommandComposer",
    "ClaudeLauncher",
    "TaskInfo",
    "__version__",
]
