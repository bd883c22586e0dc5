"""Session identity and orchestration.

The orchestrator is not re-exported here: it depends on the remote client,
which itself depends on session identity. Import it from
``aetherdeck.session.orchestrator``.
"""

from aetherdeck.session.identity import (
    SESSION_KEY,
    SessionIdentity,
    StateStore,
    generate_session_id,
)

__all__ = [
    "SESSION_KEY",
    "SessionIdentity",
    "StateStore",
    "generate_session_id",
]
