"""Local shell sessions and helper command execution.

- PtySession: the long-lived interactive shell behind a PTY
- CommandComposer / ClaudeLauncher: context-aware assistant launch
- SubprocessTerminalExecutor: one-shot helpers (screen capture, OCR)
"""

from aetherdeck.terminal.composer import ClaudeLauncher, CommandComposer, TaskInfo
from aetherdeck.terminal.events import (
    EventChannel,
    TerminalError,
    TerminalEvent,
    TerminalExit,
    TerminalOutput,
    TerminalReady,
    event_to_dict,
)
from aetherdeck.terminal.pty_session import PtySession, SessionState, default_shell
from aetherdeck.terminal.result import ShellResult
from aetherdeck.terminal.subprocess_executor import SubprocessTerminalExecutor

__all__ = [
    "ClaudeLauncher",
    "CommandComposer",
    "EventChannel",
    "PtySession",
    "SessionState",
    "ShellResult",
    "SubprocessTerminalExecutor",
    "TaskInfo",
    "TerminalError",
    "TerminalEvent",
    "TerminalExit",
    "TerminalOutput",
    "TerminalReady",
    "default_shell",
    "event_to_dict",
]
