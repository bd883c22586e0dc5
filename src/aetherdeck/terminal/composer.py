"""Context-aware launch command for the coding assistant.

CommandComposer turns optional task metadata and free-form context into a
single shell command line such as:

    claude --context "Current Task: Fix bug" --context "Priority: high" --context "urgent"

ClaudeLauncher injects that line into a PtySession, starting the session
first when needed.

Values are escaped for the target shell's double-quoted strings rather than
rejected, and line breaks are folded into spaces so the result is always a
single line.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from aetherdeck.logging import get_logger
from aetherdeck.terminal.events import TerminalReady
from aetherdeck.terminal.pty_session import PtySession

log = get_logger("terminal.composer")

_LINE_BREAKS = re.compile(r"[\r\n]+")
_POSIX_SPECIAL = re.compile(r'([\\"$`])')
_POWERSHELL_SPECIAL = re.compile(r'([`"$])')


@dataclass(frozen=True)
class TaskInfo:
    """The task the user is currently working on."""

    title: str
    priority: str | None = None

    @classmethod
    def from_value(cls, value: TaskInfo | Mapping[str, Any] | None) -> TaskInfo | None:
        """Accept a TaskInfo, a JSON-style mapping, or None."""
        if value is None or isinstance(value, TaskInfo):
            return value
        title = value.get("title")
        if not title:
            return None
        priority = value.get("priority")
        return cls(title=str(title), priority=str(priority) if priority else None)


def quote_posix(value: str) -> str:
    """Double-quote ``value`` for sh/bash/zsh."""
    return '"' + _POSIX_SPECIAL.sub(r"\\\1", value) + '"'


def quote_powershell(value: str) -> str:
    """Double-quote ``value`` for PowerShell (backtick escapes)."""
    return '"' + _POWERSHELL_SPECIAL.sub(r"`\1", value) + '"'


_QUOTERS = {
    "posix": quote_posix,
    "powershell": quote_powershell,
}


class CommandComposer:
    """Builds the assistant launch line from task and context metadata.

    Args:
        command: Invocation name of the assistant.
        context_flag: Flag that carries each context value.
        banner: Message echoed before the launch line.
        quoting: "posix" or "powershell".
    """

    def __init__(
        self,
        command: str = "claude",
        context_flag: str = "--context",
        banner: str = "Starting Claude Code in dashboard context...",
        quoting: str = "posix",
    ) -> None:
        if quoting not in _QUOTERS:
            raise ValueError(f"Unknown quoting style: {quoting}")
        self.command = command
        self.context_flag = context_flag
        self.banner = banner
        self._quote = _QUOTERS[quoting]

    def _flag(self, value: str) -> str:
        single_line = _LINE_BREAKS.sub(" ", value).strip()
        return f"{self.context_flag} {self._quote(single_line)}"

    def compose(
        self,
        task: TaskInfo | Mapping[str, Any] | None = None,
        context_data: str | None = None,
    ) -> str:
        """Build the single-line launch command."""
        parts = [self.command]
        info = TaskInfo.from_value(task)
        if info is not None:
            parts.append(self._flag(f"Current Task: {info.title}"))
            if info.priority:
                parts.append(self._flag(f"Priority: {info.priority}"))
        if context_data:
            parts.append(self._flag(context_data))
        return " ".join(parts)

    def banner_line(self) -> str:
        return f"echo {self._quote(self.banner)}"


class ClaudeLauncher:
    """Launches the assistant inside a PtySession."""

    def __init__(self, session: PtySession, composer: CommandComposer) -> None:
        self.session = session
        self.composer = composer

    def start_claude(
        self,
        task: TaskInfo | Mapping[str, Any] | None = None,
        context_data: str | None = None,
    ) -> None:
        """Start the assistant, starting the shell first if needed.

        When the session is not running yet, the launch line is injected from
        a one-shot TerminalReady listener registered before the spawn, so it
        is written exactly once and only after the shell is up. If the spawn
        fails the listener is dropped and nothing is written.
        """
        if self.session.running:
            self._inject(task, context_data)
            return

        cancel = self.session.events.once(
            TerminalReady, lambda _event: self._inject(task, context_data)
        )
        self.session.start_session()
        if not self.session.running:
            cancel()

    def _inject(
        self,
        task: TaskInfo | Mapping[str, Any] | None,
        context_data: str | None,
    ) -> None:
        command = self.composer.compose(task, context_data)
        log.info("Launching assistant: %s", command)
        self.session.write(f"{self.composer.banner_line()}\n")
        self.session.write(f"{command}\n")
