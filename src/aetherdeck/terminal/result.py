"""Result of a one-shot helper command."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ShellResult:
    """Outcome of running an external helper to completion.

    Attributes:
        command: The command line that was run.
        exit_code: Process exit code, or None if it was killed on timeout.
        output: Combined stdout/stderr text (may be truncated).
        truncated: True if output was cut at the output limit.
        status: "ok", "error" or "timeout".
        duration_ms: Wall time in milliseconds.
    """

    command: str
    exit_code: int | None
    output: str
    truncated: bool
    status: str
    duration_ms: float

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def __repr__(self) -> str:
        if self.success:
            return f"<ShellResult ok, {len(self.output)} chars>"
        return f"<ShellResult {self.status}, exit={self.exit_code}>"
