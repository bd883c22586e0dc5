"""Run external helpers (screen capture, OCR) as asyncio subprocesses."""

from __future__ import annotations

import asyncio
import os
import shlex
import time

from aetherdeck.logging import get_logger
from aetherdeck.terminal.result import ShellResult

log = get_logger("terminal.subprocess")


class SubprocessTerminalExecutor:
    """Runs a command to completion and reports a ShellResult.

    Unlike PtySession this is for short non-interactive helpers: output is
    collected after the process ends and failures never raise.
    """

    def __init__(self, default_cwd: str = ".") -> None:
        self._default_cwd = default_cwd

    async def execute(
        self,
        command: str,
        args: list[str] | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: float | None = 30.0,
        output_limit: int = 50000,
    ) -> ShellResult:
        """Run ``command`` with ``args``.

        Args:
            command: Executable name or path.
            args: Arguments passed verbatim (no shell).
            cwd: Working directory. Uses default_cwd if None.
            env: Additional environment variables.
            timeout: Seconds before the process is killed. None waits forever.
            output_limit: Maximum characters of output kept.
        """
        start_time = time.perf_counter()
        cmd_list = [command, *(args or [])]
        full_command = shlex.join(cmd_list)

        process_env = os.environ.copy()
        if env:
            process_env.update(env)

        def elapsed() -> float:
            return (time.perf_counter() - start_time) * 1000

        def failed(exit_code: int, output: str) -> ShellResult:
            log.debug("%s failed: %s", full_command, output)
            return ShellResult(
                command=full_command,
                exit_code=exit_code,
                output=output,
                truncated=False,
                status="error",
                duration_ms=elapsed(),
            )

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd_list,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=cwd or self._default_cwd,
                env=process_env,
            )
        except FileNotFoundError:
            return failed(127, f"Command not found: {command}")
        except PermissionError:
            return failed(126, f"Permission denied: {command}")
        except OSError as e:
            return failed(1, f"OS error: {e}")

        try:
            stdout_data, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
            log.warning("%s timed out after %ss", full_command, timeout)
            return ShellResult(
                command=full_command,
                exit_code=None,
                output=f"Command timed out after {timeout}s",
                truncated=False,
                status="timeout",
                duration_ms=elapsed(),
            )

        output = stdout_data.decode("utf-8", errors="replace")
        truncated = len(output) > output_limit
        if truncated:
            output = output[:output_limit] + "\n... (output truncated)"

        exit_code = process.returncode
        return ShellResult(
            command=full_command,
            exit_code=exit_code,
            output=output,
            truncated=truncated,
            status="ok" if exit_code == 0 else "error",
            duration_ms=elapsed(),
        )
