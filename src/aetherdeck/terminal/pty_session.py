"""Long-lived interactive shell behind a pseudo-terminal.

PtySession exclusively owns one shell process. Everything else talks to it
through write()/resize()/kill() and reads it through the session's
EventChannel; nobody touches the PTY file descriptor directly.

Lifecycle:
    IDLE --start_session()--> RUNNING --process exits / kill()--> EXITED

EXITED is terminal: create a new PtySession to run another shell.

Platform Behavior:
    - Unix: $SHELL (falling back to /bin/bash, then /bin/sh) on a real PTY,
      read through the event loop's reader callbacks
    - Windows: powershell.exe on a ConPTY through pywinpty; its blocking
      reads run in the default executor
"""

from __future__ import annotations

import asyncio
import codecs
import os
import shutil
import signal
import struct
import sys
from enum import Enum
from pathlib import Path
from typing import Any

from aetherdeck.logging import get_logger
from aetherdeck.terminal.events import (
    EventChannel,
    TerminalError,
    TerminalExit,
    TerminalOutput,
    TerminalReady,
)

_WINDOWS = sys.platform == "win32"

if not _WINDOWS:
    import fcntl
    import termios

log = get_logger("terminal.pty")

_READ_SIZE = 65536
_IDLE_POLL = 0.02
_DEFAULT_KILL_SIGNAL = getattr(signal, "SIGHUP", signal.SIGTERM)


class SessionState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    EXITED = "exited"


def _set_winsize(fd: int, rows: int, cols: int) -> None:
    """Apply a terminal geometry to a PTY file descriptor."""
    if hasattr(termios, "tcsetwinsize"):
        termios.tcsetwinsize(fd, (rows, cols))
    else:
        fcntl.ioctl(fd, termios.TIOCSWINSZ, struct.pack("HHHH", rows, cols, 0, 0))


def default_shell() -> list[str]:
    """Pick the interactive shell for the host platform."""
    if sys.platform == "win32":
        return ["powershell.exe"]
    shell = os.environ.get("SHELL")
    if shell and os.path.exists(shell):
        return [shell]
    for candidate in ("/bin/bash", "/bin/sh"):
        if os.path.exists(candidate):
            return [candidate]
    return ["sh"]


class PtySession:
    """One interactive shell process exposed as an event stream.

    Args:
        cwd: Working directory for the shell. Defaults to the current directory.
        shell: Shell executable. If None, uses the platform default.
        shell_args: Extra arguments for the shell.
        cols: Initial terminal width.
        rows: Initial terminal height.
        term: Value of TERM in the shell environment.
        env: Additional environment variables.
        kill_signal: Signal sent to the shell's process group by kill() (POSIX only).
    """

    def __init__(
        self,
        cwd: str | None = None,
        *,
        shell: str | None = None,
        shell_args: tuple[str, ...] | list[str] = (),
        cols: int = 80,
        rows: int = 24,
        term: str = "xterm-256color",
        env: dict[str, str] | None = None,
        kill_signal: int = _DEFAULT_KILL_SIGNAL,
    ) -> None:
        self.cwd = cwd or os.getcwd()
        self.shell = shell
        self.shell_args = list(shell_args)
        self.cols = cols
        self.rows = rows
        self.term = term
        self.env = env
        self.kill_signal = kill_signal
        self.events = EventChannel()

        self._state = SessionState.IDLE
        self._pid: int | None = None
        self._master_fd: int | None = None
        self._process: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._exit_emitted = False
        self._closed = asyncio.Event()
        self._reap_task: asyncio.Task[None] | None = None
        self._reader_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is SessionState.RUNNING

    @property
    def pid(self) -> int | None:
        return self._pid

    def shell_command(self) -> list[str]:
        """Shell argv for this session."""
        if self.shell:
            return [self.shell, *self.shell_args]
        return [*default_shell(), *self.shell_args]

    def start_session(self) -> None:
        """Spawn the shell if it is not running yet.

        Emits TerminalReady on success. Spawn failures are reported as a
        TerminalError event and leave the session IDLE. Must be called from
        a running event loop.
        """
        if self._state is SessionState.RUNNING:
            return
        if self._state is SessionState.EXITED:
            self.events.emit(
                TerminalError("Terminal session has exited; start a new session")
            )
            return

        argv = self.shell_command()
        try:
            self._spawn(argv)
        except (ImportError, OSError) as e:
            log.error("Failed to start terminal session (%s): %s", " ".join(argv), e)
            self.events.emit(TerminalError(f"Failed to start terminal session: {e}"))
            return

        self._state = SessionState.RUNNING
        log.info("Terminal started: %s (pid=%s, cwd=%s)", " ".join(argv), self._pid, self.cwd)
        self.events.emit(TerminalReady())

    def _spawn(self, argv: list[str]) -> None:
        loop = asyncio.get_running_loop()

        if not Path(self.cwd).is_dir():
            raise NotADirectoryError(f"Working directory not found: {self.cwd}")
        executable = shutil.which(argv[0])
        if executable is None:
            raise FileNotFoundError(f"Shell not found: {argv[0]}")

        process_env = os.environ.copy()
        if self.env:
            process_env.update(self.env)
        process_env["TERM"] = self.term

        if _WINDOWS:
            process = self._open_conpty([executable, *argv[1:]], process_env)
            self._process = process
            self._pid = process.pid
            self._loop = loop
            self._reader_task = loop.create_task(self._pump_conpty(process))
        else:
            self._fork_pty(loop, executable, argv, process_env)

    def _open_conpty(self, argv: list[str], env: dict[str, str]) -> Any:
        """Spawn ``argv`` on a Windows pseudo console."""
        try:
            from winpty import PtyProcess
        except ImportError as e:
            raise ImportError(f"pywinpty is required for terminal sessions on Windows: {e}") from e

        try:
            return PtyProcess.spawn(
                argv, cwd=self.cwd, env=env, dimensions=(self.rows, self.cols)
            )
        except Exception as e:
            raise OSError(f"ConPTY spawn failed: {e}") from e

    async def _pump_conpty(self, process: Any) -> None:
        loop = asyncio.get_running_loop()
        while True:
            try:
                data = await loop.run_in_executor(None, process.read, _READ_SIZE)
            except (EOFError, OSError):
                break
            if not data:
                if not process.isalive():
                    break
                await asyncio.sleep(_IDLE_POLL)
                continue
            text = self._decoder.decode(data) if isinstance(data, bytes) else data
            if text:
                self.events.emit(TerminalOutput(text))

        tail = self._decoder.decode(b"", final=True)
        if tail:
            self.events.emit(TerminalOutput(tail))

        self._state = SessionState.EXITED
        self._process = None
        exit_code = None if process.isalive() else process.exitstatus
        try:
            process.close()
        except OSError as e:
            log.debug("ConPTY close failed: %s", e)
        log.info("Terminal exited (pid=%s, exit_code=%s)", self._pid, exit_code)
        self._emit_exit(exit_code)

    def _fork_pty(
        self,
        loop: asyncio.AbstractEventLoop,
        executable: str,
        argv: list[str],
        process_env: dict[str, str],
    ) -> None:
        import pty

        pid, master_fd = pty.fork()
        if pid == 0:
            # Child: stdio is the PTY slave and we lead a new session
            try:
                _set_winsize(0, self.rows, self.cols)
                os.chdir(self.cwd)
                os.execve(executable, argv, process_env)
            except BaseException:
                os._exit(127)

        self._pid = pid
        self._master_fd = master_fd
        self._loop = loop
        loop.add_reader(master_fd, self._on_readable)

    def _on_readable(self) -> None:
        fd = self._master_fd
        if fd is None:
            return
        try:
            data = os.read(fd, _READ_SIZE)
        except BlockingIOError:
            return
        except OSError:
            # Linux reports EIO once the slave side is closed
            data = b""

        if not data:
            self._handle_eof()
            return

        text = self._decoder.decode(data)
        if text:
            self.events.emit(TerminalOutput(text))

    def _handle_eof(self) -> None:
        fd = self._master_fd
        self._master_fd = None
        if fd is not None:
            if self._loop is not None:
                self._loop.remove_reader(fd)
            os.close(fd)

        tail = self._decoder.decode(b"", final=True)
        if tail:
            self.events.emit(TerminalOutput(tail))

        self._state = SessionState.EXITED
        if self._loop is not None and self._pid is not None:
            self._reap_task = self._loop.create_task(self._reap(self._pid))
        else:
            self._emit_exit(None)

    async def _reap(self, pid: int) -> None:
        loop = asyncio.get_running_loop()
        try:
            _, status = await loop.run_in_executor(None, os.waitpid, pid, 0)
            exit_code: int | None = os.waitstatus_to_exitcode(status)
        except ChildProcessError:
            exit_code = None
        log.info("Terminal exited (pid=%s, exit_code=%s)", pid, exit_code)
        self._emit_exit(exit_code)

    def _emit_exit(self, exit_code: int | None) -> None:
        if self._exit_emitted:
            return
        self._exit_emitted = True
        self._closed.set()
        self.events.emit(TerminalExit(exit_code))

    def write(self, data: str | bytes) -> None:
        """Send input to the shell. Dropped silently unless RUNNING."""
        if self._state is not SessionState.RUNNING:
            return
        if self._process is not None:
            text = data if isinstance(data, str) else data.decode("utf-8", errors="replace")
            try:
                self._process.write(text)
            except (EOFError, OSError) as e:
                log.warning("Terminal write failed: %s", e)
                self.events.emit(TerminalError(f"Terminal write failed: {e}"))
            return
        if self._master_fd is None:
            return
        payload = data.encode("utf-8") if isinstance(data, str) else data
        try:
            while payload:
                written = os.write(self._master_fd, payload)
                payload = payload[written:]
        except OSError as e:
            log.warning("Terminal write failed: %s", e)
            self.events.emit(TerminalError(f"Terminal write failed: {e}"))

    def resize(self, cols: int, rows: int) -> None:
        """Change the terminal geometry. Ignored unless RUNNING."""
        if self._state is not SessionState.RUNNING:
            return
        if cols <= 0 or rows <= 0:
            return
        try:
            if self._process is not None:
                self._process.setwinsize(rows, cols)
            elif self._master_fd is not None:
                _set_winsize(self._master_fd, rows, cols)
            else:
                return
        except OSError as e:
            log.warning("Terminal resize failed: %s", e)
            return
        self.cols, self.rows = cols, rows

    def kill(self) -> None:
        """Forcibly end the shell and clear the running flag immediately.

        A TerminalExit event may still follow once the PTY closes; callers
        should not wait for it.
        """
        if self._state is not SessionState.RUNNING:
            return
        self._state = SessionState.EXITED
        if self._process is not None:
            try:
                self._process.terminate(force=True)
            except OSError as e:
                log.warning("Terminal kill failed: %s", e)
        elif self._pid is not None:
            try:
                os.killpg(self._pid, self.kill_signal)
            except ProcessLookupError:
                pass
        log.info("Terminal killed (pid=%s)", self._pid)

    async def wait_closed(self) -> None:
        """Wait until a started shell has exited and its status is collected."""
        if self._state is SessionState.IDLE:
            return
        await self._closed.wait()
