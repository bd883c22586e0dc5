"""Tests for the PTY-backed interactive shell session."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import AsyncIterator, Callable
from pathlib import Path

import pytest

from aetherdeck.terminal.events import (
    TerminalError,
    TerminalEvent,
    TerminalExit,
    TerminalOutput,
    TerminalReady,
)
from aetherdeck.terminal.pty_session import PtySession, SessionState, default_shell

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="PTY sessions need a POSIX host")


async def next_event(queue: asyncio.Queue[TerminalEvent], timeout: float = 5.0) -> TerminalEvent:
    return await asyncio.wait_for(queue.get(), timeout=timeout)


async def read_until(
    queue: asyncio.Queue[TerminalEvent],
    predicate: Callable[[str], bool],
    timeout: float = 5.0,
) -> str:
    """Accumulate output until ``predicate`` holds for the text so far."""
    text = ""

    async def collect() -> str:
        nonlocal text
        while not predicate(text):
            event = await queue.get()
            if isinstance(event, TerminalOutput):
                text += event.data
        return text

    return await asyncio.wait_for(collect(), timeout=timeout)


@pytest.fixture
async def session(tmp_path: Path) -> AsyncIterator[PtySession]:
    pty_session = PtySession(str(tmp_path), shell="/bin/sh", env={"PS1": "$ "})
    yield pty_session
    pty_session.kill()
    await asyncio.wait_for(pty_session.wait_closed(), timeout=5.0)


class TestDefaultShell:
    def test_prefers_shell_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("SHELL", "/bin/sh")
        assert default_shell() == ["/bin/sh"]

    def test_windows_uses_powershell(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        assert default_shell() == ["powershell.exe"]

    def test_missing_shell_env_falls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("SHELL", "/definitely/not/a/shell")
        assert default_shell()[0] in ("/bin/bash", "/bin/sh", "sh")


class TestPtySession:
    @pytest.mark.asyncio
    async def test_idle_write_is_noop(self, session: PtySession) -> None:
        queue = session.events.subscribe()
        session.write("echo nothing\n")
        session.resize(120, 40)

        assert session.state is SessionState.IDLE
        assert queue.empty()

    @pytest.mark.asyncio
    async def test_start_emits_ready(self, session: PtySession) -> None:
        queue = session.events.subscribe()
        session.start_session()

        assert session.running
        assert session.pid is not None
        assert isinstance(await next_event(queue), TerminalReady)

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, session: PtySession) -> None:
        queue = session.events.subscribe()
        session.start_session()
        pid = session.pid
        session.start_session()

        assert session.pid == pid
        assert isinstance(await next_event(queue), TerminalReady)
        assert not any(isinstance(e, TerminalReady) for e in _drain(queue))

    @pytest.mark.asyncio
    async def test_echo_round_trip(self, session: PtySession) -> None:
        queue = session.events.subscribe()
        session.start_session()
        session.write("echo $((6*7))\n")

        output = await read_until(queue, lambda text: "42" in text)
        assert "42" in output

    @pytest.mark.asyncio
    async def test_utf8_output(self, session: PtySession) -> None:
        queue = session.events.subscribe()
        session.start_session()
        session.write("printf 'caf\\303\\251 done\\n'\n")

        output = await read_until(queue, lambda text: "café done" in text)
        assert "café done" in output

    @pytest.mark.asyncio
    async def test_natural_exit_emits_once(self, session: PtySession) -> None:
        queue = session.events.subscribe()
        session.start_session()
        session.write("exit 3\n")

        exits: list[TerminalExit] = []
        while not exits:
            event = await next_event(queue)
            if isinstance(event, TerminalExit):
                exits.append(event)

        await session.wait_closed()
        await asyncio.sleep(0.05)
        exits.extend(e for e in _drain(queue) if isinstance(e, TerminalExit))

        assert [e.exit_code for e in exits] == [3]
        assert session.state is SessionState.EXITED
        assert not session.running

    @pytest.mark.asyncio
    async def test_exited_session_does_not_restart(self, session: PtySession) -> None:
        queue = session.events.subscribe()
        session.start_session()
        session.write("exit\n")
        while not isinstance(await next_event(queue), TerminalExit):
            pass

        session.start_session()
        session.write("echo ignored\n")

        event = await next_event(queue)
        assert isinstance(event, TerminalError)
        assert session.state is SessionState.EXITED

    @pytest.mark.asyncio
    async def test_resize(self, session: PtySession) -> None:
        queue = session.events.subscribe()
        session.start_session()
        session.resize(100, 40)
        session.resize(0, 10)

        assert (session.cols, session.rows) == (100, 40)
        session.write("stty size\n")
        output = await read_until(queue, lambda text: "40 100" in text)
        assert "40 100" in output

    @pytest.mark.asyncio
    async def test_kill_is_immediate(self, session: PtySession) -> None:
        session.start_session()
        assert session.running

        session.kill()
        assert not session.running
        assert session.state is SessionState.EXITED
        session.write("echo after kill\n")

    @pytest.mark.asyncio
    async def test_bad_cwd_reports_error(self, tmp_path: Path) -> None:
        session = PtySession(str(tmp_path / "missing"), shell="/bin/sh")
        queue = session.events.subscribe()
        session.start_session()

        event = await next_event(queue)
        assert isinstance(event, TerminalError)
        assert "Working directory not found" in event.message
        assert session.state is SessionState.IDLE

    @pytest.mark.asyncio
    async def test_missing_shell_reports_error(self, tmp_path: Path) -> None:
        session = PtySession(str(tmp_path), shell="/no/such/shell")
        queue = session.events.subscribe()
        session.start_session()

        event = await next_event(queue)
        assert isinstance(event, TerminalError)
        assert "Shell not found" in event.message
        assert not session.running


def _drain(queue: asyncio.Queue[TerminalEvent]) -> list[TerminalEvent]:
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events
