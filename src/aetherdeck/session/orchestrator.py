"""Boundary adapter between the UI surface and the session layer.

SessionOrchestrator owns the single RemoteServiceClient, the current
PtySession and the screen context helper. UI surfaces (the dashboard REST
routes and websocket) only ever call into it; terminal events reach them
through registered async sinks fed by a relay task.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from aetherdeck.config.paths import get_state_path
from aetherdeck.config.schema import Config
from aetherdeck.context.analysis import render_assistant_context
from aetherdeck.context.capture import ScreenContextCapture, UIContextResult
from aetherdeck.logging import get_logger
from aetherdeck.remote.client import RemoteServiceClient
from aetherdeck.session.identity import SessionIdentity, StateStore
from aetherdeck.terminal.composer import ClaudeLauncher, CommandComposer, TaskInfo
from aetherdeck.terminal.events import TerminalEvent, TerminalExit, event_to_dict
from aetherdeck.terminal.pty_session import PtySession, SessionState
from aetherdeck.terminal.subprocess_executor import SubprocessTerminalExecutor

log = get_logger("orchestrator")

EventSink = Callable[[dict[str, Any]], Awaitable[None]]
SessionFactory = Callable[[], PtySession]


def _signal_number(name: str) -> int:
    sig = getattr(signal, name.upper(), None)
    if sig is None:
        log.warning("Unknown kill signal %r, using SIGTERM", name)
        return int(signal.SIGTERM)
    return int(sig)


class SessionOrchestrator:
    """Routes UI requests to the remote client and the terminal session.

    Args:
        config: Loaded configuration.
        client: Remote client. Built from config and the persisted identity if None.
        context_capture: Screen context helper. Built from config if None.
        session_factory: Creates a fresh PtySession. Built from config if None.
    """

    def __init__(
        self,
        config: Config,
        *,
        client: RemoteServiceClient | None = None,
        context_capture: ScreenContextCapture | None = None,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self.config = config
        if client is None:
            identity = SessionIdentity(StateStore(get_state_path()))
            client = RemoteServiceClient(config.remote, identity)
        self.client = client
        self.context_capture = context_capture or ScreenContextCapture(
            SubprocessTerminalExecutor(config.terminal.cwd or "."), config.context
        )
        self._session_factory = session_factory or self._create_session
        self.composer = CommandComposer(
            command=config.terminal.assistant_command,
            context_flag=config.terminal.context_flag,
            banner=config.terminal.banner,
            quoting="powershell" if sys.platform == "win32" else "posix",
        )

        self._session: PtySession | None = None
        self._relay_task: asyncio.Task[None] | None = None
        self._sinks: list[EventSink] = []

    def _create_session(self) -> PtySession:
        terminal = self.config.terminal
        return PtySession(
            terminal.cwd,
            shell=terminal.shell,
            shell_args=terminal.shell_args,
            cols=terminal.cols,
            rows=terminal.rows,
            term=terminal.term,
            kill_signal=_signal_number(terminal.kill_signal),
        )

    # -- event relay ---------------------------------------------------------

    def add_sink(self, sink: EventSink) -> Callable[[], None]:
        """Register an async consumer of terminal events; returns an unregister function."""
        self._sinks.append(sink)

        def remove() -> None:
            if sink in self._sinks:
                self._sinks.remove(sink)

        return remove

    async def _relay(self, session: PtySession, queue: asyncio.Queue[TerminalEvent]) -> None:
        try:
            while True:
                event = await queue.get()
                payload = event_to_dict(event)
                for sink in list(self._sinks):
                    try:
                        await sink(payload)
                    except Exception:
                        log.exception("Terminal event sink failed")
                if isinstance(event, TerminalExit):
                    return
        finally:
            session.events.unsubscribe(queue)

    async def _stop_relay(self) -> None:
        task, self._relay_task = self._relay_task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    @property
    def session(self) -> PtySession | None:
        return self._session

    def _ensure_session(self) -> PtySession:
        """Return the live session, replacing one that has exited."""
        session = self._session
        if session is not None and session.state is not SessionState.EXITED:
            return session

        if self._relay_task is not None and not self._relay_task.done():
            # The old session is gone; drop its relay without waiting for an exit event
            self._relay_task.cancel()
        session = self._session_factory()
        queue = session.events.subscribe()
        self._session = session
        self._relay_task = asyncio.create_task(self._relay(session, queue))
        return session

    # -- terminal boundary ---------------------------------------------------

    def start_terminal(self) -> bool:
        """Start the shell if needed. Returns True when it is running."""
        session = self._ensure_session()
        session.start_session()
        return session.running

    def write(self, data: str) -> None:
        if self._session is not None:
            self._session.write(data)

    def resize(self, cols: int, rows: int) -> None:
        if self._session is not None:
            self._session.resize(cols, rows)

    def kill(self) -> None:
        if self._session is not None:
            self._session.kill()

    async def capture_context(self) -> UIContextResult:
        return await self.context_capture.capture_and_analyze()

    async def start_claude(
        self,
        task: TaskInfo | Mapping[str, Any] | None = None,
        context_data: str | None = None,
        include_screen_context: bool = False,
    ) -> bool:
        """Launch the assistant in the terminal, starting the shell if needed.

        With ``include_screen_context`` the current screen is captured and its
        analysis is appended to ``context_data``.
        """
        if include_screen_context:
            screen = render_assistant_context(await self.capture_context())
            context_data = f"{context_data} {screen}" if context_data else screen

        session = self._ensure_session()
        ClaudeLauncher(session, self.composer).start_claude(task, context_data)
        return session.running

    # -- lifecycle -----------------------------------------------------------

    def status(self) -> dict[str, Any]:
        session = self._session
        return {
            "session_id": self.client.session_id,
            "base_url": self.client.base_url,
            "chat_pending": self.client.is_request_pending(),
            "terminal": {
                "state": session.state.value if session else SessionState.IDLE.value,
                "pid": session.pid if session else None,
                "cols": session.cols if session else self.config.terminal.cols,
                "rows": session.rows if session else self.config.terminal.rows,
            },
        }

    async def aclose(self) -> None:
        """Kill the terminal, stop the relay and close the remote client."""
        self.kill()
        await self._stop_relay()
        self._sinks.clear()
        await self.client.aclose()
        log.info("Orchestrator closed")
