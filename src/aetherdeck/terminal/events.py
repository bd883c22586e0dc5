"""Typed events produced by a terminal session.

A PtySession never calls back into its consumers directly; it pushes tagged
event values into an EventChannel. Consumers either hold a queue from
subscribe() (ordered, lossless) or register a one-shot listener with once().
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Union

from aetherdeck.logging import get_logger

log = get_logger("terminal.events")


@dataclass(frozen=True)
class TerminalReady:
    """The shell process has been spawned."""

    type: str = "ready"


@dataclass(frozen=True)
class TerminalOutput:
    """A chunk of decoded output, in the order the process produced it."""

    data: str
    type: str = "output"


@dataclass(frozen=True)
class TerminalExit:
    """The shell process ended on its own."""

    exit_code: int | None = None
    type: str = "exit"


@dataclass(frozen=True)
class TerminalError:
    """Spawn or I/O failure."""

    message: str
    type: str = "error"


TerminalEvent = Union[TerminalReady, TerminalOutput, TerminalExit, TerminalError]


def event_to_dict(event: TerminalEvent) -> dict[str, Any]:
    """Render an event as the JSON payload sent to UI clients."""
    if isinstance(event, TerminalOutput):
        return {"type": event.type, "data": event.data}
    if isinstance(event, TerminalExit):
        return {"type": event.type, "exit_code": event.exit_code}
    if isinstance(event, TerminalError):
        return {"type": event.type, "message": event.message}
    return {"type": event.type}


class EventChannel:
    """Fan-out of terminal events to queues and one-shot listeners."""

    def __init__(self) -> None:
        self._queues: list[asyncio.Queue[TerminalEvent]] = []
        self._once: list[tuple[type, Callable[[Any], None]]] = []

    def subscribe(self) -> asyncio.Queue[TerminalEvent]:
        """Return a new unbounded queue that receives every later event."""
        queue: asyncio.Queue[TerminalEvent] = asyncio.Queue()
        self._queues.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[TerminalEvent]) -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    def once(self, event_type: type, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Call ``callback`` with the next event of ``event_type``, then forget it.

        Returns:
            A function that removes the listener if it has not fired yet.
        """
        entry = (event_type, callback)
        self._once.append(entry)

        def cancel() -> None:
            if entry in self._once:
                self._once.remove(entry)

        return cancel

    def emit(self, event: TerminalEvent) -> None:
        fired = [entry for entry in self._once if isinstance(event, entry[0])]
        for entry in fired:
            self._once.remove(entry)

        for queue in list(self._queues):
            queue.put_nowait(event)

        for _event_type, callback in fired:
            try:
                callback(event)
            except Exception:
                log.exception("One-shot %s listener failed", event.type)

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)
