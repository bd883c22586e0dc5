"""Dashboard web server lifecycle management."""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING, Any

from aetherdeck.logging import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI

    from aetherdeck.session.orchestrator import SessionOrchestrator

log = get_logger("dashboard.server")

# Server state
_server_task: asyncio.Task[None] | None = None
_server_port: int | None = None
_start_time: float | None = None
_app: FastAPI | None = None


def is_dashboard_running() -> bool:
    return _server_task is not None and not _server_task.done()


def get_dashboard_status() -> dict[str, Any]:
    connections = _app.state.connections.get_connection_count() if _app is not None else 0
    return {
        "running": is_dashboard_running(),
        "port": _server_port,
        "uptime": time.time() - _start_time if _start_time else 0,
        "connections": connections,
    }


async def start_dashboard(
    orchestrator: SessionOrchestrator,
    host: str = "127.0.0.1",
    port: int = 8765,
) -> FastAPI:
    """Start the dashboard web server in a background task.

    Args:
        orchestrator: The orchestrator every route talks to.
        host: Interface to bind.
        port: Port to listen on.

    Returns:
        The running FastAPI application.
    """
    global _server_task, _server_port, _start_time, _app

    if is_dashboard_running():
        raise RuntimeError(f"Dashboard already running on port {_server_port}")

    # Import here to keep startup light for non-server use
    import uvicorn

    from aetherdeck.dashboard.routes import create_app

    app = create_app(orchestrator)
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)

    _server_task = asyncio.create_task(server.serve())
    _server_port = port
    _start_time = time.time()
    _app = app

    log.info("Dashboard started on http://%s:%d", host, port)
    return app


async def wait_dashboard() -> None:
    """Block until the server task finishes."""
    if _server_task is not None:
        await _server_task


async def stop_dashboard() -> None:
    """Close websocket clients and stop the server."""
    global _server_task, _server_port, _start_time, _app

    if not _server_task:
        return

    if _app is not None:
        await _app.state.connections.close_all("Server shutting down")

    _server_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await _server_task

    log.info("Dashboard stopped (was on port %s)", _server_port)

    _server_task = None
    _server_port = None
    _start_time = None
    _app = None
