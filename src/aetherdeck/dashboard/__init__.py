"""Dashboard web surface for aetherdeck.

Serves the REST API and the terminal WebSocket the desktop UI talks to.

Usage:
    python -m aetherdeck [--port N]
"""

from aetherdeck.dashboard.routes import create_app
from aetherdeck.dashboard.server import (
    get_dashboard_status,
    is_dashboard_running,
    start_dashboard,
    stop_dashboard,
    wait_dashboard,
)
from aetherdeck.dashboard.websocket import ConnectionManager

__all__ = [
    "ConnectionManager",
    "create_app",
    "get_dashboard_status",
    "is_dashboard_running",
    "start_dashboard",
    "stop_dashboard",
    "wait_dashboard",
]
