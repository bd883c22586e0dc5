"""Entry point for running the aetherdeck backend.

Usage:
    python -m aetherdeck [--host HOST] [--port N] [--cwd DIR] [--verbose N]

Serves the dashboard API and terminal WebSocket until interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence

from aetherdeck import __version__
from aetherdeck.config import Config, load_config
from aetherdeck.logging import get_logger, setup_logging

log = get_logger()


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aetherdeck",
        description="Control panel backend for the Aether service and the assistant terminal",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("--host", help="Interface to bind (default from config)")
    parser.add_argument("--port", type=int, help="Port to listen on (default from config)")
    parser.add_argument("--cwd", help="Working directory for the terminal and project config")
    parser.add_argument(
        "--verbose",
        type=int,
        choices=range(0, 5),
        metavar="N",
        help="Log verbosity 0-4 (errors only .. trace)",
    )
    return parser


def apply_arguments(config: Config, parsed: argparse.Namespace) -> Config:
    """Command-line flags take precedence over every config file."""
    if parsed.host:
        config.dashboard.host = parsed.host
    if parsed.port is not None:
        config.dashboard.port = parsed.port
    if parsed.cwd:
        config.terminal.cwd = parsed.cwd
    if parsed.verbose is not None:
        config.logging.verbose = parsed.verbose
    return config


async def serve(config: Config) -> None:
    """Run the dashboard until the server stops, then release the session layer."""
    from aetherdeck.dashboard import start_dashboard, stop_dashboard, wait_dashboard
    from aetherdeck.session.orchestrator import SessionOrchestrator

    orchestrator = SessionOrchestrator(config)
    try:
        await start_dashboard(orchestrator, config.dashboard.host, config.dashboard.port)
        await wait_dashboard()
    finally:
        await stop_dashboard()
        await orchestrator.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    parsed = create_parser().parse_args(argv)

    # Load config before logging so config.logging applies
    config = apply_arguments(load_config(session_root=parsed.cwd), parsed)
    setup_logging(config.logging)

    log.info("Starting aetherdeck %s (remote=%s)", __version__, config.remote.base_url)
    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
