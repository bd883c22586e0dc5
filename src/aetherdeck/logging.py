"""Logging setup for aetherdeck.

Everything logs under the ``aetherdeck`` logger through get_logger(). Output
goes to the file named by ``logging.file`` (or AETHERDECK_LOG), otherwise to
stderr when it is an interactive console, otherwise nowhere.

Verbosity (--verbose / logging.verbose):
    0 = error, 1 = warning, 2 = info (default), 3 = verbose, 4 = trace
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aetherdeck.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("aetherdeck")

_initialized = False

_LEVEL_MAP = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_VERBOSITY_MAP = {
    0: logging.ERROR,
    1: logging.WARNING,
    2: logging.INFO,
    3: VERBOSE,
    4: TRACE,
}

# httpx logs every request at INFO; uvicorn logs every websocket handshake
_CHATTY_LIBRARIES = ("httpx", "httpcore", "uvicorn", "uvicorn.error", "uvicorn.access")


class _LowercaseLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Map a LoggingConfig to a numeric log level.

    ``verbose`` takes precedence over ``level``; unknown names fall back to INFO.
    """
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        return _VERBOSITY_MAP.get(config.verbose, TRACE)
    if config.level:
        return _LEVEL_MAP.get(config.level.upper(), logging.INFO)
    return logging.INFO


def _build_handler(config: LoggingConfig | None) -> logging.Handler | None:
    log_path = config.file if config and config.file else os.environ.get("AETHERDECK_LOG")
    if log_path:
        try:
            return logging.FileHandler(os.path.expanduser(log_path), mode="a", encoding="utf-8")
        except OSError as e:
            if not sys.stderr.isatty():
                return None
            print(f"[aetherdeck] Failed to open log file: {e}", file=sys.stderr)
    if sys.stderr.isatty():
        return logging.StreamHandler(sys.stderr)
    return None


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Install the aetherdeck handler. Only the first call has any effect."""
    global _initialized
    if _initialized:
        return
    _initialized = True

    level = resolve_level(config)
    logger.setLevel(level)

    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(level if level <= TRACE else max(level, logging.WARNING))

    handler = _build_handler(config)
    if handler is None:
        return
    handler.setLevel(level)
    handler.setFormatter(
        _LowercaseLevelFormatter(
            "%(asctime)s %(levelname)s [%(name)s]: %(message)s", datefmt="%H:%M:%S"
        )
    )
    logger.addHandler(handler)


def reset_logging() -> None:
    """Remove installed handlers so setup_logging() can run again (tests)."""
    global _initialized
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.NOTSET)
    _initialized = False


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger, or its child ``aetherdeck.<name>``."""
    if name:
        return logger.getChild(name)
    return logger
