"""Persistent session identifier.

The dashboard correlates its calls to the remote service through one opaque
session token per installation. The token survives restarts (it lives in a
small YAML state file) and is only replaced when explicitly cleared.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml
from filelock import FileLock

from aetherdeck.logging import get_logger

log = get_logger("identity")

SESSION_KEY = "aether_session_id"


class StateStore:
    """Durable key/value state kept in a YAML file.

    Updates are read-modify-write under a file lock, so two processes
    sharing one state file never lose each other's keys. Writes go to a
    temp file that then replaces the original. A missing or unreadable file
    reads as empty.
    """

    def __init__(self, path: Path | str, lock_timeout: float = 10) -> None:
        self._path = Path(path)
        self._lock_path = self._path.with_suffix(".lock")
        self._lock_timeout = lock_timeout

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (yaml.YAMLError, OSError) as e:
            log.warning("Ignoring unreadable state file %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        temp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)
            temp_path.replace(self._path)
        except Exception as e:
            if temp_path.exists():
                temp_path.unlink()
            raise RuntimeError(f"Failed to save state: {e}") from e

    def _update(self, modifier: Callable[[dict[str, Any]], bool]) -> dict[str, Any]:
        """Apply ``modifier`` under the lock; it returns True when data changed."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(self._lock_path, timeout=self._lock_timeout):
            data = self._read()
            if modifier(data):
                self._write(data)
            return data

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        def assign(data: dict[str, Any]) -> bool:
            data[key] = value
            return True

        self._update(assign)

    def setdefault(self, key: str, factory: Callable[[], Any]) -> Any:
        """Return the stored value, storing ``factory()`` first if the key is unset."""

        def fill(data: dict[str, Any]) -> bool:
            if data.get(key):
                return False
            data[key] = factory()
            return True

        return self._update(fill)[key]

    def delete(self, key: str) -> None:
        def remove(data: dict[str, Any]) -> bool:
            return data.pop(key, None) is not None

        self._update(remove)


def generate_session_id() -> str:
    """Generate an opaque token like ``session_1767225600000_3f9a2c1e``."""
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


class SessionIdentity:
    """Owns the installation's session token.

    There is always exactly one current token: it is loaded or created on
    construction, and clear() replaces it before returning.
    """

    def __init__(self, store: StateStore, key: str = SESSION_KEY) -> None:
        self._store = store
        self._key = key
        self._current = self.get_or_create()

    @property
    def current(self) -> str:
        """The current token."""
        return self._current

    def get_or_create(self) -> str:
        """Return the persisted token, creating and persisting one if absent."""
        stored = self._store.get(self._key)
        if stored:
            log.debug("Existing session restored: %s", stored)
        else:
            # Another process may create the token between get() and here
            stored = self._store.setdefault(self._key, generate_session_id)
            log.info("Session created: %s", stored)
        self._current = str(stored)
        return self._current

    def clear(self) -> str:
        """Drop the persisted token and immediately create a replacement."""
        self._store.delete(self._key)
        session_id = self.get_or_create()
        log.info("Session reset: %s", session_id)
        return session_id
