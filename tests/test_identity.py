"""Tests for the persisted session identity."""

from __future__ import annotations

import re
from pathlib import Path

import yaml

from aetherdeck.session.identity import (
    SESSION_KEY,
    SessionIdentity,
    StateStore,
    generate_session_id,
)


class TestStateStore:
    def test_missing_file_reads_empty(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "nope" / "state.yaml")
        assert store.get("anything") is None

    def test_set_get_delete(self, state_store: StateStore) -> None:
        state_store.set("a", "1")
        state_store.set("b", "2")
        assert state_store.get("a") == "1"

        state_store.delete("a")
        assert state_store.get("a") is None
        assert state_store.get("b") == "2"

    def test_writes_yaml_without_temp_leftovers(self, state_store: StateStore) -> None:
        state_store.set("key", "value")
        assert yaml.safe_load(state_store.path.read_text()) == {"key": "value"}
        assert not state_store.path.with_name(state_store.path.name + ".tmp").exists()

    def test_invalid_yaml_reads_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "state.yaml"
        path.write_text("invalid: yaml: :")
        assert StateStore(path).get("key") is None


class TestSessionIdentity:
    def test_token_format(self) -> None:
        assert re.fullmatch(r"session_\d+_[0-9a-f]{8}", generate_session_id())

    def test_created_and_persisted_on_construction(self, state_store: StateStore) -> None:
        identity = SessionIdentity(state_store)
        assert identity.current
        assert state_store.get(SESSION_KEY) == identity.current

    def test_get_or_create_is_stable(self, identity: SessionIdentity) -> None:
        first = identity.get_or_create()
        second = identity.get_or_create()
        assert first == second == identity.current

    def test_survives_restart(self, state_store: StateStore) -> None:
        first = SessionIdentity(state_store).current
        reopened = SessionIdentity(StateStore(state_store.path))
        assert reopened.current == first

    def test_clear_replaces_token(self, identity: SessionIdentity, state_store: StateStore) -> None:
        before = identity.get_or_create()
        replacement = identity.clear()

        assert replacement != before
        assert identity.current == replacement
        assert identity.get_or_create() == replacement
        assert state_store.get(SESSION_KEY) == replacement

    def test_custom_key(self, state_store: StateStore) -> None:
        identity = SessionIdentity(state_store, key="other")
        assert state_store.get("other") == identity.current
        assert state_store.get(SESSION_KEY) is None


class TestSharedStateFile:
    def test_setdefault_keeps_existing_value(self, state_store: StateStore) -> None:
        state_store.set("token", "first")
        assert state_store.setdefault("token", lambda: "second") == "first"

    def test_setdefault_fills_missing_value(self, state_store: StateStore) -> None:
        assert state_store.setdefault("token", lambda: "fresh") == "fresh"
        assert state_store.get("token") == "fresh"

    def test_two_stores_share_one_token(self, state_store: StateStore) -> None:
        other = StateStore(state_store.path)
        state_store.set("unrelated", "kept")

        first = SessionIdentity(state_store).current
        second = SessionIdentity(other).current

        assert first == second
        assert other.get("unrelated") == "kept"
