"""Root pytest configuration for all tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from aetherdeck.config import clear_secret_cache, reset_config
from aetherdeck.config.schema import RemoteConfig
from aetherdeck.logging import reset_logging
from aetherdeck.session.identity import SessionIdentity, StateStore

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(scope="session")
def anyio_backend():
    """Set anyio backend to asyncio."""
    return "asyncio"


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep user config, persisted state and secrets out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("AETHERDECK_STATE", str(tmp_path / "state.yaml"))
    for name in ("AETHER_URL", "AETHERDECK_LOG", "AETHER_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    clear_secret_cache()
    yield
    reset_config()
    clear_secret_cache()
    reset_logging()


@pytest.fixture
def state_store(tmp_path: Path) -> StateStore:
    return StateStore(tmp_path / "identity" / "state.yaml")


@pytest.fixture
def identity(state_store: StateStore) -> SessionIdentity:
    return SessionIdentity(state_store)


@pytest.fixture
def remote_config() -> RemoteConfig:
    return RemoteConfig(base_url="http://aether.test", api_key_env="")
