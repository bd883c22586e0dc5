"""Tests for the configuration module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from aetherdeck.config import (
    Config,
    get_config,
    load_config,
    reset_config,
)
from aetherdeck.config.loader import dict_to_config, on_config_reload, reload_config
from aetherdeck.config.merge import deep_merge, merge_configs
from aetherdeck.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_state_path,
    get_system_config_path,
    get_user_config_path,
)
from aetherdeck.config.secrets import clear_secret_cache, fetch_secret


class TestDeepMerge:
    """Test the deep merge algorithm."""

    def test_simple_override(self) -> None:
        """Test that override values replace base values."""
        base = {"a": 1, "b": 2}
        override = {"b": 3, "c": 4}
        result = deep_merge(base, override)
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        """Test that nested dicts are recursively merged."""
        base = {"remote": {"base_url": "http://a", "timeout": 30}}
        override = {"remote": {"timeout": 5}}
        result = deep_merge(base, override)
        assert result["remote"]["base_url"] == "http://a"
        assert result["remote"]["timeout"] == 5

    def test_none_does_not_override(self) -> None:
        """Test that None values in override don't replace base values."""
        base = {"a": 1}
        override = {"a": None}
        result = deep_merge(base, override)
        assert result["a"] == 1

    def test_list_replaced_not_merged(self) -> None:
        """Test that lists are replaced, not concatenated."""
        base = {"items": [1, 2, 3]}
        override = {"items": [4, 5]}
        result = deep_merge(base, override)
        assert result["items"] == [4, 5]

    def test_deeply_nested(self) -> None:
        """Test deeply nested merging."""
        base = {"a": {"b": {"c": 1, "d": 2}}}
        override = {"a": {"b": {"c": 3}}}
        result = deep_merge(base, override)
        assert result["a"]["b"]["c"] == 3
        assert result["a"]["b"]["d"] == 2

    def test_merge_configs_multiple(self) -> None:
        """Test merging multiple configs in order."""
        config1 = {"a": 1, "b": 2}
        config2 = {"b": 3}
        config3 = {"c": 4}
        result = merge_configs(config1, config2, config3)
        assert result == {"a": 1, "b": 3, "c": 4}


class TestConfigPaths:
    """Test platform-aware path resolution."""

    def test_windows_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test system config path on Windows."""
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("PROGRAMDATA", "C:\\ProgramData")

        path = get_system_config_path()
        assert path is not None
        assert "ProgramData" in str(path)
        assert "aetherdeck" in str(path)
        assert "config.yaml" in str(path)

    def test_windows_user_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test user config path on Windows."""
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("APPDATA", "C:\\Users\\Test\\AppData\\Roaming")

        path = get_user_config_path()
        assert path is not None
        assert "AppData" in str(path)
        assert "aetherdeck" in str(path)

    def test_unix_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test system config path on Unix."""
        monkeypatch.setattr(sys, "platform", "linux")

        path = get_system_config_path()
        assert path == Path("/etc/aetherdeck/config.yaml")

    def test_unix_user_path_xdg(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test user config path respects XDG_CONFIG_HOME."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", "/home/test/.config-custom")

        path = get_user_config_path()
        assert path is not None
        assert ".config-custom" in str(path)

    def test_project_config_path(self) -> None:
        """Test project config path construction."""
        path = get_project_config_path("/home/user/myproject")
        assert path == Path("/home/user/myproject/.aetherdeck/config.yaml")

    def test_get_config_paths_order(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that config paths are in correct order."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)

        paths = get_config_paths(session_root="/project")
        assert len(paths) == 3
        # System should be first (use path parts for cross-platform check)
        assert "etc" in paths[0].parts
        # User should be second
        assert ".aetherdeck" in str(paths[1]) or ".config" in str(paths[1])
        # Project should be last
        assert "project" in paths[2].parts

    def test_state_path_override(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test that AETHERDECK_STATE relocates the state file."""
        monkeypatch.setenv("AETHERDECK_STATE", str(tmp_path / "custom.yaml"))
        assert get_state_path() == tmp_path / "custom.yaml"

    def test_state_path_beside_user_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that the state file defaults to the user config directory."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.delenv("AETHERDECK_STATE", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", "/home/test/.config")

        assert get_state_path() == Path("/home/test/.config/aetherdeck/state.yaml")


class TestConfigLoading:
    """Test configuration loading."""

    @pytest.fixture(autouse=True)
    def reset_global_config(self) -> None:
        """Reset global config cache before each test."""
        reset_config()

    @pytest.fixture
    def temp_config_dir(self, tmp_path: Path) -> Path:
        """Create a temporary config directory."""
        config_dir = tmp_path / "project" / ".aetherdeck"
        config_dir.mkdir(parents=True)
        return config_dir

    def test_load_yaml_config(self, temp_config_dir: Path) -> None:
        """Test loading a valid YAML config file."""
        config_file = temp_config_dir / "config.yaml"
        config_file.write_text(
            """
remote:
  base_url: http://aether.local:9000/
  timeout: 10
  max_attempts: 5
terminal:
  shell: /bin/zsh
  shell_args: [-l]
  assistant_command: claude-dev
dashboard:
  port: 9001
"""
        )
        config = load_config(session_root=str(temp_config_dir.parent))
        assert config.remote.base_url == "http://aether.local:9000"
        assert config.remote.timeout == 10.0
        assert config.remote.max_attempts == 5
        assert config.remote.chat_timeout == 90.0
        assert config.terminal.shell == "/bin/zsh"
        assert config.terminal.shell_args == ["-l"]
        assert config.terminal.assistant_command == "claude-dev"
        assert config.dashboard.port == 9001
        assert config.dashboard.host == "127.0.0.1"

    def test_context_commands(self, temp_config_dir: Path) -> None:
        """Test that capture commands load as argv lists."""
        (temp_config_dir / "config.yaml").write_text(
            """
context:
  capture_command: [grim, "{path}"]
  ocr_timeout: 5
"""
        )
        config = load_config(session_root=str(temp_config_dir.parent))
        assert config.context.capture_command == ["grim", "{path}"]
        assert config.context.ocr_command is None
        assert config.context.ocr_timeout == 5.0

    def test_project_overrides_user(self, temp_config_dir: Path, tmp_path: Path) -> None:
        """Test that project config wins over user config."""
        user_dir = tmp_path / "xdg" / "aetherdeck"
        user_dir.mkdir(parents=True)
        (user_dir / "config.yaml").write_text(
            "remote:\n  base_url: http://user\n  retry_delay: 2\n"
        )
        (temp_config_dir / "config.yaml").write_text("remote:\n  base_url: http://project\n")

        config = load_config(session_root=str(temp_config_dir.parent))
        assert config.remote.base_url == "http://project"
        assert config.remote.retry_delay == 2.0

    def test_env_overrides_config(
        self, temp_config_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that AETHER_URL beats config files."""
        (temp_config_dir / "config.yaml").write_text("remote:\n  base_url: http://file\n")
        monkeypatch.setenv("AETHER_URL", "http://env:8000")

        config = load_config(session_root=str(temp_config_dir.parent))
        assert config.remote.base_url == "http://env:8000"

    def test_invalid_yaml_uses_defaults(self, temp_config_dir: Path) -> None:
        """Test that invalid YAML falls back to defaults."""
        config_file = temp_config_dir / "config.yaml"
        config_file.write_text("invalid: yaml: :")

        config = load_config(session_root=str(temp_config_dir.parent))
        assert config.remote.base_url == "http://localhost:8000"

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        """Test that missing config files use defaults."""
        config = load_config(session_root=str(tmp_path))
        assert isinstance(config, Config)
        assert config.terminal.cols == 80
        assert config.terminal.rows == 24
        assert config.terminal.kill_signal == "SIGHUP"

    def test_extra_fields_preserved(self, temp_config_dir: Path) -> None:
        """Test that unknown config fields are preserved in extra."""
        config_file = temp_config_dir / "config.yaml"
        config_file.write_text(
            """
custom_field: custom_value
nested:
  field: value
"""
        )
        config = load_config(session_root=str(temp_config_dir.parent))
        assert "custom_field" in config.extra
        assert config.extra["custom_field"] == "custom_value"
        assert config.extra["nested"]["field"] == "value"

    def test_logging_verbose(self) -> None:
        """Test that logging.verbose is coerced to int."""
        config = dict_to_config({"logging": {"verbose": "3", "level": "debug"}})
        assert config.logging.verbose == 3
        assert config.logging.level == "debug"

    def test_non_mapping_section_ignored(self) -> None:
        """Test that a scalar where a section belongs falls back to defaults."""
        config = dict_to_config({"remote": "http://wrong"})
        assert config.remote.base_url == "http://localhost:8000"


class TestEnvironment:
    """Test environment variables and secrets."""

    @pytest.fixture(autouse=True)
    def reset_global_config(self) -> None:
        """Reset global config cache before each test."""
        reset_config()

    def test_api_key_via_fetch_secret(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that API keys never enter the config (fetched as secrets)."""
        monkeypatch.setenv("AETHER_API_KEY", "test-key")

        config = load_config()
        assert config.remote.api_key_env == "AETHER_API_KEY"
        assert "AETHER_API_KEY" not in config.extra

        clear_secret_cache()
        assert fetch_secret("AETHER_API_KEY") == "test-key"

    def test_secrets_file(self, tmp_path: Path) -> None:
        """Test that .env.secrets in the working directory is read."""
        (tmp_path / ".env.secrets").write_text("AETHER_API_KEY=from-file\n")
        clear_secret_cache()
        assert fetch_secret("AETHER_API_KEY") == "from-file"
        assert fetch_secret("MISSING_KEY", default="fallback") == "fallback"

    def test_aetherdeck_log_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test AETHERDECK_LOG env var is respected."""
        monkeypatch.setenv("AETHERDECK_LOG", "/tmp/test.log")

        config = load_config()
        assert config.logging.file == "/tmp/test.log"


class TestConfigCaching:
    """Test config caching behavior."""

    @pytest.fixture(autouse=True)
    def reset_global_config(self) -> None:
        """Reset global config cache before each test."""
        reset_config()

    def test_get_config_caches(self) -> None:
        """Test that get_config returns cached config."""
        config1 = get_config()
        config2 = get_config()
        assert config1 is config2

    def test_reset_clears_cache(self) -> None:
        """Test that reset_config clears the cache."""
        config1 = get_config()
        reset_config()
        config2 = get_config()
        assert config1 is not config2

    def test_project_config_not_cached(self, tmp_path: Path) -> None:
        """Test that project-specific config is not globally cached."""
        project_config = load_config(session_root=str(tmp_path))
        global_config = get_config()
        assert project_config is not global_config

    def test_reload_notifies_callbacks(self) -> None:
        """Test that reload_config calls registered callbacks until unregistered."""
        seen: list[Config] = []
        unregister = on_config_reload(seen.append)

        reloaded = reload_config()
        assert seen == [reloaded]

        unregister()
        reload_config()
        assert len(seen) == 1

    def test_reload_rereads_secrets(self, tmp_path: Path) -> None:
        """Test that reload_config picks up a changed .env.secrets file."""
        secrets_file = tmp_path / ".env.secrets"
        secrets_file.write_text("AETHER_API_KEY=old\n")
        assert fetch_secret("AETHER_API_KEY") == "old"

        secrets_file.write_text("AETHER_API_KEY=new\n")
        reload_config()
        assert fetch_secret("AETHER_API_KEY") == "new"
