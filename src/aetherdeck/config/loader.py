"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Environment variable overrides
- Config caching with reload support
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from aetherdeck.config.merge import merge_configs
from aetherdeck.config.paths import get_config_paths
from aetherdeck.config.schema import (
    Config,
    ContextCaptureConfig,
    DashboardConfig,
    LoggingConfig,
    RemoteConfig,
    TerminalConfig,
)
from aetherdeck.config.secrets import clear_secret_cache

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("aetherdeck.config")

_cached_config: Config | None = None

_reload_callbacks: list[Callable[[Config], None]] = []

_KNOWN_SECTIONS = {"remote", "terminal", "context", "dashboard", "logging"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables (highest priority).

    API keys are NOT loaded here - use fetch_secret() for secrets.
    """
    overrides: dict[str, Any] = {}

    base_url = os.environ.get("AETHER_URL")
    if base_url:
        overrides.setdefault("remote", {})["base_url"] = base_url

    log_path = os.environ.get("AETHERDECK_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    return overrides


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    return value if isinstance(value, dict) else {}


def _argv(value: Any) -> list[str] | None:
    if isinstance(value, list) and value:
        return [str(v) for v in value]
    return None


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert merged dict to typed Config dataclass."""
    remote_data = _section(data, "remote")
    defaults = RemoteConfig()
    remote = RemoteConfig(
        base_url=str(remote_data.get("base_url", defaults.base_url)).rstrip("/"),
        timeout=float(remote_data.get("timeout", defaults.timeout)),
        chat_timeout=float(remote_data.get("chat_timeout", defaults.chat_timeout)),
        max_attempts=int(remote_data.get("max_attempts", defaults.max_attempts)),
        retry_delay=float(remote_data.get("retry_delay", defaults.retry_delay)),
        api_key_env=str(remote_data.get("api_key_env", defaults.api_key_env)),
    )

    term_data = _section(data, "terminal")
    term_defaults = TerminalConfig()
    shell_args = term_data.get("shell_args", [])
    terminal = TerminalConfig(
        cwd=term_data.get("cwd"),
        shell=term_data.get("shell"),
        shell_args=[str(a) for a in shell_args] if isinstance(shell_args, list) else [],
        cols=int(term_data.get("cols", term_defaults.cols)),
        rows=int(term_data.get("rows", term_defaults.rows)),
        term=str(term_data.get("term", term_defaults.term)),
        kill_signal=str(term_data.get("kill_signal", term_defaults.kill_signal)),
        assistant_command=str(
            term_data.get("assistant_command", term_defaults.assistant_command)
        ),
        context_flag=str(term_data.get("context_flag", term_defaults.context_flag)),
        banner=str(term_data.get("banner", term_defaults.banner)),
    )

    ctx_data = _section(data, "context")
    ctx_defaults = ContextCaptureConfig()
    context = ContextCaptureConfig(
        capture_command=_argv(ctx_data.get("capture_command")),
        ocr_command=_argv(ctx_data.get("ocr_command")),
        capture_timeout=float(ctx_data.get("capture_timeout", ctx_defaults.capture_timeout)),
        ocr_timeout=float(ctx_data.get("ocr_timeout", ctx_defaults.ocr_timeout)),
        fallback_text=str(ctx_data.get("fallback_text", ctx_defaults.fallback_text)),
    )

    dash_data = _section(data, "dashboard")
    dashboard = DashboardConfig(
        host=str(dash_data.get("host", DashboardConfig.host)),
        port=int(dash_data.get("port", DashboardConfig.port)),
    )

    log_data = _section(data, "logging")
    verbose = log_data.get("verbose")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=int(verbose) if verbose is not None else None,
        file=log_data.get("file"),
    )

    extra = {k: v for k, v in data.items() if k not in _KNOWN_SECTIONS}

    return Config(
        remote=remote,
        terminal=terminal,
        context=context,
        dashboard=dashboard,
        logging=logging_config,
        extra=extra,
    )


def load_config(session_root: str | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Project config ($session_root/.aetherdeck/config.yaml)
    3. User config (~/.config/aetherdeck/config.yaml or %APPDATA%)
    4. System config (/etc/aetherdeck/ or %PROGRAMDATA%)

    Args:
        session_root: Project directory for project-level config.
        reload: Force reload even if cached.

    Returns:
        Merged Config object.
    """
    global _cached_config

    if _cached_config is not None and not reload and session_root is None:
        return _cached_config

    configs: list[dict[str, Any]] = []

    for path in get_config_paths(session_root):
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            configs.append(config_data)

    env_config = env_overrides()
    if env_config:
        configs.append(env_config)

    config = dict_to_config(merge_configs(*configs))

    # Cache only global config (no session_root)
    if session_root is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it if needed."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config. Useful for testing or forcing a reload."""
    global _cached_config
    _cached_config = None


def reload_config(session_root: str | None = None) -> Config:
    """Reload config files and secrets, then notify callbacks."""
    clear_secret_cache()
    config = load_config(session_root=session_root, reload=True)

    for callback in _reload_callbacks:
        try:
            callback(config)
        except Exception as e:
            _log.warning("Config reload callback error: %s", e)

    return config


def on_config_reload(callback: Callable[[Config], None]) -> Callable[[], None]:
    """Register a callback to be called when config is reloaded.

    Returns:
        A function to unregister the callback.
    """
    _reload_callbacks.append(callback)

    def unregister() -> None:
        if callback in _reload_callbacks:
            _reload_callbacks.remove(callback)

    return unregister
