"""Configuration management for aetherdeck.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/aetherdeck/ or %PROGRAMDATA%)
- User-level config (~/.config/aetherdeck/ or %APPDATA%)
- Project-level config ($session_root/.aetherdeck/)
- Environment variable overrides (highest priority)

Example usage:
    from aetherdeck.config import load_config

    config = load_config(session_root="/path/to/project")
    print(config.remote.base_url)
"""

from aetherdeck.config.loader import (
    get_config,
    load_config,
    on_config_reload,
    reload_config,
    reset_config,
)
from aetherdeck.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_state_path,
    get_system_config_path,
    get_user_config_path,
)
from aetherdeck.config.schema import (
    Config,
    ContextCaptureConfig,
    DashboardConfig,
    LoggingConfig,
    RemoteConfig,
    TerminalConfig,
)
from aetherdeck.config.secrets import clear_secret_cache, fetch_secret

__all__ = [
    # Main API
    "Config",
    "load_config",
    "get_config",
    "reload_config",
    "reset_config",
    "on_config_reload",
    # Schema types
    "RemoteConfig",
    "TerminalConfig",
    "ContextCaptureConfig",
    "DashboardConfig",
    "LoggingConfig",
    # Secrets
    "fetch_secret",
    "clear_secret_cache",
    # Paths
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
    "get_state_path",
]
