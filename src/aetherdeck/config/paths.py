"""Platform-aware configuration and state path resolution.

Handles file locations for:
- Windows: %PROGRAMDATA% (system), %APPDATA% (user)
- Unix: /etc/ (system), ~/.config/aetherdeck/ or ~/.aetherdeck/ (user)
- Project: $session_root/.aetherdeck/
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
STATE_FILENAME = "state.yaml"
APP_NAME = "aetherdeck"
SHORT_NAME = ".aetherdeck"


def get_system_config_path() -> Path | None:
    """Get system-level config path (the file may not exist)."""
    if sys.platform == "win32":
        program_data = os.environ.get("PROGRAMDATA")
        if program_data:
            return Path(program_data) / APP_NAME / CONFIG_FILENAME
    else:
        return Path("/etc") / APP_NAME / CONFIG_FILENAME
    return None


def get_user_dir() -> Path | None:
    """Get the per-user directory holding config and persisted state."""
    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME
        return None

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME

    home = Path.home()
    xdg_default = home / ".config"
    if xdg_default.exists():
        return xdg_default / APP_NAME

    return home / SHORT_NAME


def get_user_config_path() -> Path | None:
    """Get user-level config path (the file may not exist)."""
    user_dir = get_user_dir()
    if user_dir is None:
        return None
    return user_dir / CONFIG_FILENAME


def get_state_path() -> Path:
    """Get the path of the durable state file (session identifier etc.).

    AETHERDECK_STATE overrides the location.
    """
    override = os.environ.get("AETHERDECK_STATE")
    if override:
        return Path(override).expanduser()
    user_dir = get_user_dir()
    if user_dir is None:
        return Path.home() / SHORT_NAME / STATE_FILENAME
    return user_dir / STATE_FILENAME


def get_project_config_path(session_root: str) -> Path:
    """Get project-level config path (may not exist)."""
    return Path(session_root) / SHORT_NAME / CONFIG_FILENAME


def get_config_paths(session_root: str | None = None) -> list[Path]:
    """Get all config paths in priority order (lowest to highest).

    Args:
        session_root: Optional project directory for project-level config.

    Returns:
        List of config paths in order: system, user, project.
    """
    paths: list[Path] = []

    system_path = get_system_config_path()
    if system_path:
        paths.append(system_path)

    user_path = get_user_config_path()
    if user_path:
        paths.append(user_path)

    if session_root:
        paths.append(get_project_config_path(session_root))

    return paths
