"""Configuration schema dataclasses for aetherdeck.

Defines the structure of configuration at all levels (system, user, project).
All fields have defaults so partial configs merge together cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RemoteConfig:
    """Connection settings for the remote Aether service.

    Example config.yaml:
        remote:
          base_url: http://localhost:8000
          timeout: 30
          chat_timeout: 90
          max_attempts: 3
          retry_delay: 1.0
    """

    base_url: str = "http://localhost:8000"
    timeout: float = 30.0  # Seconds per attempt for ordinary calls
    chat_timeout: float = 90.0  # Seconds per attempt for chat (slow generative backend)
    max_attempts: int = 3
    retry_delay: float = 1.0  # Base delay; attempt k waits retry_delay * k
    api_key_env: str = "AETHER_API_KEY"  # Secret name for an optional bearer token


@dataclass
class TerminalConfig:
    """Interactive shell (PTY) settings."""

    cwd: str | None = None  # Defaults to the current directory
    shell: str | None = None  # Defaults to the platform shell
    shell_args: list[str] = field(default_factory=list)
    cols: int = 80
    rows: int = 24
    term: str = "xterm-256color"
    kill_signal: str = "SIGHUP"
    assistant_command: str = "claude"
    context_flag: str = "--context"
    banner: str = "Starting Claude Code in dashboard context..."


@dataclass
class ContextCaptureConfig:
    """Screen context capture settings.

    Commands are argv lists; ``{path}`` is replaced with the screenshot path.
    None selects the platform default.
    """

    capture_command: list[str] | None = None
    ocr_command: list[str] | None = None
    capture_timeout: float = 10.0
    ocr_timeout: float = 30.0
    fallback_text: str = "Dashboard interface - current view visible"


@dataclass
class DashboardConfig:
    """Dashboard web server settings."""

    host: str = "127.0.0.1"
    port: int = 8765


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, takes precedence over level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    remote: RemoteConfig = field(default_factory=RemoteConfig)
    terminal: TerminalConfig = field(default_factory=TerminalConfig)
    context: ContextCaptureConfig = field(default_factory=ContextCaptureConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Unknown top-level sections are preserved here
    extra: dict[str, Any] = field(default_factory=dict)
