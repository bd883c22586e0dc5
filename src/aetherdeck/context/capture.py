"""Screen capture + OCR through external helper commands.

Both steps shell out via SubprocessTerminalExecutor; nothing here links
against an imaging library. ``{path}`` in a configured command is replaced
with the screenshot location.

Platform defaults:
    - macOS: ``screencapture -x {path}``
    - elsewhere: ``import -window root {path}`` (ImageMagick)
    - OCR everywhere: ``tesseract {path} stdout``
"""

from __future__ import annotations

import sys
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from aetherdeck.config.schema import ContextCaptureConfig
from aetherdeck.context.analysis import UIAnalysis, analyze_ui_context
from aetherdeck.logging import get_logger
from aetherdeck.remote.results import utc_timestamp
from aetherdeck.terminal.subprocess_executor import SubprocessTerminalExecutor

log = get_logger("context.capture")

CAPTURE_FALLBACK = "Unable to capture screen - Claude Code running in the dashboard terminal"


def default_capture_command() -> list[str]:
    if sys.platform == "darwin":
        return ["screencapture", "-x", "{path}"]
    return ["import", "-window", "root", "{path}"]


def default_ocr_command() -> list[str]:
    return ["tesseract", "{path}", "stdout"]


@dataclass
class UIContextResult:
    success: bool
    timestamp: str
    text: str = ""
    analysis: UIAnalysis | None = None
    error: str | None = None
    fallback: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "timestamp": self.timestamp,
            "text": self.text,
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "error": self.error,
            "fallback": self.fallback,
        }


class CaptureError(Exception):
    """The screenshot helper failed or produced no file."""


class ScreenContextCapture:
    """Captures the screen, extracts its text and analyzes it."""

    def __init__(
        self,
        executor: SubprocessTerminalExecutor | None = None,
        config: ContextCaptureConfig | None = None,
        temp_dir: str | Path | None = None,
    ) -> None:
        self.executor = executor or SubprocessTerminalExecutor()
        self.config = config or ContextCaptureConfig()
        self.temp_dir = Path(temp_dir or Path(tempfile.gettempdir()) / "aetherdeck-screenshots")

    def _argv(self, template: list[str], path: Path) -> list[str]:
        return [part.replace("{path}", str(path)) for part in template]

    async def capture(self, path: Path) -> None:
        """Write a screenshot to ``path``; raises CaptureError on failure."""
        argv = self._argv(self.config.capture_command or default_capture_command(), path)
        result = await self.executor.execute(
            argv[0], argv[1:], timeout=self.config.capture_timeout
        )
        if not result.success:
            raise CaptureError(f"Screenshot failed: {result.output.strip() or result.status}")
        if not path.exists():
            raise CaptureError("Screenshot file not created")
        log.debug("Screenshot captured: %s", path)

    async def extract_text(self, path: Path) -> str:
        """OCR the image; falls back to a fixed description when OCR is unavailable."""
        argv = self._argv(self.config.ocr_command or default_ocr_command(), path)
        result = await self.executor.execute(argv[0], argv[1:], timeout=self.config.ocr_timeout)
        text = result.output.strip()
        if not result.success or not text:
            log.info("OCR not available (%s), using fallback text", result.status)
            return self.config.fallback_text
        return text

    async def capture_and_analyze(self) -> UIContextResult:
        """Never raises; a failed capture is reported with ``success=False``."""
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        path = self.temp_dir / f"dashboard-{int(time.time() * 1000)}.png"
        try:
            await self.capture(path)
            text = await self.extract_text(path)
        except (CaptureError, OSError) as e:
            log.warning("Screen context capture failed: %s", e)
            return UIContextResult(
                success=False,
                timestamp=utc_timestamp(),
                error=str(e),
                fallback=CAPTURE_FALLBACK,
            )
        finally:
            path.unlink(missing_ok=True)

        return UIContextResult(
            success=True,
            timestamp=utc_timestamp(),
            text=text,
            analysis=analyze_ui_context(text),
        )
