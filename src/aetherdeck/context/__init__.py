"""Screen context for the coding assistant."""

from aetherdeck.context.analysis import UIAnalysis, analyze_ui_context, render_assistant_context
from aetherdeck.context.capture import CaptureError, ScreenContextCapture, UIContextResult

__all__ = [
    "CaptureError",
    "ScreenContextCapture",
    "UIAnalysis",
    "UIContextResult",
    "analyze_ui_context",
    "render_assistant_context",
]
