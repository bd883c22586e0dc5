"""Heuristic reading of OCR text from the dashboard window."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from aetherdeck.context.capture import UIContextResult

KEY_ELEMENTS = ("Trinity Motion", "Projects", "Analytics", "Create", "Status")

# First matching rule wins
_VIEW_RULES: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("dashboard", ("dashboard",), "User is on Dashboard - can help with project overview"),
    (
        "tasks",
        ("task", "todo"),
        "User is managing tasks - can help with task creation/management",
    ),
    ("chat", ("chat", "ai"), "User is in AI Chat - ready for conversation"),
    (
        "terminal",
        ("terminal", "claude"),
        "User is in Claude Terminal - ready for coding assistance",
    ),
)

_TASK_COUNT = re.compile(r"(\d+)\s*(?:task|todo)", re.IGNORECASE)

_EXCERPT_CHARS = 300


@dataclass
class UIAnalysis:
    current_view: str = "unknown"
    active_tasks: int = 0
    key_elements: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def analyze_ui_context(text: str) -> UIAnalysis:
    """Guess the current view, task count and visible landmarks from OCR text."""
    analysis = UIAnalysis()
    lower = text.lower()

    for view, keywords, suggestion in _VIEW_RULES:
        if any(keyword in lower for keyword in keywords):
            analysis.current_view = view
            analysis.suggestions.append(suggestion)
            break

    match = _TASK_COUNT.search(text)
    if match:
        analysis.active_tasks = int(match.group(1))
        analysis.suggestions.append(
            f"Found {analysis.active_tasks} tasks - can help prioritize or manage them"
        )

    analysis.key_elements = [name for name in KEY_ELEMENTS if name.lower() in lower]
    return analysis


def render_assistant_context(result: UIContextResult) -> str:
    """Render a capture result as the context text handed to the assistant."""
    if not result.success or result.analysis is None:
        return (
            "Claude Code Context: Running in the dashboard terminal. "
            f"Screenshot capture failed: {result.error}"
        )

    analysis = result.analysis
    lines = [
        "Claude Code Context for the dashboard:",
        f"Current View: {analysis.current_view}",
        f"Active Tasks: {analysis.active_tasks}",
        f"Key Elements: {', '.join(analysis.key_elements)}",
        f"Extracted UI Text (first {_EXCERPT_CHARS} chars):",
        f"{result.text[:_EXCERPT_CHARS]}...",
        "Suggestions:",
        *(f"- {suggestion}" for suggestion in analysis.suggestions),
        "Ready to help with: code analysis, task management, debugging, project assistance",
    ]
    return "\n".join(lines)
