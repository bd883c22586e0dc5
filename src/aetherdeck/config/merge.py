"""Layering of configuration dictionaries (system < user < project < env)."""

from __future__ import annotations

from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Overlay ``override`` on ``base`` without mutating either.

    Sections (dicts) merge key by key, so a project file can change
    ``remote.timeout`` and still inherit ``remote.base_url`` from the user
    file. Lists such as ``terminal.shell_args`` or ``context.ocr_command``
    are replaced whole. A null value (``port:`` with nothing after it) means
    "not set here" and leaves the lower layer's value alone.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        merged[key] = (
            deep_merge(current, value)
            if isinstance(current, dict) and isinstance(value, dict)
            else value
        )
    return merged


def merge_configs(*layers: dict[str, Any]) -> dict[str, Any]:
    """Merge layers lowest priority first; empty layers are skipped."""
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged = deep_merge(merged, layer)
    return merged
