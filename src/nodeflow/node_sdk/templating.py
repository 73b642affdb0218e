"""
Template placeholders - ``{{dotted.path}}`` lookup against a data record.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, Tuple


PLACEHOLDER_PATTERN = re.compile(r"\{\{([^{}]+)\}\}")

_MISSING = object()


def lookup_path(data: Any, path: str) -> Tuple[bool, Any]:
    """
    Walk a dotted path into nested dicts (and lists, by index).

    Returns:
        (found, value) - found is False when any segment is absent
    """
    current = data
    for segment in path.strip().split("."):
        segment = segment.strip()
        if isinstance(current, dict):
            value = current.get(segment, _MISSING)
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            value = current[index] if index < len(current) else _MISSING
        else:
            value = _MISSING
        if value is _MISSING:
            return False, None
        current = value
    return True, current


def to_json(value: Any) -> str:
    """Compact JSON rendering of a value."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def to_display(value: Any) -> str:
    """Render a value for human-readable text: strings verbatim, everything else as JSON."""
    if isinstance(value, str):
        return value
    return to_json(value)


def render_template(
    template: str,
    data: Dict[str, Any],
    serialize: Callable[[Any], str] = to_display,
) -> str:
    """
    Replace each ``{{path}}`` in ``template`` with the serialized value found in ``data``.

    Placeholders whose path cannot be resolved are left untouched.
    """

    def _replace(match: re.Match) -> str:
        found, value = lookup_path(data, match.group(1))
        if not found:
            return match.group(0)
        return serialize(value)

    return PLACEHOLDER_PATTERN.sub(_replace, template)


__all__ = [
    "PLACEHOLDER_PATTERN",
    "lookup_path",
    "render_template",
    "to_display",
    "to_json",
]
