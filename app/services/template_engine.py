"""Payload template rendering for hook deliveries.

A template is any JSON value. String leaves that consist entirely of a
placeholder such as ``"{{ content.id }}"`` are replaced with the value found
at that dot-separated path in the event data. Everything else is copied.
"""
import re
from typing import Any, Dict

PLACEHOLDER = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")

_MISSING = object()


def render(template: Any, context: Dict[str, Any]) -> Any:
    """
    Render a payload template against event data.

    Placeholders whose path cannot be resolved are left as-is.

    Args:
        template: JSON-like value (dict, list, str, number, bool or None)
        context: Event data used to resolve placeholders

    Returns:
        A new value with every resolvable placeholder substituted
    """
    if isinstance(template, dict):
        return {key: render(value, context) for key, value in template.items()}
    if isinstance(template, list):
        return [render(item, context) for item in template]
    if isinstance(template, str):
        return _render_string(template, context)
    return template


def _render_string(value: str, context: Dict[str, Any]) -> Any:
    match = PLACEHOLDER.fullmatch(value)
    if not match:
        return value

    resolved = resolve_path(context, match.group(1), default=_MISSING)
    if resolved is _MISSING:
        return value
    return resolved


def resolve_path(data: Any, path: str, default: Any = None) -> Any:
    """Walk ``path`` through nested dicts; returns ``default`` when absent."""
    if not path:
        return default

    current = data
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current
