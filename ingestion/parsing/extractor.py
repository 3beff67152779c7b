"""Shape-tolerant field access over parsed feed nodes."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, Sequence, Union

# wrapper slots holding the text of a node; "value" is feedparser's content[] shape
TEXT_SLOTS = ("#text", "#cdata", "__cdata", "value")

Path = Union[str, Sequence[str]]


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def extract(node: Any, path: Path) -> str:
    """Return the text found at ``path`` or ``""``.

    A terminal value may be a plain string or a wrapper dict exposing a text
    or CDATA slot. Lists are unwrapped to their first element. Never raises.
    """
    keys = (path,) if isinstance(path, str) else path
    current = node
    for key in keys:
        current = _first(current)
        if not isinstance(current, Mapping):
            return ""
        current = current.get(key)
        if current is None:
            return ""

    current = _first(current)
    if isinstance(current, str):
        return current
    if isinstance(current, Mapping):
        for slot in TEXT_SLOTS:
            value = current.get(slot)
            if isinstance(value, str):
                return value
    return ""


def extract_first(node: Any, candidates: Iterable[Path]) -> str:
    """First non-blank :func:`extract` result across candidate paths."""
    for path in candidates:
        value = extract(node, path)
        if value.strip():
            return value
    return ""
