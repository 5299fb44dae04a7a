"""
Polymorphic field extraction for upstream payloads.

Upstream analyzers are inconsistent about field names, so every field is
described as an ordered list of candidates: dotted paths ("placeData.reviews")
or small callables. The first candidate yielding a non-empty value wins.
Falsy values (None, "", 0, empty containers) fall through to the next one.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeAlias

Candidate: TypeAlias = str | Callable[[Mapping[str, Any]], Any]


def get_path(data: Any, path: str) -> Any:
    """Walk a dotted path through nested mappings / lists. Missing → None."""
    current = data
    for key in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(current, list) and key.isdigit():
            index = int(key)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def first_value(data: Mapping[str, Any] | None, candidates: Iterable[Candidate]) -> Any:
    """Return the first truthy value among the candidates, or None."""
    if not data:
        return None
    for candidate in candidates:
        value = candidate(data) if callable(candidate) else get_path(data, candidate)
        if value and not isinstance(value, bool):
            return value
    return None


def first_number(data: Mapping[str, Any] | None, candidates: Iterable[Candidate]) -> float | None:
    """Like first_value but coerces to a number; non-numeric values are skipped."""
    if not data:
        return None
    for candidate in candidates:
        value = first_value(data, (candidate,))
        if value is None:
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def first_text(data: Mapping[str, Any] | None, candidates: Iterable[Candidate]) -> str | None:
    value = first_value(data, candidates)
    if value is None:
        return None
    return str(value).strip() or None


def collect_lists(data: Any, paths: Iterable[str]) -> list[dict[str, Any]]:
    """Merge every list found at the given paths, keeping only dict items."""
    merged: list[dict[str, Any]] = []
    for path in paths:
        value = get_path(data, path)
        if isinstance(value, list):
            merged.extend(item for item in value if isinstance(item, Mapping))
    return merged


def tail_segment(path: str) -> Candidate:
    """Candidate returning the last "/" segment of a URL-ish field (e.g. author URIs)."""

    def _extract(data: Mapping[str, Any]) -> str | None:
        value = get_path(data, path)
        if not isinstance(value, str) or not value:
            return None
        return value.rstrip("/").rsplit("/", 1)[-1] or None

    return _extract
