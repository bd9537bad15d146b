"""Helpers for normalizing loosely-shaped payloads.

Joined rows and JSON payloads sometimes carry a related record either as a
single object or as a one-element list, depending on how the relationship
was declared.  ``first_or_none`` collapses both shapes to "the record, or
nothing" so callers never branch on the shape themselves.
"""

from __future__ import annotations

from typing import Any, TypeVar

_T = TypeVar("_T")


def first_or_none(value: _T | list[_T] | tuple[_T, ...] | None) -> _T | None:
    """Return the record held by *value*.

    - ``None`` -> ``None``
    - empty list/tuple -> ``None``
    - non-empty list/tuple -> its first element
    - anything else -> returned unchanged
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def as_list(value: Any) -> list[Any]:
    """Return *value* as a list; ``None`` and non-list values become ``[]``."""
    if isinstance(value, list):
        return value
    return []


def as_int(value: Any) -> int | None:
    """Coerce *value* to ``int``, returning ``None`` for blanks and junk.

    The archive reports years as ``0`` when unknown; callers decide whether
    ``0`` is meaningful, so it is passed through unchanged.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
