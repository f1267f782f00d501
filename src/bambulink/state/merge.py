"""Structural merge of partial canonical state.

Semantics:

- ``None`` (absent) values in a patch never clear known values.
- Nested mappings recurse; any other value (arrays included) replaces the
  previous value wholesale. Clearing a list takes an explicit ``[]``.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any


def _is_record(value: Any) -> bool:
    return isinstance(value, Mapping)


def merge_deep(
    base: Mapping[Any, Any],
    patch: Mapping[Any, Any],
    *,
    replace: frozenset[str] = frozenset(),
) -> dict[Any, Any]:
    """Return a new mapping with *patch* applied on top of *base*.

    Neither input is mutated; values taken from *patch* are deep-copied.
    Top-level keys in *replace* are taken from *patch* wholesale, even when
    both sides are mappings.
    """
    out: dict[Any, Any] = dict(base)
    for key, value in patch.items():
        if value is None:
            continue
        current = out.get(key)
        if key not in replace and _is_record(value) and _is_record(current):
            out[key] = merge_deep(current, value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def merge_state(
    previous: Mapping[Any, Any] | None,
    patch: Mapping[Any, Any] | None,
    *,
    replace: frozenset[str] = frozenset(),
) -> dict[Any, Any]:
    """Apply a partial state to the previous canonical state.

    With no previous state the patch becomes the full state.
    """
    if not patch:
        return copy.deepcopy(dict(previous)) if previous is not None else {}
    if previous is None:
        return merge_deep({}, patch, replace=replace)
    return merge_deep(previous, patch, replace=replace)
