"""Minimal change patch between two canonical states."""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from typing import Any

_UNCHANGED = object()


def _is_record(value: Any) -> bool:
    return isinstance(value, Mapping)


def _is_array(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _leaves_equal(previous: Any, current: Any) -> bool:
    # Flags never compare equal to numbers.
    if isinstance(previous, bool) or isinstance(current, bool):
        return type(previous) is type(current) and previous == current
    return bool(previous == current)


def _arrays_equal(previous: Sequence[Any], current: Sequence[Any]) -> bool:
    if len(previous) != len(current):
        return False
    return all(_diff_value(a, b) is _UNCHANGED for a, b in zip(previous, current, strict=True))


def _diff_value(previous: Any, current: Any) -> Any:
    if _is_record(previous) and _is_record(current):
        patch = _diff_records(previous, current)
        return patch if patch else _UNCHANGED
    if _is_array(previous) and _is_array(current):
        return _UNCHANGED if _arrays_equal(previous, current) else copy.deepcopy(list(current))
    return _UNCHANGED if _leaves_equal(previous, current) else copy.deepcopy(current)


def _diff_records(previous: Mapping[Any, Any], current: Mapping[Any, Any]) -> dict[Any, Any]:
    patch: dict[Any, Any] = {}
    for key in previous.keys() | current.keys():
        if key not in current or current[key] is None:
            # Absence never clears a known value, so there is nothing to emit.
            continue
        if key not in previous:
            patch[key] = copy.deepcopy(current[key])
            continue
        changed = _diff_value(previous[key], current[key])
        if changed is not _UNCHANGED:
            patch[key] = changed
    return patch


def diff_state(
    previous: Mapping[Any, Any] | None,
    current: Mapping[Any, Any],
    *,
    exclude: frozenset[Any] = frozenset(),
) -> dict[Any, Any] | None:
    """Return the minimal patch turning *previous* into *current*, or ``None`` if unchanged.

    Top-level keys in *exclude* are ignored on both sides.
    """
    before = {k: v for k, v in (previous or {}).items() if k not in exclude}
    after = {k: v for k, v in current.items() if k not in exclude}
    patch = _diff_records(before, after)
    return patch or None
