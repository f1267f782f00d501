"""Normalization helpers.

Centralizes defensive parsing and placeholder handling. Every helper is
total: malformed input yields ``None`` ("never reported"), never an exception.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any

_INT_LITERAL = re.compile(r"-?\d+")
_DECIMAL_LITERAL = re.compile(r"(\d+(?:\.\d+)?)%?")


def safe_number(value: Any) -> int | float | None:
    """Coerce numbers and numeric-looking strings; everything else is absent.

    Integral strings stay ``int`` so ``"60"`` and ``60`` compare and diff equal.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        result = float(text)
    except ValueError:
        return None
    return result if math.isfinite(result) else None


def safe_int(value: Any) -> int | None:
    parsed = safe_number(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value)
    return text if text.strip() else None


def safe_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def mapping_or_none(value: Any) -> dict[str, Any] | None:
    return dict(value) if isinstance(value, Mapping) else None


def mapping_items(value: Any) -> list[dict[str, Any]]:
    """Keep only the object entries of a list; anything else becomes ``[]``."""
    if not isinstance(value, list):
        return []
    return [dict(item) for item in value if isinstance(item, Mapping)]


def parse_signal_dbm(value: Any) -> int | None:
    """Parse a signal strength such as ``"-52dBm"`` via its first integer literal."""
    text = safe_str(value)
    if text is None:
        return None
    match = _INT_LITERAL.search(text)
    return int(match.group(0)) if match else None


def parse_progress_pct(value: Any) -> float | None:
    """Parse a progress value such as ``"45%"`` or ``"12.5"`` into a percentage."""
    text = safe_str(value)
    if text is None:
        return None
    match = _DECIMAL_LITERAL.search(text)
    return float(match.group(1)) if match else None


def number_or_text(value: Any) -> int | float | str | None:
    """Numeric when possible, otherwise the raw text (e.g. nozzle diameter)."""
    parsed = safe_number(value)
    if parsed is not None:
        return parsed
    return safe_str(value)


def is_meaningful(value: Any) -> bool:
    """Return True if the value should be included in a state patch."""
    if value is None:
        return False
    if value == "":
        return False
    return value != {}


def prune_patch(data: Any) -> Any:
    """Recursively drop absent values from a patch structure.

    - Dicts: remove keys with non-meaningful values; recurse into nested dicts.
    - Lists: kept whole (including empty lists, which explicitly clear a field);
      elements are pruned but never dropped.
    - Scalars: returned as-is.

    State merging assumes incoming patches are already pruned.
    """

    if isinstance(data, dict):
        pruned: dict[Any, Any] = {}
        for key, value in data.items():
            cleaned = prune_patch(value)
            if is_meaningful(cleaned):
                pruned[key] = cleaned
        return pruned

    if isinstance(data, list):
        return [prune_patch(item) for item in data]

    return data
