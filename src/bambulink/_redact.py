"""Masking of printer credentials in debug logs.

The LAN access code is also the MQTT password, and camera reports echo
streaming URLs that embed it. Payloads pass through :func:`redact_for_log`
before being logged at DEBUG.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_MASK = "<redacted>"
_MAX_DEPTH = 20

# Compared case-insensitively against mapping keys.
_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "passwd",
        "access_code",
        "accesscode",
        "token",
        "access_token",
        "authorization",
        "authkey",
        "rtsp_url",
        "ttcode",
    }
)


def _is_secret(key: Any) -> bool:
    return str(key).lower() in _SECRET_KEYS


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[:limit]}…<truncated>"


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Copy of a decoded payload with secrets masked and long strings clipped.

    G-code parameters can run to kilobytes, hence the *max_string* clip.
    """
    return _walk(value, max_string, 0)


def _walk(value: Any, limit: int, depth: int) -> Any:
    if depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _clip(value, limit)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, Mapping):
        return {str(k): _MASK if _is_secret(k) else _walk(v, limit, depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_walk(item, limit, depth + 1) for item in value]
    return repr(value)
