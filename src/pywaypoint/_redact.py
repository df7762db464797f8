"""Helpers for safe debug logging.

pywaypoint handles auth tokens and, above all, people's positions. This
module produces copies of payloads that are safe to emit in DEBUG logs:
secrets are masked and coordinates are coarsened to roughly 1 km unless the
caller explicitly keeps them.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "auth",
        "authorization",
        "token",
        "idtoken",
        "auth_token",
        "refreshtoken",
        "accesstoken",
        "secret",
        "email",
        "phonenumber",
    }
)

_COORDINATE_KEYS: frozenset[str] = frozenset({"lat", "long", "lng", "latitude", "longitude"})

# Two decimal places is about 1.1 km at the equator.
_COARSE_DIGITS = 2


def redact_for_log(value: Any, *, keep_coordinates: bool = False, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            lowered = key.lower()
            if lowered in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            elif lowered in _COORDINATE_KEYS and not keep_coordinates:
                redacted[key] = _coarsen(v)
            else:
                redacted[key] = redact_for_log(
                    v, keep_coordinates=keep_coordinates, max_string=max_string, _depth=_depth + 1
                )
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [
            redact_for_log(v, keep_coordinates=keep_coordinates, max_string=max_string, _depth=_depth + 1)
            for v in value
        ]

    # Fallback: represent unknown objects without dumping internals.
    return repr(value)


def _coarsen(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return "<redacted>"
    return round(float(value), _COARSE_DIGITS)
