"""Normalization helpers.

Centralizes defensive parsing of values read back from the location store.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1e11


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def epoch_ms_to_datetime(value: Any) -> datetime | None:
    """Convert an epoch timestamp (milliseconds **or** seconds) to a UTC datetime.

    - Empty/missing/unparseable -> None
    - <= 0 -> None
    - Values below ``1e11`` are taken as seconds.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    ts = safe_float(value)
    if ts is None or math.isinf(ts) or ts <= 0:
        return None
    if ts >= _MS_THRESHOLD:
        ts /= 1000.0
    return datetime.fromtimestamp(ts, tz=UTC)


def datetime_to_epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return round(value.timestamp() * 1000)
