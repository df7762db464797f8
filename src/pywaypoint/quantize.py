"""Coordinate quantization.

Device fixes arrive with far more digits than the sensor can justify.
Every coordinate is rounded to :data:`~pywaypoint._constants.COORDINATE_PRECISION`
decimal places before it is stored or compared, which also suppresses
writes caused by sensor jitter alone.

Rounding is purely numeric: the float's shortest round-trip ``repr`` is fed
to :class:`decimal.Decimal` and rounded half away from zero, so the result
never depends on the host locale.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

from pywaypoint._constants import COORDINATE_PRECISION

_QUANTUM = Decimal(1).scaleb(-COORDINATE_PRECISION)

# Above this magnitude a float has no fractional digits at the kept precision.
_NO_FRACTION_THRESHOLD = 1e15


def quantize(value: float) -> float:
    """Round *value* to five decimal places, half away from zero.

    A result that rounds to zero is always ``+0.0``. NaN, infinities and
    magnitudes beyond ``1e15`` are returned unchanged.
    """
    value = float(value)
    if not math.isfinite(value) or abs(value) >= _NO_FRACTION_THRESHOLD:
        return value
    rounded = float(Decimal(repr(value)).quantize(_QUANTUM, rounding=ROUND_HALF_UP))
    if rounded == 0.0:
        return 0.0
    return rounded


def quantize_pair(latitude: float, longitude: float) -> tuple[float, float]:
    """Quantize a latitude/longitude pair."""
    return quantize(latitude), quantize(longitude)
