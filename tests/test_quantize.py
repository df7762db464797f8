from __future__ import annotations

import math

from pywaypoint.quantize import quantize, quantize_pair


def test_quantize_rounds_to_five_decimals() -> None:
    assert quantize(1.123456789) == 1.12346
    assert quantize(37.7749295) == 37.77493
    assert quantize(-122.4194155) == -122.41942


def test_quantize_rounds_half_away_from_zero() -> None:
    assert quantize(1.000005) == 1.00001
    assert quantize(-1.000005) == -1.00001


def test_quantize_result_rounding_to_zero_is_positive_zero() -> None:
    result = quantize(-0.000001)
    assert result == 0.0
    assert math.copysign(1.0, result) == 1.0
    assert math.copysign(1.0, quantize(-0.0)) == 1.0


def test_quantize_is_total_on_special_values() -> None:
    assert math.isnan(quantize(float("nan")))
    assert quantize(float("inf")) == float("inf")
    assert quantize(float("-inf")) == float("-inf")
    assert quantize(1e16) == 1e16


def test_quantize_is_idempotent() -> None:
    once = quantize(52.4153987)
    assert quantize(once) == once


def test_quantize_pair() -> None:
    assert quantize_pair(52.4153987, -4.0829123) == (52.4154, -4.08291)
