"""Quantized geographic coordinate."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from pywaypoint.models._base import WaypointModel
from pywaypoint.quantize import quantize


class Coordinate(WaypointModel):
    """A WGS84 position, quantized to five decimal places on construction.

    Because quantization happens in validation, two coordinates compare
    equal exactly when their quantized values match.

    Parameters
    ----------
    latitude : float
        Latitude in degrees, within [-90, 90].
    longitude : float
        Longitude in degrees, within [-180, 180].
    """

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _quantize(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("coordinate must be a number")
        if isinstance(value, (int, float)):
            return quantize(float(value))
        if isinstance(value, str):
            try:
                return quantize(float(value))
            except ValueError as exc:
                raise ValueError(f"coordinate is not numeric: {value!r}") from exc
        return value

    @classmethod
    def of(cls, latitude: float, longitude: float) -> Coordinate:
        return cls(latitude=latitude, longitude=longitude)

    def as_tuple(self) -> tuple[float, float]:
        return self.latitude, self.longitude
