"""Location records: the stored wire shape and the fetched peer view."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field, field_validator, model_validator

from pywaypoint._constants import WIRE_LAST_UPDATED, WIRE_LATITUDE, WIRE_LONGITUDE
from pywaypoint._normalize import datetime_to_epoch_ms, epoch_ms_to_datetime, safe_float
from pywaypoint.models._base import WaypointModel
from pywaypoint.models.coordinate import Coordinate
from pywaypoint.models.peer import Peer


class StoredLocation(WaypointModel):
    """A user's location record as kept in the shared store.

    The store holds ``{"lat": float, "long": float, "lastUpdated": epoch_ms}``
    under the user's ID. Missing or non-numeric coordinates fail validation.

    Parameters
    ----------
    coordinate : Coordinate
        Quantized position.
    last_updated : datetime or None
        When the owner last published the record.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    coordinate: Coordinate
    last_updated: datetime | None = Field(default=None, alias=WIRE_LAST_UPDATED)

    @model_validator(mode="before")
    @classmethod
    def _from_wire(cls, values: Any) -> Any:
        if not isinstance(values, dict) or "coordinate" in values:
            return values
        if WIRE_LATITUDE not in values or WIRE_LONGITUDE not in values:
            raise ValueError(f"record must carry {WIRE_LATITUDE!r} and {WIRE_LONGITUDE!r}")
        merged = {key: value for key, value in values.items() if key not in (WIRE_LATITUDE, WIRE_LONGITUDE)}
        merged["coordinate"] = {
            "latitude": _strict_number(values[WIRE_LATITUDE]),
            "longitude": _strict_number(values[WIRE_LONGITUDE]),
        }
        return merged

    @field_validator("last_updated", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> datetime | None:
        return epoch_ms_to_datetime(value)

    def to_wire(self) -> dict[str, Any]:
        """Serialize into the store layout."""
        payload: dict[str, Any] = {
            WIRE_LATITUDE: self.coordinate.latitude,
            WIRE_LONGITUDE: self.coordinate.longitude,
        }
        if self.last_updated is not None:
            payload[WIRE_LAST_UPDATED] = datetime_to_epoch_ms(self.last_updated)
        return payload


def _strict_number(value: Any) -> float:
    parsed = safe_float(value)
    if parsed is None:
        raise ValueError(f"coordinate is not numeric: {value!r}")
    return parsed


class PeerLocationRecord(WaypointModel):
    """A peer's position as shown on the map.

    Produced only by the fetcher and replaced wholesale on every refresh.

    Parameters
    ----------
    peer_id : str
        The peer's user ID.
    display_name : str
        Name shown next to the marker.
    avatar_ref : str
        Avatar URL or storage reference.
    coordinate : Coordinate
        Quantized position.
    last_updated : datetime or None
        When the peer last published the record.
    """

    peer_id: str
    display_name: str = ""
    avatar_ref: str = ""
    coordinate: Coordinate
    last_updated: datetime | None = None

    @classmethod
    def from_stored(cls, peer: Peer, stored: StoredLocation) -> PeerLocationRecord:
        return cls(
            peer_id=peer.uid,
            display_name=peer.display_name,
            avatar_ref=peer.photo_url,
            coordinate=stored.coordinate,
            last_updated=stored.last_updated,
        )

    @property
    def latitude(self) -> float:
        return self.coordinate.latitude

    @property
    def longitude(self) -> float:
        return self.coordinate.longitude
