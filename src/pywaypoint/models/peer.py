"""People taking part in presence sharing."""

from __future__ import annotations

from pydantic import Field, field_validator

from pywaypoint._constants import FORBIDDEN_KEY_CHARS
from pywaypoint.models._base import WaypointModel


def validate_user_id(value: str) -> str:
    """Strip *value* and check it is usable as a store key."""
    uid = value.strip()
    if not uid:
        raise ValueError("uid must be non-empty")
    bad = FORBIDDEN_KEY_CHARS.intersection(uid)
    if bad:
        raise ValueError(f"uid contains forbidden characters: {''.join(sorted(bad))}")
    return uid


class Peer(WaypointModel):
    """A friend or project member whose location the principal may view.

    Parameters
    ----------
    uid : str
        Unique user identifier; also the key of the peer's location record.
    display_name : str
        Name shown next to the peer's marker.
    photo_url : str
        Avatar reference copied into every location record.
    role : str or None
        Project role, when the peer comes from a project roster.
    """

    uid: str
    display_name: str = ""
    photo_url: str = Field(default="", alias="photourl")
    role: str | None = None

    @field_validator("uid")
    @classmethod
    def _check_uid(cls, value: str) -> str:
        return validate_user_id(value)


class Principal(WaypointModel):
    """The signed-in user whose own location is shared."""

    uid: str
    display_name: str = ""
    photo_url: str = Field(default="", alias="photourl")

    @field_validator("uid")
    @classmethod
    def _check_uid(cls, value: str) -> str:
        return validate_user_id(value)
