"""Typed models for pywaypoint."""

from pywaypoint.models.coordinate import Coordinate
from pywaypoint.models.location import PeerLocationRecord, StoredLocation
from pywaypoint.models.peer import Peer, Principal

__all__ = [
    "Coordinate",
    "Peer",
    "PeerLocationRecord",
    "Principal",
    "StoredLocation",
]
