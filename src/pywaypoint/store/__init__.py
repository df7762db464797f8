"""Location store backends."""

from pywaypoint.store.base import LocationStore
from pywaypoint.store.firebase import FirebaseLocationStore
from pywaypoint.store.memory import InMemoryLocationStore

__all__ = [
    "FirebaseLocationStore",
    "InMemoryLocationStore",
    "LocationStore",
]
