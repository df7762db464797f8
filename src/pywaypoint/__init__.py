"""pywaypoint - Async presence and location sharing between friends and project members."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pywaypoint")
except PackageNotFoundError:
    __version__ = "0+local"
from pywaypoint.config import WaypointConfig
from pywaypoint.consent import ConsentController
from pywaypoint.exceptions import (
    ErrorKind,
    LocationStoreError,
    MalformedRecordError,
    PermissionDeniedError,
    StoreUnavailableError,
    WaypointConfigError,
    WaypointError,
    WaypointSessionError,
)
from pywaypoint.fetcher import FetchResult, FetchStatus, PeerLocationFetcher
from pywaypoint.models import Coordinate, Peer, PeerLocationRecord, Principal, StoredLocation
from pywaypoint.preferences import InMemoryPreferenceStore, JsonFilePreferenceStore, PreferenceStore
from pywaypoint.providers import DeviceLocationProvider
from pywaypoint.publisher import LocationPublisher
from pywaypoint.quantize import quantize, quantize_pair
from pywaypoint.session import PresenceSession
from pywaypoint.state.policy import SharingPhase
from pywaypoint.state.presence import PresenceCell, PresenceState, Scope, Subscription
from pywaypoint.store import FirebaseLocationStore, InMemoryLocationStore, LocationStore
from pywaypoint.sync import LocationSyncEngine
from pywaypoint.throttle import WriteThrottle

__all__ = [
    "__version__",
    "ConsentController",
    "Coordinate",
    "DeviceLocationProvider",
    "ErrorKind",
    "FetchResult",
    "FetchStatus",
    "FirebaseLocationStore",
    "InMemoryLocationStore",
    "InMemoryPreferenceStore",
    "JsonFilePreferenceStore",
    "LocationPublisher",
    "LocationStore",
    "LocationStoreError",
    "LocationSyncEngine",
    "MalformedRecordError",
    "Peer",
    "PeerLocationFetcher",
    "PeerLocationRecord",
    "PermissionDeniedError",
    "PreferenceStore",
    "PresenceCell",
    "PresenceSession",
    "PresenceState",
    "Principal",
    "Scope",
    "SharingPhase",
    "StoreUnavailableError",
    "StoredLocation",
    "Subscription",
    "WaypointConfig",
    "WaypointConfigError",
    "WaypointError",
    "WaypointSessionError",
    "WriteThrottle",
    "quantize",
    "quantize_pair",
]
