"""Internal constants shared across the library."""

#: Decimal places kept for every stored or compared coordinate.
COORDINATE_PRECISION = 5

#: Minimum seconds between two writes of the principal's own record.
DEFAULT_WRITE_INTERVAL: float = 5.0

#: Seconds between two refreshes of the tracked peer set.
DEFAULT_REFRESH_INTERVAL: float = 5.0

DEFAULT_REQUEST_TIMEOUT: float = 10.0
DEFAULT_MAX_CONCURRENT_FETCHES = 8

#: Realtime-database node under which each user's location lives.
DEFAULT_LOCATIONS_PATH = "users"

USER_AGENT = "pywaypoint"

# Characters Firebase refuses in a key segment.
FORBIDDEN_KEY_CHARS: frozenset[str] = frozenset({".", "$", "#", "[", "]", "/"})

# Wire keys of a stored location record.
WIRE_LATITUDE = "lat"
WIRE_LONGITUDE = "long"
WIRE_LAST_UPDATED = "lastUpdated"
