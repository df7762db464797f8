"""Custom exception hierarchy for pywaypoint."""

from __future__ import annotations

from enum import StrEnum
from typing import ClassVar


class ErrorKind(StrEnum):
    """Classification of location store outcomes.

    ``NOT_FOUND`` is listed for completeness only: a peer that never shared
    a location is reported as an absent result, never raised.
    """

    NOT_FOUND = "not_found"
    STORE_UNAVAILABLE = "store_unavailable"
    MALFORMED_RECORD = "malformed_record"
    PERMISSION_DENIED = "permission_denied"


class WaypointError(Exception):
    """Base exception for all pywaypoint errors."""


class WaypointConfigError(WaypointError):
    """Invalid or missing configuration."""


class WaypointSessionError(WaypointError):
    """Operation attempted on a session that is not running."""


class LocationStoreError(WaypointError):
    """A location store operation failed."""

    kind: ClassVar[ErrorKind] = ErrorKind.STORE_UNAVAILABLE

    def __init__(
        self,
        message: str,
        *,
        peer_id: str = "",
        status_code: int | None = None,
    ) -> None:
        self.peer_id = peer_id
        self.status_code = status_code
        super().__init__(message)


class StoreUnavailableError(LocationStoreError):
    """Store unreachable or answered with a server-side failure.

    Recoverable: the next poll retries automatically.
    """

    kind = ErrorKind.STORE_UNAVAILABLE


class PermissionDeniedError(LocationStoreError):
    """Store rejected the credentials or the security rules denied access (HTTP 401/403).

    Fatal to the operation that raised it; never retried automatically.
    """

    kind = ErrorKind.PERMISSION_DENIED


class MalformedRecordError(LocationStoreError):
    """Stored payload could not be decoded into a location record."""

    kind = ErrorKind.MALFORMED_RECORD
