"""Single-peer location reads with explicit outcomes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from pydantic import ValidationError

from pywaypoint.exceptions import ErrorKind, LocationStoreError, MalformedRecordError, StoreUnavailableError
from pywaypoint.models.location import PeerLocationRecord, StoredLocation
from pywaypoint.models.peer import Peer
from pywaypoint.store.base import LocationStore

_logger = logging.getLogger(__name__)


class FetchStatus(StrEnum):
    FOUND = "found"
    ABSENT = "absent"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Outcome of reading one peer's record.

    ``ABSENT`` means the peer never shared (or stopped sharing) a location
    and is not a failure; only ``FAILED`` carries an error.
    """

    status: FetchStatus
    record: PeerLocationRecord | None = None
    error: LocationStoreError | None = None

    @classmethod
    def found(cls, record: PeerLocationRecord) -> FetchResult:
        return cls(FetchStatus.FOUND, record=record)

    @classmethod
    def absent(cls) -> FetchResult:
        return cls(FetchStatus.ABSENT)

    @classmethod
    def failed(cls, error: LocationStoreError) -> FetchResult:
        return cls(FetchStatus.FAILED, error=error)

    @property
    def ok(self) -> bool:
        return self.status != FetchStatus.FAILED

    @property
    def kind(self) -> ErrorKind | None:
        """Error classification, ``NOT_FOUND`` for absent results, ``None`` when found."""
        if self.status == FetchStatus.ABSENT:
            return ErrorKind.NOT_FOUND
        if self.error is not None:
            return self.error.kind
        return None


class PeerLocationFetcher:
    """Read peers' records from a :class:`~pywaypoint.store.base.LocationStore`."""

    def __init__(self, store: LocationStore) -> None:
        self._store = store

    async def fetch(self, peer: Peer) -> FetchResult:
        try:
            raw = await self._store.get(peer.uid)
        except LocationStoreError as exc:
            _logger.debug("Fetching location of %s failed: %s", peer.uid, exc)
            return FetchResult.failed(exc)
        except Exception as exc:
            _logger.debug("Unexpected error fetching location of %s", peer.uid, exc_info=True)
            error = StoreUnavailableError(f"Fetching {peer.uid} failed: {exc!r}", peer_id=peer.uid)
            error.__cause__ = exc
            return FetchResult.failed(error)

        if raw is None:
            return FetchResult.absent()

        try:
            stored = StoredLocation.model_validate(raw)
        except ValidationError as exc:
            _logger.debug("Malformed location record for %s", peer.uid, exc_info=True)
            error = MalformedRecordError(
                f"Malformed location record for {peer.uid}: {exc.error_count()} error(s)",
                peer_id=peer.uid,
            )
            return FetchResult.failed(error)
        return FetchResult.found(PeerLocationRecord.from_stored(peer, stored))
