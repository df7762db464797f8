"""Writes and retractions of the principal's own location record."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pywaypoint._redact import redact_for_log
from pywaypoint.models.coordinate import Coordinate
from pywaypoint.models.location import StoredLocation
from pywaypoint.store.base import LocationStore
from pywaypoint.throttle import WriteThrottle

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LocationPublisher:
    """Publish the principal's position through a :class:`WriteThrottle`.

    Store errors propagate to the caller, who decides whether they are
    fatal (enabling sharing) or merely logged (routine fix updates).
    Writes and retractions take turns, so a retraction never overtakes a
    write that is already on its way to the store.
    """

    def __init__(
        self,
        store: LocationStore,
        throttle: WriteThrottle,
        *,
        clock: Callable[[], datetime] = _utcnow,
        log_coordinates: bool = False,
    ) -> None:
        self._store = store
        self._throttle = throttle
        self._clock = clock
        self._log_coordinates = log_coordinates
        self._last_published: Coordinate | None = None
        self._lock = asyncio.Lock()

    @property
    def throttle(self) -> WriteThrottle:
        return self._throttle

    @property
    def last_published(self) -> Coordinate | None:
        """Coordinate of the last successful write, cleared by a retraction."""
        return self._last_published

    async def publish(
        self,
        principal_id: str,
        coordinate: Coordinate,
        *,
        force: bool = False,
        is_active: Callable[[], bool] | None = None,
    ) -> bool:
        """Write *coordinate* as the principal's record.

        Without *force* the write is skipped (``False`` returned) while the
        throttle interval has not elapsed, another write is in flight or
        the quantized position equals the last published one. An empty
        *principal_id* never writes.

        *is_active* is checked once the write may start and again after the
        store accepted it; when sharing was switched off in between, the
        record is removed again and ``False`` is returned.
        """
        if not principal_id:
            _logger.debug("No principal id, not publishing location")
            return False
        if not force and (coordinate == self._last_published or not self._throttle.should_write()):
            return False

        with self._throttle.in_flight():
            async with self._lock:
                if is_active is not None and not is_active():
                    _logger.debug("Sharing turned off, dropping location write for %s", principal_id)
                    return False
                record = StoredLocation(coordinate=coordinate, last_updated=self._clock())
                payload = record.to_wire()
                await self._store.set(principal_id, payload)
                if is_active is not None and not is_active():
                    _logger.debug("Sharing turned off during write, removing record of %s", principal_id)
                    await self._delete(principal_id)
                    return False
                self._throttle.record_write()
                self._last_published = coordinate
        _logger.debug(
            "Published location for %s: %s",
            principal_id,
            redact_for_log(payload, keep_coordinates=self._log_coordinates),
        )
        return True

    async def retract(self, principal_id: str) -> None:
        """Remove the principal's record from the store, after any write in progress."""
        if not principal_id:
            return
        async with self._lock:
            await self._delete(principal_id)

    async def _delete(self, principal_id: str) -> None:
        await self._store.delete(principal_id)
        self._last_published = None
        _logger.debug("Removed location record for %s", principal_id)
