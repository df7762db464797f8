"""Sharing consent: the on/off flag and its store side effects."""

from __future__ import annotations

import logging

from pywaypoint.exceptions import LocationStoreError
from pywaypoint.models.coordinate import Coordinate
from pywaypoint.models.peer import Principal
from pywaypoint.preferences import PreferenceStore
from pywaypoint.publisher import LocationPublisher
from pywaypoint.state.policy import SharingPhase, sharing_phase
from pywaypoint.state.presence import PresenceCell

_logger = logging.getLogger(__name__)


class ConsentController:
    """Owns ``sharing_enabled`` in the presence cell.

    Enabling flips the flag only once the principal's record is safely in
    the store (or immediately when there is no fix to publish yet).
    Disabling always flips the flag; a failed remote delete is remembered
    and retried on the next opportunity.
    """

    def __init__(
        self,
        cell: PresenceCell,
        publisher: LocationPublisher,
        preferences: PreferenceStore | None = None,
    ) -> None:
        self._cell = cell
        self._publisher = publisher
        self._preferences = preferences
        self._retraction_pending = False

    @property
    def sharing_enabled(self) -> bool:
        return self._cell.snapshot.sharing_enabled

    @property
    def retraction_pending(self) -> bool:
        """Whether a disable left the principal's record behind in the store."""
        return self._retraction_pending

    def initialize(self, persisted: bool | None = None) -> None:
        """Restore the flag at session start without any store side effect.

        When *persisted* is ``None`` the value is read from the preference store.
        """
        if persisted is None:
            persisted = self._preferences.load_sharing_enabled() if self._preferences is not None else False
        self._cell.update(sharing_enabled=bool(persisted))
        _logger.debug("Location sharing restored as %s", "on" if persisted else "off")

    def mark_retraction_pending(self) -> None:
        """Remember that the principal's record may still be in the store."""
        self._retraction_pending = True

    def reset(self) -> None:
        """Clear the flag on sign-out, leaving the store and the persisted preference untouched."""
        self._retraction_pending = False
        self._cell.update(sharing_enabled=False)

    async def set_sharing(
        self,
        enabled: bool,
        principal: Principal,
        own_coordinate: Coordinate | None,
        has_fix: bool,
    ) -> None:
        """Turn sharing on or off.

        Raises
        ------
        LocationStoreError
            When enabling with a fix and the initial publish fails; the flag
            is left unchanged.

        Disabling always clears the flag. Store errors of the delete are
        logged; any other error is re-raised once the flag is cleared.
        """
        if enabled:
            await self._enable(principal, own_coordinate, has_fix)
        else:
            await self._disable(principal)

    async def toggle(self, principal: Principal, own_coordinate: Coordinate | None, has_fix: bool) -> None:
        await self.set_sharing(not self.sharing_enabled, principal, own_coordinate, has_fix)

    async def _enable(self, principal: Principal, own_coordinate: Coordinate | None, has_fix: bool) -> None:
        if self.sharing_enabled:
            _logger.debug("Location sharing already enabled")
            return

        target = sharing_phase(sharing_enabled=True, has_fix=has_fix and own_coordinate is not None)
        if has_fix and own_coordinate is not None:
            await self._publisher.publish(principal.uid, own_coordinate, force=True)
            self._retraction_pending = False
        elif self._retraction_pending:
            # Nothing new to publish yet: make sure the stale record is gone first.
            await self._try_retract(principal)

        self._commit(True)
        _logger.debug("Location sharing enabled (%s)", target)

    async def _disable(self, principal: Principal) -> None:
        if not self.sharing_enabled and not self._retraction_pending:
            _logger.debug("Location sharing already disabled")
            return
        try:
            await self._try_retract(principal)
        finally:
            if self.sharing_enabled:
                self._commit(False)
                _logger.debug("Location sharing disabled (%s)", SharingPhase.DISABLED)

    async def _try_retract(self, principal: Principal) -> None:
        try:
            await self._publisher.retract(principal.uid)
        except LocationStoreError as exc:
            self._retraction_pending = True
            _logger.warning("Failed to remove location record for %s: %s", principal.uid, exc)
        except Exception:
            self._retraction_pending = True
            raise
        else:
            self._retraction_pending = False

    def _commit(self, enabled: bool) -> None:
        self._cell.update(sharing_enabled=enabled)
        if self._preferences is not None:
            self._preferences.save_sharing_enabled(enabled)
