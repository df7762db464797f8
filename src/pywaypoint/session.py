"""Per-login coordinator for presence sharing."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pywaypoint._constants import DEFAULT_MAX_CONCURRENT_FETCHES, DEFAULT_REFRESH_INTERVAL, DEFAULT_WRITE_INTERVAL
from pywaypoint.config import WaypointConfig
from pywaypoint.consent import ConsentController
from pywaypoint.exceptions import LocationStoreError, WaypointSessionError
from pywaypoint.fetcher import PeerLocationFetcher
from pywaypoint.models.coordinate import Coordinate
from pywaypoint.models.location import PeerLocationRecord
from pywaypoint.models.peer import Peer, Principal
from pywaypoint.preferences import JsonFilePreferenceStore, PreferenceStore
from pywaypoint.providers import DeviceLocationProvider
from pywaypoint.publisher import LocationPublisher
from pywaypoint.state.policy import SharingPhase, is_valid_transition, may_track, sharing_phase, starts_tracking
from pywaypoint.state.presence import PresenceCell, PresenceListener, PresenceState, Scope, Subscription
from pywaypoint.store.base import LocationStore
from pywaypoint.sync import LocationSyncEngine
from pywaypoint.throttle import WriteThrottle

_logger = logging.getLogger(__name__)


class PresenceSession:
    """Presence state and its writers for one signed-in principal.

    Created after sign-in and closed on sign-out; nothing is shared between
    sessions. The session wires the consent controller and the sync engine
    to a private :class:`PresenceCell` and drives the sharing state machine:

    * enabling without a fix waits for the first fix, which publishes the
      principal's record and starts the refresh loop;
    * disabling cancels the loop;
    * selecting a scope replaces the running loop.

    Usage::

        async with PresenceSession(principal, store, config=config) as presence:
            presence.subscribe(render)
            await presence.track_friends(friends)
            await presence.update_fix(Coordinate.of(52.41, -4.08))
    """

    def __init__(
        self,
        principal: Principal,
        store: LocationStore,
        *,
        config: WaypointConfig | None = None,
        preferences: PreferenceStore | None = None,
        location_provider: DeviceLocationProvider | None = None,
        throttle: WriteThrottle | None = None,
    ) -> None:
        write_interval = config.write_interval if config is not None else DEFAULT_WRITE_INTERVAL
        refresh_interval = config.refresh_interval if config is not None else DEFAULT_REFRESH_INTERVAL
        max_concurrency = config.max_concurrent_fetches if config is not None else DEFAULT_MAX_CONCURRENT_FETCHES

        self._principal = principal
        self._location_provider = location_provider
        self._cell = PresenceCell(PresenceState(principal_id=principal.uid))
        self._throttle = throttle if throttle is not None else WriteThrottle(write_interval)
        self._publisher = LocationPublisher(
            store,
            self._throttle,
            log_coordinates=config.log_coordinates if config is not None else False,
        )
        if preferences is None and config is not None and config.preferences_path:
            preferences = JsonFilePreferenceStore(config.preferences_path)
        self._consent = ConsentController(self._cell, self._publisher, preferences)
        self._engine = LocationSyncEngine(
            self._cell,
            PeerLocationFetcher(store),
            interval=refresh_interval,
            max_concurrency=max_concurrency,
        )
        self._requested: tuple[Scope, list[Peer]] | None = None
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> PresenceSession:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def start(self, persisted_sharing: bool | None = None) -> None:
        """Restore the sharing preference; must run before any other operation."""
        if self._closed:
            raise WaypointSessionError("Session already closed")
        if self._started:
            return
        self._consent.initialize(persisted_sharing)
        self._started = True
        _logger.debug("Presence session started for %s", self._principal.uid)

    async def close(self) -> None:
        """Tear the session down: cancel the loop, reset the flag, drop subscribers.

        The persisted preference is left as is so the next sign-in restores it.
        """
        if self._closed:
            return
        self._closed = True
        await self._engine.stop_loop()
        self._requested = None
        self._consent.reset()
        self._throttle.reset()
        self._cell.close()
        _logger.debug("Presence session closed for %s", self._principal.uid)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    @property
    def principal(self) -> Principal:
        return self._principal

    @property
    def cell(self) -> PresenceCell:
        return self._cell

    @property
    def state(self) -> PresenceState:
        return self._cell.snapshot

    @property
    def consent(self) -> ConsentController:
        return self._consent

    @property
    def engine(self) -> LocationSyncEngine:
        return self._engine

    @property
    def phase(self) -> SharingPhase:
        state = self._cell.snapshot
        return sharing_phase(sharing_enabled=state.sharing_enabled, has_fix=state.has_fix)

    @property
    def is_open(self) -> bool:
        return self._started and not self._closed

    def subscribe(self, listener: PresenceListener, *, replay: bool = True) -> Subscription:
        return self._cell.subscribe(listener, replay=replay)

    # ------------------------------------------------------------------
    # Device fixes
    # ------------------------------------------------------------------

    async def update_fix(self, coordinate: Coordinate) -> None:
        """Record a device fix and publish it when sharing is on.

        The first fix after enabling is written immediately and starts the
        refresh loop of the selected scope; later fixes go through the
        write throttle. Store failures on this path are logged, not raised.
        """
        self._require_open()
        previous = self.phase
        state = self._cell.snapshot
        self._require_transition(previous, sharing_phase(sharing_enabled=state.sharing_enabled, has_fix=True))
        self._cell.update(own_coordinate=coordinate, has_fix=True)
        current = self.phase
        if current == SharingPhase.DISABLED:
            return

        first_fix = starts_tracking(previous, current)
        try:
            await self._publisher.publish(
                self._principal.uid,
                coordinate,
                force=first_fix,
                is_active=self._sharing_enabled,
            )
        except LocationStoreError as exc:
            _logger.warning("Failed to save location for %s: %s", self._principal.uid, exc)
            if not self._sharing_enabled():
                # Sharing went off mid-write and the record could not be removed.
                self._consent.mark_retraction_pending()

        if first_fix and self.phase == SharingPhase.ENABLED_TRACKING:
            await self._resume_tracking()

    async def acquire_fix(self) -> Coordinate | None:
        """Read the device provider once and feed the result to :meth:`update_fix`."""
        self._require_open()
        if self._location_provider is None:
            return None
        fix = await self._location_provider.get_current_fix()
        if fix is None:
            _logger.debug("No device fix available yet")
            return None
        await self.update_fix(fix)
        return fix

    # ------------------------------------------------------------------
    # Consent
    # ------------------------------------------------------------------

    async def set_sharing(self, enabled: bool) -> None:
        """Turn sharing on or off.

        Raises
        ------
        LocationStoreError
            When enabling with a fix and the initial publish fails.
        """
        self._require_open()
        state = self._cell.snapshot
        previous = self.phase
        target = sharing_phase(sharing_enabled=enabled, has_fix=state.has_fix)
        self._require_transition(previous, target)
        try:
            await self._consent.set_sharing(enabled, self._principal, state.own_coordinate, state.has_fix)
        finally:
            if self.phase == SharingPhase.DISABLED:
                await self._engine.stop_loop()
        if starts_tracking(previous, self.phase):
            await self._resume_tracking()

    async def toggle_sharing(self) -> None:
        await self.set_sharing(not self._cell.snapshot.sharing_enabled)

    # ------------------------------------------------------------------
    # Peer scopes
    # ------------------------------------------------------------------

    async def track(self, scope: Scope, peers: Iterable[Peer]) -> bool:
        """Select the peer set to keep refreshed.

        Any loop for the previous scope is cancelled before the new one
        starts. While sharing is off or no fix exists yet the selection is
        remembered and the loop starts once tracking becomes possible.
        Returns whether a loop is now running.
        """
        self._require_open()
        self._requested = (scope, list(peers))
        if not may_track(self.phase):
            await self._engine.stop_loop()
            _logger.debug("Deferring %s location updates until sharing is tracking", scope)
            return False
        return await self._resume_tracking()

    async def track_friends(self, friends: Iterable[Peer]) -> bool:
        return await self.track(Scope.FRIENDS, friends)

    async def track_project(self, members: Iterable[Peer]) -> bool:
        return await self.track(Scope.PROJECT, members)

    async def stop_tracking(self) -> None:
        self._require_open()
        self._requested = None
        await self._engine.stop_loop()

    async def refresh(
        self,
        scope: Scope | None = None,
        peers: Iterable[Peer] | None = None,
    ) -> list[PeerLocationRecord] | None:
        """Refresh one scope once, keeping the existing state on failure.

        Defaults to the selected scope and peers. Refreshing a different
        scope than the running loop's is refused; use :meth:`track` to switch.
        """
        self._require_open()
        if scope is None or peers is None:
            if self._requested is None:
                raise WaypointSessionError("No scope selected; pass scope and peers")
            scope = scope if scope is not None else self._requested[0]
            if peers is None:
                if scope != self._requested[0]:
                    raise WaypointSessionError(f"No peers known for {scope}")
                peers = self._requested[1]
        running = self._engine.active_scope
        if running is not None and running != scope:
            raise WaypointSessionError(f"{running} locations are being tracked; switch scope with track()")
        _logger.debug("Manually refreshing %s locations", scope)
        return await self._engine.refresh(scope, peers, self._principal.uid)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _resume_tracking(self) -> bool:
        if self._requested is None:
            return False
        scope, peers = self._requested
        task = await self._engine.start_loop(scope, peers, self._principal.uid)
        return task is not None

    def _sharing_enabled(self) -> bool:
        return self._cell.snapshot.sharing_enabled

    @staticmethod
    def _require_transition(previous: SharingPhase, target: SharingPhase) -> None:
        if not is_valid_transition(previous, target):
            raise WaypointSessionError(f"Invalid sharing transition {previous} -> {target}")

    def _require_open(self) -> None:
        if not self._started:
            raise WaypointSessionError("Session not started. Use 'async with PresenceSession(...) as presence:'")
        if self._closed:
            raise WaypointSessionError("Session closed")
