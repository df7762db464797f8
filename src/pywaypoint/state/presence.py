"""Observable presence state.

:class:`PresenceState` is an immutable snapshot; :class:`PresenceCell` holds
the current snapshot and publishes every replacement to subscribers. Only
the consent controller, the sync engine and the owning session write to
the cell; everything else reads snapshots or subscribes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from pywaypoint.models.coordinate import Coordinate
from pywaypoint.models.location import PeerLocationRecord

_logger = logging.getLogger(__name__)

PresenceListener = Callable[["PresenceState"], None]


class Scope(StrEnum):
    """The peer set currently tracked; friends and a project roster are mutually exclusive."""

    FRIENDS = "friends"
    PROJECT = "project"


class PresenceState(BaseModel):
    """Snapshot of the principal's presence.

    Only the collection named by ``scope`` is actively maintained; the other
    one is left stale until its scope is entered again.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    principal_id: str = ""
    own_coordinate: Coordinate | None = None
    has_fix: bool = False
    sharing_enabled: bool = False
    scope: Scope | None = None
    friend_locations: tuple[PeerLocationRecord, ...] = ()
    project_locations: tuple[PeerLocationRecord, ...] = ()

    @model_validator(mode="after")
    def _check_invariants(self) -> PresenceState:
        if self.has_fix and self.own_coordinate is None:
            raise ValueError("has_fix requires own_coordinate")
        if self.principal_id:
            for record in (*self.friend_locations, *self.project_locations):
                if record.peer_id == self.principal_id:
                    raise ValueError("peer collections must not contain the principal")
        return self

    def locations_for(self, scope: Scope) -> tuple[PeerLocationRecord, ...]:
        if scope == Scope.FRIENDS:
            return self.friend_locations
        return self.project_locations

    @property
    def visible_locations(self) -> tuple[PeerLocationRecord, ...]:
        """Records of the active scope, empty when nothing is tracked."""
        if self.scope is None:
            return ()
        return self.locations_for(self.scope)


def _collection_field(scope: Scope) -> str:
    return "friend_locations" if scope == Scope.FRIENDS else "project_locations"


@dataclass(eq=False)
class Subscription:
    """Handle returned by :meth:`PresenceCell.subscribe`.

    Call :meth:`unsubscribe` (or use it as a context manager) on teardown.
    """

    _cell: PresenceCell | None
    listener: PresenceListener
    active: bool = field(default=True, init=False)

    def unsubscribe(self) -> None:
        cell = self._cell
        self._cell = None
        self.active = False
        if cell is not None:
            cell._remove(self)  # noqa: SLF001

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.unsubscribe()


class PresenceCell:
    """Publisher/subscriber cell holding the current :class:`PresenceState`.

    Every write replaces the whole snapshot, so a subscriber never observes
    a half-applied change.
    """

    def __init__(self, initial: PresenceState | None = None) -> None:
        self._state = initial if initial is not None else PresenceState()
        self._subscriptions: list[Subscription] = []
        self._version = 0

    @property
    def snapshot(self) -> PresenceState:
        return self._state

    @property
    def version(self) -> int:
        """Number of snapshots published since creation."""
        return self._version

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def update(self, **changes: Any) -> PresenceState:
        """Replace the snapshot with a copy carrying *changes* and notify subscribers.

        The copy is fully re-validated, so invariant violations raise
        :class:`pydantic.ValidationError` and leave the cell untouched.
        """
        if not changes:
            return self._state
        merged = dict(self._state)
        merged.update(changes)
        new_state = PresenceState.model_validate(merged)
        if new_state == self._state:
            return self._state
        self._state = new_state
        self._version += 1
        self._publish(new_state)
        return new_state

    def replace_locations(self, scope: Scope, records: list[PeerLocationRecord]) -> PresenceState:
        """Atomically replace the collection of *scope* and mark it active."""
        return self.update(scope=scope, **{_collection_field(scope): tuple(records)})

    def subscribe(self, listener: PresenceListener, *, replay: bool = True) -> Subscription:
        """Register *listener*; with *replay* it immediately receives the current snapshot."""
        subscription = Subscription(self, listener)
        self._subscriptions.append(subscription)
        if replay:
            self._notify(subscription, self._state)
        return subscription

    def close(self) -> None:
        """Drop every subscriber."""
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()

    def _remove(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass

    def _publish(self, state: PresenceState) -> None:
        for subscription in list(self._subscriptions):
            if subscription.active:
                self._notify(subscription, state)

    @staticmethod
    def _notify(subscription: Subscription, state: PresenceState) -> None:
        try:
            subscription.listener(state)
        except Exception:
            _logger.debug("Presence listener failed", exc_info=True)
