from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from pywaypoint.consent import ConsentController
from pywaypoint.exceptions import StoreUnavailableError
from pywaypoint.models import Coordinate, Principal
from pywaypoint.preferences import InMemoryPreferenceStore
from pywaypoint.publisher import LocationPublisher
from pywaypoint.state.presence import PresenceCell, PresenceState
from pywaypoint.store import InMemoryLocationStore
from pywaypoint.throttle import WriteThrottle


class _FlakyStore(InMemoryLocationStore):
    def __init__(self) -> None:
        super().__init__()
        self.fail_set = False
        self.fail_delete = False

    async def set(self, peer_id: str, record: Mapping[str, Any]) -> None:
        if self.fail_set:
            raise StoreUnavailableError("offline", peer_id=peer_id)
        await super().set(peer_id, record)

    async def delete(self, peer_id: str) -> None:
        if self.fail_delete:
            raise StoreUnavailableError("offline", peer_id=peer_id)
        await super().delete(peer_id)


_ME = Principal(uid="me", display_name="Me")
_HERE = Coordinate.of(52.4154, -4.08291)


def _controller(
    store: InMemoryLocationStore,
    preferences: InMemoryPreferenceStore | None = None,
) -> tuple[ConsentController, PresenceCell]:
    cell = PresenceCell(PresenceState(principal_id=_ME.uid))
    publisher = LocationPublisher(store, WriteThrottle(5.0))
    return ConsentController(cell, publisher, preferences), cell


@pytest.mark.asyncio
async def test_repeated_enable_without_fix_writes_nothing() -> None:
    store = InMemoryLocationStore()
    consent, cell = _controller(store)

    await consent.set_sharing(True, _ME, None, False)
    await consent.set_sharing(True, _ME, None, False)

    assert cell.snapshot.sharing_enabled
    assert (store.writes, store.deletes) == (0, 0)


@pytest.mark.asyncio
async def test_enable_with_fix_publishes_before_flipping() -> None:
    store = InMemoryLocationStore()
    preferences = InMemoryPreferenceStore()
    consent, cell = _controller(store, preferences)

    await consent.set_sharing(True, _ME, _HERE, True)

    assert cell.snapshot.sharing_enabled
    assert store.snapshot()["me"]["lat"] == 52.4154
    assert preferences.load_sharing_enabled() is True


@pytest.mark.asyncio
async def test_failed_enable_leaves_flag_unchanged() -> None:
    store = _FlakyStore()
    store.fail_set = True
    preferences = InMemoryPreferenceStore()
    consent, cell = _controller(store, preferences)

    with pytest.raises(StoreUnavailableError):
        await consent.set_sharing(True, _ME, _HERE, True)

    assert not cell.snapshot.sharing_enabled
    assert preferences.saves == 0


@pytest.mark.asyncio
async def test_disable_flips_even_when_delete_fails() -> None:
    store = _FlakyStore()
    consent, cell = _controller(store)
    await consent.set_sharing(True, _ME, _HERE, True)

    store.fail_delete = True
    await consent.set_sharing(False, _ME, _HERE, True)

    assert not cell.snapshot.sharing_enabled
    assert consent.retraction_pending
    assert "me" in store

    store.fail_delete = False
    await consent.set_sharing(False, _ME, _HERE, True)

    assert not consent.retraction_pending
    assert "me" not in store


@pytest.mark.asyncio
async def test_enable_without_fix_retries_pending_retraction() -> None:
    store = _FlakyStore()
    consent, _cell = _controller(store)
    await consent.set_sharing(True, _ME, _HERE, True)
    store.fail_delete = True
    await consent.set_sharing(False, _ME, _HERE, True)

    store.fail_delete = False
    await consent.set_sharing(True, _ME, None, False)

    assert "me" not in store
    assert not consent.retraction_pending


@pytest.mark.asyncio
async def test_disable_when_already_disabled_is_a_no_op() -> None:
    store = InMemoryLocationStore()
    preferences = InMemoryPreferenceStore()
    consent, _cell = _controller(store, preferences)

    await consent.set_sharing(False, _ME, None, False)

    assert store.deletes == 0
    assert preferences.saves == 0


@pytest.mark.asyncio
async def test_toggle_alternates() -> None:
    store = InMemoryLocationStore()
    consent, cell = _controller(store)

    await consent.toggle(_ME, None, False)
    assert cell.snapshot.sharing_enabled
    await consent.toggle(_ME, None, False)
    assert not cell.snapshot.sharing_enabled


def test_initialize_restores_preference_without_store_io() -> None:
    store = InMemoryLocationStore()
    consent, cell = _controller(store, InMemoryPreferenceStore(sharing_enabled=True))

    consent.initialize()

    assert cell.snapshot.sharing_enabled
    assert (store.reads, store.writes, store.deletes) == (0, 0, 0)


def test_explicit_initial_value_wins_over_preference() -> None:
    consent, cell = _controller(InMemoryLocationStore(), InMemoryPreferenceStore(sharing_enabled=True))
    consent.initialize(False)
    assert not cell.snapshot.sharing_enabled


class _BrokenDeleteStore(InMemoryLocationStore):
    async def delete(self, peer_id: str) -> None:
        raise RuntimeError("driver bug")


@pytest.mark.asyncio
async def test_disable_flips_even_on_unexpected_delete_error() -> None:
    store = _BrokenDeleteStore()
    preferences = InMemoryPreferenceStore()
    consent, cell = _controller(store, preferences)
    await consent.set_sharing(True, _ME, _HERE, True)

    with pytest.raises(RuntimeError):
        await consent.set_sharing(False, _ME, _HERE, True)

    assert not cell.snapshot.sharing_enabled
    assert consent.retraction_pending
    assert preferences.load_sharing_enabled() is False


def test_mark_retraction_pending() -> None:
    consent, _cell = _controller(InMemoryLocationStore())
    consent.mark_retraction_pending()
    assert consent.retraction_pending
