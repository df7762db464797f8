from __future__ import annotations

import asyncio
from typing import Any

import pytest

from pywaypoint.exceptions import StoreUnavailableError
from pywaypoint.fetcher import FetchResult, PeerLocationFetcher
from pywaypoint.models import Coordinate, Peer, PeerLocationRecord
from pywaypoint.state.presence import PresenceCell, PresenceState, Scope
from pywaypoint.store import InMemoryLocationStore
from pywaypoint.sync import LocationSyncEngine, select_peers


class _RecordingStore(InMemoryLocationStore):
    """Logs every read and fails for the configured peers."""

    def __init__(
        self,
        records: dict[str, dict[str, Any]],
        *,
        failing: set[str] | None = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__(records)
        self.failing = failing or set()
        self.delay = delay
        self.log: list[str] = []

    async def get(self, peer_id: str) -> dict[str, Any] | None:
        self.log.append(peer_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if peer_id in self.failing:
            raise StoreUnavailableError("offline", peer_id=peer_id)
        return await super().get(peer_id)


class _BrokenFetcher:
    async def fetch(self, peer: Peer) -> FetchResult:
        raise RuntimeError("event loop hiccup")


def _loc(lat: float, lon: float) -> dict[str, Any]:
    return {"lat": lat, "long": lon, "lastUpdated": 1767225600000}


def _engine(store: InMemoryLocationStore, *, interval: float = 0.02) -> tuple[LocationSyncEngine, PresenceCell]:
    cell = PresenceCell(PresenceState(principal_id="me", sharing_enabled=True))
    return LocationSyncEngine(cell, PeerLocationFetcher(store), interval=interval), cell


_A, _B, _C = Peer(uid="a", display_name="Ann"), Peer(uid="b"), Peer(uid="c")


def test_select_peers_drops_principal_and_duplicates() -> None:
    peers = [_A, Peer(uid="me"), _B, Peer(uid="a", display_name="Ann again")]
    assert [peer.uid for peer in select_peers(peers, "me")] == ["a", "b"]


@pytest.mark.asyncio
async def test_batch_isolates_failed_and_absent_peers() -> None:
    store = _RecordingStore({"a": _loc(1.0, 2.0), "b": _loc(3.0, 4.0)}, failing={"b"})
    engine, _cell = _engine(store)

    records = await engine.refresh_once([_A, _B, _C], "me")

    assert [record.peer_id for record in records] == ["a"]
    assert records[0].display_name == "Ann"


@pytest.mark.asyncio
async def test_malformed_records_are_skipped() -> None:
    store = _RecordingStore({"a": _loc(1.0, 2.0), "b": {"lat": "north"}})
    engine, _cell = _engine(store)

    records = await engine.refresh_once([_B, _A], "me")

    assert [record.peer_id for record in records] == ["a"]


@pytest.mark.asyncio
async def test_refresh_once_keeps_peer_order_and_skips_principal() -> None:
    store = _RecordingStore({"a": _loc(1.0, 2.0), "c": _loc(5.0, 6.0), "me": _loc(0.0, 0.0)})
    engine, _cell = _engine(store)

    records = await engine.refresh_once([_C, Peer(uid="me"), _A], "me")

    assert [record.peer_id for record in records] == ["c", "a"]
    assert "me" not in store.log


@pytest.mark.asyncio
async def test_refresh_commits_scope_atomically() -> None:
    store = _RecordingStore({"a": _loc(1.0, 2.0), "c": _loc(5.0, 6.0)})
    engine, cell = _engine(store)
    seen: list[PresenceState] = []
    cell.subscribe(seen.append, replay=False)

    await engine.refresh(Scope.FRIENDS, [_A, _B, _C], "me")

    assert len(seen) == 1
    assert seen[0].scope == Scope.FRIENDS
    assert [record.peer_id for record in seen[0].friend_locations] == ["a", "c"]


@pytest.mark.asyncio
async def test_catastrophic_failure_preserves_previous_state() -> None:
    previous = PeerLocationRecord(peer_id="a", coordinate=Coordinate.of(1.0, 2.0))
    cell = PresenceCell(PresenceState(principal_id="me", friend_locations=(previous,), scope=Scope.FRIENDS))
    engine = LocationSyncEngine(cell, _BrokenFetcher(), interval=0.02)  # type: ignore[arg-type]

    result = await engine.refresh(Scope.FRIENDS, [_A], "me")

    assert result is None
    assert cell.snapshot.friend_locations == (previous,)


@pytest.mark.asyncio
async def test_start_loop_is_a_no_op_while_inactive() -> None:
    store = _RecordingStore({"a": _loc(1.0, 2.0)})
    engine, cell = _engine(store)
    cell.update(sharing_enabled=False)

    task = await engine.start_loop(Scope.FRIENDS, [_A], "me")

    assert task is None
    assert not engine.is_running
    assert store.log == []


@pytest.mark.asyncio
async def test_loop_stops_within_one_interval_after_deactivation() -> None:
    store = _RecordingStore({"a": _loc(1.0, 2.0)})
    engine, _cell = _engine(store)
    active = True

    task = await engine.start_loop(Scope.FRIENDS, [_A], "me", interval=0.02, is_active=lambda: active)
    assert task is not None
    await asyncio.sleep(0.07)
    assert len(store.log) >= 2

    active = False
    await asyncio.sleep(0.05)
    assert task.done()
    assert not engine.is_running

    reads = len(store.log)
    await asyncio.sleep(0.06)
    assert len(store.log) == reads
    assert store.writes == 0


@pytest.mark.asyncio
async def test_scope_switch_cancels_previous_loop_first() -> None:
    store = _RecordingStore(
        {"f1": _loc(1.0, 1.0), "f2": _loc(2.0, 2.0), "p1": _loc(3.0, 3.0)},
        delay=0.005,
    )
    engine, cell = _engine(store, interval=0.01)
    friends = [Peer(uid="f1"), Peer(uid="f2")]

    friends_task = await engine.start_loop(Scope.FRIENDS, friends, "me")
    await asyncio.sleep(0.05)
    project_task = await engine.start_loop(Scope.PROJECT, [Peer(uid="p1")], "me")

    assert friends_task is not None and friends_task.done()
    assert project_task is not None and not project_task.done()
    assert engine.active_scope == Scope.PROJECT

    await asyncio.sleep(0.05)
    await engine.stop_loop()

    first_project_read = store.log.index("p1")
    assert set(store.log[:first_project_read]) <= {"f1", "f2"}
    assert set(store.log[first_project_read:]) == {"p1"}
    assert project_task.done()
    assert engine.active_scope is None

    state = cell.snapshot
    assert state.scope == Scope.PROJECT
    assert [record.peer_id for record in state.project_locations] == ["p1"]
    assert [record.peer_id for record in state.friend_locations] == ["f1", "f2"]


@pytest.mark.asyncio
async def test_stop_loop_without_loop_is_harmless() -> None:
    engine, _cell = _engine(InMemoryLocationStore())
    await engine.stop_loop()
    assert not engine.is_running


def test_invalid_engine_settings_rejected() -> None:
    cell = PresenceCell()
    fetcher = PeerLocationFetcher(InMemoryLocationStore())
    with pytest.raises(ValueError):
        LocationSyncEngine(cell, fetcher, interval=0)
    with pytest.raises(ValueError):
        LocationSyncEngine(cell, fetcher, max_concurrency=0)


class _UndecodableForStore(InMemoryLocationStore):
    def __init__(self, records: dict[str, dict[str, Any]], bad: str) -> None:
        super().__init__(records)
        self.bad = bad

    async def get(self, peer_id: str) -> dict[str, Any] | None:
        if peer_id == self.bad:
            raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        return await super().get(peer_id)


@pytest.mark.asyncio
async def test_unexpected_error_for_one_peer_keeps_the_rest() -> None:
    store = _UndecodableForStore({"a": _loc(1.0, 2.0), "b": _loc(3.0, 4.0)}, bad="b")
    engine, cell = _engine(store)

    records = await engine.refresh(Scope.FRIENDS, [_A, _B], "me")

    assert records is not None
    assert [record.peer_id for record in records] == ["a"]
    assert [record.peer_id for record in cell.snapshot.friend_locations] == ["a"]
