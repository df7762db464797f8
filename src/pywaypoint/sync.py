"""Batch refresh of a peer set's locations, one-shot and repeating."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

from pywaypoint._constants import DEFAULT_MAX_CONCURRENT_FETCHES, DEFAULT_REFRESH_INTERVAL
from pywaypoint.exceptions import ErrorKind
from pywaypoint.fetcher import FetchResult, FetchStatus, PeerLocationFetcher
from pywaypoint.models.location import PeerLocationRecord
from pywaypoint.models.peer import Peer
from pywaypoint.state.presence import PresenceCell, Scope

_logger = logging.getLogger(__name__)


def select_peers(peers: Iterable[Peer], principal_id: str) -> list[Peer]:
    """Drop the principal and repeated uids, keeping the caller's order."""
    seen: set[str] = set()
    selected: list[Peer] = []
    for peer in peers:
        if peer.uid == principal_id or peer.uid in seen:
            continue
        seen.add(peer.uid)
        selected.append(peer)
    return selected


class LocationSyncEngine:
    """Refresh peers' locations into a :class:`PresenceCell`.

    At most one refresh loop runs at a time. Starting a loop cancels and
    awaits the previous one first, so two loops never write to the cell
    concurrently.

    Usage::

        engine = LocationSyncEngine(cell, PeerLocationFetcher(store))
        await engine.start_loop(Scope.FRIENDS, friends, principal.uid)
        ...
        await engine.stop_loop()
    """

    def __init__(
        self,
        cell: PresenceCell,
        fetcher: PeerLocationFetcher,
        *,
        interval: float = DEFAULT_REFRESH_INTERVAL,
        max_concurrency: int = DEFAULT_MAX_CONCURRENT_FETCHES,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self._cell = cell
        self._fetcher = fetcher
        self._interval = interval
        self._max_concurrency = max_concurrency
        self._task: asyncio.Task[None] | None = None
        self._task_scope: Scope | None = None
        self._lifecycle_lock = asyncio.Lock()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def active_scope(self) -> Scope | None:
        """Scope of the running loop, ``None`` when no loop runs."""
        return self._task_scope if self.is_running else None

    # ------------------------------------------------------------------
    # One-shot refresh
    # ------------------------------------------------------------------

    async def refresh_once(self, peers: Iterable[Peer], principal_id: str) -> list[PeerLocationRecord]:
        """Fetch every peer and return the records that exist.

        Per-peer failures and absent records are left out; the result keeps
        the order of *peers* and may be partial or empty. Nothing here is
        written to the cell.
        """
        selected = select_peers(peers, principal_id)
        if not selected:
            return []

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _bounded(peer: Peer) -> FetchResult:
            async with semaphore:
                return await self._fetcher.fetch(peer)

        results = await asyncio.gather(*(_bounded(peer) for peer in selected))

        records: list[PeerLocationRecord] = []
        failed = 0
        for peer, result in zip(selected, results, strict=True):
            if result.status == FetchStatus.FOUND and result.record is not None:
                records.append(result.record)
            elif result.status == FetchStatus.FAILED:
                failed += 1
                if result.kind == ErrorKind.MALFORMED_RECORD:
                    _logger.debug("Ignoring malformed location record of %s", peer.uid)
                else:
                    _logger.warning(
                        "Failed to get location for %s: %s",
                        peer.display_name or peer.uid,
                        result.error,
                    )

        _logger.debug(
            "Refreshed %d peer(s): %d located, %d failed",
            len(selected),
            len(records),
            failed,
        )
        return records

    async def refresh(
        self,
        scope: Scope,
        peers: Iterable[Peer],
        principal_id: str,
    ) -> list[PeerLocationRecord] | None:
        """Refresh once and commit the batch as one atomic replace.

        On a failure of the whole batch the scope's previous collection is
        kept and ``None`` is returned.
        """
        try:
            records = await self.refresh_once(peers, principal_id)
        except Exception:
            _logger.exception("Error refreshing %s locations, keeping existing state", scope)
            return None
        self._cell.replace_locations(scope, records)
        return records

    # ------------------------------------------------------------------
    # Repeating refresh
    # ------------------------------------------------------------------

    async def start_loop(
        self,
        scope: Scope,
        peers: Iterable[Peer],
        principal_id: str,
        *,
        interval: float | None = None,
        is_active: Callable[[], bool] | None = None,
    ) -> asyncio.Task[None] | None:
        """Cancel any running loop, then refresh *scope* now and every *interval* seconds.

        *is_active* (default: the cell's ``sharing_enabled``) is checked
        before the first refresh and at the top of each iteration; the loop
        ends as soon as it returns ``False``. Returns ``None`` without
        starting anything when it is already ``False``.
        """
        period = self._interval if interval is None else interval
        if period <= 0:
            raise ValueError(f"interval must be > 0, got {period}")
        active = is_active if is_active is not None else self._sharing_enabled
        peer_list = list(peers)

        async with self._lifecycle_lock:
            await self._cancel_running()
            if not active():
                _logger.debug("Not starting %s location updates: sharing is off", scope)
                return None
            task = asyncio.create_task(
                self._run_loop(scope, peer_list, principal_id, period, active),
                name=f"pywaypoint-{scope}-locations",
            )
            self._task = task
            self._task_scope = scope
            task.add_done_callback(self._on_loop_done)
            return task

    async def stop_loop(self) -> None:
        """Cancel the running loop and wait until it has finished."""
        async with self._lifecycle_lock:
            await self._cancel_running()

    async def _run_loop(
        self,
        scope: Scope,
        peers: list[Peer],
        principal_id: str,
        interval: float,
        is_active: Callable[[], bool],
    ) -> None:
        _logger.debug("Starting %s location updates for %d peer(s)", scope, len(peers))
        try:
            await self.refresh(scope, peers, principal_id)
            while is_active():
                await asyncio.sleep(interval)
                if not is_active():
                    break
                await self.refresh(scope, peers, principal_id)
        finally:
            _logger.debug("Stopped %s location updates", scope)

    async def _cancel_running(self) -> None:
        task = self._task
        self._task = None
        self._task_scope = None
        if task is None or task.done():
            return
        task.cancel()
        # wait() does not re-raise the loop's CancelledError but still propagates our own.
        await asyncio.wait({task})

    def _on_loop_done(self, task: asyncio.Task[None]) -> None:
        if self._task is task:
            self._task = None
            self._task_scope = None
        if not task.cancelled() and task.exception() is not None:
            _logger.error("Location loop crashed", exc_info=task.exception())

    def _sharing_enabled(self) -> bool:
        return self._cell.snapshot.sharing_enabled
