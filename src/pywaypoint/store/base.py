"""Structural interface of the shared location store."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class LocationStore(Protocol):
    """Keyed store of location records, one per user ID, last write wins.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production backend (:class:`~pywaypoint.store.firebase.FirebaseLocationStore`)
    concrete. Implementations raise
    :class:`~pywaypoint.exceptions.LocationStoreError` subclasses on failure
    and return ``None`` from :meth:`get` when no record exists.
    """

    async def get(self, peer_id: str) -> dict[str, Any] | None:
        ...

    async def set(self, peer_id: str, record: Mapping[str, Any]) -> None:
        ...

    async def delete(self, peer_id: str) -> None:
        ...
