"""In-process location store.

Useful for tests, demos and for running several sessions against one shared
dictionary inside a single event loop.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from pywaypoint.exceptions import MalformedRecordError
from pywaypoint.models.peer import validate_user_id


class InMemoryLocationStore:
    """Dictionary-backed :class:`~pywaypoint.store.base.LocationStore` with call counters."""

    def __init__(self, records: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        for key, value in (records or {}).items():
            self._records[validate_user_id(key)] = copy.deepcopy(dict(value))
        self.reads = 0
        self.writes = 0
        self.deletes = 0

    async def get(self, peer_id: str) -> dict[str, Any] | None:
        key = validate_user_id(peer_id)
        self.reads += 1
        record = self._records.get(key)
        if record is None:
            return None
        return copy.deepcopy(record)

    async def set(self, peer_id: str, record: Mapping[str, Any]) -> None:
        key = validate_user_id(peer_id)
        if not isinstance(record, Mapping):
            raise MalformedRecordError(f"record for {key} is not a mapping", peer_id=key)
        self.writes += 1
        self._records[key] = copy.deepcopy(dict(record))

    async def delete(self, peer_id: str) -> None:
        key = validate_user_id(peer_id)
        self.deletes += 1
        self._records.pop(key, None)

    def __contains__(self, peer_id: object) -> bool:
        return peer_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Deep copy of every stored record."""
        return copy.deepcopy(self._records)
