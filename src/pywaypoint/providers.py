"""Device location provider interface."""

from __future__ import annotations

from typing import Protocol

from pywaypoint.models.coordinate import Coordinate


class DeviceLocationProvider(Protocol):
    """On-demand, best-effort single read of the device position.

    Returns ``None`` when no fix is available; that is not an error.
    """

    async def get_current_fix(self) -> Coordinate | None: ...
