"""Rate limiting of the principal's own location writes."""

from __future__ import annotations

import contextlib
import time
from collections.abc import Callable, Iterator

from pywaypoint._constants import DEFAULT_WRITE_INTERVAL


class WriteThrottle:
    """Gate store writes so bursty device-fix callbacks cannot flood the store.

    ``should_write`` is a pure predicate; callers mark the write with
    :meth:`in_flight` and call :meth:`record_write` only once the store
    accepted it. Times come from a monotonic clock.
    """

    def __init__(
        self,
        min_interval: float = DEFAULT_WRITE_INTERVAL,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if min_interval < 0:
            raise ValueError(f"min_interval must be >= 0, got {min_interval}")
        self._min_interval = min_interval
        self._clock = clock
        self._last_write: float | None = None
        self._writes_in_flight = 0

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def last_write(self) -> float | None:
        """Monotonic time of the last successful write, if any."""
        return self._last_write

    @property
    def is_in_flight(self) -> bool:
        return self._writes_in_flight > 0

    def should_write(self, now: float | None = None) -> bool:
        """Whether a write may be issued at *now*."""
        if self._writes_in_flight:
            return False
        if self._last_write is None:
            return True
        current = self._clock() if now is None else now
        return current - self._last_write >= self._min_interval

    def record_write(self, now: float | None = None) -> None:
        """Record a successful write."""
        self._last_write = self._clock() if now is None else now

    @contextlib.contextmanager
    def in_flight(self) -> Iterator[None]:
        """Mark a write as in flight for the duration of the block."""
        self._writes_in_flight += 1
        try:
            yield
        finally:
            self._writes_in_flight -= 1

    def reset(self) -> None:
        """Forget the write history."""
        self._last_write = None
