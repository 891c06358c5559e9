"""In-process fixed-window limiter binding.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from login_guard.adapters.rate_limit.base import AbstractRateLimiter, LimitOutcome


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Allow ``limit`` calls per key within each ``window_seconds`` window.

    Useful for single-instance deployments and local development. Production
    setups with several gateway workers should bind a shared HTTP limiter.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._window_start: int | None = None
        self._counts: dict[str, int] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryFixedWindowRateLimiter(limit={self._limit}, "
            f"window_seconds={self._window_seconds})"
        )

    @property
    def limit_per_window(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def _roll_window(self) -> None:
        window_start = int(self._clock() // self._window_seconds) * self._window_seconds
        if window_start != self._window_start:
            # Counts of the previous window are never read again
            self._counts.clear()
            self._window_start = window_start

    async def limit(self, key: str) -> LimitOutcome:
        """Consume one unit for ``key`` in the current window.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            self._roll_window()
            count = self._counts.get(key, 0)
            if count >= self._limit:
                return LimitOutcome(success=False)
            self._counts[key] = count + 1
            return LimitOutcome(success=True)
