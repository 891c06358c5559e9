"""Periodic scheduled-trigger loop.

Fires a ``ScheduledEvent`` every ``interval_seconds`` and hands it to the
dispatcher, which forwards it to the backend without rate limiting. Started
and stopped by the application lifespan.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from login_guard.adapters.backend.base import ScheduledEvent

logger = logging.getLogger(__name__)


class PeriodicTrigger:
    """Background task emitting scheduled events at a fixed interval."""

    def __init__(
        self,
        handler: Callable[[ScheduledEvent], Awaitable[object]],
        *,
        interval_seconds: float,
        cron: str,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._handler = handler
        self._interval = interval_seconds
        self._cron = cron
        self._stop = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def fire(self) -> None:
        """Emit one event; failures are logged and the loop keeps running."""
        event = ScheduledEvent(cron=self._cron)
        try:
            await self._handler(event)
        except Exception as exc:
            logger.error(
                "scheduled.failed",
                extra={
                    "cron": self._cron,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )

    async def _run(self) -> None:
        while True:
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
                return
            except asyncio.TimeoutError:
                await self.fire()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._run(), name="login_guard.scheduled")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop.set()
        await self._task
        self._task = None
