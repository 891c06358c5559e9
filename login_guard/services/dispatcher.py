"""Request dispatching between the rejection response and the backend."""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import Response

from login_guard.adapters.backend.base import BackendFactory, ScheduledEvent
from login_guard.services.decision import RateLimitDecider
from login_guard.services.responses import build_rejection

logger = logging.getLogger(__name__)


class RequestDispatcher:
    """Entry point for inbound HTTP requests and scheduled triggers.

    A backend handler is built from ``backend_factory`` for every invocation
    that reaches the backend; limited requests never construct one.
    """

    def __init__(self, decider: RateLimitDecider, backend_factory: BackendFactory) -> None:
        self.decider = decider
        self.backend_factory = backend_factory

    async def handle(self, request: Request) -> Response:
        decision = await self.decider.decide(request)
        if decision is not None and decision.limited:
            return build_rejection(decision)

        backend = self.backend_factory()
        return await backend.fetch(request)

    async def scheduled(self, event: ScheduledEvent) -> Response | None:
        """Forward a scheduled trigger straight to the backend."""
        logger.info(
            "scheduled.dispatched",
            extra={"cron": event.cron, "scheduled_time": event.scheduled_time.isoformat()},
        )
        backend = self.backend_factory()
        return await backend.scheduled(event)
