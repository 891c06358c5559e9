"""Backend handler interface.

The backend is the authentication server the gateway protects. It is an
injected capability: the dispatcher receives a factory and builds one handler
per invocation, so tests can substitute a stub returning canned responses.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from starlette.requests import Request
from starlette.responses import Response


@dataclass(frozen=True)
class ScheduledEvent:
    """A periodic trigger forwarded to the backend without rate limiting.

    Attributes:
        cron: Cron expression label of the schedule that fired.
        scheduled_time: When the trigger fired (UTC).
        event_type: Event kind, always ``scheduled`` for timer triggers.
    """

    cron: str
    scheduled_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: str = "scheduled"

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "cron": self.cron,
            "scheduledTime": int(self.scheduled_time.timestamp() * 1000),
        }


class AbstractBackend(ABC):
    """Interface of the protected backend handler."""

    @abstractmethod
    async def fetch(self, request: Request) -> Response:
        """Handle an HTTP request and return the backend's response verbatim."""
        raise NotImplementedError

    @abstractmethod
    async def scheduled(self, event: ScheduledEvent) -> Response | None:
        """Handle a scheduled trigger."""
        raise NotImplementedError


BackendFactory = Callable[[], AbstractBackend]
