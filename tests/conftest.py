"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any import that might build settings.
"""

import os

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("GATEWAY_UPSTREAM_URL", "http://backend.test")
os.environ.setdefault("GATEWAY_CLIENT_IP_HEADER", "cf-connecting-ip")
os.environ.setdefault("LIMITER_BINDINGS", "LOGIN_RATE_LIMITER=memory://5/60")
os.environ.setdefault("LOG_FORMAT", "plain")

from typing import Callable  # noqa: E402
from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402
from starlette.requests import Request  # noqa: E402
from starlette.responses import Response  # noqa: E402

from login_guard.adapters.backend.base import AbstractBackend, ScheduledEvent  # noqa: E402
from login_guard.adapters.rate_limit.base import AbstractRateLimiter, LimitOutcome  # noqa: E402


def build_request(
    path: str,
    *,
    method: str = "POST",
    headers: dict[str, str] | None = None,
    body: bytes = b"",
    query: bytes = b"",
    raw_path: bytes | None = None,
) -> Request:
    """Build a Starlette request whose body can be streamed exactly once."""

    raw_headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or {}).items()
    ]
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode() if raw_path is None else raw_path,
        "root_path": "",
        "query_string": query,
        "headers": raw_headers,
        "server": ("gateway.test", 80),
        "client": ("203.0.113.9", 51000),
    }
    delivered = False

    async def receive() -> dict:
        nonlocal delivered
        if delivered:
            return {"type": "http.disconnect"}
        delivered = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


@pytest.fixture
def request_factory() -> Callable[..., Request]:
    return build_request


class StubLimiter(AbstractRateLimiter):
    """Limiter capability recording every key it is asked about."""

    def __init__(self, success: bool = True, error: Exception | None = None) -> None:
        self.success = success
        self.error = error
        self.keys: list[str] = []

    async def limit(self, key: str) -> LimitOutcome:
        self.keys.append(key)
        if self.error is not None:
            raise self.error
        return LimitOutcome(success=self.success)


class StubBackend(AbstractBackend):
    """Backend returning a canned response and recording what it received."""

    def __init__(self, log: list) -> None:
        self.log = log

    async def fetch(self, request: Request) -> Response:
        body = await request.body()
        self.log.append(("fetch", request.url.path, body))
        return Response(content=b"backend:" + body, status_code=200, media_type="text/plain")

    async def scheduled(self, event: ScheduledEvent) -> Response:
        self.log.append(("scheduled", event.cron, None))
        return Response(status_code=204)


@pytest.fixture
def backend_log() -> list:
    return []


@pytest.fixture
def backend_factory(backend_log: list) -> Callable[[], StubBackend]:
    factory_calls = Mock()

    def factory() -> StubBackend:
        factory_calls()
        return StubBackend(backend_log)

    factory.calls = factory_calls  # type: ignore[attr-defined]
    return factory
