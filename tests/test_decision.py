"""Tests for the rate-limit decision orchestrator."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from conftest import StubLimiter
from login_guard.adapters.rate_limit.bindings import LimiterBindings
from login_guard.services.decision import RateLimitDecider, RateLimitDecision
from login_guard.services.key_extractor import KeyExtractor
from login_guard.services.limiter_gateway import LimiterGateway
from login_guard.services.policy import EndpointPolicy


def make_decider(bindings: dict) -> RateLimitDecider:
    return RateLimitDecider(
        EndpointPolicy(),
        KeyExtractor(client_ip_header="cf-connecting-ip"),
        LimiterGateway(LimiterBindings(bindings)),
    )


@pytest.mark.asyncio
async def test_unprotected_path_short_circuits(request_factory) -> None:
    limiter = StubLimiter()
    decider = make_decider({"LOGIN_RATE_LIMITER": limiter})
    decider.extractor.extract = AsyncMock()  # type: ignore[method-assign]

    assert await decider.decide(request_factory("/api/sync", method="GET")) is None
    decider.extractor.extract.assert_not_awaited()
    assert limiter.keys == []


@pytest.mark.asyncio
async def test_email_endpoint_uses_body_key(request_factory) -> None:
    limiter = StubLimiter(success=True)
    decider = make_decider({"LOGIN_RATE_LIMITER": limiter})
    request = request_factory(
        "/identity/connect/token",
        headers={"content-type": "application/json"},
        body=b'{"email":"User@Example.com","password":"x"}',
    )

    decision = await decider.decide(request)

    assert decision == RateLimitDecision(
        limited=False, key="email:user@example.com", endpoint_path="/identity/connect/token"
    )
    assert limiter.keys == ["email:user@example.com"]


@pytest.mark.asyncio
async def test_exhausted_limiter_limits(request_factory) -> None:
    decider = make_decider({"LOGIN_RATE_LIMITER": StubLimiter(success=False)})
    request = request_factory("/api/accounts/prelogin", headers={"cf-connecting-ip": "1.2.3.4"})

    decision = await decider.decide(request)

    assert decision is not None
    assert decision.limited is True
    assert decision.key == "ip:1.2.3.4"
    assert decision.endpoint_path == "/api/accounts/prelogin"


@pytest.mark.asyncio
async def test_missing_binding_is_not_limited(request_factory) -> None:
    decider = make_decider({})
    request = request_factory("/api/accounts/register", headers={"cf-connecting-ip": "1.2.3.4"})

    decision = await decider.decide(request)

    assert decision is not None
    assert decision.limited is False
    assert decision.key == "ip:1.2.3.4"


@pytest.mark.asyncio
async def test_limiter_error_is_not_limited(request_factory) -> None:
    decider = make_decider({"LOGIN_RATE_LIMITER": StubLimiter(error=RuntimeError("down"))})

    decision = await decider.decide(request_factory("/api/accounts/register"))

    assert decision is not None
    assert decision.limited is False


@pytest.mark.asyncio
async def test_repeated_keys_are_not_cached(request_factory) -> None:
    limiter = StubLimiter(success=True)
    decider = make_decider({"LOGIN_RATE_LIMITER": limiter})
    body = b"username=User@Example.com"
    headers = {"content-type": "application/x-www-form-urlencoded"}

    await decider.decide(request_factory("/identity/connect/token", headers=headers, body=body))
    await decider.decide(request_factory("/identity/connect/token", headers=headers, body=body))

    assert limiter.keys == ["email:user@example.com", "email:user@example.com"]
