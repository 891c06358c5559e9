"""Limiter gateway: resolves a binding, calls it, and normalizes the answer.

Rate limiting must never become an availability dependency of the backend.
Every failure (missing binding, limiter error, limiter hanging past the
configured bound) collapses into an explicit fail-open ``LimiterResult``.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from login_guard.adapters.rate_limit.base import AbstractRateLimiter
from login_guard.adapters.rate_limit.bindings import LimiterBindings
from login_guard.core.errors import ConfigurationMissingError

logger = logging.getLogger(__name__)


class GatewayFailure(str, Enum):
    """Why a limiter check failed open."""

    CONFIGURATION_MISSING = "configuration_missing"
    CALL_FAILED = "call_failed"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class LimiterResult:
    """Normalized limiter answer.

    Attributes:
        allowed: Whether the request may proceed.
        failure: Set when the limiter could not be consulted and the result
            is a fail-open default; None when the limiter actually answered.
    """

    allowed: bool
    failure: GatewayFailure | None = None

    @classmethod
    def fail_open(cls, failure: GatewayFailure) -> "LimiterResult":
        return cls(allowed=True, failure=failure)


def hash_key(key: str) -> str:
    """Hash a rate-limit key for debug logs without exposing the address."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


class LimiterGateway:
    """Call named limiter capabilities with fail-open semantics."""

    def __init__(
        self,
        bindings: Mapping[str, AbstractRateLimiter],
        *,
        timeout_seconds: float | None = 5.0,
    ) -> None:
        """Initialize the gateway.

        Args:
            bindings: Limiter capabilities keyed by binding name.
            timeout_seconds: Upper bound for one limiter call; None or 0
                leaves the call unbounded.
        """
        self._bindings = bindings if isinstance(bindings, LimiterBindings) else LimiterBindings(bindings)
        self._timeout = timeout_seconds or None

    async def check(self, limiter_name: str, key: str) -> LimiterResult:
        try:
            limiter = self._bindings.require(limiter_name)
        except ConfigurationMissingError as exc:
            logger.warning(
                "rate_limit.binding_missing",
                extra={
                    "binding": limiter_name,
                    "error_message": exc.message,
                    "action": "skipping rate limit check",
                },
            )
            return LimiterResult.fail_open(GatewayFailure.CONFIGURATION_MISSING)

        try:
            outcome = await asyncio.wait_for(limiter.limit(key), timeout=self._timeout)
            allowed = bool(outcome.success)
        except asyncio.TimeoutError:
            logger.error(
                "rate_limit.check_timeout",
                extra={"binding": limiter_name, "timeout_s": self._timeout},
            )
            return LimiterResult.fail_open(GatewayFailure.TIMEOUT)
        except Exception as exc:
            logger.error(
                "rate_limit.check_failed",
                extra={
                    "binding": limiter_name,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return LimiterResult.fail_open(GatewayFailure.CALL_FAILED)

        logger.debug(
            "rate_limit.checked",
            extra={
                "binding": limiter_name,
                "key_hash": hash_key(key),
                "success": allowed,
            },
        )
        return LimiterResult(allowed=allowed)
