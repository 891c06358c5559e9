"""Rate-limit decision orchestration.

Composes the policy table, key extractor and limiter gateway into one
per-request decision. Nothing is cached between requests: two requests with
the same key produce two limiter calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from starlette.requests import Request

from login_guard.services.key_extractor import KeyExtractor
from login_guard.services.limiter_gateway import LimiterGateway
from login_guard.services.policy import EndpointPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    limited: bool
    key: str
    endpoint_path: str


class RateLimitDecider:
    """Produce an allow/deny decision for a request."""

    def __init__(
        self,
        policy: EndpointPolicy,
        extractor: KeyExtractor,
        gateway: LimiterGateway,
    ) -> None:
        self.policy = policy
        self.extractor = extractor
        self.gateway = gateway

    async def decide(self, request: Request) -> RateLimitDecision | None:
        """Decide whether ``request`` is rate limited.

        Returns:
            None when the path is not protected (no body read, no limiter
            call). Otherwise a decision; ``limited`` is False whenever the
            limiter could not be consulted.
        """
        path = request.url.path
        entry = self.policy.lookup(path)
        if entry is None:
            return None

        extracted = await self.extractor.extract(request, entry.key_strategy)
        result = await self.gateway.check(entry.limiter_name, extracted.key)

        return RateLimitDecision(
            limited=not result.allowed,
            key=extracted.key,
            endpoint_path=path,
        )
