"""Rendering of the rate-limit rejection."""

from __future__ import annotations

import logging

from fastapi import status
from fastapi.responses import JSONResponse

from login_guard.schemas.rejection import TooManyRequestsResponse
from login_guard.services.decision import RateLimitDecision

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 60


def build_rejection(decision: RateLimitDecision) -> JSONResponse:
    """Build the 429 response for a limited request.

    The warning emitted here is the audit trail of rate-limit events.

    Args:
        decision: The limited decision being rendered.

    Returns:
        JSONResponse with status 429, ``Retry-After: 60`` and the
        Bitwarden-compatible error body.
    """
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "endpoint": decision.endpoint_path,
            "rate_limit_key": decision.key,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=TooManyRequestsResponse().model_dump(by_alias=True),
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )
