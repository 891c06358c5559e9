"""Remote limiter binding over HTTP.

The limiter service receives ``POST <url>`` with ``{"key": "<key>"}`` and
answers ``{"success": true|false}``. Counting and consistency live entirely
in that service.
"""

from __future__ import annotations

from typing import Any

import httpx

from login_guard.adapters.rate_limit.base import AbstractRateLimiter, LimitOutcome
from login_guard.core.errors import LimiterCallError


class HttpRateLimiter(AbstractRateLimiter):
    """Client for an external limiter service."""

    def __init__(self, url: str, *, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the remote limiter client.

        Args:
            url: Full URL of the limiter's ``limit`` operation.
            client: Shared async client. When omitted and never bound, one is
                created on first use and owned by this limiter.
        """
        self.url = url
        self._client = client
        self._owns_client = False

    async def bind_client(self, client: httpx.AsyncClient) -> None:
        """Switch to an application-managed client (set in the app lifespan)."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
        self._client = client
        self._owns_client = False

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
            self._owns_client = True
        return self._client

    async def limit(self, key: str) -> LimitOutcome:
        """Ask the limiter service whether ``key`` has budget left.

        Raises:
            LimiterCallError: On a non-2xx status or a malformed payload.
            httpx.HTTPError: On transport failures.
        """
        response = await self._get_client().post(self.url, json={"key": key})
        if response.is_error:
            raise LimiterCallError(
                code="limiter_bad_status",
                message=f"Limiter answered HTTP {response.status_code}",
                details={"status_code": response.status_code},
            )

        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise LimiterCallError(
                code="limiter_invalid_json",
                message="Limiter answered with a non-JSON body",
            ) from exc

        success = payload.get("success") if isinstance(payload, dict) else None
        if not isinstance(success, bool):
            raise LimiterCallError(
                code="limiter_invalid_payload",
                message="Limiter payload has no boolean 'success' field",
            )
        return LimitOutcome(success=success)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
            self._owns_client = False
