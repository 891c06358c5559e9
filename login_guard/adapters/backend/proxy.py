"""Reverse-proxy backend handler built on httpx."""

from __future__ import annotations

import logging

import httpx
from starlette.requests import Request
from starlette.responses import Response

from login_guard.adapters.backend.base import AbstractBackend, ScheduledEvent
from login_guard.core.errors import UpstreamAppError
from login_guard.core.logging import get_request_id

logger = logging.getLogger(__name__)

# RFC 7230 section 6.1 hop-by-hop headers, plus headers httpx/Starlette recompute
_HOP_BY_HOP = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)
_REQUEST_EXCLUDED = _HOP_BY_HOP | {"host", "content-length"}
_RESPONSE_EXCLUDED = _HOP_BY_HOP | {"content-length", "content-encoding"}


def _raw_path(request: Request) -> str:
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return raw_path.decode("latin-1")
    return request.url.path


class ProxyBackend(AbstractBackend):
    """Forward requests and scheduled events to the upstream backend.

    Instances are cheap (they only hold references) and are built once per
    invocation; the connection pool lives in the shared ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        upstream_url: str,
        timeout_seconds: float = 30.0,
        scheduled_path: str = "/__scheduled",
        request_id_header: str = "X-Request-ID",
    ) -> None:
        self._client = client
        self._upstream_url = upstream_url.rstrip("/")
        self._timeout = timeout_seconds
        self._scheduled_path = scheduled_path
        self._request_id_header = request_id_header
        self._request_id = get_request_id()

    def _target_url(self, path: str, query: str = "") -> str:
        url = f"{self._upstream_url}{path}"
        return f"{url}?{query}" if query else url

    def _forward_headers(self, request: Request) -> list[tuple[str, str]]:
        headers = [
            (name, value)
            for name, value in request.headers.items()
            if name.lower() not in _REQUEST_EXCLUDED
        ]
        if self._request_id and self._request_id_header.lower() not in request.headers:
            headers.append((self._request_id_header, self._request_id))
        return headers

    @staticmethod
    def _to_response(upstream: httpx.Response) -> Response:
        response = Response(content=upstream.content, status_code=upstream.status_code)
        # Keep repeated headers such as Set-Cookie
        response.raw_headers.extend(
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in upstream.headers.multi_items()
            if name.lower() not in _RESPONSE_EXCLUDED
        )
        return response

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, url, timeout=self._timeout, **kwargs)
        except httpx.HTTPError as exc:
            logger.error(
                "backend.upstream_error",
                extra={
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "method": method,
                    "upstream_url": self._upstream_url,
                },
            )
            raise UpstreamAppError(
                code="upstream_unavailable",
                message="The authentication backend is unavailable.",
            ) from exc

    async def fetch(self, request: Request) -> Response:
        """Forward ``request`` unchanged and return the upstream response.

        The path is taken from the raw ASGI ``raw_path`` so percent-encoded
        characters reach the backend still encoded.

        Raises:
            UpstreamAppError: If the backend cannot be reached.
        """
        upstream = await self._send(
            request.method,
            self._target_url(_raw_path(request), request.url.query),
            headers=self._forward_headers(request),
            content=await request.body(),
        )
        return self._to_response(upstream)

    async def scheduled(self, event: ScheduledEvent) -> Response:
        headers = {}
        if self._request_id:
            headers[self._request_id_header] = self._request_id
        upstream = await self._send(
            "POST",
            self._target_url(self._scheduled_path),
            json=event.to_payload(),
            headers=headers,
        )
        return self._to_response(upstream)
