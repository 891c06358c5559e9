"""Name-to-limiter bindings.

The policy table refers to limiters by name (``LOGIN_RATE_LIMITER``). This
module parses the configured ``NAME=URI`` list into a read-only registry the
gateway resolves names against.

Supported URIs:
    memory://<limit>/<window_seconds>   in-process fixed window
    http(s)://host/path                 external limiter service
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterator, Mapping
from urllib.parse import urlsplit

import httpx

from login_guard.adapters.rate_limit.base import AbstractRateLimiter
from login_guard.adapters.rate_limit.http import HttpRateLimiter
from login_guard.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from login_guard.core.errors import ConfigurationMissingError, ValidationAppError

logger = logging.getLogger(__name__)


class LimiterBindings(Mapping[str, AbstractRateLimiter]):
    """Immutable registry of limiter capabilities keyed by binding name."""

    def __init__(self, limiters: Mapping[str, AbstractRateLimiter] | None = None) -> None:
        self._limiters = MappingProxyType(dict(limiters or {}))

    def __getitem__(self, name: str) -> AbstractRateLimiter:
        return self._limiters[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._limiters)

    def __len__(self) -> int:
        return len(self._limiters)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"LimiterBindings({sorted(self._limiters)!r})"

    def require(self, name: str) -> AbstractRateLimiter:
        """Return the limiter bound to ``name``.

        Raises:
            ConfigurationMissingError: If no limiter is bound to ``name``.
        """
        limiter = self._limiters.get(name)
        if limiter is None:
            raise ConfigurationMissingError(
                code="limiter_binding_missing",
                message=f"Rate limiter binding '{name}' not found",
                details={"binding": name},
            )
        return limiter

    async def bind_client(self, client: httpx.AsyncClient) -> None:
        """Hand the application's shared HTTP client to remote limiters."""
        for limiter in self._limiters.values():
            if isinstance(limiter, HttpRateLimiter):
                await limiter.bind_client(client)

    async def aclose(self) -> None:
        for limiter in self._limiters.values():
            await limiter.aclose()


def _build_limiter(name: str, uri: str) -> AbstractRateLimiter:
    parts = urlsplit(uri)

    if parts.scheme == "memory":
        segments = [parts.netloc, *parts.path.strip("/").split("/")]
        segments = [s for s in segments if s]
        try:
            limit, window_seconds = (int(s) for s in segments)
            return InMemoryFixedWindowRateLimiter(limit=limit, window_seconds=window_seconds)
        except ValueError as exc:
            raise ValidationAppError(
                code="limiter_binding_invalid",
                message=f"Binding '{name}' must look like memory://<limit>/<window_seconds>",
                details={"binding": name, "entry": uri},
            ) from exc

    if parts.scheme in ("http", "https") and parts.netloc:
        return HttpRateLimiter(uri)

    raise ValidationAppError(
        code="limiter_binding_invalid",
        message=f"Unsupported limiter URI for binding '{name}'",
        details={"binding": name, "entry": uri},
    )


def parse_limiter_bindings(bindings_string: str | None) -> LimiterBindings:
    """Parse comma-separated ``NAME=URI`` entries into a registry.

    Examples:
        >>> sorted(parse_limiter_bindings("LOGIN_RATE_LIMITER=memory://5/60"))
        ['LOGIN_RATE_LIMITER']
        >>> len(parse_limiter_bindings(""))
        0

    Raises:
        ValidationAppError: On malformed entries or duplicate names.
    """
    if not bindings_string:
        return LimiterBindings()

    limiters: dict[str, AbstractRateLimiter] = {}
    for entry in (e.strip() for e in bindings_string.split(",")):
        if not entry:
            continue
        name, sep, uri = entry.partition("=")
        name, uri = name.strip(), uri.strip()
        if not sep or not name or not uri:
            raise ValidationAppError(
                code="limiter_binding_invalid",
                message="Limiter bindings must be NAME=URI entries",
                details={"entry": entry},
            )
        if name in limiters:
            raise ValidationAppError(
                code="limiter_binding_duplicate",
                message=f"Limiter binding '{name}' is declared twice",
                details={"binding": name},
            )
        limiters[name] = _build_limiter(name, uri)

    logger.info("rate_limit.bindings_loaded", extra={"bindings": sorted(limiters)})
    return LimiterBindings(limiters)
