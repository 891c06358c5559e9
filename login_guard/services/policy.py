"""Endpoint policy table.

Maps an exact request path to the limiter binding and key strategy that
protect it. Matching is exact and case-sensitive: ``/api/accounts/register/``
and ``/API/accounts/register`` are different paths and are not limited.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping

LOGIN_RATE_LIMITER = "LOGIN_RATE_LIMITER"


class KeyStrategy(str, Enum):
    """How the rate-limit key is derived for an endpoint."""

    EMAIL = "email"
    IP = "ip"


@dataclass(frozen=True)
class EndpointPolicyEntry:
    path_pattern: str
    limiter_name: str
    key_strategy: KeyStrategy


DEFAULT_POLICY_ENTRIES: tuple[EndpointPolicyEntry, ...] = (
    EndpointPolicyEntry("/identity/connect/token", LOGIN_RATE_LIMITER, KeyStrategy.EMAIL),
    EndpointPolicyEntry("/api/accounts/register", LOGIN_RATE_LIMITER, KeyStrategy.IP),
    EndpointPolicyEntry("/api/accounts/prelogin", LOGIN_RATE_LIMITER, KeyStrategy.IP),
)


class EndpointPolicy:
    """Read-only lookup table of rate-limited endpoints."""

    def __init__(self, entries: Iterable[EndpointPolicyEntry] = DEFAULT_POLICY_ENTRIES) -> None:
        table: dict[str, EndpointPolicyEntry] = {}
        for entry in entries:
            if entry.path_pattern in table:
                raise ValueError(f"duplicate policy entry for {entry.path_pattern!r}")
            table[entry.path_pattern] = entry
        self._table: Mapping[str, EndpointPolicyEntry] = MappingProxyType(table)

    def __len__(self) -> int:
        return len(self._table)

    @property
    def limiter_names(self) -> frozenset[str]:
        return frozenset(entry.limiter_name for entry in self._table.values())

    def lookup(self, path: str) -> EndpointPolicyEntry | None:
        return self._table.get(path)
