"""Limiter capability interface.

The gateway depends on this abstraction only. Counting happens behind it,
either in-process or in an external limiter service.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class LimitOutcome:
    """Answer of a limiter capability.

    Attributes:
        success: True when the key still has budget and the call may proceed.
    """

    success: bool


class AbstractRateLimiter(ABC):
    """Interface for limiter capabilities bound by name."""

    @abstractmethod
    async def limit(self, key: str) -> LimitOutcome:
        """Consume one unit of budget for ``key``.

        Args:
            key: Namespaced rate-limit key (e.g. ``email:user@example.com``).

        Returns:
            LimitOutcome describing whether the call is allowed.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release resources held by the limiter."""
        return None
