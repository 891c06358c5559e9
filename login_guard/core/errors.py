"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    binding: str
    entry: str
    content_type: str
    status_code: int
    upstream_url: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class ConfigurationMissingError(AppError):
    """Raised when a limiter binding named by the policy table is not configured."""


class KeyExtractionError(AppError):
    """Raised when a rate-limit key cannot be read from the request body."""


class LimiterCallError(AppError):
    """Raised when a limiter capability fails or answers with an invalid payload."""


class UpstreamAppError(AppError):
    """Raised when the protected backend cannot be reached."""
