from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

TOO_MANY_REQUESTS_MESSAGE = "Too many requests. Please try again later."


class ErrorModel(BaseModel):
    """Nested error object expected by Bitwarden-compatible clients."""

    message: str = Field(TOO_MANY_REQUESTS_MESSAGE, alias="Message")
    object_type: str = Field("error", alias="Object")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class TooManyRequestsResponse(BaseModel):
    """Body of the 429 answer to a rate-limited request.

    Field order is part of the wire format; clients compare it byte-for-byte.
    """

    error: str = "too_many_requests"
    error_description: str = TOO_MANY_REQUESTS_MESSAGE
    error_model: ErrorModel = Field(default_factory=ErrorModel, alias="ErrorModel")

    model_config = ConfigDict(populate_by_name=True, frozen=True)
