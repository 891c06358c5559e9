"""Rate-limit key derivation.

Login attempts are keyed by the account being attacked (the e-mail in the
token request body), other protected endpoints by client IP. Reading the body
goes through Starlette's cached ``Request.body()``, so the backend forwarder
later receives the same bytes.

Any failure to read an e-mail degrades to the IP key; extraction never raises.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from urllib.parse import parse_qs

from starlette.requests import Request

from login_guard.core.errors import KeyExtractionError
from login_guard.services.policy import KeyStrategy

logger = logging.getLogger(__name__)

UNKNOWN_IP = "unknown"

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class ExtractedKey:
    """Result of key extraction.

    Attributes:
        key: Namespaced key, ``email:<address>`` or ``ip:<address>``.
        fallback_reason: Error code explaining an IP fallback for an
            e-mail-keyed endpoint, None otherwise.
    """

    key: str
    fallback_reason: str | None = None


def _non_empty_string(value: object) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _email_from_form(body: bytes) -> str | None:
    fields = parse_qs(body.decode("utf-8"), keep_blank_values=True)
    values = fields.get("username") or []
    return _non_empty_string(values[0]) if values else None


def _email_from_json(body: bytes) -> str | None:
    document = json.loads(body)
    if not isinstance(document, dict):
        return None
    # username only stands in for an absent or falsy email
    return _non_empty_string(document.get("email") or document.get("username"))


class KeyExtractor:
    """Derive rate-limit keys from inbound requests."""

    def __init__(self, client_ip_header: str = "cf-connecting-ip") -> None:
        self.client_ip_header = client_ip_header

    def ip_key(self, request: Request) -> str:
        ip = (request.headers.get(self.client_ip_header) or "").strip()
        return f"ip:{ip or UNKNOWN_IP}"

    async def _email_key(self, request: Request) -> str:
        """Read the e-mail from the request body.

        Raises:
            KeyExtractionError: On unsupported content types, malformed
                bodies or a missing field.
        """
        content_type = request.headers.get("content-type", "").lower()

        try:
            body = await request.body()
            if FORM_CONTENT_TYPE in content_type:
                email = _email_from_form(body)
            elif JSON_CONTENT_TYPE in content_type:
                email = _email_from_json(body)
            else:
                raise KeyExtractionError(
                    code="unsupported_content_type",
                    message="Request body is neither form-encoded nor JSON",
                    details={"content_type": content_type},
                )
        except KeyExtractionError:
            raise
        except Exception as exc:
            raise KeyExtractionError(
                code="malformed_body",
                message=f"Request body could not be parsed: {type(exc).__name__}",
                details={"content_type": content_type},
            ) from exc

        if email is None:
            raise KeyExtractionError(
                code="email_missing",
                message="Request body carries no e-mail or username",
                details={"content_type": content_type},
            )
        return f"email:{email.lower()}"

    async def extract(self, request: Request, strategy: KeyStrategy) -> ExtractedKey:
        if strategy is KeyStrategy.EMAIL:
            try:
                return ExtractedKey(key=await self._email_key(request))
            except KeyExtractionError as exc:
                logger.warning(
                    "rate_limit.key_extraction_fallback",
                    extra={
                        "reason": exc.code,
                        "error_message": exc.message,
                        "request_path": request.url.path,
                    },
                )
                return ExtractedKey(key=self.ip_key(request), fallback_reason=exc.code)

        return ExtractedKey(key=self.ip_key(request))
