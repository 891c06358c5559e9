"""Tests for rate-limit key derivation."""

from __future__ import annotations

import logging

import pytest

from login_guard.services.key_extractor import KeyExtractor
from login_guard.services.policy import KeyStrategy

TOKEN_PATH = "/identity/connect/token"
JSON = {"content-type": "application/json"}
FORM = {"content-type": "application/x-www-form-urlencoded"}


@pytest.fixture
def extractor() -> KeyExtractor:
    return KeyExtractor(client_ip_header="cf-connecting-ip")


class TestIpStrategy:

    @pytest.mark.asyncio
    async def test_uses_client_ip_header(self, extractor, request_factory) -> None:
        request = request_factory("/api/accounts/register", headers={"cf-connecting-ip": "1.2.3.4"})

        extracted = await extractor.extract(request, KeyStrategy.IP)

        assert extracted.key == "ip:1.2.3.4"
        assert extracted.fallback_reason is None

    @pytest.mark.asyncio
    async def test_missing_header_yields_unknown(self, extractor, request_factory) -> None:
        extracted = await extractor.extract(request_factory("/api/accounts/prelogin"), KeyStrategy.IP)

        assert extracted.key == "ip:unknown"

    @pytest.mark.asyncio
    async def test_ignores_socket_peer_address(self, extractor, request_factory) -> None:
        # request_factory sets a socket client of 203.0.113.9
        extracted = await extractor.extract(request_factory("/x"), KeyStrategy.IP)

        assert "203.0.113.9" not in extracted.key

    @pytest.mark.asyncio
    async def test_custom_header_name(self, request_factory) -> None:
        extractor = KeyExtractor(client_ip_header="x-real-ip")
        request = request_factory("/x", headers={"X-Real-IP": "9.9.9.9", "cf-connecting-ip": "1.1.1.1"})

        extracted = await extractor.extract(request, KeyStrategy.IP)

        assert extracted.key == "ip:9.9.9.9"


class TestEmailStrategy:

    @pytest.mark.asyncio
    async def test_json_email_is_lowercased(self, extractor, request_factory) -> None:
        request = request_factory(
            TOKEN_PATH,
            headers=JSON,
            body=b'{"email":"User@Example.com","password":"x"}',
        )

        extracted = await extractor.extract(request, KeyStrategy.EMAIL)

        assert extracted.key == "email:user@example.com"

    @pytest.mark.asyncio
    async def test_json_falls_back_to_username(self, extractor, request_factory) -> None:
        request = request_factory(
            TOKEN_PATH,
            headers={"content-type": "application/json; charset=utf-8"},
            body=b'{"username":"Someone@Example.org"}',
        )

        extracted = await extractor.extract(request, KeyStrategy.EMAIL)

        assert extracted.key == "email:someone@example.org"

    @pytest.mark.asyncio
    async def test_json_empty_email_falls_back_to_username(self, extractor, request_factory) -> None:
        request = request_factory(
            TOKEN_PATH,
            headers=JSON,
            body=b'{"email":"","username":"Someone@Example.org"}',
        )

        extracted = await extractor.extract(request, KeyStrategy.EMAIL)

        assert extracted.key == "email:someone@example.org"

    @pytest.mark.asyncio
    async def test_form_username(self, extractor, request_factory) -> None:
        request = request_factory(
            TOKEN_PATH,
            headers=FORM,
            body=b"grant_type=password&username=User%40Example.com&password=secret",
        )

        extracted = await extractor.extract(request, KeyStrategy.EMAIL)

        assert extracted.key == "email:user@example.com"

    @pytest.mark.asyncio
    async def test_plain_form_username(self, extractor, request_factory) -> None:
        request = request_factory(TOKEN_PATH, headers=FORM, body=b"username=User@Example.com")

        extracted = await extractor.extract(request, KeyStrategy.EMAIL)

        assert extracted.key == "email:user@example.com"

    @pytest.mark.asyncio
    async def test_body_stays_readable(self, extractor, request_factory) -> None:
        body = b'{"email":"a@b.c"}'
        request = request_factory(TOKEN_PATH, headers=JSON, body=body)

        await extractor.extract(request, KeyStrategy.EMAIL)

        assert await request.body() == body


class TestEmailFallback:

    @pytest.mark.parametrize(
        ("headers", "body", "reason"),
        [
            (JSON, b"{not json", "malformed_body"),
            (JSON, b'["a@b.c"]', "email_missing"),
            (JSON, b'{"password":"x"}', "email_missing"),
            (JSON, b'{"email":""}', "email_missing"),
            (JSON, b'{"email":42}', "email_missing"),
            (JSON, b'{"email":42,"username":"a@b.c"}', "email_missing"),
            (FORM, b"password=x", "email_missing"),
            (FORM, b"username=", "email_missing"),
            ({"content-type": "text/plain"}, b"a@b.c", "unsupported_content_type"),
            ({}, b'{"email":"a@b.c"}', "unsupported_content_type"),
        ],
    )
    @pytest.mark.asyncio
    async def test_falls_back_to_ip(self, extractor, request_factory, headers, body, reason) -> None:
        request = request_factory(TOKEN_PATH, headers={**headers, "cf-connecting-ip": "5.6.7.8"}, body=body)

        extracted = await extractor.extract(request, KeyStrategy.EMAIL)

        assert extracted.key == "ip:5.6.7.8"
        assert extracted.fallback_reason == reason

    @pytest.mark.asyncio
    async def test_fallback_logs_warning(self, extractor, request_factory, caplog) -> None:
        request = request_factory(TOKEN_PATH, headers=JSON, body=b"{")

        with caplog.at_level(logging.WARNING, logger="login_guard.services.key_extractor"):
            extracted = await extractor.extract(request, KeyStrategy.EMAIL)

        assert extracted.key == "ip:unknown"
        assert any(r.message == "rate_limit.key_extraction_fallback" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_body_read_error_never_escapes(self, extractor, request_factory) -> None:
        request = request_factory(TOKEN_PATH, headers=JSON)

        async def broken_body() -> bytes:
            raise RuntimeError("client disconnected")

        request.body = broken_body  # type: ignore[method-assign]

        extracted = await extractor.extract(request, KeyStrategy.EMAIL)

        assert extracted.key == "ip:unknown"
        assert extracted.fallback_reason == "malformed_body"
