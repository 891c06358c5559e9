"""HTTP middleware for request ID propagation and correlation.

Accepts the incoming correlation header or generates a UUID, keeps it in
contextvars for the lifetime of the request, and echoes it back together with
the total time the gateway spent on the request (limiter check plus backend).

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from login_guard.core.config import settings
from login_guard.core.logging import clear_request_id, set_request_id


async def request_id_middleware(request: Request, call_next) -> Response:
    """Tag the request/response pair with a correlation id and duration.

    The incoming header is also forwarded to the backend untouched, so the
    same id shows up in the gateway's and the backend's logs.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        The downstream response with ``X-Request-ID`` and
        ``X-Request-Duration-ms`` headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
