from __future__ import annotations

"""Application factory for the gateway.

Builds the read-only pieces (policy table, limiter bindings, decision
pipeline) once, and manages the shared HTTP client and the scheduled trigger
through the lifespan.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI

from login_guard.adapters.backend.base import AbstractBackend, BackendFactory
from login_guard.adapters.backend.proxy import ProxyBackend
from login_guard.adapters.rate_limit.bindings import LimiterBindings, parse_limiter_bindings
from login_guard.api.routes import health_router, proxy_router
from login_guard.core.config import settings
from login_guard.core.exception_handlers import setup_exception_handlers
from login_guard.core.logging import configure_logging
from login_guard.core.middleware import request_id_middleware
from login_guard.core.scheduler import PeriodicTrigger
from login_guard.services.decision import RateLimitDecider
from login_guard.services.dispatcher import RequestDispatcher
from login_guard.services.key_extractor import KeyExtractor
from login_guard.services.limiter_gateway import LimiterGateway
from login_guard.services.policy import EndpointPolicy

logger = logging.getLogger(__name__)


def _warn_unbound_limiters(policy: EndpointPolicy, bindings: LimiterBindings) -> None:
    missing = sorted(policy.limiter_names - set(bindings))
    if missing:
        logger.warning(
            "rate_limit.bindings_incomplete",
            extra={"missing_bindings": missing, "action": "endpoints fail open"},
        )


def create_app(
    *,
    policy: EndpointPolicy | None = None,
    bindings: LimiterBindings | None = None,
    backend_factory: BackendFactory | None = None,
) -> FastAPI:
    """Create and configure the gateway application.

    Args:
        policy: Endpoint policy table; defaults to the three login endpoints.
        bindings: Limiter bindings; parsed from ``LIMITER_BINDINGS`` if omitted.
        backend_factory: Builds one backend handler per invocation; defaults
            to a reverse proxy towards ``GATEWAY_UPSTREAM_URL``.

    Returns:
        Configured FastAPI app.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    gateway_cfg = settings.gateway
    policy = policy or EndpointPolicy()
    if bindings is None:
        bindings = parse_limiter_bindings(settings.limiter.bindings)
    _warn_unbound_limiters(policy, bindings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        trigger: PeriodicTrigger | None = None
        async with httpx.AsyncClient() as client:
            app.state.http_client = client
            await bindings.bind_client(client)
            if gateway_cfg.scheduled_interval_seconds:
                trigger = PeriodicTrigger(
                    app.state.dispatcher.scheduled,
                    interval_seconds=gateway_cfg.scheduled_interval_seconds,
                    cron=gateway_cfg.scheduled_cron,
                )
                trigger.start()
            try:
                yield
            finally:
                if trigger is not None:
                    await trigger.stop()
                await bindings.aclose()

    # No docs routes: every path except the health check belongs to the backend
    app = FastAPI(
        title="Login Guard",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    if backend_factory is None:

        def backend_factory() -> AbstractBackend:
            return ProxyBackend(
                app.state.http_client,
                upstream_url=gateway_cfg.upstream_url,
                timeout_seconds=gateway_cfg.upstream_timeout_seconds,
                scheduled_path=gateway_cfg.scheduled_path,
                request_id_header=settings.log.request_id_header,
            )

    decider = RateLimitDecider(
        policy,
        KeyExtractor(client_ip_header=gateway_cfg.client_ip_header),
        LimiterGateway(bindings, timeout_seconds=gateway_cfg.limiter_timeout_seconds),
    )
    app.state.dispatcher = RequestDispatcher(decider, backend_factory)

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    # Health first: the proxy route matches every path
    app.include_router(health_router)
    app.include_router(proxy_router)

    return app
