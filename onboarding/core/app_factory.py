"""Application factory for the FastAPI app.

Centralizes app construction (metadata, collaborators, middleware, handlers,
routers). The backend and the rate limiter are explicit instances stored on
``app.state``; the lifespan starts and stops the limiter's sweep and closes
backend connections.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from onboarding.adapters.factory import Backend, create_backend
from onboarding.adapters.rate_limit.base import AbstractRateLimiter
from onboarding.adapters.rate_limit.in_memory import FixedWindowRateLimiter
from onboarding.api.routes import health_router, profile_router
from onboarding.core.config import settings
from onboarding.core.exception_handlers import setup_exception_handlers
from onboarding.core.logging import configure_logging
from onboarding.core.middleware import request_id_middleware

OPENAPI_TAGS = [
    {"name": "Profile", "description": "Password and subscription management."},
    {"name": "Health", "description": "Liveness checks."},
]


def build_rate_limiter() -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        max_requests=settings.app.rate_limit_requests,
        window_ms=settings.app.rate_limit_window_ms,
        sweep_interval_seconds=settings.app.rate_limit_sweep_interval_seconds,
    )


def create_app(
    *,
    backend: Backend | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        backend: Auth provider and stores; built from settings when omitted.
        rate_limiter: Limiter guarding mutating routes; built from settings
            when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    backend = backend or create_backend()
    limiter = rate_limiter or build_rate_limiter()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        limiter.start()
        try:
            yield
        finally:
            limiter.stop()
            await backend.aclose()

    app = FastAPI(
        title="Onboarding Journey API",
        description=(
            "Profile endpoints of the onboarding journey: password changes and "
            "subscription management. Requires a bearer session token; mutating "
            "endpoints are rate limited per user."
        ),
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )
    app.state.backend = backend
    app.state.rate_limiter = limiter

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(profile_router)
    app.include_router(health_router)

    return app
