"""Rate limiting dependency for mutating routes.

The limiter is an explicitly constructed instance owned by the app (see
``create_app``) and reached through ``app.state``; there is no process-wide
singleton.

Keying:
- Authenticated callers are limited per user id.
- Anonymous callers (or rejected tokens) fall back to the client IP.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Request

from onboarding.adapters.rate_limit.base import AbstractRateLimiter
from onboarding.core.auth import AuthContext, bind_caller_token
from onboarding.core.config import settings
from onboarding.core.errors import RateLimitExceededError
from onboarding.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    return request.app.state.rate_limiter


def build_rate_limit_key(request: Request, context: AuthContext | None) -> str:
    if context is not None:
        return f"user:{context.user.id}"
    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


async def enforce_rate_limit(
    request: Request,
    limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
    context: Annotated[AuthContext | None, Depends(bind_caller_token)],
) -> None:
    """Count the request against the caller's window; throttle with 429.

    Raises:
        RateLimitExceededError: When the caller's window budget is spent.
    """
    if not settings.app.rate_limit_enabled:
        return

    key = build_rate_limit_key(request, context)
    key_type = "user" if context is not None else "ip"
    result = limiter.check(key)

    log_extra = {
        "key_type": key_type,
        "key_hash": hash_identifier(key),
        "limit": result.limit,
        "remaining": result.remaining,
    }
    if result.allowed:
        logger.debug("rate_limit.allowed", extra=log_extra)
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning("rate_limit.exceeded", extra={**log_extra, "retry_after_s": retry_after})

    headers: dict[str, str] = {}
    if settings.app.rate_limit_include_headers:
        headers = {
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_at),
        }

    raise RateLimitExceededError(
        code="rate_limited",
        message="Rate limit exceeded. Try again later.",
        details={"retry_after": retry_after},
        headers=headers,
    )
