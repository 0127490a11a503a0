"""Rate limiting adapters.

The HTTP layer depends on the abstract limiter so the in-memory, per-process
implementation can later be swapped for a shared counter store (e.g. Redis)
when the API runs on more than one process.
"""

from onboarding.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from onboarding.adapters.rate_limit.in_memory import FixedWindowRateLimiter

__all__ = ["AbstractRateLimiter", "FixedWindowRateLimiter", "RateLimitResult"]
