"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so the
storage backend can be swapped without touching the routes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of an admission check.

    Attributes:
        allowed: Whether the request is admitted.
        limit: Max requests per window.
        remaining: Requests left in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window expires.
        retry_after_seconds: Suggested wait time when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for admission-control limiters keyed by caller identifier."""

    @abstractmethod
    def check(
        self,
        identifier: str,
        max_requests: int | None = None,
        window_ms: int | None = None,
    ) -> RateLimitResult:
        """Count one request for ``identifier`` and report the decision.

        Args:
            identifier: Caller key (user id, IP address, ...).
            max_requests: Per-call override of the window budget.
            window_ms: Per-call override of the window length.

        Returns:
            RateLimitResult describing whether it was admitted.
        """
        raise NotImplementedError

    def admit(
        self,
        identifier: str,
        max_requests: int | None = None,
        window_ms: int | None = None,
    ) -> bool:
        """Boolean form of :meth:`check`; never raises on rejection."""

        return self.check(identifier, max_requests, window_ms).allowed

    def start(self) -> None:
        """Start background maintenance, if the implementation has any."""

    def stop(self) -> None:
        """Stop background maintenance started by :meth:`start`."""
