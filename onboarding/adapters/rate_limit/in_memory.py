"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
  A horizontally scaled deployment needs a shared counter store instead.
- Thread-safe: the read-check-increment sequence runs under a lock.
- The window starts at the first request after expiry, so bursts of up to
  twice the budget are possible around a window boundary.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from onboarding.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    identifier: str
    count: int
    window_reset_at: float


class FixedWindowRateLimiter(AbstractRateLimiter):
    """Fixed-window admission counter keyed by caller identifier.

    Algorithm for ``check(identifier)``:

    1. No entry, or its window already expired: start a new window with
       ``count = 1`` ending ``window_ms`` from now, and admit.
    2. ``count >= max_requests``: reject without touching the entry.
    3. Otherwise increment ``count`` and admit.

    ``max_requests <= 0`` rejects every call, including the first one for a
    fresh identifier, and never creates an entry.

    Expired entries are dropped by :meth:`sweep`, which :meth:`start` runs on a
    fixed interval in a daemon thread until :meth:`stop` is called.
    """

    def __init__(
        self,
        *,
        max_requests: int = 10,
        window_ms: int = 60000,
        sweep_interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            max_requests: Default budget per window.
            window_ms: Default window length in milliseconds.
            sweep_interval_seconds: Period of the background sweep.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If defaults are invalid.
        """
        if max_requests < 0:
            raise ValueError("max_requests must be >= 0")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be > 0")

        self._max_requests = max_requests
        self._window_ms = window_ms
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, RateLimitEntry] = {}
        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_entry(self, identifier: str) -> RateLimitEntry | None:
        """Snapshot of the stored entry, mostly for diagnostics and tests."""

        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None:
                return None
            return RateLimitEntry(entry.identifier, entry.count, entry.window_reset_at)

    def check(
        self,
        identifier: str,
        max_requests: int | None = None,
        window_ms: int | None = None,
    ) -> RateLimitResult:
        limit = self._max_requests if max_requests is None else max_requests
        window = self._window_ms if window_ms is None else window_ms
        now = self._clock()

        if limit <= 0:
            return self._blocked(limit=0, now=now, reset_at=now)

        with self._lock:
            entry = self._entries.get(identifier)

            if entry is None or now > entry.window_reset_at:
                entry = RateLimitEntry(
                    identifier=identifier,
                    count=1,
                    window_reset_at=now + window / 1000,
                )
                self._entries[identifier] = entry
                return self._allowed(limit=limit, count=1, reset_at=entry.window_reset_at)

            if entry.count >= limit:
                return self._blocked(limit=limit, now=now, reset_at=entry.window_reset_at)

            entry.count += 1
            return self._allowed(
                limit=limit, count=entry.count, reset_at=entry.window_reset_at
            )

    @staticmethod
    def _allowed(*, limit: int, count: int, reset_at: float) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=max(0, limit - count),
            reset_at=int(math.ceil(reset_at)),
            retry_after_seconds=None,
        )

    @staticmethod
    def _blocked(*, limit: int, now: float, reset_at: float) -> RateLimitResult:
        return RateLimitResult(
            allowed=False,
            limit=limit,
            remaining=0,
            reset_at=int(math.ceil(reset_at)),
            retry_after_seconds=max(0, int(math.ceil(reset_at - now))),
        )

    def sweep(self) -> int:
        """Drop entries whose window has expired.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now > e.window_reset_at]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("rate_limit.swept", extra={"removed": len(expired)})
        return len(expired)

    def start(self) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._run_sweeper, name="rate-limit-sweeper", daemon=True
        )
        self._sweeper.start()
        logger.info(
            "rate_limit.sweeper_started",
            extra={"interval_s": self._sweep_interval},
        )

    def stop(self) -> None:
        sweeper = self._sweeper
        if sweeper is None:
            return
        self._stop_event.set()
        sweeper.join(timeout=self._sweep_interval + 1)
        self._sweeper = None
        logger.info("rate_limit.sweeper_stopped")

    def _run_sweeper(self) -> None:
        while not self._stop_event.wait(self._sweep_interval):
            try:
                self.sweep()
            except Exception:  # pragma: no cover - keep the sweeper alive
                logger.exception("rate_limit.sweep_failed")
