"""Derived journey progress: current plan day and completion percentage."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from onboarding.adapters.stores.base import PlanStore, ProgressStore
from onboarding.core.logging import hash_identifier

logger = logging.getLogger(__name__)

JOURNEY_DAYS = 90
_ONE_DAY = timedelta(days=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def compute_current_day(start_date: datetime, now: datetime) -> int:
    """1-based plan day for ``now``, clamped to ``[1, JOURNEY_DAYS]``."""

    days_passed = math.floor((_as_utc(now) - _as_utc(start_date)) / _ONE_DAY)
    return max(1, min(JOURNEY_DAYS, days_passed + 1))


def compute_journey_progress(completed: int, total: int) -> int:
    """Completion percentage rounded half-up; 0 when the plan has no activities."""

    if total <= 0:
        return 0
    percent = math.floor(100 * completed / total + 0.5)
    return max(0, min(100, percent))


@dataclass(frozen=True)
class ProgressSnapshot:
    current_day: int
    # None when the completion count could not be read.
    journey_progress: int | None


class ProgressCalculator:
    """Reads the canonical plan and completion count for a user."""

    def __init__(
        self,
        plans: PlanStore,
        progress: ProgressStore,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._plans = plans
        self._progress = progress
        self._now = now or _utcnow

    async def compute(self, user_id: str) -> ProgressSnapshot | None:
        """Return the user's progress, or ``None`` when no plan exists.

        Plan store failures propagate to the caller. A failed completion
        count still yields the current day, with ``journey_progress=None``.
        """
        plan = await self._plans.get_active_or_latest(user_id)
        if plan is None:
            return None

        current_day = compute_current_day(plan.start_date, self._now())
        try:
            completed = await self._progress.count_completed(user_id)
        except Exception:
            logger.warning(
                "progress.count_failed",
                exc_info=True,
                extra={"user_hash": hash_identifier(user_id)},
            )
            return ProgressSnapshot(current_day=current_day, journey_progress=None)
        return ProgressSnapshot(
            current_day=current_day,
            journey_progress=compute_journey_progress(completed, plan.total_activities),
        )
