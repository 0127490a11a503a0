"""Tests for current-day and journey-progress derivation."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from onboarding.adapters.stores.in_memory import InMemoryPlanStore, InMemoryProgressStore
from onboarding.schemas.profile import Plan, ProgressRecord
from onboarding.services.progress import (
    ProgressCalculator,
    ProgressSnapshot,
    compute_current_day,
    compute_journey_progress,
)

NOW = datetime(2026, 3, 15, 9, 30, tzinfo=timezone.utc)


def _plan(user_id: str = "u1", *, start: datetime, activities: int = 12, **kwargs) -> Plan:
    ids = [f"a{i}" for i in range(activities)]
    third = activities // 3
    return Plan(
        user_id=user_id,
        start_date=start,
        phase1_activities=ids[:third],
        phase2_activities=ids[third : 2 * third],
        phase3_activities=ids[2 * third :],
        **kwargs,
    )


class TestCurrentDay:
    def test_ten_days_after_start_is_day_eleven(self) -> None:
        assert compute_current_day(NOW - timedelta(days=10), NOW) == 11

    def test_start_today_is_day_one(self) -> None:
        assert compute_current_day(NOW - timedelta(hours=3), NOW) == 1

    @pytest.mark.parametrize("offset_days", [1, 30, 365])
    def test_future_start_clamps_to_day_one(self, offset_days: int) -> None:
        assert compute_current_day(NOW + timedelta(days=offset_days), NOW) == 1

    @pytest.mark.parametrize("offset_days", [89, 90, 500])
    def test_long_past_start_clamps_to_day_ninety(self, offset_days: int) -> None:
        assert compute_current_day(NOW - timedelta(days=offset_days), NOW) == 90

    def test_naive_start_date_is_treated_as_utc(self) -> None:
        naive = (NOW - timedelta(days=2)).replace(tzinfo=None)
        assert compute_current_day(naive, NOW) == 3


class TestJourneyProgress:
    def test_three_of_twelve_is_twenty_five(self) -> None:
        assert compute_journey_progress(3, 12) == 25

    def test_zero_total_is_zero(self) -> None:
        assert compute_journey_progress(0, 0) == 0
        assert compute_journey_progress(5, 0) == 0

    def test_rounds_half_up(self) -> None:
        assert compute_journey_progress(1, 8) == 13  # 12.5
        assert compute_journey_progress(1, 3) == 33

    def test_never_exceeds_one_hundred(self) -> None:
        assert compute_journey_progress(15, 12) == 100


class TestProgressCalculator:
    @pytest.mark.asyncio
    async def test_computes_snapshot_from_plan_and_completions(self) -> None:
        plans = InMemoryPlanStore()
        progress = InMemoryProgressStore()
        plans.add(_plan(start=NOW - timedelta(days=10)))
        for i in range(3):
            progress.append(ProgressRecord(user_id="u1", activity_id=f"a{i}", status="completed"))
        progress.append(ProgressRecord(user_id="u1", activity_id="a5", status="in_progress"))
        progress.append(ProgressRecord(user_id="u2", activity_id="a1", status="completed"))

        calculator = ProgressCalculator(plans, progress, now=lambda: NOW)

        assert await calculator.compute("u1") == ProgressSnapshot(current_day=11, journey_progress=25)

    @pytest.mark.asyncio
    async def test_no_plan_returns_none_without_counting(self) -> None:
        progress = AsyncMock()
        calculator = ProgressCalculator(InMemoryPlanStore(), progress, now=lambda: NOW)

        assert await calculator.compute("u1") is None
        progress.count_completed.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_plan_has_zero_progress(self) -> None:
        plans = InMemoryPlanStore()
        plans.add(_plan(start=NOW, activities=0))
        calculator = ProgressCalculator(plans, InMemoryProgressStore(), now=lambda: NOW)

        snapshot = await calculator.compute("u1")
        assert snapshot == ProgressSnapshot(current_day=1, journey_progress=0)

    @pytest.mark.asyncio
    async def test_failed_completion_count_keeps_current_day(self) -> None:
        plans = InMemoryPlanStore()
        plans.add(_plan(start=NOW - timedelta(days=10)))
        progress = AsyncMock()
        progress.count_completed.side_effect = RuntimeError("count unavailable")
        calculator = ProgressCalculator(plans, progress, now=lambda: NOW)

        snapshot = await calculator.compute("u1")

        assert snapshot == ProgressSnapshot(current_day=11, journey_progress=None)

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self) -> None:
        plans = AsyncMock()
        plans.get_active_or_latest.side_effect = RuntimeError("boom")
        calculator = ProgressCalculator(plans, InMemoryProgressStore())

        with pytest.raises(RuntimeError):
            await calculator.compute("u1")


class TestCanonicalPlan:
    @pytest.mark.asyncio
    async def test_active_plan_wins_over_newer_plan(self) -> None:
        plans = InMemoryPlanStore()
        active = _plan(start=NOW - timedelta(days=5), is_active=True, generated_at=NOW - timedelta(days=5))
        newer = _plan(start=NOW, generated_at=NOW)
        plans.add(active)
        plans.add(newer)

        assert await plans.get_active_or_latest("u1") == active

    @pytest.mark.asyncio
    async def test_most_recently_generated_plan_without_active_flag(self) -> None:
        plans = InMemoryPlanStore()
        newest = _plan(start=NOW, generated_at=NOW)
        plans.add(newest)
        plans.add(_plan(start=NOW - timedelta(days=20), generated_at=NOW - timedelta(days=20)))

        assert await plans.get_active_or_latest("u1") == newest
