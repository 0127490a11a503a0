"""In-memory store implementations for development and tests.

Records are deep-copied on the way in and out so callers can't mutate stored
state behind the store's back.
"""

from __future__ import annotations

from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Callable

from onboarding.adapters.stores.base import (
    PendingSurveyStaging,
    PlanStore,
    ProfileStore,
    ProgressStore,
    SubscriptionStore,
)
from onboarding.schemas.profile import PendingSurvey, Plan, Profile, ProgressRecord
from onboarding.schemas.subscription import SubscriptionRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryProfileStore(ProfileStore):
    def __init__(self, now: Callable[[], datetime] = _utcnow) -> None:
        self._profiles: dict[str, Profile] = {}
        self._now = now

    async def get_by_id(self, user_id: str) -> Profile | None:
        profile = self._profiles.get(user_id)
        return deepcopy(profile) if profile else None

    async def upsert(self, user_id: str, fields: dict[str, Any]) -> Profile:
        now = self._now()
        existing = self._profiles.get(user_id)
        if existing is None:
            profile = Profile.model_validate(
                {**fields, "id": user_id, "created_at": now, "updated_at": now}
            )
        else:
            merged = {**existing.model_dump(), **fields, "id": user_id, "updated_at": now}
            profile = Profile.model_validate(merged)
        self._profiles[user_id] = profile
        return deepcopy(profile)


class InMemoryPlanStore(PlanStore):
    def __init__(self) -> None:
        self._plans: dict[str, list[Plan]] = {}

    def add(self, plan: Plan) -> None:
        self._plans.setdefault(plan.user_id, []).append(plan)

    async def get_active_or_latest(self, user_id: str) -> Plan | None:
        plans = self._plans.get(user_id, [])
        if not plans:
            return None
        for plan in plans:
            if plan.is_active:
                return plan
        # Plans without generated_at sort oldest; ties keep insertion order.
        return max(
            enumerate(plans),
            key=lambda item: (
                item[1].generated_at or datetime.min.replace(tzinfo=timezone.utc),
                item[0],
            ),
        )[1]


class InMemoryProgressStore(ProgressStore):
    def __init__(self) -> None:
        self._records: list[ProgressRecord] = []

    def append(self, record: ProgressRecord) -> None:
        self._records.append(record)

    async def count_completed(self, user_id: str) -> int:
        return sum(
            1 for r in self._records if r.user_id == user_id and r.status == "completed"
        )


class InMemorySubscriptionStore(SubscriptionStore):
    def __init__(self, now: Callable[[], datetime] = _utcnow) -> None:
        self._records: dict[str, SubscriptionRecord] = {}
        self._now = now

    def put(self, record: SubscriptionRecord) -> None:
        self._records[record.user_id] = record

    async def get_by_user(self, user_id: str) -> SubscriptionRecord | None:
        record = self._records.get(user_id)
        return deepcopy(record) if record else None

    async def mark_cancel_at_period_end(self, user_id: str) -> None:
        # Matches an UPDATE ... WHERE user_id = ?: no row, nothing to do.
        record = self._records.get(user_id)
        if record is None:
            return
        self._records[user_id] = record.model_copy(
            update={"cancel_at_period_end": True, "updated_at": self._now()}
        )


class InMemoryPendingSurveyStaging(PendingSurveyStaging):
    def __init__(self) -> None:
        self._pending: PendingSurvey | None = None

    def get(self) -> PendingSurvey | None:
        return self._pending

    def put(self, pending: PendingSurvey) -> None:
        self._pending = pending

    def clear(self) -> None:
        self._pending = None
