"""Subscription records and the subscribed/default-free view over them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel

PlanTier = Literal["explorer", "accelerator", "team"]
SubscriptionStatus = Literal["active", "canceled", "past_due", "trialing"]

FREE_TIER: PlanTier = "explorer"


class SubscriptionRecord(BaseModel):
    id: str | None = None
    user_id: str
    plan: PlanTier
    status: SubscriptionStatus
    current_period_start: datetime
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Subscribed:
    record: SubscriptionRecord

    def to_record(self) -> SubscriptionRecord:
        return self.record


@dataclass(frozen=True)
class DefaultFree:
    """No subscription row exists; the user is on the free tier."""

    user_id: str

    def to_record(self, now: datetime | None = None) -> SubscriptionRecord:
        return SubscriptionRecord(
            user_id=self.user_id,
            plan=FREE_TIER,
            status="active",
            current_period_start=now or datetime.now(timezone.utc),
        )


SubscriptionView = Subscribed | DefaultFree


def resolve_subscription(record: SubscriptionRecord | None, user_id: str) -> SubscriptionView:
    if record is None:
        return DefaultFree(user_id=user_id)
    return Subscribed(record=record)
