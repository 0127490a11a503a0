"""Record store interfaces consumed by the session core and the API.

Implementations raise :class:`~onboarding.core.errors.UpstreamStoreError` when
the backing store fails; "not found" is reported as ``None``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from onboarding.schemas.profile import PendingSurvey, Plan, Profile
from onboarding.schemas.subscription import SubscriptionRecord


class ProfileStore(ABC):
    @abstractmethod
    async def get_by_id(self, user_id: str) -> Profile | None:
        raise NotImplementedError

    @abstractmethod
    async def upsert(self, user_id: str, fields: dict[str, Any]) -> Profile:
        """Create the profile or merge ``fields`` into the existing one."""
        raise NotImplementedError


class PlanStore(ABC):
    @abstractmethod
    async def get_active_or_latest(self, user_id: str) -> Plan | None:
        """Return the flagged active plan, else the most recently generated one."""
        raise NotImplementedError


class ProgressStore(ABC):
    @abstractmethod
    async def count_completed(self, user_id: str) -> int:
        raise NotImplementedError


class SubscriptionStore(ABC):
    @abstractmethod
    async def get_by_user(self, user_id: str) -> SubscriptionRecord | None:
        raise NotImplementedError

    @abstractmethod
    async def mark_cancel_at_period_end(self, user_id: str) -> None:
        raise NotImplementedError


class PendingSurveyStaging(ABC):
    """Client-side staging area for survey answers captured before sign-up."""

    @abstractmethod
    def get(self) -> PendingSurvey | None:
        raise NotImplementedError

    @abstractmethod
    def put(self, pending: PendingSurvey) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError
