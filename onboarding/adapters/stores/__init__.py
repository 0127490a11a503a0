"""Record store ports and their in-memory implementations."""

from onboarding.adapters.stores.base import (
    PendingSurveyStaging,
    PlanStore,
    ProfileStore,
    ProgressStore,
    SubscriptionStore,
)
from onboarding.adapters.stores.in_memory import (
    InMemoryPendingSurveyStaging,
    InMemoryPlanStore,
    InMemoryProfileStore,
    InMemoryProgressStore,
    InMemorySubscriptionStore,
)

__all__ = [
    "InMemoryPendingSurveyStaging",
    "InMemoryPlanStore",
    "InMemoryProfileStore",
    "InMemoryProgressStore",
    "InMemorySubscriptionStore",
    "PendingSurveyStaging",
    "PlanStore",
    "ProfileStore",
    "ProgressStore",
    "SubscriptionStore",
]
