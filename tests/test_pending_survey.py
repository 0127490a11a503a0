"""Tests for reconciling survey answers staged before sign-up."""

from unittest.mock import AsyncMock

import pytest
from tenacity import wait_none

from onboarding.adapters.stores.in_memory import (
    InMemoryPendingSurveyStaging,
    InMemoryProfileStore,
)
from onboarding.core.errors import UpstreamStoreError
from onboarding.schemas.profile import PendingSurvey, Profile
from onboarding.services.pending_survey import PendingSurveyReconciler

USER_ID = "user-1"


def _pending(**overrides) -> PendingSurvey:
    data = {
        "user_id": USER_ID,
        "answers": {"goal": "career-switch", "hours": 5},
        "persona": "explorer",
        "full_name": "Ada Lovelace",
    }
    data.update(overrides)
    return PendingSurvey(**data)


@pytest.fixture
def staging() -> InMemoryPendingSurveyStaging:
    return InMemoryPendingSurveyStaging()


@pytest.fixture
def profiles() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.mark.asyncio
async def test_saves_answers_and_clears_staging(profiles, staging) -> None:
    reconciler = PendingSurveyReconciler(profiles, staging, wait=wait_none())
    reconciler.stage(_pending())

    saved = await reconciler.reconcile(USER_ID)

    assert saved is not None
    assert saved.survey_answers == {"goal": "career-switch", "hours": 5}
    assert saved.persona == "explorer"
    assert saved.full_name == "Ada Lovelace"
    assert staging.get() is None
    stored = await profiles.get_by_id(USER_ID)
    assert stored is not None and stored.survey_answers == saved.survey_answers


@pytest.mark.asyncio
async def test_merges_into_existing_profile(profiles, staging) -> None:
    await profiles.upsert(USER_ID, {"email": "ada@example.com", "full_name": "A. Lovelace"})
    reconciler = PendingSurveyReconciler(profiles, staging, wait=wait_none())
    reconciler.stage(_pending(full_name=None))

    saved = await reconciler.reconcile(USER_ID)

    assert saved is not None
    assert saved.email == "ada@example.com"
    assert saved.full_name == "A. Lovelace"


@pytest.mark.asyncio
async def test_nothing_staged_returns_none(profiles, staging) -> None:
    reconciler = PendingSurveyReconciler(profiles, staging, wait=wait_none())

    assert await reconciler.reconcile(USER_ID) is None
    assert await profiles.get_by_id(USER_ID) is None


@pytest.mark.asyncio
async def test_data_for_another_user_is_left_alone(profiles, staging) -> None:
    reconciler = PendingSurveyReconciler(profiles, staging, wait=wait_none())
    reconciler.stage(_pending(user_id="someone-else"))

    assert await reconciler.reconcile(USER_ID) is None
    assert staging.get() is not None
    assert await profiles.get_by_id(USER_ID) is None


@pytest.mark.asyncio
async def test_empty_answers_are_not_written(profiles, staging) -> None:
    reconciler = PendingSurveyReconciler(profiles, staging, wait=wait_none())
    reconciler.stage(_pending(answers={}))

    assert await reconciler.reconcile(USER_ID) is None
    assert await profiles.get_by_id(USER_ID) is None


@pytest.mark.asyncio
async def test_transient_store_failure_is_retried(staging) -> None:
    profiles = AsyncMock()
    saved_profile = Profile(id=USER_ID, survey_answers={"goal": "career-switch"})
    profiles.upsert.side_effect = [
        UpstreamStoreError(code="store_error", message="timeout"),
        saved_profile,
    ]
    profiles.get_by_id.return_value = saved_profile
    reconciler = PendingSurveyReconciler(profiles, staging, wait=wait_none())
    reconciler.stage(_pending())

    saved = await reconciler.reconcile(USER_ID)

    assert saved == saved_profile
    assert profiles.upsert.await_count == 2
    assert staging.get() is None


@pytest.mark.asyncio
async def test_unverified_write_is_retried_then_kept_staged(staging) -> None:
    profiles = AsyncMock()
    profiles.upsert.return_value = Profile(id=USER_ID)
    profiles.get_by_id.return_value = Profile(id=USER_ID, survey_answers=None)
    reconciler = PendingSurveyReconciler(profiles, staging, max_attempts=3, wait=wait_none())
    reconciler.stage(_pending())

    assert await reconciler.reconcile(USER_ID) is None
    assert profiles.upsert.await_count == 3
    # Kept for the next interactive sign-in.
    assert staging.get() is not None


@pytest.mark.asyncio
async def test_persistent_failure_never_raises(staging) -> None:
    profiles = AsyncMock()
    profiles.upsert.side_effect = UpstreamStoreError(code="store_error", message="down")
    reconciler = PendingSurveyReconciler(profiles, staging, max_attempts=2, wait=wait_none())
    reconciler.stage(_pending())

    assert await reconciler.reconcile(USER_ID) is None
    assert profiles.upsert.await_count == 2
    assert staging.get() is not None
