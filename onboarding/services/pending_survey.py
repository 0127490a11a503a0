"""Reconciliation of survey answers captured before the account existed.

A visitor can finish the onboarding survey before confirming their email.
The answers are staged client-side and written to the profile on the first
interactive sign-in. Staged data is only discarded once the profile is
verified to hold the answers, so a failed attempt is retried on the next
sign-in.
"""

from __future__ import annotations

import logging

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from onboarding.adapters.stores.base import PendingSurveyStaging, ProfileStore
from onboarding.core.errors import UpstreamStoreError
from onboarding.core.logging import hash_identifier
from onboarding.schemas.profile import PendingSurvey, Profile

logger = logging.getLogger(__name__)


class SurveyNotPersistedError(Exception):
    """The profile was written but does not hold the survey answers."""


def _log_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    logger.warning(
        "pending_survey.attempt_failed",
        extra={
            "attempt": retry_state.attempt_number,
            "error_type": type(outcome.exception()).__name__ if outcome else None,
        },
    )


class PendingSurveyReconciler:
    def __init__(
        self,
        profiles: ProfileStore,
        staging: PendingSurveyStaging,
        *,
        max_attempts: int = 3,
        wait: wait_base | None = None,
    ) -> None:
        self._profiles = profiles
        self._staging = staging
        self._max_attempts = max_attempts
        self._wait = wait or wait_exponential(multiplier=1, min=2, max=5)

    def stage(self, pending: PendingSurvey) -> None:
        self._staging.put(pending)

    async def _verify(self, user_id: str) -> Profile:
        profile = await self._profiles.get_by_id(user_id)
        if profile is None or not profile.survey_answers:
            raise SurveyNotPersistedError(user_id)
        return profile

    async def _save_with_retry(self, pending: PendingSurvey) -> Profile:
        fields = {
            "survey_answers": pending.answers,
            "persona": pending.persona,
        }
        if pending.full_name is not None:
            fields["full_name"] = pending.full_name

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type((UpstreamStoreError, SurveyNotPersistedError)),
            before_sleep=_log_retry,
            reraise=True,
        ):
            with attempt:
                saved = await self._profiles.upsert(pending.user_id, fields)
                await self._verify(pending.user_id)
        return saved

    async def reconcile(self, user_id: str) -> Profile | None:
        """Write staged answers for ``user_id`` into the profile store.

        Returns:
            The saved profile, or ``None`` when nothing was staged for this
            user or the save could not be verified. Never raises.
        """
        pending = self._staging.get()
        user_hash = hash_identifier(user_id)
        if pending is None:
            logger.debug("pending_survey.none", extra={"user_hash": user_hash})
            return None

        if pending.user_id != user_id:
            logger.info("pending_survey.other_user", extra={"user_hash": user_hash})
            return None

        if not pending.answers:
            logger.warning("pending_survey.empty_answers", extra={"user_hash": user_hash})
            return None

        try:
            saved = await self._save_with_retry(pending)
        except Exception as exc:
            logger.error(
                "pending_survey.save_failed",
                extra={"user_hash": user_hash, "error_type": type(exc).__name__},
            )
            return None

        self._staging.clear()
        logger.info("pending_survey.saved", extra={"user_hash": user_hash})
        return saved
