"""Client authentication session lifecycle.

The manager owns the session, the user, a read-through cache of the user's
profile and the derived journey progress, and publishes them as one immutable
:class:`SessionState` snapshot per change.

Concurrency model: everything runs on one asyncio loop and only suspends at
provider/store calls. Auth events are handled one at a time, in order, but
fetches started by one event (or by :meth:`SessionManager.refresh_profile`)
can still resolve after a later event. Every auth event and every sign-out
opens a new *generation*; a fetch result is applied only if the generation it
was dispatched under is still current, so a slow profile read can never
resurrect state for a user who has since signed out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable

from onboarding.adapters.auth.base import (
    AbstractAuthProvider,
    AuthEvent,
    AuthListener,
    Subscription,
)
from onboarding.adapters.stores.base import PlanStore, ProfileStore, ProgressStore
from onboarding.core.logging import hash_identifier
from onboarding.schemas.profile import Profile, Session, User
from onboarding.services.pending_survey import PendingSurveyReconciler
from onboarding.services.progress import ProgressCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionState:
    session: Session | None = None
    user: User | None = None
    profile: Profile | None = None
    loading: bool = True
    current_day: int = 0
    journey_progress: int = 0


SessionObserver = Callable[[SessionState], None]
Navigator = Callable[[str], None]

# Fields reset whenever there is no session (or the user changes).
_SIGNED_OUT = {"profile": None, "current_day": 0, "journey_progress": 0}


class SessionManager:
    """Hydrates and tracks the signed-in user for one client."""

    def __init__(
        self,
        auth: AbstractAuthProvider,
        profiles: ProfileStore,
        plans: PlanStore,
        progress: ProgressStore,
        *,
        pending_surveys: PendingSurveyReconciler | None = None,
        navigate: Navigator | None = None,
        landing_path: str = "/",
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._auth = auth
        self._profiles = profiles
        self._pending_surveys = pending_surveys
        self._navigate = navigate
        self._landing_path = landing_path
        self._calculator = ProgressCalculator(plans, progress, now=now)

        self._state = SessionState()
        self._generation = 0
        self._observers: list[SessionObserver] = []
        self._auth_subscription: Subscription[AuthListener] | None = None

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, observer: SessionObserver) -> Subscription[SessionObserver]:
        self._observers.append(observer)
        return Subscription(self._observers, observer)

    def _publish(self, **changes: Any) -> None:
        new_state = replace(self._state, **changes)
        if new_state == self._state:
            return
        self._state = new_state
        for observer in list(self._observers):
            try:
                observer(new_state)
            except Exception:
                logger.exception("session.observer_failed")

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int, operation: str) -> bool:
        if generation == self._generation:
            return True
        logger.debug(
            "session.stale_result_discarded",
            extra={
                "operation": operation,
                "dispatched_generation": generation,
                "current_generation": self._generation,
            },
        )
        return False

    def _apply_session(self, session: Session | None) -> None:
        if session is None:
            self._publish(session=None, user=None, **_SIGNED_OUT)
            return
        previous = self._state.user
        if previous is not None and previous.id != session.user.id:
            self._publish(session=session, user=session.user, **_SIGNED_OUT)
        else:
            self._publish(session=session, user=session.user)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Hydrate from the provider's current session and start listening.

        Always ends with ``loading = False``, whatever failed on the way.
        """
        if self._auth_subscription is None:
            self._auth_subscription = self._auth.on_auth_event(self.on_auth_event)

        generation = self._generation
        try:
            session = await self._auth.get_session()
            # An auth event delivered during hydration carries newer state.
            if self._is_current(generation, "initialize"):
                self._apply_session(session)
                if session is not None:
                    user_id = session.user.id
                    await self._load_profile(user_id, generation)
                    await self._compute_progress(user_id, generation)
                logger.info(
                    "session.hydrated",
                    extra={"has_session": session is not None},
                )
        except Exception:
            logger.exception("session.hydration_failed")
        finally:
            self._publish(loading=False)

    def close(self) -> None:
        if self._auth_subscription is not None:
            self._auth_subscription.unsubscribe()
            self._auth_subscription = None

    async def on_auth_event(self, event: AuthEvent, new_session: Session | None) -> None:
        generation = self._next_generation()
        self._apply_session(new_session)
        logger.info(
            "session.auth_event",
            extra={
                "event": event.value,
                "has_session": new_session is not None,
                "generation": generation,
            },
        )
        if new_session is None:
            return

        user_id = new_session.user.id
        if event is AuthEvent.SIGNED_IN and self._pending_surveys is not None:
            await self._pending_surveys.reconcile(user_id)

        await self._load_profile(user_id, generation)
        await self._compute_progress(user_id, generation)

    # ------------------------------------------------------------------
    # Profile and progress
    # ------------------------------------------------------------------

    async def load_profile(self, user_id: str) -> None:
        await self._load_profile(user_id, self._generation)

    async def _load_profile(self, user_id: str, generation: int) -> None:
        try:
            profile = await self._profiles.get_by_id(user_id)
        except Exception:
            logger.warning(
                "session.profile_load_failed",
                exc_info=True,
                extra={"user_hash": hash_identifier(user_id)},
            )
            return
        if profile is None:
            logger.info("session.profile_missing", extra={"user_hash": hash_identifier(user_id)})
            return
        if self._is_current(generation, "load_profile"):
            self._publish(profile=profile)

    async def compute_progress(self, user_id: str) -> None:
        await self._compute_progress(user_id, self._generation)

    async def _compute_progress(self, user_id: str, generation: int) -> None:
        try:
            snapshot = await self._calculator.compute(user_id)
        except Exception:
            logger.warning(
                "session.progress_failed",
                exc_info=True,
                extra={"user_hash": hash_identifier(user_id)},
            )
            return
        # No plan yet: keep whatever was last computed.
        if snapshot is None:
            return
        if not self._is_current(generation, "compute_progress"):
            return
        if snapshot.journey_progress is None:
            self._publish(current_day=snapshot.current_day)
        else:
            self._publish(
                current_day=snapshot.current_day,
                journey_progress=snapshot.journey_progress,
            )

    async def refresh_profile(self) -> None:
        """Re-read profile and progress after an out-of-band change."""

        user = self._state.user
        if user is None:
            return
        generation = self._generation
        await self._load_profile(user.id, generation)
        await self._compute_progress(user.id, generation)

    # ------------------------------------------------------------------
    # Sign-in / sign-out
    # ------------------------------------------------------------------

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """Sign in through the provider; state follows from its ``SIGNED_IN`` event.

        Raises:
            AuthenticationAppError: If the credentials are rejected.
        """
        return await self._auth.sign_in_with_password(email, password)

    async def sign_out(self) -> None:
        """Sign out and clear local state even if the provider call fails.

        The provider error, if any, is re-raised after state is cleared and
        navigation to the landing page has been requested.
        """
        self._next_generation()
        error: Exception | None = None
        try:
            await self._auth.sign_out()
        except Exception as exc:
            logger.error("session.sign_out_failed", extra={"error_type": type(exc).__name__})
            error = exc

        self._publish(session=None, user=None, **_SIGNED_OUT)
        if self._navigate is not None:
            self._navigate(self._landing_path)
        if error is not None:
            raise error
