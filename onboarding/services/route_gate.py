"""Render-or-redirect decisions for protected destinations.

The gate holds no session state of its own: every decision is a function of
the ``(user, loading)`` pair published by the session manager plus whether the
redirect for the current unauthenticated stretch has already been dispatched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from onboarding.schemas.profile import User
from onboarding.services.session_manager import SessionState

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    LOADING = "loading"
    REDIRECTING = "redirecting"
    AUTHORIZED = "authorized"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class GateDecision:
    state: GateState
    redirect_to: str | None = None

    @property
    def renders_children(self) -> bool:
        return self.state is GateState.AUTHORIZED


class ReturnPathStore:
    """Remembers where the visitor was headed before being sent to sign in."""

    def __init__(self) -> None:
        self._path: str | None = None

    def remember(self, path: str) -> None:
        self._path = path

    def take(self) -> str | None:
        path, self._path = self._path, None
        return path


class RouteGate:
    def __init__(
        self,
        navigate: Callable[[str], None],
        *,
        require_auth: bool = True,
        redirect_to: str = "/survey",
        return_paths: ReturnPathStore | None = None,
    ) -> None:
        self._navigate = navigate
        self._require_auth = require_auth
        self._redirect_to = redirect_to
        self._return_paths = return_paths or ReturnPathStore()
        self._redirect_dispatched = False

    def evaluate(self, user: User | None, loading: bool, requested_path: str) -> GateDecision:
        if loading:
            return GateDecision(GateState.LOADING)

        if not self._require_auth or user is not None:
            self._redirect_dispatched = False
            return GateDecision(GateState.AUTHORIZED)

        if self._redirect_dispatched:
            return GateDecision(GateState.BLOCKED)

        self._return_paths.remember(requested_path)
        self._redirect_dispatched = True
        logger.info(
            "route_gate.redirect",
            extra={"route": requested_path, "redirect_to": self._redirect_to},
        )
        self._navigate(self._redirect_to)
        return GateDecision(GateState.REDIRECTING, redirect_to=self._redirect_to)

    def evaluate_state(self, state: SessionState, requested_path: str) -> GateDecision:
        return self.evaluate(state.user, state.loading, requested_path)

    def take_return_path(self) -> str | None:
        """Pop the path remembered by the last redirect, for post-auth return."""

        return self._return_paths.take()
