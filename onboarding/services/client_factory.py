"""Wiring of the client-side session core against a configured backend."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from onboarding.adapters.factory import Backend
from onboarding.adapters.stores.base import PendingSurveyStaging
from onboarding.adapters.stores.in_memory import InMemoryPendingSurveyStaging
from onboarding.core.config import AppSettings, settings
from onboarding.services.pending_survey import PendingSurveyReconciler
from onboarding.services.route_gate import ReturnPathStore, RouteGate
from onboarding.services.session_manager import Navigator, SessionManager


def create_session_manager(
    backend: Backend,
    *,
    navigate: Navigator | None = None,
    staging: PendingSurveyStaging | None = None,
    app_settings: AppSettings | None = None,
    now: Callable[[], datetime] | None = None,
) -> SessionManager:
    """Build a session manager sharing the backend's provider and stores.

    Survey answers staged in ``staging`` before sign-up are written to the
    profile on the next interactive sign-in.
    """
    cfg = app_settings or settings.app
    reconciler = PendingSurveyReconciler(
        backend.profiles, staging or InMemoryPendingSurveyStaging()
    )
    return SessionManager(
        backend.auth,
        backend.profiles,
        backend.plans,
        backend.progress,
        pending_surveys=reconciler,
        navigate=navigate,
        landing_path=cfg.landing_path,
        now=now,
    )


def create_route_gate(
    navigate: Navigator,
    *,
    require_auth: bool = True,
    return_paths: ReturnPathStore | None = None,
    app_settings: AppSettings | None = None,
) -> RouteGate:
    cfg = app_settings or settings.app
    return RouteGate(
        navigate,
        require_auth=require_auth,
        redirect_to=cfg.auth_redirect_path,
        return_paths=return_paths,
    )
