from __future__ import annotations

from onboarding.api.routes.health import router as health_router
from onboarding.api.routes.profile import router as profile_router

__all__ = ["health_router", "profile_router"]
