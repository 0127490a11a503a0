"""Factory for the managed backend collaborators."""

from __future__ import annotations

from dataclasses import dataclass

from onboarding.adapters.auth.base import AbstractAuthProvider
from onboarding.adapters.auth.in_memory import InMemoryAuthProvider
from onboarding.adapters.stores.base import (
    PlanStore,
    ProfileStore,
    ProgressStore,
    SubscriptionStore,
)
from onboarding.adapters.stores.in_memory import (
    InMemoryPlanStore,
    InMemoryProfileStore,
    InMemoryProgressStore,
    InMemorySubscriptionStore,
)
from onboarding.core.config import BackendSettings, settings
from onboarding.core.errors import ValidationAppError


@dataclass
class Backend:
    """Auth provider plus the record stores, wired against one backend."""

    auth: AbstractAuthProvider
    profiles: ProfileStore
    plans: PlanStore
    progress: ProgressStore
    subscriptions: SubscriptionStore

    async def aclose(self) -> None:
        await self.auth.aclose()


def create_backend(backend_settings: BackendSettings | None = None) -> Backend:
    """Instantiate the backend selected by ``BACKEND_PROVIDER``.

    Raises:
        ValidationAppError: If provider-specific requirements are not met.
    """
    cfg = backend_settings or settings.backend
    provider = cfg.provider.lower()

    if provider == "memory":
        return Backend(
            auth=InMemoryAuthProvider(),
            profiles=InMemoryProfileStore(),
            plans=InMemoryPlanStore(),
            progress=InMemoryProgressStore(),
            subscriptions=InMemorySubscriptionStore(),
        )

    if provider == "supabase":
        if not cfg.url or not cfg.anon_key:
            raise ValidationAppError(
                code="backend_missing_config",
                message="Supabase provider requires BACKEND_URL and BACKEND_ANON_KEY",
            )
        # Imported lazily so the memory backend doesn't pull in httpx wiring.
        from onboarding.adapters.supabase import (
            SupabaseAuthProvider,
            SupabaseClient,
            SupabasePlanStore,
            SupabaseProfileStore,
            SupabaseProgressStore,
            SupabaseSubscriptionStore,
        )

        client = SupabaseClient(
            base_url=cfg.url,
            anon_key=cfg.anon_key,
            timeout_seconds=cfg.timeout_seconds,
        )
        auth = SupabaseAuthProvider(client)
        client.set_token_getter(lambda: auth.current_access_token)
        return Backend(
            auth=auth,
            profiles=SupabaseProfileStore(client),
            plans=SupabasePlanStore(client),
            progress=SupabaseProgressStore(client),
            subscriptions=SupabaseSubscriptionStore(client),
        )

    raise ValidationAppError(
        code="backend_unknown_provider",
        message=f"Unknown backend provider: '{provider}'. Supported providers: memory, supabase",
    )
