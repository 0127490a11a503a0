"""Supabase adapters (GoTrue auth, PostgREST stores) over httpx."""

from onboarding.adapters.supabase.auth import SupabaseAuthProvider
from onboarding.adapters.supabase.client import SupabaseClient, bind_access_token, clear_access_token
from onboarding.adapters.supabase.stores import (
    SupabasePlanStore,
    SupabaseProfileStore,
    SupabaseProgressStore,
    SupabaseSubscriptionStore,
)

__all__ = [
    "SupabaseAuthProvider",
    "SupabaseClient",
    "SupabasePlanStore",
    "SupabaseProfileStore",
    "SupabaseProgressStore",
    "SupabaseSubscriptionStore",
    "bind_access_token",
    "clear_access_token",
]
