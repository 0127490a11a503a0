from onboarding.adapters.auth.base import AbstractAuthProvider, AuthEvent, AuthListener, Subscription
from onboarding.adapters.auth.in_memory import InMemoryAuthProvider

__all__ = [
    "AbstractAuthProvider",
    "AuthEvent",
    "AuthListener",
    "InMemoryAuthProvider",
    "Subscription",
]
