"""Auth provider interface and the shared auth-event stream.

Providers emit an event for every session transition. Listeners are awaited
one at a time, in the order events occur: a listener finishes handling one
event before the next event is delivered to anyone.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar

from onboarding.schemas.profile import Session, User

logger = logging.getLogger(__name__)

L = TypeVar("L")


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


AuthListener = Callable[[AuthEvent, Session | None], Awaitable[None]]


class Subscription(Generic[L]):
    """Detachable registration of a callback in a listener list."""

    def __init__(self, listeners: list[L], listener: L) -> None:
        self._listeners = listeners
        self._listener = listener

    @property
    def active(self) -> bool:
        return self._listener in self._listeners

    def unsubscribe(self) -> None:
        if self._listener in self._listeners:
            self._listeners.remove(self._listener)


class AbstractAuthProvider(ABC):
    """Interface for the managed authentication backend.

    Two kinds of callers use a provider: the client-side session manager,
    which relies on the provider's current session and event stream, and the
    HTTP layer, which resolves bearer tokens with :meth:`get_user` and passes
    ``persist=False`` when re-checking a password so the provider's own
    session is left alone.
    """

    def __init__(self) -> None:
        self._listeners: list[AuthListener] = []
        self._dispatch_lock = asyncio.Lock()

    def on_auth_event(self, listener: AuthListener) -> Subscription[AuthListener]:
        self._listeners.append(listener)
        return Subscription(self._listeners, listener)

    async def _emit(self, event: AuthEvent, session: Session | None) -> None:
        async with self._dispatch_lock:
            for listener in list(self._listeners):
                try:
                    await listener(event, session)
                except Exception:
                    logger.exception("auth.listener_failed", extra={"event": event.value})

    @abstractmethod
    async def get_session(self) -> Session | None:
        """Return the current session, refreshing it first if it expired."""
        raise NotImplementedError

    @abstractmethod
    async def sign_in_with_password(
        self, email: str, password: str, *, persist: bool = True
    ) -> Session:
        """Authenticate with email and password.

        Raises:
            AuthenticationAppError: If the credentials are rejected.
        """
        raise NotImplementedError

    @abstractmethod
    async def sign_out(self) -> None:
        """End the current session and emit ``SIGNED_OUT``."""
        raise NotImplementedError

    @abstractmethod
    async def update_user(self, access_token: str, **fields: Any) -> User:
        """Update attributes (e.g. ``password``) of the token's user."""
        raise NotImplementedError

    @abstractmethod
    async def get_user(self, access_token: str) -> User:
        """Resolve a bearer token to its user.

        Raises:
            AuthenticationAppError: If the token is unknown or expired.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
