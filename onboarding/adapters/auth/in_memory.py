"""In-process auth provider for development and tests.

Accounts live in a dict and sessions are opaque random tokens. Data is lost
when the process stops.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from onboarding.adapters.auth.base import AbstractAuthProvider, AuthEvent
from onboarding.core.errors import AuthenticationAppError, ValidationAppError
from onboarding.core.logging import hash_identifier
from onboarding.schemas.profile import Session, User

logger = logging.getLogger(__name__)


@dataclass
class _Account:
    user: User
    salt: bytes
    password_hash: bytes


def _hash_password(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode(), salt, 100_000)


class InMemoryAuthProvider(AbstractAuthProvider):
    """Auth provider keeping accounts and sessions in memory."""

    def __init__(
        self,
        *,
        session_ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__()
        self._ttl = session_ttl_seconds
        self._clock = clock
        self._accounts: dict[str, _Account] = {}
        self._tokens: dict[str, tuple[str, float]] = {}
        self._refresh_tokens: dict[str, str] = {}
        self._session: Session | None = None

    def register(self, email: str, password: str, *, user_id: str | None = None) -> User:
        """Create an account; stands in for the provider's sign-up flow."""

        key = email.lower()
        if key in self._accounts:
            raise ValidationAppError(code="email_taken", message="Email already registered")
        salt = secrets.token_bytes(16)
        user = User(id=user_id or str(uuid.uuid4()), email=email)
        self._accounts[key] = _Account(user, salt, _hash_password(password, salt))
        return user

    def _issue_session(self, user: User) -> Session:
        now = self._clock()
        access_token = secrets.token_urlsafe(32)
        refresh_token = secrets.token_urlsafe(32)
        self._tokens[access_token] = (user.id, now + self._ttl)
        self._refresh_tokens[refresh_token] = user.id
        return Session(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=datetime.fromtimestamp(now + self._ttl, tz=timezone.utc),
            user=user,
        )

    def _account_for(self, user_id: str) -> _Account | None:
        for account in self._accounts.values():
            if account.user.id == user_id:
                return account
        return None

    async def get_session(self) -> Session | None:
        session = self._session
        if session is None:
            return None
        if session.expires_at.timestamp() <= self._clock():
            return await self.refresh_session()
        return session

    async def refresh_session(self) -> Session | None:
        """Exchange the current refresh token for a new session."""

        current = self._session
        if current is None:
            return None
        user_id = self._refresh_tokens.pop(current.refresh_token, None)
        self._tokens.pop(current.access_token, None)
        account = self._account_for(user_id) if user_id else None
        if account is None:
            self._session = None
            await self._emit(AuthEvent.SIGNED_OUT, None)
            return None
        self._session = self._issue_session(account.user)
        await self._emit(AuthEvent.TOKEN_REFRESHED, self._session)
        return self._session

    async def sign_in_with_password(
        self, email: str, password: str, *, persist: bool = True
    ) -> Session:
        account = self._accounts.get((email or "").lower())
        if account is None or not secrets.compare_digest(
            account.password_hash, _hash_password(password, account.salt)
        ):
            logger.info(
                "auth.sign_in_rejected",
                extra={"email_hash": hash_identifier((email or "").lower())},
            )
            raise AuthenticationAppError(
                code="invalid_credentials",
                message="Invalid login credentials",
            )

        session = self._issue_session(account.user)
        if persist:
            self._session = session
            await self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_out(self) -> None:
        current = self._session
        if current is not None:
            self._tokens.pop(current.access_token, None)
            self._refresh_tokens.pop(current.refresh_token, None)
        self._session = None
        await self._emit(AuthEvent.SIGNED_OUT, None)

    async def get_user(self, access_token: str) -> User:
        entry = self._tokens.get(access_token)
        if entry is None or entry[1] <= self._clock():
            raise AuthenticationAppError(
                code="invalid_token",
                message="Session token is invalid or expired",
            )
        account = self._account_for(entry[0])
        if account is None:
            raise AuthenticationAppError(code="user_not_found", message="User not found")
        return account.user

    async def update_user(self, access_token: str, **fields: Any) -> User:
        user = await self.get_user(access_token)
        account = self._accounts[(user.email or "").lower()]

        if "password" in fields:
            password = fields.pop("password")
            if not password:
                raise ValidationAppError(code="invalid_password", message="Password must not be empty")
            account.salt = secrets.token_bytes(16)
            account.password_hash = _hash_password(password, account.salt)
        if "email" in fields:
            new_email = fields.pop("email")
            del self._accounts[(user.email or "").lower()]
            account.user = User(id=user.id, email=new_email)
            self._accounts[new_email.lower()] = account
        if fields:
            raise ValidationAppError(
                code="unsupported_user_fields",
                message=f"Unsupported user fields: {', '.join(sorted(fields))}",
            )

        current = self._session
        if current is not None and current.access_token == access_token:
            self._session = current.model_copy(update={"user": account.user})
            await self._emit(AuthEvent.USER_UPDATED, self._session)
        return account.user
