"""Auth provider backed by Supabase GoTrue."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable

import httpx

from onboarding.adapters.auth.base import AbstractAuthProvider, AuthEvent
from onboarding.adapters.supabase.client import SupabaseClient
from onboarding.core.errors import AuthenticationAppError, UpstreamStoreError, ValidationAppError
from onboarding.schemas.profile import Session, User

logger = logging.getLogger(__name__)


def _user_from_payload(payload: dict[str, Any]) -> User:
    return User(id=str(payload["id"]), email=payload.get("email"))


def _session_from_payload(payload: dict[str, Any], now: float) -> Session:
    expires_at = payload.get("expires_at")
    if expires_at is None:
        expires_at = now + int(payload.get("expires_in", 3600))
    return Session(
        access_token=payload["access_token"],
        refresh_token=payload["refresh_token"],
        expires_at=datetime.fromtimestamp(float(expires_at), tz=timezone.utc),
        user=_user_from_payload(payload["user"]),
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or "Authentication failed"
    return body.get("error_description") or body.get("msg") or body.get("message") or "Authentication failed"


class SupabaseAuthProvider(AbstractAuthProvider):
    """GoTrue-backed provider holding the client-side current session."""

    def __init__(
        self,
        client: SupabaseClient,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__()
        self._client = client
        self._clock = clock
        self._session: Session | None = None

    @property
    def current_access_token(self) -> str | None:
        return self._session.access_token if self._session else None

    def _raise_for_auth_status(self, response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        if response.status_code in (400, 401, 403, 422):
            raise AuthenticationAppError(
                code="auth_rejected",
                message=_error_message(response),
                details={"operation": operation, "http_status": response.status_code},
            )
        logger.error(
            "auth.provider_error",
            extra={"operation": operation, "status": response.status_code},
        )
        raise UpstreamStoreError(
            code="auth_provider_error",
            message="Auth provider request failed",
            details={"operation": operation, "http_status": response.status_code},
        )

    async def get_session(self) -> Session | None:
        session = self._session
        if session is None:
            return None
        if session.expires_at.timestamp() <= self._clock():
            return await self.refresh_session()
        return session

    async def refresh_session(self) -> Session | None:
        current = self._session
        if current is None:
            return None
        response = await self._client.request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": current.refresh_token},
            operation="refresh_session",
        )
        if response.status_code in (400, 401):
            self._session = None
            await self._emit(AuthEvent.SIGNED_OUT, None)
            return None
        self._raise_for_auth_status(response, "refresh_session")
        self._session = _session_from_payload(response.json(), self._clock())
        await self._emit(AuthEvent.TOKEN_REFRESHED, self._session)
        return self._session

    async def sign_in_with_password(
        self, email: str, password: str, *, persist: bool = True
    ) -> Session:
        response = await self._client.request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            operation="sign_in_with_password",
        )
        self._raise_for_auth_status(response, "sign_in_with_password")
        session = _session_from_payload(response.json(), self._clock())
        if persist:
            self._session = session
            await self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_out(self) -> None:
        current = self._session
        # Local state is dropped even when the revoke call fails.
        self._session = None
        try:
            if current is not None:
                response = await self._client.request(
                    "POST",
                    "/auth/v1/logout",
                    token=current.access_token,
                    operation="sign_out",
                )
                # An already-revoked token is as good as signed out.
                if response.status_code not in (401, 403, 404):
                    self._raise_for_auth_status(response, "sign_out")
        finally:
            await self._emit(AuthEvent.SIGNED_OUT, None)

    async def get_user(self, access_token: str) -> User:
        response = await self._client.request(
            "GET", "/auth/v1/user", token=access_token, operation="get_user"
        )
        if response.status_code in (401, 403):
            raise AuthenticationAppError(
                code="invalid_token",
                message="Session token is invalid or expired",
            )
        self._raise_for_auth_status(response, "get_user")
        return _user_from_payload(response.json())

    async def update_user(self, access_token: str, **fields: Any) -> User:
        if not fields:
            raise ValidationAppError(code="no_user_fields", message="Nothing to update")
        response = await self._client.request(
            "PUT",
            "/auth/v1/user",
            token=access_token,
            json=fields,
            operation="update_user",
        )
        if response.status_code == 422:
            raise ValidationAppError(code="invalid_user_fields", message=_error_message(response))
        self._raise_for_auth_status(response, "update_user")
        user = _user_from_payload(response.json())

        current = self._session
        if current is not None and current.access_token == access_token:
            self._session = current.model_copy(update={"user": user})
            await self._emit(AuthEvent.USER_UPDATED, self._session)
        return user

    async def aclose(self) -> None:
        await self._client.aclose()
