"""Bearer-token authentication for the HTTP layer.

Design principles:
- The token is resolved once per request by the backend's auth provider
- Dependency Injection: routes take the caller via FastAPI Depends()
- Missing or rejected tokens surface as AuthenticationAppError (401)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated, AsyncIterator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from onboarding.adapters.factory import Backend
from onboarding.adapters.supabase.client import bind_access_token, clear_access_token
from onboarding.core.errors import AuthenticationAppError
from onboarding.core.logging import hash_identifier
from onboarding.schemas.profile import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="Session access token")


@dataclass(frozen=True)
class AuthContext:
    user: User
    access_token: str


def get_backend(request: Request) -> Backend:
    return request.app.state.backend


async def resolve_auth(
    backend: Annotated[Backend, Depends(get_backend)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> AuthContext | None:
    """Resolve the caller's session, or ``None`` when there is no valid one."""

    if credentials is None or not credentials.credentials:
        logger.debug("auth.missing_token")
        return None

    token = credentials.credentials
    try:
        user = await backend.auth.get_user(token)
    except AuthenticationAppError as exc:
        logger.warning(
            "auth.token_rejected",
            extra={"reason": exc.code, "token_hash": hash_identifier(token)},
        )
        return None

    logger.debug("auth.success", extra={"user_hash": hash_identifier(user.id)})
    return AuthContext(user=user, access_token=token)


async def bind_caller_token(
    context: Annotated[AuthContext | None, Depends(resolve_auth)],
) -> AsyncIterator[AuthContext | None]:
    """Scope the caller's token to the request so store calls run with the
    caller's row-level permissions.
    """
    if context is None:
        yield None
        return
    bind_access_token(context.access_token)
    try:
        yield context
    finally:
        clear_access_token()


async def require_auth(
    context: Annotated[AuthContext | None, Depends(bind_caller_token)],
) -> AuthContext:
    """FastAPI dependency rejecting requests without a valid session.

    Raises:
        AuthenticationAppError: No token, or the provider rejected it.
    """
    if context is None:
        raise AuthenticationAppError(code="unauthenticated", message="Unauthorized")
    return context


CurrentAuth = Annotated[AuthContext, Depends(require_auth)]
