"""Thin async HTTP client for a Supabase project (GoTrue + PostgREST).

Row-level security on the project means store calls must carry the caller's
access token. The HTTP layer binds it per request with
:func:`bind_access_token`; outside a request (the client-side session manager)
the client falls back to ``token_getter``, typically the auth provider's
current session.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Callable

import httpx

from onboarding.core.errors import UpstreamStoreError

logger = logging.getLogger(__name__)

_access_token_var: ContextVar[str | None] = ContextVar("supabase_access_token", default=None)


def bind_access_token(token: str | None) -> None:
    _access_token_var.set(token)


def clear_access_token() -> None:
    _access_token_var.set(None)


def current_bound_token() -> str | None:
    return _access_token_var.get()


class SupabaseClient:
    """Shared ``httpx.AsyncClient`` plus Supabase auth headers."""

    def __init__(
        self,
        *,
        base_url: str,
        anon_key: str,
        timeout_seconds: float = 10.0,
        token_getter: Callable[[], str | None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._anon_key = anon_key
        self._token_getter = token_getter
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
            headers={"apikey": anon_key},
        )

    def set_token_getter(self, getter: Callable[[], str | None]) -> None:
        self._token_getter = getter

    def _bearer(self, token: str | None) -> str:
        token = token or current_bound_token()
        if token is None and self._token_getter is not None:
            token = self._token_getter()
        return f"Bearer {token or self._anon_key}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        headers: dict[str, str] | None = None,
        operation: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request; transport failures become ``UpstreamStoreError``.

        HTTP error statuses are returned to the caller, which knows whether a
        4xx means "not found", "bad credentials" or a store fault.
        """
        merged = {"Authorization": self._bearer(token), **(headers or {})}
        try:
            return await self._http.request(method, path, headers=merged, **kwargs)
        except httpx.HTTPError as exc:
            logger.error(
                "supabase.transport_error",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise UpstreamStoreError(
                code="upstream_unavailable",
                message="Backend is unreachable",
                details={"operation": operation},
            ) from exc

    @staticmethod
    def raise_for_store_status(response: httpx.Response, *, store: str, operation: str) -> None:
        if response.is_success:
            return
        logger.error(
            "supabase.store_error",
            extra={
                "store": store,
                "operation": operation,
                "status": response.status_code,
            },
        )
        raise UpstreamStoreError(
            code="store_error",
            message=f"{store} store request failed",
            details={"store": store, "operation": operation, "http_status": response.status_code},
        )

    async def aclose(self) -> None:
        await self._http.aclose()
