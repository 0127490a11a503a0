"""Global exception handlers for consistent error responses.

Every failure is rendered as ``{"error": {code, message, request_id, details?}}``.

Design:
- AuthenticationAppError → 401 (no valid session)
- ValidationAppError / malformed body → 400 (client fault)
- RateLimitExceededError → 429 with Retry-After / X-RateLimit-* headers
- UpstreamStoreError and any other AppError → 500
- Unexpected Exception → generic 500 (safety net, nothing leaked)
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from onboarding.core.errors import (
    AppError,
    AuthenticationAppError,
    RateLimitExceededError,
    ValidationAppError,
)
from onboarding.core.logging import get_request_id

logger = logging.getLogger(__name__)


def status_code_for(exc: AppError) -> int:
    if isinstance(exc, AuthenticationAppError):
        return 401
    if isinstance(exc, ValidationAppError):
        return 400
    if isinstance(exc, RateLimitExceededError):
        return 429
    return 500


def _error_body(code: str, message: str, details: dict | None = None) -> dict:
    content = {"code": code, "message": message, "request_id": get_request_id()}
    if details:
        content["details"] = details
    return {"error": content}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map a domain error to its HTTP status and the shared error envelope."""

    status_code = status_code_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )

    headers = exc.headers if isinstance(exc, RateLimitExceededError) else None
    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.message, dict(exc.details) if exc.details else None),
        headers=headers or None,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or wrongly typed fields are client errors (400)."""

    logger.warning(
        "request_validation_failed",
        extra={"request_path": request.url.path, "error_count": len(exc.errors())},
    )
    return JSONResponse(
        status_code=400,
        content=_error_body("invalid_request_body", "Invalid request body"),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors; no implementation details leak."""

    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content=_error_body(
            "internal_server_error",
            "An unexpected error occurred. Please try again later.",
        ),
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app."""

    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
