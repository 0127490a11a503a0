"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    field: str
    http_status: int
    retry_after: float
    store: str
    operation: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when a request field is missing or invalid."""


class AuthenticationAppError(AppError):
    """Raised when there is no valid session or credentials are rejected."""


class UpstreamStoreError(AppError):
    """Raised when a profile/plan/progress/subscription store call fails."""


@dataclass
class RateLimitExceededError(AppError):
    """Raised at the HTTP boundary when the caller is throttled.

    Attributes:
        headers: Response headers advertising the limit (Retry-After, ...).
    """

    headers: dict[str, str] = field(default_factory=dict)
