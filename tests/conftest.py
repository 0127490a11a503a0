"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any import that might build settings, so
tests never pick up a developer's .env file or a real backend.
"""

import asyncio
import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("BACKEND_PROVIDER", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")

import pytest
from fastapi.testclient import TestClient

from onboarding.adapters.factory import Backend, create_backend
from onboarding.adapters.rate_limit.in_memory import FixedWindowRateLimiter
from onboarding.core.app_factory import create_app

TEST_EMAIL = "ada@example.com"
TEST_PASSWORD = "correct-horse-battery"
TEST_USER_ID = "user-1"


@pytest.fixture
def backend() -> Backend:
    """Fresh in-memory backend with one registered account."""
    backend = create_backend()
    backend.auth.register(TEST_EMAIL, TEST_PASSWORD, user_id=TEST_USER_ID)
    return backend


@pytest.fixture
def rate_limiter() -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(max_requests=10, window_ms=60000)


@pytest.fixture
def client(backend: Backend, rate_limiter: FixedWindowRateLimiter) -> TestClient:
    app = create_app(backend=backend, rate_limiter=rate_limiter)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def access_token(backend: Backend) -> str:
    """Bearer token for the registered account."""
    session = asyncio.run(
        backend.auth.sign_in_with_password(TEST_EMAIL, TEST_PASSWORD, persist=False)
    )
    return session.access_token


@pytest.fixture
def auth_headers(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}
