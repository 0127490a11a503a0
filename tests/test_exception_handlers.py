"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from onboarding.core.errors import (
    AppError,
    AuthenticationAppError,
    RateLimitExceededError,
    UpstreamStoreError,
    ValidationAppError,
)
from onboarding.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
    status_code_for,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify ValidationAppError returns HTTP 400."""
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(code="missing_fields", message="Current and new passwords are required")

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "missing_fields"
        assert data["error"]["message"] == "Current and new passwords are required"
        assert "request_id" in data["error"]

    def test_validation_error_includes_details(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify details are passed through when provided."""
        @app_with_handlers.get("/test-validation-details")
        async def test_endpoint():
            raise ValidationAppError(
                code="invalid_action",
                message="Invalid action",
                details={"field": "action", "hint": "Expected one of: upgrade, cancel"},
            )

        response = client.get("/test-validation-details")

        assert response.status_code == 400
        details = response.json()["error"]["details"]
        assert details["field"] == "action"

    def test_authentication_error_returns_401(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify AuthenticationAppError returns HTTP 401."""
        @app_with_handlers.get("/test-auth")
        async def test_endpoint():
            raise AuthenticationAppError(code="unauthenticated", message="Unauthorized")

        response = client.get("/test-auth")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Unauthorized"

    def test_store_error_returns_500(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify UpstreamStoreError returns HTTP 500."""
        @app_with_handlers.get("/test-store")
        async def test_endpoint():
            raise UpstreamStoreError(code="store_error", message="subscriptions store request failed")

        response = client.get("/test-store")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "store_error"

    def test_rate_limit_error_returns_429_with_headers(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/test-throttled")
        async def test_endpoint():
            raise RateLimitExceededError(
                code="rate_limited",
                message="Rate limit exceeded. Try again later.",
                details={"retry_after": 42},
                headers={"Retry-After": "42", "X-RateLimit-Limit": "10"},
            )

        response = client.get("/test-throttled")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
        assert response.headers["X-RateLimit-Limit"] == "10"
        assert response.json()["error"]["details"]["retry_after"] == 42

    def test_error_response_format_is_consistent(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify error responses have consistent JSON structure."""
        @app_with_handlers.get("/test-format")
        async def test_endpoint():
            raise ValidationAppError(code="test", message="test")

        data = client.get("/test-format").json()

        assert set(data) == {"error"}
        assert {"code", "message", "request_id"} <= set(data["error"])
        assert "details" not in data["error"]


class TestRequestValidationHandler:
    def test_malformed_body_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        class Body(BaseModel):
            action: str

        @app_with_handlers.post("/test-body")
        async def test_endpoint(body: Body):
            return {"ok": True}

        response = client.post(
            "/test-body", content=b"{broken", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_request_body"


class TestStatusMapping:
    @pytest.mark.parametrize(
        "error,status",
        [
            (ValidationAppError(code="v", message="v"), 400),
            (AuthenticationAppError(code="a", message="a"), 401),
            (RateLimitExceededError(code="r", message="r"), 429),
            (UpstreamStoreError(code="s", message="s"), 500),
            (AppError(code="x", message="x"), 500),
        ],
    )
    def test_status_code_for(self, error: AppError, status: int) -> None:
        assert status_code_for(error) == status


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        assert Exception in app_with_handlers.exception_handlers

    def test_unexpected_exception_returns_generic_500(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/test-crash")
        async def test_endpoint():
            raise RuntimeError("database password is hunter2")

        response = client.get("/test-crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"
        assert "hunter2" not in response.text

    def test_general_exception_handler_never_leaks_stack_trace(self):
        """Verify stack traces are never included in response."""
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = ValueError("Test error with details")
        response = asyncio.run(general_exception_handler(request, exc))

        response_text = bytes(response.body).decode()
        data = json.loads(response_text)
        assert response.status_code == 500
        assert "request_id" in data["error"]
        assert "Traceback" not in response_text
        assert "ValueError" not in response_text


class TestErrorHandlerIntegration:
    """Integration tests for exception handler setup."""

    def test_multiple_handler_setups_does_not_fail(self):
        """Verify calling setup_exception_handlers multiple times is safe."""
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
