"""Unit tests for RequestLoggingMiddleware."""

from unittest.mock import patch

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from starlette.middleware.base import BaseHTTPMiddleware

from echostats.infrastructure.observability.logging import get_correlation_id
from echostats.infrastructure.observability.middleware import RequestLoggingMiddleware

LOGGER = "echostats.infrastructure.observability.middleware.logger"


def _build_app(log_request_headers: bool = False) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware, log_request_headers=log_request_headers)

    @app.get("/test")
    async def test_endpoint():
        return {"message": "test", "correlation_id": get_correlation_id()}

    @app.get("/missing")
    async def missing_endpoint():
        raise HTTPException(status_code=404, detail="nope")

    @app.get("/error")
    async def error_endpoint():
        raise ValueError("Test error")

    return app


class TestRequestLoggingMiddleware:
    """Test suite for RequestLoggingMiddleware."""

    @pytest.fixture
    def client(self) -> TestClient:
        return TestClient(_build_app())

    def test_middleware_initialization_default(self):
        """Test middleware initialization with default parameters."""
        middleware = RequestLoggingMiddleware(app=FastAPI())

        assert middleware.log_request_headers is False
        assert isinstance(middleware, BaseHTTPMiddleware)

    def test_successful_request_logs_completion(self, client: TestClient):
        """Test that successful requests log completion with status and duration."""
        with patch(LOGGER) as mock_logger:
            response = client.get("/test")

            assert response.status_code == 200
            # Middleware logs once per request (completion only)
            assert mock_logger.info.call_count == 1

            log_message = mock_logger.info.call_args_list[0][0][0]
            assert log_message.startswith("✓ GET /test → 200")
            assert "ms" in log_message
            extra = mock_logger.info.call_args_list[0][1]["extra"]
            assert extra["status_code"] == 200
            assert extra["path"] == "/test"

    def test_client_error_is_marked_failed(self, client: TestClient):
        with patch(LOGGER) as mock_logger:
            response = client.get("/missing")

            assert response.status_code == 404
            assert mock_logger.info.call_args_list[0][0][0].startswith("✗ GET /missing → 404")

    def test_correlation_id_header_is_echoed(self, client: TestClient):
        response = client.get("/test", headers={"X-Correlation-ID": "custom-correlation-id"})

        assert response.headers["X-Correlation-ID"] == "custom-correlation-id"
        # Handlers see the same ID
        assert response.json()["correlation_id"] == "custom-correlation-id"

    def test_correlation_id_generated_when_missing(self, client: TestClient):
        response = client.get("/test")

        generated = response.headers["X-Correlation-ID"]
        assert len(generated) == 36
        assert response.json()["correlation_id"] == generated

    def test_each_request_gets_its_own_id(self, client: TestClient):
        first = client.get("/test").headers["X-Correlation-ID"]
        second = client.get("/test").headers["X-Correlation-ID"]

        assert first != second

    def test_error_request_logs_exception(self, client: TestClient):
        """Test that failed requests log exception details."""
        with patch(LOGGER) as mock_logger:
            with pytest.raises(ValueError):
                client.get("/error")

            assert mock_logger.exception.call_count == 1
            log_message = mock_logger.exception.call_args[0][0]
            assert log_message == "Request failed: GET /error"
            assert mock_logger.exception.call_args[1]["extra"]["error_type"] == "ValueError"

    def test_multiple_requests_independent_logging(self, client: TestClient):
        """Test that multiple requests are logged independently."""
        with patch(LOGGER) as mock_logger:
            client.get("/test")
            client.get("/missing")
            client.get("/test?param=value")

            assert mock_logger.info.call_count == 3


class TestHeaderLogging:
    """Request header logging never leaks credentials."""

    def test_headers_not_logged_by_default(self):
        client = TestClient(_build_app())

        with patch(LOGGER) as mock_logger:
            client.get("/test", headers={"Authorization": "Bearer secret"})

            mock_logger.debug.assert_not_called()

    def test_sensitive_headers_are_masked(self):
        client = TestClient(_build_app(log_request_headers=True))

        with patch(LOGGER) as mock_logger:
            client.get(
                "/test",
                headers={
                    "Authorization": "Bearer secret-access",
                    "X-Refresh-Token": "secret-refresh",
                    "X-Custom": "visible",
                },
            )

            assert mock_logger.debug.call_count == 1
            headers = mock_logger.debug.call_args[1]["extra"]["headers"]
            assert headers["authorization"] == "***"
            assert headers["x-refresh-token"] == "***"
            assert headers["x-custom"] == "visible"
            assert "secret" not in str(mock_logger.debug.call_args)
