"""
Pytest configuration and shared fixtures for the tracking proxy.

This module provides common test fixtures used across unit and integration
tests: environment configuration, API Gateway events, a Lambda context mock,
and a fake Quiqup API served through ``httpx.MockTransport``.
"""

import os
from typing import Any, Callable, Dict, List, Optional, Tuple
from unittest.mock import Mock

import httpx
import pytest

from tracking_proxy.dal.http_client import create_http_client

os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")

QUIQUP_BASE = "https://api.quiqup.test"
STOREFRONT_ORIGIN = "https://shop.example.com"
OTHER_STOREFRONT_ORIGIN = "https://www.example.com"

TEST_ENVIRONMENT = {
    "ENVIRONMENT": "test",
    "POWERTOOLS_SERVICE_NAME": "test-storefront-tracking",
    "POWERTOOLS_METRICS_NAMESPACE": "TestStorefrontTracking",
    "POWERTOOLS_TRACE_DISABLED": "true",
    "LAMBDA_ENV_MODELER_DISABLE_CACHE": "true",
    "LOG_LEVEL": "DEBUG",
    "ALLOWED_ORIGINS": f"{STOREFRONT_ORIGIN}, {OTHER_STOREFRONT_ORIGIN}",
    "QUIQUP_BASE": QUIQUP_BASE,
    "QUIQUP_CLIENT_ID": "test-client-id",
    "QUIQUP_CLIENT_SECRET": "test-client-secret",
}


# Test environment configuration
@pytest.fixture(scope="session", autouse=True)
def test_environment():
    """Set up test environment variables."""
    os.environ.update(TEST_ENVIRONMENT)
    for name in ("QUIQUP_READ_BASE", "SHOPIFY_APP_SECRET", "REQUIRE_APP_PROXY_SIGNATURE", "QUIQUP_ORDER_PATH"):
        os.environ.pop(name, None)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset cached configuration and the process-wide handler between tests."""
    from tracking_proxy.handlers.track_handler import get_track_handler

    get_track_handler.cache_clear()
    yield
    get_track_handler.cache_clear()


class FakeClock:
    """Manually advanced clock, in epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeQuiqup:
    """
    In-memory Quiqup API.

    Serves ``POST /oauth/token`` and ``GET <path>`` for registered orders and
    records every request it receives.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.orders: Dict[str, Any] = {}
        self.token_status = 200
        self.token_body: Any = None
        self.expires_in: Any = 3600
        self.issued_tokens = 0
        self.order_status_override: Optional[int] = None
        self.redirects: Dict[str, Tuple[int, str]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        raw_path = request.url.raw_path.decode()
        if raw_path in self.redirects:
            status, location = self.redirects[raw_path]
            return httpx.Response(status, headers={"Location": location})

        if request.method == "POST" and request.url.path.endswith("/oauth/token"):
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_client"})
            self.issued_tokens += 1
            body = self.token_body
            if body is None:
                body = {"access_token": f"token-{self.issued_tokens}", "expires_in": self.expires_in}
            if isinstance(body, str):
                return httpx.Response(200, text=body)
            return httpx.Response(200, json=body)

        if request.method == "GET":
            if self.order_status_override is not None:
                return httpx.Response(self.order_status_override, text="upstream says no")
            if raw_path in self.orders:
                order = self.orders[raw_path]
                if isinstance(order, str):
                    return httpx.Response(200, text=order)
                return httpx.Response(200, json=order)
            return httpx.Response(404, json={"message": "Order not found"})

        return httpx.Response(405)

    def add_order(self, path: str, body: Any) -> None:
        self.orders[path] = body

    def add_redirect(self, path: str, location: str, status: int = 301) -> None:
        self.redirects[path] = (status, location)

    @property
    def token_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/oauth/token")]

    @property
    def order_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]


@pytest.fixture
def fake_quiqup() -> FakeQuiqup:
    """Fake upstream API."""
    return FakeQuiqup()


@pytest.fixture
def http_client(fake_quiqup: FakeQuiqup):
    """HTTP client wired to the fake upstream."""
    with create_http_client(transport=httpx.MockTransport(fake_quiqup)) as client:
        yield client


@pytest.fixture
def fake_clock() -> FakeClock:
    """Controllable time source."""
    return FakeClock()


@pytest.fixture
def api_gateway_event() -> Callable[..., Dict[str, Any]]:
    """Factory for API Gateway REST proxy events."""

    def build(
        method: str = "GET",
        query: Optional[Dict[str, str]] = None,
        origin: Optional[str] = STOREFRONT_ORIGIN,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        request_headers = {"Accept": "application/json", "User-Agent": "test-agent/1.0"}
        if origin is not None:
            request_headers["Origin"] = origin
        request_headers.update(headers or {})
        return {
            "resource": "/track",
            "path": "/track",
            "httpMethod": method,
            "headers": request_headers,
            "multiValueHeaders": {k: [v] for k, v in request_headers.items()},
            "queryStringParameters": query,
            "multiValueQueryStringParameters": {k: [v] for k, v in query.items()} if query else None,
            "pathParameters": None,
            "stageVariables": None,
            "requestContext": {
                "requestId": "test-request-id-123",
                "accountId": "123456789012",
                "stage": "test",
                "httpMethod": method,
                "path": "/track",
                "protocol": "HTTP/1.1",
                "identity": {
                    "sourceIp": "127.0.0.1",
                    "userAgent": "test-agent/1.0",
                },
            },
            "body": None,
            "isBase64Encoded": False,
        }

    return build


@pytest.fixture
def lambda_context():
    """Create a mock Lambda context for testing."""
    context = Mock()
    context.function_name = "test-track-function"
    context.function_version = "1"
    context.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789012:function:test-track-function"
    context.memory_limit_in_mb = 256
    context.aws_request_id = "test-request-id-123"
    context.log_group_name = "/aws/lambda/test-track-function"
    context.log_stream_name = "2024/01/01/[$LATEST]test123"
    context.get_remaining_time_in_millis.return_value = 30000
    return context


# Pytest configuration
def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
