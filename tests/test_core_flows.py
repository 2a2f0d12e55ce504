# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""
Test the HTTP surface: session creation end to end against a mock provider,
validation short-circuits, transport failures, rate limiting, CORS and the
catch-all 404.
"""
import httpx
import pytest
from fastapi.testclient import TestClient

import mock_provider
from conftest import TEST_PARTNER_ID, TEST_WALLET, RecordingHandler
from wert_proxy import AVAILABLE_ENDPOINTS, SessionTransport, build_app
from wert_proxy.ratelimit import TOO_MANY_REQUESTS
from wert_proxy.validation import AMOUNT_REQUIRED, AMOUNT_TOO_LARGE

CREATE = "/api/create-session"


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"sessionId": "abc123"})


class TestCompleteSessionFlow:
    """Session creation against the mock Wert partner API."""

    @pytest.fixture
    def client(self, make_client) -> TestClient:
        return make_client(httpx.ASGITransport(app=mock_provider.app))

    def test_session_created(self, client: TestClient, sample_purchase: dict):
        response = client.post(CREATE, json=sample_purchase)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["sessionId"] == "abc123"
        assert data["partnerId"] == TEST_PARTNER_ID
        assert data["walletAddress"] == TEST_WALLET
        assert data["amount"] == 100
        assert data["timestamp"].endswith("Z")
        assert len(response.headers["X-Request-ID"]) == 32

    def test_forwarded_payload(self, client: TestClient, sample_purchase: dict):
        client.post(CREATE, json=sample_purchase)

        assert mock_provider.RECEIVED[-1] == {
            "flow_type": "simple_full_restrict",
            "currency": "USD",
            "currency_amount": 100.0,
            "commodity": "BTC",
            "network": "bitcoin",
            "wallet_address": TEST_WALLET,
            "phone": "+15555550100",
        }

    def test_numeric_string_amount(self, client: TestClient):
        response = client.post(CREATE, json={"currency_amount": "30"})

        assert response.status_code == 200
        assert response.json()["amount"] == 30.0

    def test_missing_session_id_is_server_error(self, client: TestClient):
        response = client.post(CREATE, json={"currency_amount": 4040})

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["error"].startswith("invalid response")
        assert "sessionId" not in data

    def test_invalid_api_key_mirrors_provider(self, make_client):
        client = make_client(
            httpx.ASGITransport(app=mock_provider.app), provider_overrides={"api_key": "wrong"}
        )
        response = client.post(CREATE, json={"currency_amount": 100})

        assert response.status_code == 401
        data = response.json()
        assert data == {
            "success": False,
            "error": "invalid key",
            "details": {"message": "invalid key"},
            "upstreamStatus": 401,
        }

    def test_provider_error_field(self, client: TestClient):
        response = client.post(CREATE, json={"currency_amount": 4000})

        assert response.status_code == 400
        assert response.json()["error"] == "currency_amount below provider minimum"

    @pytest.mark.parametrize(
        "amount, status, error, details",
        [
            (4290, 429, "rate limit exceeded", "slow down"),
            (5000, 500, "upstream server error", "upstream exploded"),
        ],
    )
    def test_plain_text_errors_mapped_by_status(self, client: TestClient, amount, status, error, details):
        response = client.post(CREATE, json={"currency_amount": amount})

        assert response.status_code == status
        data = response.json()
        assert data["error"] == error
        assert data["details"] == details
        assert data["upstreamStatus"] == status


class TestValidationShortCircuit:
    """Rejected amounts never reach the provider."""

    @pytest.fixture
    def handler(self) -> RecordingHandler:
        return RecordingHandler(_ok)

    @pytest.fixture
    def client(self, make_client, handler: RecordingHandler) -> TestClient:
        return make_client(httpx.MockTransport(handler))

    @pytest.mark.parametrize("amount", [0, -10, 24.99, "abc", "", None, True, [], {"v": 30}])
    def test_below_minimum(self, client: TestClient, handler: RecordingHandler, amount):
        response = client.post(CREATE, json={"currency_amount": amount})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": AMOUNT_REQUIRED}
        assert handler.requests == []

    @pytest.mark.parametrize("amount", [10000.01, 10001, 1_000_000])
    def test_above_maximum(self, client: TestClient, handler: RecordingHandler, amount):
        response = client.post(CREATE, json={"currency_amount": amount})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": AMOUNT_TOO_LARGE}
        assert handler.requests == []

    def test_missing_amount_field(self, client: TestClient, handler: RecordingHandler):
        response = client.post(CREATE, json={"phone": "+15555550100"})

        assert response.status_code == 400
        assert response.json()["error"] == AMOUNT_REQUIRED
        assert handler.requests == []

    def test_missing_body(self, client: TestClient, handler: RecordingHandler):
        response = client.post(CREATE)

        assert response.status_code == 400
        assert response.json()["error"] == AMOUNT_REQUIRED
        assert handler.requests == []

    def test_malformed_json_body(self, client: TestClient, handler: RecordingHandler):
        response = client.post(CREATE, content=b"{not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert handler.requests == []
        assert len(response.headers["X-Request-ID"]) == 32

    @pytest.mark.parametrize("amount", [25, 10000])
    def test_bounds_are_inclusive(self, client: TestClient, handler: RecordingHandler, amount):
        response = client.post(CREATE, json={"currency_amount": amount})

        assert response.status_code == 200
        assert len(handler.requests) == 1


class TestTransportFailures:
    @pytest.mark.parametrize(
        "exc, message",
        [
            (httpx.ReadTimeout("timed out"), "request to provider timed out"),
            (httpx.ConnectTimeout("timed out"), "request to provider timed out"),
            (httpx.ConnectError("connection refused"), "unable to connect to provider"),
            (httpx.ReadError("connection reset"), "upstream request failed"),
        ],
    )
    def test_transport_errors(self, make_client, exc, message):
        def handler(request: httpx.Request) -> httpx.Response:
            raise exc

        client = make_client(httpx.MockTransport(handler))
        response = client.post(CREATE, json={"currency_amount": 100})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": message}

    def test_unexpected_fault_is_contained(self, provider_cfg, server_cfg):
        class ExplodingTransport(SessionTransport):
            name = "exploding"

            async def send(self, url, headers, body, timeout):
                raise RuntimeError("secret internal detail")

        client = TestClient(build_app(provider_cfg, server_cfg, ExplodingTransport()))
        response = client.post(CREATE, json={"currency_amount": 100})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}
        assert "secret" not in response.text


class TestRateLimiting:
    def test_limit_per_caller(self, make_client):
        handler = RecordingHandler(_ok)
        client = make_client(httpx.MockTransport(handler), rate_limit_max=2, rate_limit_window_s=60)

        first = client.post(CREATE, json={"currency_amount": 100})
        second = client.post(CREATE, json={"currency_amount": 5})
        third = client.post(CREATE, json={"currency_amount": 100})

        assert first.status_code == 200
        assert first.headers["X-RateLimit-Limit"] == "2"
        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert second.status_code == 400
        assert second.headers["X-RateLimit-Remaining"] == "0"
        assert third.status_code == 429
        assert third.json() == {"success": False, "error": TOO_MANY_REQUESTS}
        assert 1 <= int(third.headers["Retry-After"]) <= 60
        assert len(third.headers["X-Request-ID"]) == 32
        assert third.headers["X-Request-ID"] != first.headers["X-Request-ID"]
        assert len(handler.requests) == 1

    def test_other_endpoints_not_limited(self, make_client):
        client = make_client(httpx.MockTransport(_ok), rate_limit_max=1)
        for _ in range(3):
            assert client.get("/health").status_code == 200


class TestServiceEndpoints:
    @pytest.fixture
    def client(self, make_client) -> TestClient:
        return make_client(httpx.MockTransport(_ok))

    def test_root(self, client: TestClient):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "running"
        assert data["environment"] == "test"
        assert "timestamp" in data

    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data

    @pytest.mark.parametrize(
        "method, path",
        [
            ("GET", "/nope"),
            ("POST", "/api/create-sessions"),
            ("GET", CREATE),
            ("DELETE", CREATE),
            ("POST", "/health"),
            ("PUT", "/"),
            ("PATCH", "/api"),
        ],
    )
    def test_unknown_routes(self, client: TestClient, method: str, path: str):
        response = client.request(method, path)

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": "Endpoint not found",
            "availableEndpoints": AVAILABLE_ENDPOINTS,
        }


class TestCors:
    @pytest.fixture
    def client(self, make_client) -> TestClient:
        return make_client(httpx.MockTransport(_ok), cors_origins=["https://shop.example.org"])

    @pytest.mark.parametrize(
        "origin",
        [
            "https://shop.example.org",
            "https://btc-shop.netlify.app",
            "https://preview.vercel.app",
            "https://api.up.railway.app",
            "http://localhost:5173",
            "http://127.0.0.1:8080",
        ],
    )
    def test_preflight_allowed(self, client: TestClient, origin: str):
        response = client.options(
            CREATE,
            headers={
                "Origin": origin,
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == origin
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_preflight_rejected(self, client: TestClient):
        response = client.options(
            CREATE,
            headers={"Origin": "https://evil.example.com", "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 400
        assert "access-control-allow-origin" not in response.headers

    def test_simple_request_gets_cors_header(self, client: TestClient):
        response = client.get("/health", headers={"Origin": "https://btc-shop.netlify.app"})

        assert response.headers["access-control-allow-origin"] == "https://btc-shop.netlify.app"
