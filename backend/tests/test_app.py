"""
X Tracking API — Application Surface & Middleware Tests
=========================================================

What we test:
    ✅ GET / banner and unknown-path error envelope
    ✅ X-Request-ID generated or echoed, and carried in error bodies
    ✅ Credential endpoints are rate limited per IP; other routes are not
    ✅ Idle limiter entries are swept once per SWEEP_INTERVAL attempts
    ✅ Account priority drives scraping frequency
"""

import pytest
from fastapi import FastAPI
from unittest.mock import MagicMock, patch

from app.main import register_exception_handlers
from app.middleware import rate_limit
from app.middleware.rate_limit import AuthRateLimitMiddleware
from app.middleware.request_id import RequestIDMiddleware
from app.models.account import Account, scraping_frequency_for_priority


class TestSurface:

    @pytest.mark.asyncio
    async def test_root_banner(self, test_client):
        response = await test_client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "Welcome to X Tracking API"}

    @pytest.mark.asyncio
    async def test_unknown_path_uses_error_envelope(self, test_client):
        response = await test_client.get("/api/accounts")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, test_client):
        response = await test_client.get("/")
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_request_id_echoed_into_errors(self, test_client):
        response = await test_client.get("/api/auth/me", headers={"X-Request-ID": "trace-123"})
        assert response.status_code == 401
        assert response.headers["X-Request-ID"] == "trace-123"
        assert response.json()["request_id"] == "trace-123"


def rate_limited_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.post("/api/auth/login")
    async def login():
        return {"success": True}

    @app.get("/api/categories")
    async def categories():
        return {"success": True}

    app.add_middleware(AuthRateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)
    return app


class TestCredentialRateLimit:

    @pytest.fixture
    def tight_limits(self):
        limits = MagicMock(auth_rate_limit_requests=2, auth_rate_limit_window=60)
        with patch("app.middleware.rate_limit.settings", limits):
            yield limits

    @pytest.mark.asyncio
    async def test_blocks_after_limit(self, make_client, tight_limits):
        async with make_client(rate_limited_app()) as client:
            first = await client.post("/api/auth/login")
            second = await client.post("/api/auth/login")
            third = await client.post("/api/auth/login")

        assert [first.status_code, second.status_code] == [200, 200]
        assert third.status_code == 429
        assert third.json()["error"] == "rate_limit_exceeded"
        assert set(third.json()) == {"error", "message", "details", "request_id"}
        assert third.json()["details"]["retry_after"] == int(third.headers["Retry-After"])
        assert 0 < int(third.headers["Retry-After"]) <= 61

    @pytest.mark.asyncio
    async def test_other_routes_unaffected(self, make_client, tight_limits):
        async with make_client(rate_limited_app()) as client:
            statuses = [(await client.get("/api/categories")).status_code for _ in range(5)]
        assert statuses == [200] * 5

    @pytest.mark.asyncio
    async def test_idle_sweep_runs_once_per_interval(self, make_client, tight_limits):
        tight_limits.auth_rate_limit_requests = 100
        with patch.object(rate_limit, "SWEEP_INTERVAL", 3), \
                patch.object(AuthRateLimitMiddleware, "_drop_idle_clients", autospec=True) as sweep:
            async with make_client(rate_limited_app()) as client:
                for _ in range(7):
                    await client.post("/api/auth/login")

        assert sweep.call_count == 2

    def test_drop_idle_clients(self):
        limiter = AuthRateLimitMiddleware(MagicMock())
        limiter._attempts.update({"10.0.0.1": [50.0], "10.0.0.2": [150.0], "10.0.0.3": []})

        limiter._drop_idle_clients(window_start=100.0)

        assert list(limiter._attempts) == ["10.0.0.2"]


class TestAccountModel:

    @pytest.mark.parametrize("priority, minutes", [(5, 60), (4, 180), (3, 360), (2, 720), (1, 1440)])
    def test_frequency_follows_priority(self, priority, minutes):
        assert scraping_frequency_for_priority(priority) == minutes
        assert Account(username="nasa", priority=priority).scraping_frequency == minutes

    def test_reprioritize(self):
        account = Account(username="nasa", priority=5)
        account.priority = 1
        assert account.scraping_frequency == 1440

    def test_unknown_priority_falls_back(self):
        assert scraping_frequency_for_priority(9) == 360
