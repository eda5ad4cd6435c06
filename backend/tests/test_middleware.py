"""
RecipeShare Backend — Middleware & Health Tests
=================================================

What:  Request ID propagation, the sliding-window rate limiter, and the
       /health and /api/test endpoints.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from recipeshare.middleware.logging import _level_for
from recipeshare.middleware.rate_limit import RateLimitMiddleware
from recipeshare.middleware.request_id import RequestIDMiddleware, request_id_var
from recipeshare.services.mealdb_service import CircuitBreaker


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def limited_app(clock: FakeClock, max_requests: int = 2, window_seconds: int = 60) -> FastAPI:
    app = FastAPI()

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    app.add_middleware(
        RateLimitMiddleware,
        max_requests=max_requests,
        window_seconds=window_seconds,
        clock=clock,
    )
    return app


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_blocks_after_limit(self):
        clock = FakeClock()
        async with AsyncClient(transport=ASGITransport(app=limited_app(clock)), base_url="http://test") as client:
            assert (await client.get("/ping")).status_code == 200
            clock.now += 10
            assert (await client.get("/ping")).status_code == 200

            response = await client.get("/ping")

        assert response.status_code == 429
        assert response.json()["error"] == "rate_limit_exceeded"
        # Oldest request at t=1000 leaves the window at t=1060
        assert response.headers["Retry-After"] == "50"
        assert response.json()["details"] == {"retry_after": 50}
        assert len(response.json()["request_id"]) == 8
        assert response.headers["X-Request-ID"] == response.json()["request_id"]

    @pytest.mark.asyncio
    async def test_rejection_echoes_client_request_id(self):
        clock = FakeClock()
        app = limited_app(clock, max_requests=1)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            await client.get("/ping")
            response = await client.get("/ping", headers={"X-Request-ID": "trace-99"})

        assert response.status_code == 429
        assert response.json()["request_id"] == "trace-99"
        assert response.headers["X-Request-ID"] == "trace-99"

    @pytest.mark.asyncio
    async def test_window_slides(self):
        clock = FakeClock()
        async with AsyncClient(transport=ASGITransport(app=limited_app(clock)), base_url="http://test") as client:
            await client.get("/ping")
            await client.get("/ping")
            assert (await client.get("/ping")).status_code == 429

            clock.now += 61
            assert (await client.get("/ping")).status_code == 200

    @pytest.mark.asyncio
    async def test_health_is_never_limited(self):
        clock = FakeClock()
        async with AsyncClient(transport=ASGITransport(app=limited_app(clock, max_requests=1)), base_url="http://test") as client:
            for _ in range(5):
                assert (await client.get("/health")).status_code == 200
            assert (await client.get("/ping")).status_code == 200
            assert (await client.get("/ping")).status_code == 429


class TestRequestID:
    @pytest.mark.asyncio
    async def test_generated_when_absent(self, test_client):
        response = await test_client.get("/api/test")
        rid = response.headers["X-Request-ID"]
        assert len(rid) == 8

    @pytest.mark.asyncio
    async def test_client_id_is_echoed(self, test_client):
        response = await test_client.get("/api/test", headers={"X-Request-ID": "trace-42"})
        assert response.headers["X-Request-ID"] == "trace-42"

    @pytest.mark.asyncio
    async def test_error_body_carries_request_id(self, test_client):
        response = await test_client.get(
            "/api/recipes", params={"sort": "nope"}, headers={"X-Request-ID": "trace-43"}
        )
        assert response.status_code == 400
        assert response.json()["request_id"] == "trace-43"

    @pytest.mark.asyncio
    async def test_handler_sees_request_id(self):
        app = FastAPI()

        @app.get("/whoami")
        async def whoami():
            return {"rid": request_id_var.get()}

        app.add_middleware(RequestIDMiddleware)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/whoami", headers={"X-Request-ID": "abc"})

        assert response.json() == {"rid": "abc"}


class TestAccessLogLevel:
    @pytest.mark.parametrize(
        "status,level",
        [(200, "INFO"), (302, "INFO"), (404, "WARNING"), (429, "WARNING"), (500, "ERROR")],
    )
    def test_level_for_status(self, status, level):
        import logging

        assert _level_for(status) == getattr(logging, level)


class TestHealth:
    @pytest.mark.asyncio
    async def test_ping(self, test_client):
        response = await test_client.get("/api/test")
        assert response.status_code == 200
        assert response.json() == {"message": "Server is working!"}

    @pytest.mark.asyncio
    async def test_healthy(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["upstream"] == "available"
        assert body["uptimeSeconds"] >= 0

    @pytest.mark.asyncio
    async def test_degraded_when_circuit_open(self, test_client, mealdb_client):
        mealdb_client.circuit_breaker.state = CircuitBreaker.OPEN

        response = await test_client.get("/health")

        assert response.json()["status"] == "degraded"
        assert response.json()["upstream"] == "circuit_open"
