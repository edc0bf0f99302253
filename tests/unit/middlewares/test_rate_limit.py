import pytest
from httpx import AsyncClient
from starlette import status

from src.config.settings import get_settings
from src.middlewares.rate_limit_middleware import FixedWindowRateLimiter


class TestFixedWindowRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = FixedWindowRateLimiter()

        decisions = [limiter.hit("1.2.3.4", limit=3, window_seconds=60, now=0) for _ in range(4)]

        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert [d.remaining for d in decisions] == [2, 1, 0, 0]

    def test_window_resets(self):
        limiter = FixedWindowRateLimiter()
        limiter.hit("1.2.3.4", limit=1, window_seconds=60, now=0)

        assert not limiter.hit("1.2.3.4", limit=1, window_seconds=60, now=30).allowed
        assert limiter.hit("1.2.3.4", limit=1, window_seconds=60, now=60).allowed

    def test_reset_after_counts_down(self):
        limiter = FixedWindowRateLimiter()
        limiter.hit("1.2.3.4", limit=1, window_seconds=60, now=0)

        assert limiter.hit("1.2.3.4", limit=1, window_seconds=60, now=45).reset_after == 15

    def test_clients_are_counted_separately(self):
        limiter = FixedWindowRateLimiter()
        limiter.hit("1.2.3.4", limit=1, window_seconds=60, now=0)

        assert limiter.hit("5.6.7.8", limit=1, window_seconds=60, now=0).allowed

    def test_reset_clears_counters(self):
        limiter = FixedWindowRateLimiter()
        limiter.hit("1.2.3.4", limit=1, window_seconds=60, now=0)
        limiter.reset()

        assert limiter.hit("1.2.3.4", limit=1, window_seconds=60, now=1).allowed


@pytest.mark.asyncio
async def test_requests_over_limit_are_rejected(unit_test_client: AsyncClient, monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "2")
    get_settings.cache_clear()

    first = await unit_test_client.get("/health")
    second = await unit_test_client.get("/health")
    third = await unit_test_client.get("/health")

    assert first.status_code == status.HTTP_200_OK
    assert first.headers["X-RateLimit-Limit"] == "2"
    assert first.headers["X-RateLimit-Remaining"] == "1"
    assert second.status_code == status.HTTP_200_OK
    assert third.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert third.json() == {
        "error": "Too many requests",
        "details": "Too many requests from this IP, please try again after 15 minutes",
    }
    assert int(third.headers["Retry-After"]) > 0


@pytest.mark.asyncio
async def test_rate_limit_can_be_disabled(unit_test_client: AsyncClient, monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "1")
    get_settings.cache_clear()

    responses = [await unit_test_client.get("/health") for _ in range(3)]

    assert all(r.status_code == status.HTTP_200_OK for r in responses)
    assert "X-RateLimit-Limit" not in responses[0].headers
