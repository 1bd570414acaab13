# ─────────────────────────────────────────────────────────────────────────────
# Tests — Quota Limiter
# ─────────────────────────────────────────────────────────────────────────────

import asyncio

import pytest
from starlette.requests import Request

from qrart.config import Settings
from qrart.rate_limit import DEFAULT_IDENTITY, QuotaLimiter, client_identity


def _request(client: tuple[str, int] | None) -> Request:
    return Request({"type": "http", "method": "POST", "path": "/generate", "headers": [], "client": client})


class TestClientIdentity:
    def test_uses_client_host(self):
        assert client_identity(_request(("203.0.113.9", 5555))) == "203.0.113.9"

    def test_missing_client_falls_back_to_loopback(self):
        assert client_identity(_request(None)) == DEFAULT_IDENTITY == "127.0.0.1"


class TestQuotaLimiter:
    @pytest.mark.asyncio
    async def test_five_allowed_then_denied(self):
        limiter = QuotaLimiter("5/day")
        remaining = []
        for _ in range(5):
            decision = await limiter.limit("1.2.3.4")
            assert decision.allowed
            remaining.append(decision.remaining)
        assert remaining == [4, 3, 2, 1, 0]

        decision = await limiter.limit("1.2.3.4")
        assert not decision.allowed
        assert decision.remaining == 0

    @pytest.mark.asyncio
    async def test_identities_are_independent(self):
        limiter = QuotaLimiter("1/day")
        assert (await limiter.limit("a")).allowed
        assert not (await limiter.limit("a")).allowed
        assert (await limiter.limit("b")).allowed

    @pytest.mark.asyncio
    async def test_reset_clears_counters(self):
        limiter = QuotaLimiter("1/day")
        await limiter.limit("a")
        await limiter.reset()
        assert (await limiter.limit("a")).allowed

    @pytest.mark.asyncio
    async def test_limiters_do_not_share_memory_storage(self):
        first = QuotaLimiter("1/day")
        second = QuotaLimiter("1/day")
        await first.limit("a")
        assert (await second.limit("a")).allowed

    def test_from_settings(self):
        limiter = QuotaLimiter.from_settings(Settings(rate_limit="3/hour"))
        assert "3" in limiter.rate
        assert "hour" in limiter.rate


class TestSlidingWindow:
    @pytest.mark.asyncio
    async def test_quota_returns_after_window_passes(self):
        limiter = QuotaLimiter("2/second")
        assert (await limiter.limit("a")).allowed
        assert (await limiter.limit("a")).allowed
        assert not (await limiter.limit("a")).allowed

        await asyncio.sleep(1.2)
        assert (await limiter.limit("a")).allowed

    @pytest.mark.asyncio
    async def test_hits_expire_individually(self):
        # t=0.0 first hit, t=1.5 second hit, t=2.2 check.
        # A fixed 2s bucket opened at t=0 would have reset both by t=2.2;
        # the trailing window has only dropped the first.
        limiter = QuotaLimiter("2 per 2 seconds")
        assert (await limiter.limit("a")).allowed
        await asyncio.sleep(1.5)
        assert (await limiter.limit("a")).allowed
        assert not (await limiter.limit("a")).allowed

        await asyncio.sleep(0.7)
        decision = await limiter.limit("a")
        assert decision.allowed
        assert decision.remaining == 0
        assert not (await limiter.limit("a")).allowed
