# ─────────────────────────────────────────────────────────────────────────────
# Test Fixtures — shared across all tests
# ─────────────────────────────────────────────────────────────────────────────
# app.state is initialized by hand (ASGITransport doesn't run lifespan).
# The Replicate client is replaced by FakeGenerator; quota counters live in
# a fresh in-memory `limits` storage per test.
# ─────────────────────────────────────────────────────────────────────────────

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from qrart.config import Settings
from qrart.main import create_app
from qrart.rate_limit import QuotaLimiter
from qrart.services.generation import QrGenerationOrchestrator


class FakeGenerator:
    """Stands in for ReplicateQrClient.

    Each call gets its dispatch index; the returned URL embeds it, so
    response order can be checked against dispatch order.
    """

    def __init__(
        self,
        delays: list[float] | None = None,
        delay_s: float = 0.0,
        fail_on_call: int | None = None,
    ):
        self.delays = delays
        self.delay_s = delay_s
        self.fail_on_call = fail_on_call
        self.calls: list[tuple[str, str]] = []
        self.cancelled = 0
        self.is_connected = True

    async def generate(self, url: str, prompt: str) -> str:
        index = len(self.calls)
        self.calls.append((url, prompt))
        if index == self.fail_on_call:
            raise RuntimeError("prediction exploded")

        delay = self.delays[index] if self.delays else self.delay_s
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        return f"https://images.test/{index}.png"


@pytest.fixture
def test_settings() -> Settings:
    """Settings for tests: in-memory quota store and a fake token."""
    return Settings(
        rate_limit="5/day",
        rate_limit_storage_uri="async+memory://",
        replicate_api_token="test-token",
        log_json=False,
        log_level="DEBUG",
    )


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def app(test_settings: Settings, fake_generator: FakeGenerator):
    """FastAPI app with test dependencies stored in app.state."""
    app = create_app()
    app.state.settings = test_settings
    app.state.quota_limiter = QuotaLimiter.from_settings(test_settings)
    app.state.generator = fake_generator
    app.state.orchestrator = QrGenerationOrchestrator(fake_generator, test_settings)
    return app


@pytest.fixture
async def client(app):
    """httpx AsyncClient; unhandled errors come back as 500 responses."""
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac
