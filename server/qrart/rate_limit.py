# ─────────────────────────────────────────────────────────────────────────────
# Rate Limiter — per-IP sliding-window generation quota
# ─────────────────────────────────────────────────────────────────────────────
# Built on `limits` (the engine underneath slowapi) instead of the slowapi
# decorator: the quota check must run before body validation and must report
# the remaining count, neither of which the decorator exposes.
#
# One QuotaLimiter per process, created in the lifespan and injected through
# app.state. The counter itself lives in the configured storage:
#   async+memory://          — per-process, for dev and tests
#   async+redis://host:6379  — shared across all instances
# ─────────────────────────────────────────────────────────────────────────────


import structlog
from limits import parse
from limits.aio.strategies import MovingWindowRateLimiter
from limits.storage import storage_from_string
from slowapi.util import get_remote_address
from starlette.requests import Request

from qrart.config import Settings
from qrart.schemas import RateLimitDecision

logger = structlog.get_logger(__name__)

# Shared bucket for callers whose address is unknown.
DEFAULT_IDENTITY = "127.0.0.1"

_NAMESPACE = "qr-generate"


def client_identity(request: Request) -> str:
    """Rate-limit key: the client IP, or the loopback placeholder."""
    return get_remote_address(request) or DEFAULT_IDENTITY


class QuotaLimiter:
    """Moving-window limiter: at most N hits per identity in the trailing window.

    Every call to ``limit`` that is allowed consumes one unit. Denied calls
    consume nothing.
    """

    def __init__(self, rate: str = "5/day", storage_uri: str = "async+memory://"):
        self._item = parse(rate)
        self._storage = storage_from_string(storage_uri)
        self._strategy = MovingWindowRateLimiter(self._storage)

    @classmethod
    def from_settings(cls, settings: Settings) -> "QuotaLimiter":
        return cls(rate=settings.rate_limit, storage_uri=settings.rate_limit_storage_uri)

    @property
    def rate(self) -> str:
        """Human-readable rate, e.g. ``5 per 1 day``."""
        return str(self._item)

    async def limit(self, identity: str) -> RateLimitDecision:
        """Consume one unit of quota for ``identity`` if any is left."""
        allowed = await self._strategy.hit(self._item, _NAMESPACE, identity)
        stats = await self._strategy.get_window_stats(self._item, _NAMESPACE, identity)
        decision = RateLimitDecision(allowed=allowed, remaining=max(stats.remaining, 0))
        logger.info(
            "quota_checked",
            identity=identity,
            allowed=decision.allowed,
            remaining=decision.remaining,
        )
        return decision

    async def reset(self) -> None:
        """Drop every counter in the storage. Intended for tests and ops."""
        await self._storage.reset()
