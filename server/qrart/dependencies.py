# ─────────────────────────────────────────────────────────────────────────────
# Dependency Injection — FastAPI Depends() providers
# ─────────────────────────────────────────────────────────────────────────────
# State flows: lifespan creates → app.state stores → Depends() injects.
# No global variables. Every dependency is explicit in endpoint signatures.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import Request

from qrart.config import Settings
from qrart.rate_limit import QuotaLimiter
from qrart.services.generation import QrGenerationOrchestrator
from qrart.services.replicate_client import ReplicateQrClient


def get_quota_limiter(request: Request) -> QuotaLimiter:
    return request.app.state.quota_limiter


def get_generator(request: Request) -> ReplicateQrClient:
    return request.app.state.generator


def get_orchestrator(request: Request) -> QrGenerationOrchestrator:
    return request.app.state.orchestrator


def get_settings_dep(request: Request) -> Settings:
    """Inject Settings into endpoints via Depends()."""
    return request.app.state.settings
