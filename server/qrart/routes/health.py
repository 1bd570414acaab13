# ─────────────────────────────────────────────────────────────────────────────
# Health Check Routes — liveness and readiness
# ─────────────────────────────────────────────────────────────────────────────
#   /health        → Liveness probe. Returns 200 always, no I/O.
#   /health/ready  → Readiness probe. 503 until the generation client is
#                    connected with credentials.
# ─────────────────────────────────────────────────────────────────────────────

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from qrart.dependencies import get_generator, get_quota_limiter
from qrart.rate_limit import QuotaLimiter
from qrart.schemas import LivenessResponse, ReadinessResponse
from qrart.services.replicate_client import ReplicateQrClient

router = APIRouter()


@router.get("/health", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe — is the process alive?"""
    return LivenessResponse(status="ok")


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness(
    generator: ReplicateQrClient = Depends(get_generator),
    limiter: QuotaLimiter = Depends(get_quota_limiter),
) -> JSONResponse:
    """Readiness probe — can this instance serve /generate?

    Returns 503 (traffic withheld, container not restarted) while the
    Replicate client is unconnected or has no API token.
    """
    ready = generator.is_connected

    response = ReadinessResponse(
        status="ready" if ready else "not_ready",
        generator_connected=ready,
        rate_limit=limiter.rate,
    )

    return JSONResponse(
        status_code=200 if ready else 503,
        content=response.model_dump(),
    )
