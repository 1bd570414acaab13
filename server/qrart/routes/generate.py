# ─────────────────────────────────────────────────────────────────────────────
# POST /generate — QR art generation endpoint
# ─────────────────────────────────────────────────────────────────────────────
# Order matters and is part of the contract:
#   1. decode JSON      (malformed → unhandled 500, no quota consumed)
#   2. quota check      (denied → 429, payload never inspected)
#   3. field validation (→ 400, url before prompt)
#   4. fan-out          (→ 200, or unhandled 500 if any variant fails)
# The body is read by hand because FastAPI's own parsing would run before
# the quota check.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import APIRouter, Depends, Request

from qrart.config import Settings
from qrart.dependencies import get_orchestrator, get_quota_limiter, get_settings_dep
from qrart.exceptions import QuotaExceededError
from qrart.rate_limit import QuotaLimiter, client_identity
from qrart.schemas import GenerateResponse
from qrart.services.generation import QrGenerationOrchestrator
from qrart.validation import validate_request

router = APIRouter()


@router.post(
    "/generate",
    response_model=GenerateResponse,
    responses={
        400: {"description": "Missing url or prompt", "content": {"text/plain": {}}},
        429: {"description": "Generation quota exhausted", "content": {"text/plain": {}}},
    },
)
async def generate(
    request: Request,
    limiter: QuotaLimiter = Depends(get_quota_limiter),
    orchestrator: QrGenerationOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings_dep),
) -> GenerateResponse:
    """Generate one or more QR-styled images for a url + prompt.

    Quota is consumed before validation, so invalid requests still count.
    """
    payload = await request.json()

    identity = client_identity(request)
    decision = await limiter.limit(identity)
    if not decision.allowed:
        raise QuotaExceededError(identity)

    body = validate_request(payload, max_num_variants=settings.max_num_variants)
    return await orchestrator.generate(body)
