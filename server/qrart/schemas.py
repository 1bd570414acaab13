# ─────────────────────────────────────────────────────────────────────────────
# Schemas — request/response models (Pydantic v2)
# ─────────────────────────────────────────────────────────────────────────────


from pydantic import BaseModel, ConfigDict, Field


class GenerateRequest(BaseModel):
    """Validated body of POST /generate.

    Built by ``validate_request`` after the quota check, never parsed
    directly by FastAPI: missing fields must yield plain-text 400s in a
    fixed order rather than a 422.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    url: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    num_variants: int = Field(default=1, ge=0)


class GenerateResponse(BaseModel):
    """One image URL per variant, in dispatch order."""

    image_urls: list[str]
    model_latency_ms: int = Field(ge=0)


class RateLimitDecision(BaseModel):
    """Outcome of one quota check for one identity."""

    allowed: bool
    remaining: int = Field(ge=0)


class LivenessResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    status: str
    generator_connected: bool
    rate_limit: str
