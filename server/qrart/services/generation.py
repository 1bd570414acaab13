# ─────────────────────────────────────────────────────────────────────────────
# Generation Orchestrator — parallel variant fan-out + latency measurement
# ─────────────────────────────────────────────────────────────────────────────
# N variants = N independent generate(url, prompt) calls dispatched together
# and joined. All-or-nothing: the first failure cancels the remaining calls
# and propagates; there is never a partial list of image URLs.
# ─────────────────────────────────────────────────────────────────────────────


import asyncio
import math
import time

import structlog
from opentelemetry import trace

from qrart.config import Settings
from qrart.exceptions import GenerationTimeoutError
from qrart.schemas import GenerateRequest, GenerateResponse
from qrart.services.replicate_client import QrCodeGenerator

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


def round_half_up(value: float) -> int:
    """Round halves up: 2.5 -> 3, where round() would give 2."""
    return math.floor(value + 0.5)


class QrGenerationOrchestrator:
    """Owns the fan-out. Endpoints hand it an already validated request."""

    def __init__(self, generator: QrCodeGenerator, settings: Settings) -> None:
        self._generator = generator
        self._settings = settings

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        """Generate ``request.num_variants`` images and time the whole batch.

        ``model_latency_ms`` spans dispatch of the first call to completion
        of the last one, rounded to the nearest millisecond.
        """
        with tracer.start_as_current_span("generate_variants") as span:
            span.set_attribute("num_variants", request.num_variants)

            start = time.perf_counter()
            image_urls = await self._fan_out(request)
            elapsed_ms = round_half_up((time.perf_counter() - start) * 1000)

            span.set_attribute("latency_ms", elapsed_ms)

        logger.info(
            "variants_generated",
            num_variants=request.num_variants,
            latency_ms=elapsed_ms,
        )
        return GenerateResponse(image_urls=image_urls, model_latency_ms=elapsed_ms)

    async def _fan_out(self, request: GenerateRequest) -> list[str]:
        timeout = self._settings.generation_timeout_seconds
        if timeout is None:
            return await self._gather_variants(request)
        try:
            return await asyncio.wait_for(self._gather_variants(request), timeout=timeout)
        except TimeoutError:
            raise GenerationTimeoutError(request.num_variants, timeout) from None

    async def _gather_variants(self, request: GenerateRequest) -> list[str]:
        tasks = [
            asyncio.create_task(self._generator.generate(request.url, request.prompt))
            for _ in range(request.num_variants)
        ]
        try:
            # gather preserves argument order, so results follow dispatch order.
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise
