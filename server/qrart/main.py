# ─────────────────────────────────────────────────────────────────────────────
# FastAPI Application Factory + Lifespan
# ─────────────────────────────────────────────────────────────────────────────
# Entrypoint: uvicorn qrart.main:create_app --factory --host 0.0.0.0 --port 8080
# Behind a proxy add --proxy-headers so the client IP (the rate-limit key)
# comes from X-Forwarded-For.
# ─────────────────────────────────────────────────────────────────────────────

import os
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qrart.config import get_settings
from qrart.exceptions import register_exception_handlers
from qrart.logging_config import configure_logging
from qrart.rate_limit import QuotaLimiter
from qrart.routes import generate, health
from qrart.services.generation import QrGenerationOrchestrator
from qrart.services.replicate_client import ReplicateQrClient

logger = structlog.get_logger(__name__)


def _configure_otel(exporter_type: str) -> None:
    """Configure OpenTelemetry tracing.

    Supports "console" for dev and "gcp" for Cloud Trace.
    No-op if the exporter type is unknown.
    """
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    provider = TracerProvider()

    if exporter_type == "console":
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter

        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    elif exporter_type == "gcp":
        try:
            from opentelemetry.exporter.cloud_trace import CloudTraceSpanExporter

            provider.add_span_processor(
                BatchSpanProcessor(CloudTraceSpanExporter())
            )
        except ImportError:
            logger.warning("gcp_trace_exporter_not_available")
            return
    else:
        logger.warning("unknown_otel_exporter", exporter=exporter_type)
        return

    from opentelemetry import trace

    trace.set_tracer_provider(provider)
    logger.info("otel_configured", exporter=exporter_type)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the process-wide limiter, generation client and orchestrator.

    All of them are stored in app.state for injection via Depends().
    """
    settings = get_settings()

    otel_exporter = os.environ.get("OTEL_EXPORTER", "")
    if otel_exporter:
        _configure_otel(otel_exporter)

    limiter = QuotaLimiter.from_settings(settings)

    generator = ReplicateQrClient.from_settings(settings)
    await generator.connect()

    orchestrator = QrGenerationOrchestrator(generator, settings)

    app.state.settings = settings
    app.state.quota_limiter = limiter
    app.state.generator = generator
    app.state.orchestrator = orchestrator

    logger.info(
        "startup_complete",
        rate_limit=limiter.rate,
        max_num_variants=settings.max_num_variants,
        generation_timeout_seconds=settings.generation_timeout_seconds,
    )

    yield  # App is running, serving requests

    await generator.disconnect()


def _parse_origins(allowed_origins: str) -> list[str]:
    """Parse comma-separated origin string into a list.

    Returns ``["*"]`` if the input is empty (development mode).
    """
    if not allowed_origins.strip():
        return ["*"]
    return [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]


def create_app() -> FastAPI:
    """Application factory. Invoked by: uvicorn qrart.main:create_app --factory"""
    settings = get_settings()
    configure_logging(log_level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="QR Art",
        description="Generates QR-code-styled images from a URL and a prompt",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_origins(settings.allowed_origins),
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(generate.router, tags=["generate"])

    return app
