# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions + FastAPI Exception Handlers
# ─────────────────────────────────────────────────────────────────────────────
# Caller-facing errors (quota, validation, timeout) are QrArtError subclasses
# and render as plain text. Upstream and body-parse failures stay outside the
# hierarchy and fall through to the catch-all 500.
# ─────────────────────────────────────────────────────────────────────────────


import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

logger = structlog.get_logger(__name__)


# ── Exception hierarchy ──────────────────────────────────────────────────────


class QrArtError(Exception):
    """Base exception for errors that map to a caller-meaningful response."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class QuotaExceededError(QrArtError):
    """Raised when an identity has used up its sliding-window quota."""

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__("Too many requests", status_code=429)


class InvalidFieldError(QrArtError):
    """Raised by request validation on the first offending field."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message, status_code=400)


class GenerationTimeoutError(QrArtError):
    """Raised when the variant fan-out exceeds generation_timeout_seconds."""

    def __init__(self, num_variants: int, timeout_s: float):
        super().__init__(
            f"Generation of {num_variants} variant(s) timed out after {timeout_s}s",
            status_code=504,
        )


class PredictionFailedError(Exception):
    """Raised when the generation back-end reports a failed prediction.

    Not a QrArtError: upstream failures surface as a generic 500.
    """

    def __init__(self, prediction_id: str, status: str, reason: str | None = None):
        self.prediction_id = prediction_id
        self.status = status
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Prediction {prediction_id} ended as '{status}'{detail}")


# ── Handler registration ────────────────────────────────────────────────────


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app.

    Endpoints raise QrArtError subclasses; these handlers turn them into
    plain-text responses, so endpoints carry no inline try/except.
    """

    @app.exception_handler(QrArtError)
    async def qrart_error_handler(request: Request, exc: QrArtError) -> PlainTextResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "qrart_error",
            error=exc.message,
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            path=request.url.path,
        )
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_error",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "type": "UnhandledError"},
        )
