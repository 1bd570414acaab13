# ─────────────────────────────────────────────────────────────────────────────
# Replicate Client — QR-code ControlNet predictions over HTTP
# ─────────────────────────────────────────────────────────────────────────────
# One generate() call = one prediction = one image URL.
#
#   POST {base}/predictions   (Prefer: wait — may already be finished)
#   GET  urls.get             (polled until succeeded | failed | canceled)
#
# No retries here: a failed prediction or HTTP error propagates to the caller.
# ─────────────────────────────────────────────────────────────────────────────


import asyncio
from typing import Any, Protocol

import httpx
import structlog

from qrart.config import Settings
from qrart.exceptions import PredictionFailedError

logger = structlog.get_logger(__name__)

_TERMINAL_STATUSES = frozenset({"succeeded", "failed", "canceled"})


class QrCodeGenerator(Protocol):
    """Anything that turns a url + prompt into the URL of a QR-styled image."""

    async def generate(self, url: str, prompt: str) -> str: ...


class ReplicateQrClient:
    """Async Replicate predictions client for a QR-code image model.

    The underlying httpx.AsyncClient is opened by ``connect()`` during the
    app lifespan and shared by every request.
    """

    def __init__(
        self,
        api_token: str,
        model_version: str,
        base_url: str = "https://api.replicate.com/v1",
        poll_interval_s: float = 1.0,
        timeout_s: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_token = api_token
        self._model_version = model_version
        self._base_url = base_url
        self._poll_interval_s = poll_interval_s
        self._timeout_s = timeout_s
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReplicateQrClient":
        return cls(
            api_token=settings.replicate_api_token.get_secret_value(),
            model_version=settings.replicate_model_version,
            base_url=settings.replicate_base_url,
            poll_interval_s=settings.replicate_poll_interval_seconds,
            timeout_s=settings.replicate_http_timeout_seconds,
        )

    async def connect(self) -> None:
        """Open the shared HTTP client."""
        if not self._api_token:
            logger.warning("replicate_token_missing", reason="REPLICATE_API_TOKEN not set")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._api_token}"},
            timeout=self._timeout_s,
            transport=self._transport,
        )

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Whether generate() can be called and has credentials to send."""
        return self._client is not None and bool(self._api_token)

    async def generate(self, url: str, prompt: str) -> str:
        """Run one prediction to completion and return its image URL.

        Raises:
            httpx.HTTPStatusError: Replicate answered with a 4xx/5xx.
            PredictionFailedError: The prediction failed, was canceled,
                or succeeded without output.
        """
        client = self._require_client()

        response = await client.post(
            "/predictions",
            json={"version": self._model_version, "input": {"url": url, "prompt": prompt}},
            headers={"Prefer": "wait"},
        )
        response.raise_for_status()
        prediction = response.json()
        logger.debug("prediction_created", prediction_id=prediction.get("id"), status=prediction.get("status"))

        while prediction.get("status") not in _TERMINAL_STATUSES:
            await asyncio.sleep(self._poll_interval_s)
            response = await client.get(prediction["urls"]["get"])
            response.raise_for_status()
            prediction = response.json()

        prediction_id = str(prediction.get("id", "unknown"))
        status = prediction["status"]
        if status != "succeeded":
            raise PredictionFailedError(prediction_id, status, prediction.get("error"))

        image_url = _first_output_url(prediction.get("output"))
        if image_url is None:
            raise PredictionFailedError(prediction_id, status, "prediction returned no output")

        logger.debug("prediction_succeeded", prediction_id=prediction_id)
        return image_url

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("ReplicateQrClient.connect() has not been called")
        return self._client


def _first_output_url(output: Any) -> str | None:
    # Image models return either a single URL or a list of them.
    if isinstance(output, str):
        return output or None
    if isinstance(output, list) and output:
        return str(output[0])
    return None
