# ─────────────────────────────────────────────────────────────────────────────
# Settings — Pydantic v2 BaseSettings
# ─────────────────────────────────────────────────────────────────────────────


from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Server configuration sourced from environment variables.

    Uses pydantic-settings v2 (separate package from pydantic).
    """

    model_config = SettingsConfigDict(env_prefix="", env_file=".env")

    # ── Rate limiting ────────────────────────────────────────────────────────
    # `limits` rate string, evaluated as a moving (sliding) window per IP.
    rate_limit: str = "5/day"
    # async+memory:// is per-process; use async+redis://host:6379 to share
    # the counter across instances.
    rate_limit_storage_uri: str = "async+memory://"

    # ── Generation back-end (Replicate) ──────────────────────────────────────
    replicate_api_token: SecretStr = SecretStr("")
    replicate_base_url: str = "https://api.replicate.com/v1"
    # zylim0702/qr_code_controlnet
    replicate_model_version: str = (
        "628e604e13cf63d8ec58bd4d238474e8986b054bc5e1326e50995fdbc851c557"
    )
    replicate_poll_interval_seconds: float = 1.0
    replicate_http_timeout_seconds: float = 60.0

    # ── Limits ───────────────────────────────────────────────────────────────
    # None keeps num_variants unbounded and generation untimed.
    max_num_variants: int | None = None
    generation_timeout_seconds: float | None = None

    # ── HTTP ─────────────────────────────────────────────────────────────────
    allowed_origins: str = ""

    # ── Logging ──────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True  # JSON logs for Cloud Logging


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
