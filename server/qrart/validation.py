# ─────────────────────────────────────────────────────────────────────────────
# Request Validation — ordered field checks for POST /generate
# ─────────────────────────────────────────────────────────────────────────────
# Runs after the quota check. The first violation wins, url before prompt.
# ─────────────────────────────────────────────────────────────────────────────


from typing import Any

from pydantic import ValidationError

from qrart.exceptions import InvalidFieldError
from qrart.schemas import GenerateRequest

DEFAULT_NUM_VARIANTS = 1


def validate_request(payload: Any, max_num_variants: int | None = None) -> GenerateRequest:
    """Turn a decoded JSON body into a GenerateRequest.

    Args:
        payload: Whatever ``json.loads`` produced. Non-objects are treated
            as an object with no fields.
        max_num_variants: Optional upper bound on ``num_variants``.

    Returns:
        The validated request, with ``num_variants`` defaulted.

    Raises:
        InvalidFieldError: On the first missing or unusable field.
    """
    fields: dict[str, Any] = payload if isinstance(payload, dict) else {}

    if not fields.get("url"):
        raise InvalidFieldError("url", "URL is required")
    if not fields.get("prompt"):
        raise InvalidFieldError("prompt", "Prompt is required")

    num_variants = resolve_num_variants(fields.get("num_variants"), max_num_variants)

    try:
        return GenerateRequest(
            url=fields["url"],
            prompt=fields["prompt"],
            num_variants=num_variants,
        )
    except ValidationError as e:
        field = str(e.errors()[0]["loc"][0])
        raise InvalidFieldError(field, f"{field} must be a string") from e


def resolve_num_variants(value: Any, max_num_variants: int | None = None) -> int:
    """Absent or falsy values (None, 0, False, "") mean a single variant.

    Negative counts dispatch nothing and yield an empty image list.
    """
    if not value:
        return DEFAULT_NUM_VARIANTS
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidFieldError("num_variants", "num_variants must be an integer")
    if value < 0:
        return 0
    if max_num_variants is not None and value > max_num_variants:
        raise InvalidFieldError(
            "num_variants", f"num_variants must be at most {max_num_variants}"
        )
    return value
