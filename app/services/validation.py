"""
Request validation helpers shared by the catalog and order services.

Values arrive as decoded JSON, so booleans must be told apart from numbers
(bool is an int subclass) and an integral float is not an integer. The
JSON decoder also accepts Infinity and NaN, which are never valid amounts.
"""

import math
from typing import Any

from app.core.errors import ValidationError


def is_present(value: Any) -> bool:
    """True unless value is None or an empty/blank string."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _is_finite(value: Any) -> bool:
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints beyond float range
        return False


def is_positive_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and _is_finite(value)
        and value > 0
    )


def is_positive_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def require_bool(value: Any, message: str, field: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(message, field=field)
    return value


def require_body(body: Any) -> dict:
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body
