"""
Record identifiers.

Every record carries a 24-character hexadecimal identifier generated by
the service. The format check is local so malformed references are
rejected without a round trip to the record store.
"""

import re
import secrets
from typing import Any

OBJECT_ID_LENGTH = 24
_OBJECT_ID_RE = re.compile(r"[0-9a-fA-F]{24}")


def generate_object_id() -> str:
    """Return a new random 24-character hex identifier."""
    return secrets.token_hex(OBJECT_ID_LENGTH // 2)


def is_valid_object_id(value: Any) -> bool:
    """Check that value is a string in the record identifier format."""
    return isinstance(value, str) and _OBJECT_ID_RE.fullmatch(value) is not None
