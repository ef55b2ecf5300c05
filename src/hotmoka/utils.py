from __future__ import annotations

import base64
import hashlib
from typing import Any

from .errors import EncodingError


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def base64_encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def base64_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.b64decode(value + padding, validate=True)


def to_big_integer(value: Any, field: str) -> int:
    """Coerce an int or a decimal string into an arbitrary-precision int.

    Floats and booleans are refused.
    """
    if isinstance(value, bool):
        raise EncodingError(f"{field} must be an integer, not a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text[:1] in ("-", "+") else text
        if digits.isdigit() and digits.isascii():
            return int(text)
        raise EncodingError(f"{field} is not a decimal integer: {value!r}")
    raise EncodingError(f"{field} must be an integer, got {type(value).__name__}")


def require_non_negative(value: int, field: str) -> int:
    if value < 0:
        raise EncodingError(f"{field} must be non-negative, got {value}")
    return value
