from .codec import (
    decode_request,
    decode_response,
    encode_body,
    encode_full,
    encode_response,
    encode_signed,
    reference_of,
    selector,
)
from .context import MarshallingContext, UnmarshallingContext

__all__ = [
    "MarshallingContext",
    "UnmarshallingContext",
    "decode_request",
    "decode_response",
    "encode_body",
    "encode_full",
    "encode_response",
    "encode_signed",
    "reference_of",
    "selector",
]
