"""
Storage values: the actual arguments and results of code executed in the node.

A value is a ``(kind, payload)`` pair. The payload is checked against the kind
on construction, so a value never carries a payload of the wrong shape.
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..errors import EncodingError
from .references import StorageReference


class ValueKind(Enum):
    BOOLEAN = "boolean"
    BYTE = "byte"
    CHAR = "char"
    SHORT = "short"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BIG_INTEGER = "java.math.BigInteger"
    STRING = "java.lang.String"
    REFERENCE = "reference"
    NULL = "null"
    ENUM = "enum"


_INTEGER_RANGES = {
    ValueKind.BYTE: (-(1 << 7), (1 << 7) - 1),
    ValueKind.SHORT: (-(1 << 15), (1 << 15) - 1),
    ValueKind.INT: (-(1 << 31), (1 << 31) - 1),
    ValueKind.LONG: (-(1 << 63), (1 << 63) - 1),
}


@dataclass(frozen=True)
class EnumElement:
    class_name: str
    name: str


def _check_payload(kind: Any, payload: Any) -> Any:
    if not isinstance(kind, ValueKind):
        raise EncodingError(f"Unsupported storage value kind: {kind!r}")

    if kind is ValueKind.BOOLEAN:
        if not isinstance(payload, bool):
            raise EncodingError(f"boolean value expected, got {payload!r}")
        return payload

    if kind in _INTEGER_RANGES or kind is ValueKind.BIG_INTEGER:
        if isinstance(payload, bool) or not isinstance(payload, int):
            raise EncodingError(f"{kind.value} value must be an int, got {payload!r}")
        bounds = _INTEGER_RANGES.get(kind)
        if bounds and not bounds[0] <= payload <= bounds[1]:
            raise EncodingError(f"{payload} does not fit a {kind.value}")
        return payload

    if kind is ValueKind.FLOAT:
        if isinstance(payload, bool) or not isinstance(payload, (int, float)):
            raise EncodingError(f"float value expected, got {payload!r}")
        if math.isfinite(payload) and abs(payload) > 3.4028234663852886e38:
            raise EncodingError(f"{payload} does not fit a float")
        # round to single precision so equality survives a marshalling round trip
        return struct.unpack(">f", struct.pack(">f", float(payload)))[0]

    if kind is ValueKind.DOUBLE:
        if isinstance(payload, bool) or not isinstance(payload, (int, float)):
            raise EncodingError(f"double value expected, got {payload!r}")
        return float(payload)

    if kind is ValueKind.CHAR:
        if not isinstance(payload, str) or len(payload) != 1 or ord(payload) > 0xFFFF:
            raise EncodingError(f"char value must be a single BMP character, got {payload!r}")
        return payload

    if kind is ValueKind.STRING:
        if not isinstance(payload, str):
            raise EncodingError(f"string value expected, got {payload!r}")
        return payload

    if kind is ValueKind.REFERENCE:
        if not isinstance(payload, StorageReference):
            raise EncodingError(f"storage reference expected, got {payload!r}")
        return payload

    if kind is ValueKind.NULL:
        if payload is not None:
            raise EncodingError("null value cannot carry a payload")
        return None

    if not isinstance(payload, EnumElement):
        raise EncodingError(f"enum element expected, got {payload!r}")
    return payload


@dataclass(frozen=True)
class StorageValue:
    kind: ValueKind
    payload: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", _check_payload(self.kind, self.payload))

    @classmethod
    def of_boolean(cls, value: bool) -> "StorageValue":
        return cls(ValueKind.BOOLEAN, value)

    @classmethod
    def of_byte(cls, value: int) -> "StorageValue":
        return cls(ValueKind.BYTE, value)

    @classmethod
    def of_char(cls, value: str) -> "StorageValue":
        return cls(ValueKind.CHAR, value)

    @classmethod
    def of_short(cls, value: int) -> "StorageValue":
        return cls(ValueKind.SHORT, value)

    @classmethod
    def of_int(cls, value: int) -> "StorageValue":
        return cls(ValueKind.INT, value)

    @classmethod
    def of_long(cls, value: int) -> "StorageValue":
        return cls(ValueKind.LONG, value)

    @classmethod
    def of_float(cls, value: float) -> "StorageValue":
        return cls(ValueKind.FLOAT, value)

    @classmethod
    def of_double(cls, value: float) -> "StorageValue":
        return cls(ValueKind.DOUBLE, value)

    @classmethod
    def of_big_integer(cls, value: int) -> "StorageValue":
        return cls(ValueKind.BIG_INTEGER, value)

    @classmethod
    def of_string(cls, value: str) -> "StorageValue":
        return cls(ValueKind.STRING, value)

    @classmethod
    def of_reference(cls, value: StorageReference) -> "StorageValue":
        return cls(ValueKind.REFERENCE, value)

    @classmethod
    def null(cls) -> "StorageValue":
        return cls(ValueKind.NULL)

    @classmethod
    def of_enum(cls, class_name: str, name: str) -> "StorageValue":
        return cls(ValueKind.ENUM, EnumElement(class_name, name))

    def as_reference(self) -> Optional[StorageReference]:
        return self.payload if self.kind is ValueKind.REFERENCE else None

    def __str__(self) -> str:
        if self.kind is ValueKind.NULL:
            return "null"
        if self.kind is ValueKind.ENUM:
            return f"{self.payload.class_name}.{self.payload.name}"
        if self.kind is ValueKind.BOOLEAN:
            return "true" if self.payload else "false"
        return str(self.payload)
