"""
Low-level byte writer and reader for the node's canonical format.

Fixed-width values are big-endian. Strings carry a two-byte length prefix.
Arbitrary-precision integers never narrow: values that do not fit a long fall
back to their signed decimal digits. Shared objects and strings are written in
full on first occurrence and by index afterwards, with one index space per kind.
"""

from __future__ import annotations

import struct
from typing import Any, Callable, Hashable

from ..errors import EncodingError

_NEW_OBJECT = 0xFF
_LONG_INDEX = 0xFE
_MAX_UTF_LENGTH = 0xFFFF

# BigInteger forms: small values are folded into the selector byte itself.
_BIG_INTEGER_SHORT = 0
_BIG_INTEGER_INT = 1
_BIG_INTEGER_LONG = 2
_BIG_INTEGER_DECIMAL = 3
_BIG_INTEGER_SMALL_OFFSET = 4
_BIG_INTEGER_SMALL_MAX = 255 - _BIG_INTEGER_SMALL_OFFSET


def _fits(value: int, bits: int) -> bool:
    return -(1 << (bits - 1)) <= value < (1 << (bits - 1))


class MarshallingContext:
    def __init__(self) -> None:
        self._buffer = bytearray()
        self._memory: dict[str, dict[Hashable, int]] = {}

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)

    def _pack(self, fmt: str, value: Any, what: str) -> None:
        try:
            self._buffer += struct.pack(fmt, value)
        except struct.error as exc:
            raise EncodingError(f"Cannot encode {what} {value!r}: {exc}") from exc

    def write_byte(self, value: int) -> None:
        self._pack(">B" if value >= 0 else ">b", value, "byte")

    def write_boolean(self, value: bool) -> None:
        self._pack(">?", value, "boolean")

    def write_short(self, value: int) -> None:
        self._pack(">h", value, "short")

    def write_char(self, value: str) -> None:
        self._pack(">H", ord(value), "char")

    def write_int(self, value: int) -> None:
        self._pack(">i", value, "int")

    def write_long(self, value: int) -> None:
        self._pack(">q", value, "long")

    def write_float(self, value: float) -> None:
        self._pack(">f", value, "float")

    def write_double(self, value: float) -> None:
        self._pack(">d", value, "double")

    def write_raw(self, data: bytes) -> None:
        self._buffer += data

    def write_compact_int(self, value: int) -> None:
        if value < 0:
            raise EncodingError(f"Compact int must be non-negative, got {value}")
        if value < 255:
            self.write_byte(value)
        else:
            self.write_byte(255)
            self.write_int(value)

    def write_bytes(self, data: bytes) -> None:
        self.write_compact_int(len(data))
        self.write_raw(data)

    def write_utf(self, value: str) -> None:
        encoded = value.encode("utf-8")
        if len(encoded) > _MAX_UTF_LENGTH:
            raise EncodingError(f"String too long to marshal: {len(encoded)} bytes")
        self._pack(">H", len(encoded), "string length")
        self.write_raw(encoded)

    def write_big_integer(self, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise EncodingError(f"Arbitrary-precision integer expected, got {value!r}")
        if 0 <= value <= _BIG_INTEGER_SMALL_MAX:
            self.write_byte(value + _BIG_INTEGER_SMALL_OFFSET)
        elif _fits(value, 16):
            self.write_byte(_BIG_INTEGER_SHORT)
            self.write_short(value)
        elif _fits(value, 32):
            self.write_byte(_BIG_INTEGER_INT)
            self.write_int(value)
        elif _fits(value, 64):
            self.write_byte(_BIG_INTEGER_LONG)
            self.write_long(value)
        else:
            self.write_byte(_BIG_INTEGER_DECIMAL)
            self.write_bytes(str(value).encode("ascii"))

    def write_shared(self, space: str, key: Hashable, write: Callable[[], None]) -> None:
        """Write ``key`` in full the first time it occurs in ``space``, by index afterwards."""
        memory = self._memory.setdefault(space, {})
        index = memory.get(key)
        if index is None:
            memory[key] = len(memory)
            self.write_byte(_NEW_OBJECT)
            write()
        elif index < _LONG_INDEX:
            self.write_byte(index)
        else:
            self.write_byte(_LONG_INDEX)
            self.write_int(index)

    def write_string_shared(self, value: str) -> None:
        self.write_shared("string", value, lambda: self.write_utf(value))


class UnmarshallingContext:
    def __init__(self, data: bytes) -> None:
        self._data = memoryview(bytes(data))
        self._position = 0
        self._memory: dict[str, list[Any]] = {}

    @property
    def exhausted(self) -> bool:
        return self._position >= len(self._data)

    def read_raw(self, length: int) -> bytes:
        end = self._position + length
        if length < 0 or end > len(self._data):
            raise EncodingError(f"Unexpected end of data at offset {self._position}")
        chunk = bytes(self._data[self._position:end])
        self._position = end
        return chunk

    def _unpack(self, fmt: str) -> Any:
        return struct.unpack(fmt, self.read_raw(struct.calcsize(fmt)))[0]

    def read_byte(self) -> int:
        return self._unpack(">B")

    def read_signed_byte(self) -> int:
        return self._unpack(">b")

    def read_boolean(self) -> bool:
        return self._unpack(">?")

    def read_short(self) -> int:
        return self._unpack(">h")

    def read_char(self) -> str:
        return chr(self._unpack(">H"))

    def read_int(self) -> int:
        return self._unpack(">i")

    def read_long(self) -> int:
        return self._unpack(">q")

    def read_float(self) -> float:
        return self._unpack(">f")

    def read_double(self) -> float:
        return self._unpack(">d")

    def read_compact_int(self) -> int:
        value = self.read_byte()
        return self.read_int() if value == 255 else value

    def read_bytes(self) -> bytes:
        return self.read_raw(self.read_compact_int())

    def read_utf(self) -> str:
        length = self._unpack(">H")
        try:
            return self.read_raw(length).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EncodingError(f"Invalid UTF-8 string: {exc}") from exc

    def read_big_integer(self) -> int:
        selector = self.read_byte()
        if selector == _BIG_INTEGER_SHORT:
            return self.read_short()
        if selector == _BIG_INTEGER_INT:
            return self.read_int()
        if selector == _BIG_INTEGER_LONG:
            return self.read_long()
        if selector == _BIG_INTEGER_DECIMAL:
            digits = self.read_bytes().decode("ascii")
            try:
                return int(digits)
            except ValueError as exc:
                raise EncodingError(f"Invalid big integer digits: {digits!r}") from exc
        return selector - _BIG_INTEGER_SMALL_OFFSET

    def read_shared(self, space: str, read: Callable[[], Any]) -> Any:
        memory = self._memory.setdefault(space, [])
        marker = self.read_byte()
        if marker == _NEW_OBJECT:
            value = read()
            memory.append(value)
            return value
        index = self.read_int() if marker == _LONG_INDEX else marker
        if index >= len(memory):
            raise EncodingError(f"Reference to unknown shared {space} #{index}")
        return memory[index]

    def read_string_shared(self) -> str:
        return self.read_shared("string", self.read_utf)

    def expect_end(self) -> None:
        if not self.exhausted:
            raise EncodingError(f"{len(self._data) - self._position} trailing bytes after decoding")
