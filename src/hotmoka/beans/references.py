from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..errors import EncodingError
from ..utils import to_big_integer

_HASH_RE = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class TransactionReference:
    """Identifies a transaction by the hex hash of its signed request."""

    hash: str
    type: str = field(default="local", compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "hash", self.hash.lower())

    @property
    def is_well_formed(self) -> bool:
        return bool(_HASH_RE.match(self.hash))

    def hash_bytes(self) -> bytes:
        if not self.is_well_formed:
            raise EncodingError(f"Transaction hash must be 64 hex characters: {self.hash!r}")
        return bytes.fromhex(self.hash)

    def __str__(self) -> str:
        return self.hash


@dataclass(frozen=True)
class StorageReference:
    """Identifies an object created by ``transaction`` with the given progressive."""

    transaction: TransactionReference
    progressive: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "progressive", to_big_integer(self.progressive, "progressive"))

    @classmethod
    def parse(cls, text: str) -> "StorageReference":
        """Parse ``<hash>#<progressive in hex>``; a bare hash means progressive 0."""
        hash_part, _, progressive = text.strip().partition("#")
        try:
            value = int(progressive, 16) if progressive else 0
        except ValueError as exc:
            raise EncodingError(f"Invalid storage reference: {text!r}") from exc
        return cls(TransactionReference(hash_part), value)

    def __str__(self) -> str:
        return f"{self.transaction.hash}#{self.progressive:x}"
