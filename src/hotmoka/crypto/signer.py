from __future__ import annotations

import dataclasses
import threading
from dataclasses import dataclass, field
from typing import Mapping, Optional, TypeVar

from ..beans.references import StorageReference
from ..beans.requests import TransactionRequest
from ..errors import KeyMaterialError
from ..marshalling import encode_body
from .algorithms import get_algorithm

R = TypeVar("R", bound=TransactionRequest)


@dataclass(frozen=True)
class Signer:
    """A private key bound to the algorithm it signs with."""

    algorithm: str
    private_key: bytes = field(default=b"", repr=False)

    def __post_init__(self) -> None:
        get_algorithm(self.algorithm)

    @classmethod
    def empty(cls) -> "Signer":
        return cls("empty")

    def sign(self, data: bytes) -> bytes:
        return get_algorithm(self.algorithm)(data, self.private_key)


def sign_request(request: R, signer: Signer) -> R:
    """
    Sign ``request`` over its canonical body.

    Args:
        request: The request to sign; initial requests are returned unchanged.
        signer: Key and algorithm of the request's caller.

    Returns:
        A copy of the request carrying the signature
    """
    if not request.KIND.signed:
        return request
    signature = signer.sign(encode_body(request))
    return dataclasses.replace(request, signature=signature)


class Keyring:
    """Chooses the signer of each request from its caller, falling back to a default."""

    def __init__(
        self,
        default: Optional[Signer] = None,
        signers: Optional[Mapping[StorageReference, Signer]] = None,
    ) -> None:
        self.default = default
        self._signers = dict(signers or {})
        self._lock = threading.Lock()

    def add(self, caller: StorageReference, signer: Signer) -> None:
        with self._lock:
            self._signers[caller] = signer

    def signer_for(self, caller: StorageReference) -> Signer:
        with self._lock:
            signer = self._signers.get(caller, self.default)
        if signer is None:
            raise KeyMaterialError(f"No signer configured for caller {caller}")
        return signer

    def sign(self, request: R) -> R:
        if not request.KIND.signed:
            return request
        return sign_request(request, self.signer_for(request.caller))
