"""
Named signature algorithms.

An algorithm is a strategy that turns ``(data, private_key)`` into signature
bytes. The node names the algorithm it expects for requests; callers pick the
matching one by name. Algorithms only sign: verification is the node's job.

Registered by default:
- ``empty``: no signature, for nodes that accept anonymous requests
- ``ed25519``: Ed25519 over the raw body bytes
- ``sha256dsa``: DSA with SHA-256
- ``secp256k1``: ECDSA/secp256k1 with EIP-191 personal_sign framing
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ed25519

from ..errors import KeyMaterialError, UnknownAlgorithm

logger = logging.getLogger(__name__)

SignFunction = Callable[[bytes, bytes], bytes]


@dataclass(frozen=True)
class SignatureAlgorithm:
    name: str
    sign: SignFunction

    def __call__(self, data: bytes, private_key: bytes) -> bytes:
        return self.sign(data, private_key)


def _load_private_key(private_key: bytes):
    try:
        if private_key.lstrip().startswith(b"-----BEGIN"):
            return serialization.load_pem_private_key(private_key, password=None)
        return serialization.load_der_private_key(private_key, password=None)
    except (ValueError, TypeError) as exc:
        raise KeyMaterialError(f"Unreadable private key: {exc}") from exc


def _sign_empty(data: bytes, private_key: bytes) -> bytes:
    return b""


def _sign_ed25519(data: bytes, private_key: bytes) -> bytes:
    if len(private_key) == 32:
        key = ed25519.Ed25519PrivateKey.from_private_bytes(private_key)
    else:
        key = _load_private_key(private_key)
    if not isinstance(key, ed25519.Ed25519PrivateKey):
        raise KeyMaterialError("ed25519 requires an Ed25519 private key")
    return key.sign(data)


def _sign_sha256dsa(data: bytes, private_key: bytes) -> bytes:
    key = _load_private_key(private_key)
    if not isinstance(key, dsa.DSAPrivateKey):
        raise KeyMaterialError("sha256dsa requires a DSA private key")
    return key.sign(data, hashes.SHA256())


def _sign_secp256k1(data: bytes, private_key: bytes) -> bytes:
    from eth_account import Account
    from eth_account.messages import encode_defunct

    if len(private_key) != 32:
        raise KeyMaterialError("secp256k1 requires a 32-byte private key")
    account = Account.from_key(private_key)
    signed = account.sign_message(encode_defunct(primitive=data))
    return bytes(signed.signature)


_lock = threading.Lock()
_ALGORITHMS: dict[str, SignatureAlgorithm] = {}


def register_algorithm(name: str, sign: SignFunction) -> SignatureAlgorithm:
    """Register (or replace) the algorithm called ``name``."""
    algorithm = SignatureAlgorithm(name, sign)
    with _lock:
        _ALGORITHMS[name] = algorithm
    logger.debug("Registered signature algorithm %s", name)
    return algorithm


def get_algorithm(name: str) -> SignatureAlgorithm:
    """Look up a registered algorithm.

    Raises:
        UnknownAlgorithm: If nothing is registered under ``name``.
    """
    with _lock:
        algorithm = _ALGORITHMS.get(name)
    if algorithm is None:
        raise UnknownAlgorithm(name)
    return algorithm


def available_algorithms() -> list[str]:
    with _lock:
        return sorted(_ALGORITHMS)


def sign(data: bytes, private_key: bytes, algorithm: str) -> bytes:
    return get_algorithm(algorithm)(data, private_key)


register_algorithm("empty", _sign_empty)
register_algorithm("ed25519", _sign_ed25519)
register_algorithm("sha256dsa", _sign_sha256dsa)
register_algorithm("secp256k1", _sign_secp256k1)
