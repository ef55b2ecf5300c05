"""
Key material and artifact loaders.

These are the collaborators the client consumes: they read bytes from disk or
from the environment and hand them, unparsed, to a signature algorithm or a
jar-store request.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519
from dotenv import load_dotenv

from ..config import HOTMOKA_ENV
from ..errors import KeyMaterialError

_HEX_RE = re.compile(r"^(0x)?([0-9a-fA-F]{2})+$")


def _from_text(text: str) -> Optional[bytes]:
    text = text.strip()
    if _HEX_RE.match(text):
        return bytes.fromhex(text[2:] if text.startswith("0x") else text)
    return None


def load_private_key(path: Path, password: Optional[bytes] = None) -> bytes:
    """
    Load a private key file.

    PEM files are decoded; Ed25519 keys come back as their 32 raw bytes and
    other keys as unencrypted PKCS#8 DER. Hex text is decoded; anything else is
    returned as stored.

    Args:
        path: Key file
        password: Password of an encrypted PEM file

    Returns:
        Raw private key bytes

    Raises:
        KeyMaterialError: If a PEM file cannot be decoded
    """
    data = path.read_bytes()

    if data.lstrip().startswith(b"-----BEGIN"):
        try:
            key = serialization.load_pem_private_key(data, password=password)
        except (ValueError, TypeError) as exc:
            raise KeyMaterialError(f"Cannot read private key {path}: {exc}") from exc
        if isinstance(key, ed25519.Ed25519PrivateKey):
            return key.private_bytes(
                serialization.Encoding.Raw,
                serialization.PrivateFormat.Raw,
                serialization.NoEncryption(),
            )
        return key.private_bytes(
            serialization.Encoding.DER,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )

    try:
        decoded = _from_text(data.decode("ascii"))
    except UnicodeDecodeError:
        decoded = None
    return decoded if decoded is not None else data


def load_private_key_from_env(
    variable: str = "HOTMOKA_PRIVATE_KEY",
    env_path: Optional[Path] = None,
) -> bytes:
    """
    Load a hex private key from the environment or ~/.hotmoka/.env.

    Raises:
        KeyMaterialError: If the variable is missing or not hex
    """
    env_path = env_path or HOTMOKA_ENV
    if env_path.exists():
        load_dotenv(env_path, override=False)

    value = os.environ.get(variable)
    if not value:
        raise KeyMaterialError(f"{variable} not found. Set it in the environment or in {env_path}")
    decoded = _from_text(value)
    if decoded is None:
        raise KeyMaterialError(f"{variable} is not a hex private key")
    return decoded


def load_jar(path: Path) -> bytes:
    """Read the bytes of a jar for a jar-store request."""
    data = path.read_bytes()
    if not data:
        raise ValueError(f"Empty jar: {path}")
    return data
