from .algorithms import SignatureAlgorithm, available_algorithms, get_algorithm, register_algorithm, sign
from .signer import Keyring, Signer, sign_request

__all__ = [
    "Keyring",
    "SignatureAlgorithm",
    "Signer",
    "available_algorithms",
    "get_algorithm",
    "register_algorithm",
    "sign",
    "sign_request",
]
