"""
Thin client for Hotmoka nodes.

Builds transaction requests, marshals and signs them in the node's canonical
format, dispatches them over REST, polls for the outcome of posted
transactions and delivers the events the node publishes over STOMP.
"""

from .beans import (
    ClassType,
    ConstructorCallTransactionRequest,
    ConstructorSignature,
    Event,
    InstanceMethodCallTransactionRequest,
    JarStoreTransactionRequest,
    MethodSignature,
    StaticMethodCallTransactionRequest,
    StorageReference,
    StorageValue,
    TransactionReference,
)
from .config import NodeConfig
from .crypto import Keyring, Signer, sign_request
from .errors import (
    EncodingError,
    HotmokaError,
    PollTimeout,
    ProtocolError,
    RemoteError,
    TransactionFailed,
    TransactionRejected,
    TransportError,
    UnknownAlgorithm,
)
from .marshalling import encode_body, encode_full, reference_of
from .network.node import RemoteNode
from .network.polling import PollingPolicy, Supplier

__version__ = "1.0.0"

__all__ = [
    "ClassType",
    "ConstructorCallTransactionRequest",
    "ConstructorSignature",
    "EncodingError",
    "Event",
    "HotmokaError",
    "InstanceMethodCallTransactionRequest",
    "JarStoreTransactionRequest",
    "Keyring",
    "MethodSignature",
    "NodeConfig",
    "PollTimeout",
    "PollingPolicy",
    "ProtocolError",
    "RemoteError",
    "RemoteNode",
    "Signer",
    "StaticMethodCallTransactionRequest",
    "StorageReference",
    "StorageValue",
    "Supplier",
    "TransactionFailed",
    "TransactionReference",
    "TransactionRejected",
    "TransportError",
    "UnknownAlgorithm",
    "encode_body",
    "encode_full",
    "reference_of",
    "sign_request",
]
