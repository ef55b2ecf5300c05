"""Immutable value objects exchanged with a Hotmoka node."""

from .references import StorageReference, TransactionReference
from .requests import (
    REQUEST_CLASSES,
    ConstructorCallTransactionRequest,
    GameteCreationTransactionRequest,
    InitializationTransactionRequest,
    InstanceMethodCallTransactionRequest,
    JarStoreInitialTransactionRequest,
    JarStoreTransactionRequest,
    RedGreenGameteCreationTransactionRequest,
    RequestKind,
    SignedTransactionRequest,
    StaticMethodCallTransactionRequest,
    TransactionRequest,
)
from .responses import (
    RESPONSE_CLASSES,
    PendingResponse,
    RejectedResponse,
    ResponseCategory,
    ResponseKind,
    TransactionResponse,
)
from .signatures import ConstructorSignature, FieldSignature, MethodSignature
from .types import BasicType, ClassType, StorageType
from .updates import ClassTag, Event, State, Update, UpdateKind
from .values import StorageValue, ValueKind

__all__ = [
    "BasicType",
    "ClassTag",
    "ClassType",
    "ConstructorCallTransactionRequest",
    "ConstructorSignature",
    "Event",
    "FieldSignature",
    "GameteCreationTransactionRequest",
    "InitializationTransactionRequest",
    "InstanceMethodCallTransactionRequest",
    "JarStoreInitialTransactionRequest",
    "JarStoreTransactionRequest",
    "MethodSignature",
    "PendingResponse",
    "REQUEST_CLASSES",
    "RESPONSE_CLASSES",
    "RedGreenGameteCreationTransactionRequest",
    "RejectedResponse",
    "RequestKind",
    "ResponseCategory",
    "ResponseKind",
    "SignedTransactionRequest",
    "State",
    "StaticMethodCallTransactionRequest",
    "StorageReference",
    "StorageType",
    "StorageValue",
    "TransactionReference",
    "TransactionRequest",
    "TransactionResponse",
    "Update",
    "UpdateKind",
    "ValueKind",
]
