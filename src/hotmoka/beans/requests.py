"""
Transaction requests.

Requests form a tagged union keyed by ``RequestKind``: every concrete request
class declares its kind, and the codec and JSON models dispatch on that kind.
Initial requests bootstrap a node and carry no caller or signature; every
other request is signed by its caller over its canonical body bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from ..utils import to_big_integer
from .references import StorageReference, TransactionReference
from .signatures import ConstructorSignature, MethodSignature
from .values import StorageValue


class RequestKind(Enum):
    JAR_STORE_INITIAL = ("jar-store-initial", 1, "jarStoreInitialTransaction", False)
    GAMETE_CREATION = ("gamete-creation", 2, "gameteCreationTransaction", False)
    JAR_STORE = ("jar-store", 3, "jarStoreTransaction", True)
    CONSTRUCTOR_CALL = ("constructor-call", 4, "constructorCallTransaction", True)
    INSTANCE_METHOD_CALL = ("instance-method-call", 5, "instanceMethodCallTransaction", True)
    STATIC_METHOD_CALL = ("static-method-call", 6, "staticMethodCallTransaction", True)
    INITIALIZATION = ("initialization", 10, "initializationTransaction", False)
    RED_GREEN_GAMETE_CREATION = ("red-green-gamete-creation", 12, "redGreenGameteCreationTransaction", False)

    def __init__(self, label: str, selector: int, endpoint: str, signed: bool) -> None:
        self.label = label
        self.selector = selector
        self.endpoint = endpoint
        self.signed = signed

    @property
    def model_name(self) -> str:
        return self.endpoint[0].upper() + self.endpoint[1:] + "RequestModel"


@dataclass(frozen=True, kw_only=True)
class TransactionRequest:
    KIND: ClassVar[RequestKind]

    @property
    def kind(self) -> RequestKind:
        return self.KIND


@dataclass(frozen=True, kw_only=True)
class SignedTransactionRequest(TransactionRequest):
    """Fields shared by every request executed on behalf of a caller account."""

    caller: StorageReference
    nonce: int
    classpath: TransactionReference
    gas_limit: int
    gas_price: int
    chain_id: str = ""
    signature: bytes = field(default=b"", compare=False, repr=False)

    def __post_init__(self) -> None:
        for name in ("nonce", "gas_limit", "gas_price"):
            object.__setattr__(self, name, to_big_integer(getattr(self, name), name))


@dataclass(frozen=True, kw_only=True)
class JarStoreTransactionRequest(SignedTransactionRequest):
    KIND = RequestKind.JAR_STORE

    jar: bytes
    dependencies: tuple[TransactionReference, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "jar", bytes(self.jar))
        object.__setattr__(self, "dependencies", tuple(self.dependencies))


@dataclass(frozen=True, kw_only=True)
class ConstructorCallTransactionRequest(SignedTransactionRequest):
    KIND = RequestKind.CONSTRUCTOR_CALL

    constructor: ConstructorSignature
    actuals: tuple[StorageValue, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "actuals", tuple(self.actuals))


@dataclass(frozen=True, kw_only=True)
class InstanceMethodCallTransactionRequest(SignedTransactionRequest):
    KIND = RequestKind.INSTANCE_METHOD_CALL

    method: MethodSignature
    actuals: tuple[StorageValue, ...] = ()
    receiver: StorageReference

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "actuals", tuple(self.actuals))


@dataclass(frozen=True, kw_only=True)
class StaticMethodCallTransactionRequest(SignedTransactionRequest):
    KIND = RequestKind.STATIC_METHOD_CALL

    method: MethodSignature
    actuals: tuple[StorageValue, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "actuals", tuple(self.actuals))


@dataclass(frozen=True, kw_only=True)
class JarStoreInitialTransactionRequest(TransactionRequest):
    KIND = RequestKind.JAR_STORE_INITIAL

    jar: bytes
    dependencies: tuple[TransactionReference, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "jar", bytes(self.jar))
        object.__setattr__(self, "dependencies", tuple(self.dependencies))


@dataclass(frozen=True, kw_only=True)
class GameteCreationTransactionRequest(TransactionRequest):
    KIND = RequestKind.GAMETE_CREATION

    classpath: TransactionReference
    initial_amount: int
    public_key: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "initial_amount", to_big_integer(self.initial_amount, "initial_amount"))


@dataclass(frozen=True, kw_only=True)
class RedGreenGameteCreationTransactionRequest(TransactionRequest):
    KIND = RequestKind.RED_GREEN_GAMETE_CREATION

    classpath: TransactionReference
    initial_amount: int
    red_initial_amount: int
    public_key: str

    def __post_init__(self) -> None:
        for name in ("initial_amount", "red_initial_amount"):
            object.__setattr__(self, name, to_big_integer(getattr(self, name), name))


@dataclass(frozen=True, kw_only=True)
class InitializationTransactionRequest(TransactionRequest):
    KIND = RequestKind.INITIALIZATION

    classpath: TransactionReference
    manifest: StorageReference


REQUEST_CLASSES: dict[RequestKind, type[TransactionRequest]] = {
    cls.KIND: cls
    for cls in (
        JarStoreInitialTransactionRequest,
        GameteCreationTransactionRequest,
        RedGreenGameteCreationTransactionRequest,
        InitializationTransactionRequest,
        JarStoreTransactionRequest,
        ConstructorCallTransactionRequest,
        InstanceMethodCallTransactionRequest,
        StaticMethodCallTransactionRequest,
    )
}
