"""
Transaction responses.

Like requests, responses are a tagged union keyed by ``ResponseKind``. Each
kind belongs to one ``ResponseCategory``; ``outcome()`` turns a response into
what the caller of add/post eventually sees, or raises the typed failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Optional

from ..errors import CodeExecutionFailed, ProtocolError, TransactionFailed, TransactionRejected
from ..utils import to_big_integer
from .references import StorageReference, TransactionReference
from .updates import Update
from .values import StorageValue


class ResponseCategory(Enum):
    PENDING = "pending"
    REJECTED = "rejected"
    FAILED = "failed"
    SUCCESSFUL = "successful"

    @property
    def is_terminal(self) -> bool:
        return self is not ResponseCategory.PENDING


class ResponseKind(Enum):
    PENDING = ("PendingTransactionResponse", 0, ResponseCategory.PENDING)
    JAR_STORE_INITIAL = ("JarStoreInitialTransactionResponse", 1, ResponseCategory.SUCCESSFUL)
    GAMETE_CREATION = ("GameteCreationTransactionResponse", 2, ResponseCategory.SUCCESSFUL)
    INITIALIZATION = ("InitializationTransactionResponse", 3, ResponseCategory.SUCCESSFUL)
    JAR_STORE_SUCCESSFUL = ("JarStoreTransactionSuccessfulResponse", 4, ResponseCategory.SUCCESSFUL)
    JAR_STORE_FAILED = ("JarStoreTransactionFailedResponse", 5, ResponseCategory.FAILED)
    CONSTRUCTOR_CALL_SUCCESSFUL = ("ConstructorCallTransactionSuccessfulResponse", 6, ResponseCategory.SUCCESSFUL)
    CONSTRUCTOR_CALL_EXCEPTION = ("ConstructorCallTransactionExceptionResponse", 7, ResponseCategory.FAILED)
    CONSTRUCTOR_CALL_FAILED = ("ConstructorCallTransactionFailedResponse", 8, ResponseCategory.FAILED)
    METHOD_CALL_SUCCESSFUL = ("MethodCallTransactionSuccessfulResponse", 9, ResponseCategory.SUCCESSFUL)
    VOID_METHOD_CALL_SUCCESSFUL = ("VoidMethodCallTransactionSuccessfulResponse", 10, ResponseCategory.SUCCESSFUL)
    METHOD_CALL_EXCEPTION = ("MethodCallTransactionExceptionResponse", 11, ResponseCategory.FAILED)
    METHOD_CALL_FAILED = ("MethodCallTransactionFailedResponse", 12, ResponseCategory.FAILED)
    REJECTED = ("RejectedTransactionResponse", 13, ResponseCategory.REJECTED)

    def __init__(self, type_name: str, selector: int, category: ResponseCategory) -> None:
        self.type_name = type_name
        self.selector = selector
        self.category = category

    @property
    def model_name(self) -> str:
        return self.type_name + "Model"


@dataclass(frozen=True, kw_only=True)
class TransactionResponse:
    KIND: ClassVar[ResponseKind]

    @property
    def kind(self) -> ResponseKind:
        return self.KIND

    @property
    def category(self) -> ResponseCategory:
        return self.KIND.category

    def outcome(self, reference: TransactionReference) -> Any:
        """Return the result of the transaction at ``reference`` or raise its failure."""
        raise NotImplementedError


@dataclass(frozen=True, kw_only=True)
class PendingResponse(TransactionResponse):
    KIND = ResponseKind.PENDING

    def outcome(self, reference: TransactionReference) -> Any:
        raise ProtocolError(f"Transaction {reference} has no outcome yet")


@dataclass(frozen=True, kw_only=True)
class RejectedResponse(TransactionResponse):
    KIND = ResponseKind.REJECTED

    cause: str

    def outcome(self, reference: TransactionReference) -> Any:
        raise TransactionRejected(self.cause)


@dataclass(frozen=True, kw_only=True)
class JarStoreInitialTransactionResponse(TransactionResponse):
    KIND = ResponseKind.JAR_STORE_INITIAL

    instrumented_jar: bytes
    dependencies: tuple[TransactionReference, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "instrumented_jar", bytes(self.instrumented_jar))
        object.__setattr__(self, "dependencies", tuple(self.dependencies))

    def outcome(self, reference: TransactionReference) -> TransactionReference:
        return reference


@dataclass(frozen=True, kw_only=True)
class GameteCreationTransactionResponse(TransactionResponse):
    KIND = ResponseKind.GAMETE_CREATION

    updates: tuple[Update, ...] = ()
    gamete: StorageReference

    def __post_init__(self) -> None:
        object.__setattr__(self, "updates", tuple(self.updates))

    def outcome(self, reference: TransactionReference) -> StorageReference:
        return self.gamete


@dataclass(frozen=True, kw_only=True)
class InitializationTransactionResponse(TransactionResponse):
    KIND = ResponseKind.INITIALIZATION

    def outcome(self, reference: TransactionReference) -> None:
        return None


@dataclass(frozen=True, kw_only=True)
class NonInitialTransactionResponse(TransactionResponse):
    updates: tuple[Update, ...] = ()
    gas_consumed_for_cpu: int = 0
    gas_consumed_for_ram: int = 0
    gas_consumed_for_storage: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "updates", tuple(self.updates))
        for name in ("gas_consumed_for_cpu", "gas_consumed_for_ram", "gas_consumed_for_storage"):
            object.__setattr__(self, name, to_big_integer(getattr(self, name), name))


@dataclass(frozen=True, kw_only=True)
class FailedTransactionResponse(NonInitialTransactionResponse):
    """Common shape of responses whose transaction was admitted but did not succeed."""

    class_name_of_cause: str
    message_of_cause: str = ""
    gas_consumed_for_penalty: int = 0

    FAILURE: ClassVar[type[TransactionFailed]] = TransactionFailed

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(
            self, "gas_consumed_for_penalty",
            to_big_integer(self.gas_consumed_for_penalty, "gas_consumed_for_penalty"),
        )

    def outcome(self, reference: TransactionReference) -> Any:
        message = f"{self.class_name_of_cause}: {self.message_of_cause}"
        raise self.FAILURE(message, self.class_name_of_cause)


@dataclass(frozen=True, kw_only=True)
class JarStoreTransactionSuccessfulResponse(NonInitialTransactionResponse):
    KIND = ResponseKind.JAR_STORE_SUCCESSFUL

    instrumented_jar: bytes
    dependencies: tuple[TransactionReference, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "instrumented_jar", bytes(self.instrumented_jar))
        object.__setattr__(self, "dependencies", tuple(self.dependencies))

    def outcome(self, reference: TransactionReference) -> TransactionReference:
        return reference


@dataclass(frozen=True, kw_only=True)
class JarStoreTransactionFailedResponse(FailedTransactionResponse):
    KIND = ResponseKind.JAR_STORE_FAILED


@dataclass(frozen=True, kw_only=True)
class CodeExecutionTransactionResponse(NonInitialTransactionResponse):
    events: tuple[StorageReference, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "events", tuple(self.events))


@dataclass(frozen=True, kw_only=True)
class ConstructorCallTransactionSuccessfulResponse(CodeExecutionTransactionResponse):
    KIND = ResponseKind.CONSTRUCTOR_CALL_SUCCESSFUL

    new_object: StorageReference

    def outcome(self, reference: TransactionReference) -> StorageReference:
        return self.new_object


@dataclass(frozen=True, kw_only=True)
class MethodCallTransactionSuccessfulResponse(CodeExecutionTransactionResponse):
    KIND = ResponseKind.METHOD_CALL_SUCCESSFUL

    result: StorageValue

    def outcome(self, reference: TransactionReference) -> StorageValue:
        return self.result


@dataclass(frozen=True, kw_only=True)
class VoidMethodCallTransactionSuccessfulResponse(CodeExecutionTransactionResponse):
    KIND = ResponseKind.VOID_METHOD_CALL_SUCCESSFUL

    def outcome(self, reference: TransactionReference) -> None:
        return None


@dataclass(frozen=True, kw_only=True)
class ConstructorCallTransactionFailedResponse(FailedTransactionResponse):
    KIND = ResponseKind.CONSTRUCTOR_CALL_FAILED

    where: str = ""


@dataclass(frozen=True, kw_only=True)
class MethodCallTransactionFailedResponse(FailedTransactionResponse):
    KIND = ResponseKind.METHOD_CALL_FAILED

    where: str = ""


@dataclass(frozen=True, kw_only=True)
class ConstructorCallTransactionExceptionResponse(FailedTransactionResponse):
    """The constructor itself threw: the transaction is committed but yields no object."""

    KIND = ResponseKind.CONSTRUCTOR_CALL_EXCEPTION
    FAILURE = CodeExecutionFailed

    where: str = ""
    events: tuple[StorageReference, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "events", tuple(self.events))


@dataclass(frozen=True, kw_only=True)
class MethodCallTransactionExceptionResponse(FailedTransactionResponse):
    KIND = ResponseKind.METHOD_CALL_EXCEPTION
    FAILURE = CodeExecutionFailed

    where: str = ""
    events: tuple[StorageReference, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "events", tuple(self.events))


RESPONSE_CLASSES: dict[ResponseKind, type[TransactionResponse]] = {
    cls.KIND: cls
    for cls in (
        PendingResponse,
        RejectedResponse,
        JarStoreInitialTransactionResponse,
        GameteCreationTransactionResponse,
        InitializationTransactionResponse,
        JarStoreTransactionSuccessfulResponse,
        JarStoreTransactionFailedResponse,
        ConstructorCallTransactionSuccessfulResponse,
        ConstructorCallTransactionExceptionResponse,
        ConstructorCallTransactionFailedResponse,
        MethodCallTransactionSuccessfulResponse,
        VoidMethodCallTransactionSuccessfulResponse,
        MethodCallTransactionExceptionResponse,
        MethodCallTransactionFailedResponse,
    )
}

RESPONSE_KINDS_BY_TYPE_NAME: dict[str, ResponseKind] = {kind.type_name: kind for kind in ResponseKind}


def response_kind_for(type_name: str) -> Optional[ResponseKind]:
    """Look up a kind by simple or fully-qualified model name, with or without ``Model``."""
    simple = type_name.rsplit(".", 1)[-1]
    if simple.endswith("Model"):
        simple = simple[: -len("Model")]
    return RESPONSE_KINDS_BY_TYPE_NAME.get(simple)
