from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from . import types
from .types import BasicType, ClassType, StorageType


@dataclass(frozen=True)
class FieldSignature:
    defining_class: ClassType
    name: str
    type: StorageType


@dataclass(frozen=True)
class ConstructorSignature:
    defining_class: ClassType
    formals: tuple[StorageType, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "formals", tuple(self.formals))


@dataclass(frozen=True)
class MethodSignature:
    """A method of ``defining_class``; ``return_type`` is None for void methods."""

    defining_class: ClassType
    name: str
    formals: tuple[StorageType, ...] = ()
    return_type: Optional[StorageType] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "formals", tuple(self.formals))

    @property
    def is_void(self) -> bool:
        return self.return_type is None


GET_GAMETE = MethodSignature(types.MANIFEST, "getGamete", (), types.GAMETE)
GET_GAS_STATION = MethodSignature(types.MANIFEST, "getGasStation", (), types.GAS_STATION)
GET_CHAIN_ID = MethodSignature(types.MANIFEST, "getChainId", (), types.STRING)
GET_GAS_PRICE = MethodSignature(types.GAS_STATION, "getGasPrice", (), types.BIG_INTEGER)
IGNORES_GAS_PRICE = MethodSignature(types.GAS_STATION, "ignoresGasPrice", (), BasicType.BOOLEAN)
NONCE = MethodSignature(types.ACCOUNT, "nonce", (), types.BIG_INTEGER)
BALANCE = MethodSignature(types.CONTRACT, "balance", (), types.BIG_INTEGER)
RECEIVE_INT = MethodSignature(types.PAYABLE_CONTRACT, "receive", (BasicType.INT,))
EOA_CONSTRUCTOR = ConstructorSignature(types.EOA, (types.BIG_INTEGER, types.STRING))
