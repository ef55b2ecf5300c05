"""Storage types: the eight basic types plus class types named by their fully-qualified name."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class BasicType(Enum):
    BOOLEAN = ("boolean", 0)
    BYTE = ("byte", 1)
    CHAR = ("char", 2)
    SHORT = ("short", 3)
    INT = ("int", 4)
    LONG = ("long", 5)
    FLOAT = ("float", 6)
    DOUBLE = ("double", 7)

    def __init__(self, type_name: str, selector: int) -> None:
        self.type_name = type_name
        self.selector = selector

    def __str__(self) -> str:
        return self.type_name


@dataclass(frozen=True)
class ClassType:
    name: str

    def __str__(self) -> str:
        return self.name


StorageType = Union[BasicType, ClassType]

OBJECT = ClassType("java.lang.Object")
STRING = ClassType("java.lang.String")
BIG_INTEGER = ClassType("java.math.BigInteger")
CONTRACT = ClassType("io.takamaka.code.lang.Contract")
STORAGE = ClassType("io.takamaka.code.lang.Storage")
ACCOUNT = ClassType("io.takamaka.code.lang.Account")
EOA = ClassType("io.takamaka.code.lang.ExternallyOwnedAccount")
GAMETE = ClassType("io.takamaka.code.lang.Gamete")
RED_GREEN_CONTRACT = ClassType("io.takamaka.code.lang.RedGreenContract")
PAYABLE_CONTRACT = ClassType("io.takamaka.code.lang.PayableContract")
MANIFEST = ClassType("io.takamaka.code.governance.Manifest")
GAS_STATION = ClassType("io.takamaka.code.governance.GasStation")
VALIDATORS = ClassType("io.takamaka.code.governance.Validators")
VERSIONS = ClassType("io.takamaka.code.governance.Versions")
STORAGE_TREE_INTMAP_NODE = ClassType("io.takamaka.code.util.StorageTreeIntMap$Node")

# Class types with a dedicated one-byte marshalling selector.
WELL_KNOWN_SELECTORS: dict[ClassType, int] = {
    ACCOUNT: 18,
    MANIFEST: 19,
    CONTRACT: 20,
    STORAGE: 23,
    BIG_INTEGER: 26,
    PAYABLE_CONTRACT: 27,
    STORAGE_TREE_INTMAP_NODE: 38,
    GAS_STATION: 40,
}

# Prefix selectors: the name is written without the prefix, as a shared string.
CLASS_SELECTOR = 8
TAKAMAKA_CODE_SELECTOR = 9
TAKAMAKA_CODE_LANG_SELECTOR = 10
TAKAMAKA_CODE_PREFIX = "io.takamaka.code."
TAKAMAKA_CODE_LANG_PREFIX = "io.takamaka.code.lang."

_BASIC_BY_NAME = {basic.type_name: basic for basic in BasicType}


def parse_type(name: str) -> StorageType:
    """Return the basic type called ``name``, or a class type otherwise."""
    return _BASIC_BY_NAME.get(name) or ClassType(name)


def type_name(storage_type: StorageType) -> str:
    return str(storage_type)
