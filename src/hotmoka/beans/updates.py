from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .references import StorageReference, TransactionReference
from .signatures import FieldSignature
from .values import StorageValue


class UpdateKind(Enum):
    CLASS_TAG = 0
    FIELD = 1


@dataclass(frozen=True)
class Update:
    """One piece of an object's state: its class tag, or the value of one field."""

    object: StorageReference
    field: Optional[FieldSignature] = None
    value: Optional[StorageValue] = None
    class_name: Optional[str] = None
    jar: Optional[TransactionReference] = None

    @property
    def kind(self) -> UpdateKind:
        return UpdateKind.CLASS_TAG if self.class_name is not None else UpdateKind.FIELD

    @classmethod
    def of_class_tag(cls, obj: StorageReference, class_name: str, jar: TransactionReference) -> "Update":
        return cls(obj, class_name=class_name, jar=jar)

    @classmethod
    def of_field(cls, obj: StorageReference, field: FieldSignature, value: StorageValue) -> "Update":
        return cls(obj, field=field, value=value)


@dataclass(frozen=True)
class ClassTag:
    class_name: str
    jar: TransactionReference


@dataclass(frozen=True)
class State:
    updates: tuple[Update, ...] = ()

    def class_tag(self) -> Optional[ClassTag]:
        for update in self.updates:
            if update.kind is UpdateKind.CLASS_TAG:
                return ClassTag(update.class_name, update.jar)
        return None

    def field_value(self, name: str) -> Optional[StorageValue]:
        for update in self.updates:
            if update.kind is UpdateKind.FIELD and update.field.name == name:
                return update.value
        return None


@dataclass(frozen=True)
class Event:
    event: StorageReference
    creator: StorageReference
