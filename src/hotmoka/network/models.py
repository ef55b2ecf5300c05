"""
JSON models exchanged with the node's REST endpoints.

Beans travel as JSON objects whose numbers are decimal strings and whose byte
arrays are base64. Requests and responses are wrapped in an envelope that
names their model in ``type``; decoding dispatches on that name and refuses
names it does not know.
"""

from __future__ import annotations

import binascii
from typing import Any, Callable, Optional

from ..beans import requests as rq
from ..beans import responses as rs
from ..beans.references import StorageReference, TransactionReference
from ..beans.signatures import ConstructorSignature, FieldSignature, MethodSignature
from ..beans.types import ClassType, parse_type, type_name
from ..beans.updates import ClassTag, Event, State, Update, UpdateKind
from ..beans.values import StorageValue, ValueKind
from ..errors import EncodingError, ProtocolError
from ..utils import base64_decode, base64_encode, to_big_integer
from .schemas import SchemaRegistry, default_registry

REQUEST_MODEL_PACKAGE = "io.hotmoka.network.requests."
RESPONSE_MODEL_PACKAGE = "io.hotmoka.network.responses."

Json = dict[str, Any]


def _required(model: Json, key: str) -> Any:
    try:
        return model[key]
    except (KeyError, TypeError) as exc:
        raise ProtocolError(f"Missing {key!r} in {model!r}") from exc


def _big_from_json(value: Any) -> int:
    try:
        return to_big_integer(value, "number")
    except EncodingError as exc:
        raise ProtocolError(str(exc)) from exc


def _bytes_from_json(value: Any) -> bytes:
    try:
        return base64_decode(value or "")
    except (binascii.Error, ValueError) as exc:
        raise ProtocolError(f"Invalid base64 payload: {exc}") from exc


# ============ References ============


def transaction_reference_to_json(reference: TransactionReference) -> Json:
    return {"type": reference.type, "hash": reference.hash}


def transaction_reference_from_json(model: Json) -> TransactionReference:
    hash_ = _required(model, "hash")
    if not isinstance(hash_, str):
        raise ProtocolError(f"Transaction hash must be a string, got {hash_!r}")
    reference = TransactionReference(hash_, model.get("type") or "local")
    if not reference.is_well_formed:
        raise ProtocolError(f"Malformed transaction hash {hash_!r}")
    return reference


def storage_reference_to_json(reference: StorageReference) -> Json:
    return {
        "transaction": transaction_reference_to_json(reference.transaction),
        "progressive": str(reference.progressive),
    }


def storage_reference_from_json(model: Json) -> StorageReference:
    transaction = transaction_reference_from_json(_required(model, "transaction"))
    return StorageReference(transaction, _big_from_json(_required(model, "progressive")))


def transaction_reference_from_reply(
    model: Any, registry: Optional[SchemaRegistry] = None
) -> TransactionReference:
    """Decode a transaction reference the node sent as a whole reply."""
    (registry or default_registry()).validate_instance(model, "transaction-reference.schema.json")
    return transaction_reference_from_json(model)


def storage_reference_from_reply(model: Any, registry: Optional[SchemaRegistry] = None) -> StorageReference:
    (registry or default_registry()).validate_instance(model, "storage-reference.schema.json")
    return storage_reference_from_json(model)


# ============ Values ============

_BOOLEANS = {"true": True, "false": False}


def _parse_boolean(text: str) -> bool:
    try:
        return _BOOLEANS[text]
    except (KeyError, TypeError):
        raise ValueError("expected true or false") from None


_BASIC_PARSERS: dict[ValueKind, Callable[[str], Any]] = {
    ValueKind.BOOLEAN: _parse_boolean,
    ValueKind.BYTE: int,
    ValueKind.SHORT: int,
    ValueKind.INT: int,
    ValueKind.LONG: int,
    ValueKind.BIG_INTEGER: int,
    ValueKind.FLOAT: float,
    ValueKind.DOUBLE: float,
    ValueKind.CHAR: str,
    ValueKind.STRING: str,
}
_KINDS_BY_TYPE = {kind.value: kind for kind in _BASIC_PARSERS}


def storage_value_to_json(value: StorageValue) -> Json:
    model: Json = {"value": None, "type": value.kind.value, "reference": None, "enumElementName": None}
    if value.kind is ValueKind.REFERENCE:
        model["reference"] = storage_reference_to_json(value.payload)
    elif value.kind is ValueKind.NULL:
        model["type"] = ValueKind.REFERENCE.value
    elif value.kind is ValueKind.ENUM:
        model["type"] = value.payload.class_name
        model["enumElementName"] = value.payload.name
    elif value.kind in (ValueKind.FLOAT, ValueKind.DOUBLE):
        model["value"] = repr(value.payload)
    else:
        model["value"] = str(value)
    return model


def storage_value_from_json(model: Json) -> StorageValue:
    type_ = _required(model, "type")
    if model.get("enumElementName") is not None:
        return StorageValue.of_enum(type_, model["enumElementName"])
    if type_ == ValueKind.REFERENCE.value:
        reference = model.get("reference")
        if reference is None:
            return StorageValue.null()
        return StorageValue.of_reference(storage_reference_from_json(reference))

    kind = _KINDS_BY_TYPE.get(type_)
    if kind is None:
        raise ProtocolError(f"Unknown storage value type {type_!r}")
    text = model.get("value")
    if text is None:
        raise ProtocolError(f"Missing value for storage value of type {type_!r}")
    try:
        return StorageValue(kind, _BASIC_PARSERS[kind](text))
    except (ValueError, EncodingError) as exc:
        raise ProtocolError(f"Invalid {type_} value {text!r}: {exc}") from exc


def storage_value_from_reply(model: Any, registry: Optional[SchemaRegistry] = None) -> Optional[StorageValue]:
    """Decode the result of a method call; an empty reply means void."""
    if model is None:
        return None
    (registry or default_registry()).validate_instance(model, "storage-value.schema.json")
    return storage_value_from_json(model)


# ============ Signatures ============


def constructor_signature_to_json(constructor: ConstructorSignature) -> Json:
    return {
        "definingClass": constructor.defining_class.name,
        "formals": [type_name(formal) for formal in constructor.formals],
    }


def constructor_signature_from_json(model: Json) -> ConstructorSignature:
    return ConstructorSignature(
        ClassType(_required(model, "definingClass")),
        tuple(parse_type(formal) for formal in model.get("formals") or ()),
    )


def method_signature_to_json(method: MethodSignature) -> Json:
    return {
        "definingClass": method.defining_class.name,
        "formals": [type_name(formal) for formal in method.formals],
        "methodName": method.name,
        "returnType": None if method.is_void else type_name(method.return_type),
    }


def method_signature_from_json(model: Json) -> MethodSignature:
    return_type = model.get("returnType")
    return MethodSignature(
        ClassType(_required(model, "definingClass")),
        _required(model, "methodName"),
        tuple(parse_type(formal) for formal in model.get("formals") or ()),
        None if return_type in (None, "void") else parse_type(return_type),
    )


def field_signature_to_json(field: FieldSignature) -> Json:
    return {"definingClass": field.defining_class.name, "name": field.name, "type": type_name(field.type)}


def field_signature_from_json(model: Json) -> FieldSignature:
    return FieldSignature(
        ClassType(_required(model, "definingClass")),
        _required(model, "name"),
        parse_type(_required(model, "type")),
    )


# ============ State ============


def update_to_json(update: Update) -> Json:
    model: Json = {"object": storage_reference_to_json(update.object)}
    if update.kind is UpdateKind.CLASS_TAG:
        model["className"] = update.class_name
        model["jar"] = transaction_reference_to_json(update.jar)
    else:
        model["field"] = field_signature_to_json(update.field)
        model["value"] = storage_value_to_json(update.value)
    return model


def update_from_json(model: Json) -> Update:
    obj = storage_reference_from_json(_required(model, "object"))
    if model.get("className") is not None:
        return Update.of_class_tag(obj, model["className"], transaction_reference_from_json(_required(model, "jar")))
    return Update.of_field(
        obj,
        field_signature_from_json(_required(model, "field")),
        storage_value_from_json(_required(model, "value")),
    )


def state_from_json(model: Json, registry: Optional[SchemaRegistry] = None) -> State:
    (registry or default_registry()).validate_instance(model, "state.schema.json")
    return State(tuple(update_from_json(update) for update in model["updates"]))


def class_tag_from_json(model: Json, registry: Optional[SchemaRegistry] = None) -> ClassTag:
    (registry or default_registry()).validate_instance(model, "class-tag.schema.json")
    return ClassTag(model["className"], transaction_reference_from_json(model["jar"]))


def event_to_json(event: Event) -> Json:
    return {"event": storage_reference_to_json(event.event), "creator": storage_reference_to_json(event.creator)}


def event_from_json(model: Json, registry: Optional[SchemaRegistry] = None) -> Event:
    (registry or default_registry()).validate_instance(model, "event.schema.json")
    return Event(storage_reference_from_json(model["event"]), storage_reference_from_json(model["creator"]))


# ============ Field converters ============

# (to_json, from_json) pairs used by the per-variant field tables below.
_Converter = tuple[Callable[[Any], Any], Callable[[Any], Any]]

_STRING: _Converter = (lambda value: value, lambda value: value if value is not None else "")
_BIG: _Converter = (str, _big_from_json)
_BYTES: _Converter = (base64_encode, _bytes_from_json)
_TRANSACTION: _Converter = (transaction_reference_to_json, transaction_reference_from_json)
_STORAGE: _Converter = (storage_reference_to_json, storage_reference_from_json)
_TRANSACTIONS: _Converter = (
    lambda refs: [transaction_reference_to_json(ref) for ref in refs],
    lambda models: tuple(transaction_reference_from_json(model) for model in models or ()),
)
_STORAGES: _Converter = (
    lambda refs: [storage_reference_to_json(ref) for ref in refs],
    lambda models: tuple(storage_reference_from_json(model) for model in models or ()),
)
_VALUE: _Converter = (storage_value_to_json, storage_value_from_json)
_VALUES: _Converter = (
    lambda values: [storage_value_to_json(value) for value in values],
    lambda models: tuple(storage_value_from_json(model) for model in models or ()),
)
_UPDATES: _Converter = (
    lambda updates: [update_to_json(update) for update in updates],
    lambda models: tuple(update_from_json(model) for model in models or ()),
)
_CONSTRUCTOR: _Converter = (constructor_signature_to_json, constructor_signature_from_json)
_METHOD: _Converter = (method_signature_to_json, method_signature_from_json)

Fields = tuple[tuple[str, str, _Converter], ...]

_SIGNED: Fields = (
    ("caller", "caller", _STORAGE),
    ("nonce", "nonce", _BIG),
    ("classpath", "classpath", _TRANSACTION),
    ("gas_limit", "gasLimit", _BIG),
    ("gas_price", "gasPrice", _BIG),
    ("chain_id", "chainId", _STRING),
    ("signature", "signature", _BYTES),
)

REQUEST_FIELDS: dict[rq.RequestKind, Fields] = {
    rq.RequestKind.JAR_STORE_INITIAL: (
        ("jar", "jar", _BYTES),
        ("dependencies", "dependencies", _TRANSACTIONS),
    ),
    rq.RequestKind.GAMETE_CREATION: (
        ("classpath", "classpath", _TRANSACTION),
        ("initial_amount", "initialAmount", _BIG),
        ("public_key", "publicKey", _STRING),
    ),
    rq.RequestKind.RED_GREEN_GAMETE_CREATION: (
        ("classpath", "classpath", _TRANSACTION),
        ("initial_amount", "initialAmount", _BIG),
        ("red_initial_amount", "redInitialAmount", _BIG),
        ("public_key", "publicKey", _STRING),
    ),
    rq.RequestKind.INITIALIZATION: (
        ("classpath", "classpath", _TRANSACTION),
        ("manifest", "manifest", _STORAGE),
    ),
    rq.RequestKind.JAR_STORE: _SIGNED + (
        ("jar", "jar", _BYTES),
        ("dependencies", "dependencies", _TRANSACTIONS),
    ),
    rq.RequestKind.CONSTRUCTOR_CALL: _SIGNED + (
        ("constructor", "constructorSignature", _CONSTRUCTOR),
        ("actuals", "actuals", _VALUES),
    ),
    rq.RequestKind.INSTANCE_METHOD_CALL: _SIGNED + (
        ("method", "method", _METHOD),
        ("actuals", "actuals", _VALUES),
        ("receiver", "receiver", _STORAGE),
    ),
    rq.RequestKind.STATIC_METHOD_CALL: _SIGNED + (
        ("method", "method", _METHOD),
        ("actuals", "actuals", _VALUES),
    ),
}

_GAS: Fields = (
    ("updates", "updates", _UPDATES),
    ("gas_consumed_for_cpu", "gasConsumedForCPU", _BIG),
    ("gas_consumed_for_ram", "gasConsumedForRAM", _BIG),
    ("gas_consumed_for_storage", "gasConsumedForStorage", _BIG),
)
_FAILURE: Fields = _GAS + (
    ("gas_consumed_for_penalty", "gasConsumedForPenalty", _BIG),
    ("class_name_of_cause", "classNameOfCause", _STRING),
    ("message_of_cause", "messageOfCause", _STRING),
)
_JAR: Fields = (
    ("instrumented_jar", "instrumentedJar", _BYTES),
    ("dependencies", "dependencies", _TRANSACTIONS),
)
_EVENTS: Fields = (("events", "events", _STORAGES),)
_WHERE: Fields = (("where", "where", _STRING),)

RESPONSE_FIELDS: dict[rs.ResponseKind, Fields] = {
    rs.ResponseKind.PENDING: (),
    rs.ResponseKind.REJECTED: (("cause", "cause", _STRING),),
    rs.ResponseKind.JAR_STORE_INITIAL: _JAR,
    rs.ResponseKind.GAMETE_CREATION: (
        ("updates", "updates", _UPDATES),
        ("gamete", "gamete", _STORAGE),
    ),
    rs.ResponseKind.INITIALIZATION: (),
    rs.ResponseKind.JAR_STORE_SUCCESSFUL: _GAS + _JAR,
    rs.ResponseKind.JAR_STORE_FAILED: _FAILURE,
    rs.ResponseKind.CONSTRUCTOR_CALL_SUCCESSFUL: _GAS + _EVENTS + (("new_object", "newObject", _STORAGE),),
    rs.ResponseKind.CONSTRUCTOR_CALL_EXCEPTION: _FAILURE + _WHERE + _EVENTS,
    rs.ResponseKind.CONSTRUCTOR_CALL_FAILED: _FAILURE + _WHERE,
    rs.ResponseKind.METHOD_CALL_SUCCESSFUL: _GAS + _EVENTS + (("result", "result", _VALUE),),
    rs.ResponseKind.VOID_METHOD_CALL_SUCCESSFUL: _GAS + _EVENTS,
    rs.ResponseKind.METHOD_CALL_EXCEPTION: _FAILURE + _WHERE + _EVENTS,
    rs.ResponseKind.METHOD_CALL_FAILED: _FAILURE + _WHERE,
}


def _to_json(bean: Any, fields: Fields) -> Json:
    return {key: converter[0](getattr(bean, attr)) for attr, key, converter in fields}


def _from_json(model: Json, fields: Fields) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for attr, key, converter in fields:
        if model.get(key) is not None:
            values[attr] = converter[1](model[key])
    return values


def _build(cls: type, values: dict[str, Any], model_name: str) -> Any:
    try:
        return cls(**values)
    except TypeError as exc:
        raise ProtocolError(f"Incomplete {model_name}: {exc}") from exc
    except EncodingError as exc:
        raise ProtocolError(f"Invalid {model_name}: {exc}") from exc


# ============ Requests ============


def request_to_json(request: rq.TransactionRequest) -> Json:
    """The model body the add/run/post endpoints expect for ``request``."""
    return _to_json(request, REQUEST_FIELDS[request.KIND])


def request_envelope(request: rq.TransactionRequest) -> Json:
    return {
        "type": REQUEST_MODEL_PACKAGE + request.KIND.model_name,
        "transactionRequestModel": request_to_json(request),
    }


def request_from_envelope(envelope: Json, registry: Optional[SchemaRegistry] = None) -> rq.TransactionRequest:
    (registry or default_registry()).validate_instance(envelope, "transaction-request.schema.json")
    simple = envelope["type"].rsplit(".", 1)[-1]
    kind = next((kind for kind in rq.RequestKind if kind.model_name == simple), None)
    if kind is None:
        raise ProtocolError(f"Unrecognized request model {envelope['type']!r}")
    values = _from_json(envelope["transactionRequestModel"], REQUEST_FIELDS[kind])
    return _build(rq.REQUEST_CLASSES[kind], values, kind.model_name)


# ============ Responses ============


def response_to_json(response: rs.TransactionResponse) -> Json:
    return _to_json(response, RESPONSE_FIELDS[response.KIND])


def response_envelope(response: rs.TransactionResponse) -> Json:
    return {
        "type": RESPONSE_MODEL_PACKAGE + response.KIND.model_name,
        "transactionResponseModel": response_to_json(response),
    }


def response_from_envelope(envelope: Json, registry: Optional[SchemaRegistry] = None) -> rs.TransactionResponse:
    """
    Decode a response envelope by its ``type`` discriminator.

    Raises:
        ProtocolError: If the envelope is malformed or names an unknown model
    """
    (registry or default_registry()).validate_instance(envelope, "transaction-response.schema.json")
    kind = rs.response_kind_for(envelope["type"])
    if kind is None:
        raise ProtocolError(f"Unrecognized response model {envelope['type']!r}")
    values = _from_json(envelope["transactionResponseModel"], RESPONSE_FIELDS[kind])
    return _build(rs.RESPONSE_CLASSES[kind], values, kind.model_name)
