"""
Canonical encoding of beans.

``encode_body`` produces the bytes a caller signs; ``encode_full`` prefixes
them with the request's selector; ``encode_signed`` appends the signature and
is what the transaction reference is the hash of. Every variant has exactly
one writer and one reader, looked up by its kind.

Signed requests are laid out as::

    caller, nonce, classpath, gasLimit, gasPrice, <variant fields>, chainId
"""

from __future__ import annotations

from typing import Any, Callable

from ..beans import requests as rq
from ..beans import responses as rs
from ..beans import types
from ..beans.references import StorageReference, TransactionReference
from ..beans.signatures import ConstructorSignature, FieldSignature, MethodSignature
from ..beans.types import BasicType, ClassType, StorageType
from ..beans.updates import Update, UpdateKind
from ..beans.values import EnumElement, StorageValue, ValueKind
from ..errors import EncodingError
from ..utils import require_non_negative, sha256_hex
from .context import MarshallingContext, UnmarshallingContext

# ---------------------------------------------------------------------------
# References
# ---------------------------------------------------------------------------


def write_transaction_reference(context: MarshallingContext, reference: TransactionReference) -> None:
    raw = reference.hash_bytes()
    context.write_shared("transaction", reference.hash, lambda: context.write_raw(raw))


def read_transaction_reference(context: UnmarshallingContext) -> TransactionReference:
    return context.read_shared("transaction", lambda: TransactionReference(context.read_raw(32).hex()))


def write_storage_reference(context: MarshallingContext, reference: StorageReference) -> None:
    def write() -> None:
        write_transaction_reference(context, reference.transaction)
        context.write_big_integer(require_non_negative(reference.progressive, "progressive"))

    context.write_shared("storage", reference, write)


def read_storage_reference(context: UnmarshallingContext) -> StorageReference:
    def read() -> StorageReference:
        transaction = read_transaction_reference(context)
        return StorageReference(transaction, context.read_big_integer())

    return context.read_shared("storage", read)


def _write_transaction_references(context: MarshallingContext, references: tuple) -> None:
    context.write_compact_int(len(references))
    for reference in references:
        write_transaction_reference(context, reference)


def _read_transaction_references(context: UnmarshallingContext) -> tuple[TransactionReference, ...]:
    return tuple(read_transaction_reference(context) for _ in range(context.read_compact_int()))


def _write_storage_references(context: MarshallingContext, references: tuple) -> None:
    context.write_compact_int(len(references))
    for reference in references:
        write_storage_reference(context, reference)


def _read_storage_references(context: UnmarshallingContext) -> tuple[StorageReference, ...]:
    return tuple(read_storage_reference(context) for _ in range(context.read_compact_int()))


# ---------------------------------------------------------------------------
# Types and signatures
# ---------------------------------------------------------------------------

_BASIC_BY_SELECTOR = {basic.selector: basic for basic in BasicType}
_WELL_KNOWN_BY_SELECTOR = {selector: cls for cls, selector in types.WELL_KNOWN_SELECTORS.items()}


def write_type(context: MarshallingContext, storage_type: StorageType) -> None:
    if isinstance(storage_type, BasicType):
        context.write_byte(storage_type.selector)
        return

    selector = types.WELL_KNOWN_SELECTORS.get(storage_type)
    name = storage_type.name
    if selector is not None:
        context.write_byte(selector)
    elif name.startswith(types.TAKAMAKA_CODE_LANG_PREFIX):
        context.write_byte(types.TAKAMAKA_CODE_LANG_SELECTOR)
        context.write_string_shared(name[len(types.TAKAMAKA_CODE_LANG_PREFIX):])
    elif name.startswith(types.TAKAMAKA_CODE_PREFIX):
        context.write_byte(types.TAKAMAKA_CODE_SELECTOR)
        context.write_string_shared(name[len(types.TAKAMAKA_CODE_PREFIX):])
    else:
        context.write_byte(types.CLASS_SELECTOR)
        context.write_string_shared(name)


def read_type(context: UnmarshallingContext) -> StorageType:
    selector = context.read_byte()
    if selector in _BASIC_BY_SELECTOR:
        return _BASIC_BY_SELECTOR[selector]
    if selector == types.CLASS_SELECTOR:
        return ClassType(context.read_string_shared())
    if selector == types.TAKAMAKA_CODE_SELECTOR:
        return ClassType(types.TAKAMAKA_CODE_PREFIX + context.read_string_shared())
    if selector == types.TAKAMAKA_CODE_LANG_SELECTOR:
        return ClassType(types.TAKAMAKA_CODE_LANG_PREFIX + context.read_string_shared())
    if selector in _WELL_KNOWN_BY_SELECTOR:
        return _WELL_KNOWN_BY_SELECTOR[selector]
    raise EncodingError(f"Unknown type selector {selector}")


def _read_class_type(context: UnmarshallingContext) -> ClassType:
    storage_type = read_type(context)
    if not isinstance(storage_type, ClassType):
        raise EncodingError(f"Class type expected, found {storage_type}")
    return storage_type


def write_field_signature(context: MarshallingContext, field: FieldSignature) -> None:
    def write() -> None:
        write_type(context, field.defining_class)
        context.write_utf(field.name)
        write_type(context, field.type)

    context.write_shared("field", field, write)


def read_field_signature(context: UnmarshallingContext) -> FieldSignature:
    def read() -> FieldSignature:
        defining_class = _read_class_type(context)
        name = context.read_utf()
        return FieldSignature(defining_class, name, read_type(context))

    return context.read_shared("field", read)


_CONSTRUCTOR = 0
_NON_VOID_METHOD = 1
_VOID_METHOD = 2


def _write_formals(context: MarshallingContext, formals: tuple) -> None:
    context.write_compact_int(len(formals))
    for formal in formals:
        write_type(context, formal)


def _read_formals(context: UnmarshallingContext) -> tuple[StorageType, ...]:
    return tuple(read_type(context) for _ in range(context.read_compact_int()))


def write_constructor_signature(context: MarshallingContext, constructor: ConstructorSignature) -> None:
    context.write_byte(_CONSTRUCTOR)
    write_type(context, constructor.defining_class)
    _write_formals(context, constructor.formals)


def write_method_signature(context: MarshallingContext, method: MethodSignature) -> None:
    context.write_byte(_VOID_METHOD if method.is_void else _NON_VOID_METHOD)
    write_type(context, method.defining_class)
    _write_formals(context, method.formals)
    context.write_utf(method.name)
    if not method.is_void:
        write_type(context, method.return_type)


def read_constructor_signature(context: UnmarshallingContext) -> ConstructorSignature:
    selector = context.read_byte()
    if selector != _CONSTRUCTOR:
        raise EncodingError(f"Constructor signature expected, found selector {selector}")
    defining_class = _read_class_type(context)
    return ConstructorSignature(defining_class, _read_formals(context))


def read_method_signature(context: UnmarshallingContext) -> MethodSignature:
    selector = context.read_byte()
    if selector not in (_NON_VOID_METHOD, _VOID_METHOD):
        raise EncodingError(f"Method signature expected, found selector {selector}")
    defining_class = _read_class_type(context)
    formals = _read_formals(context)
    name = context.read_utf()
    return_type = read_type(context) if selector == _NON_VOID_METHOD else None
    return MethodSignature(defining_class, name, formals, return_type)


# ---------------------------------------------------------------------------
# Storage values
# ---------------------------------------------------------------------------

_TRUE = 0
_FALSE = 1
_EMPTY_STRING = 13

VALUE_SELECTORS: dict[ValueKind, int] = {
    ValueKind.BYTE: 2,
    ValueKind.CHAR: 3,
    ValueKind.DOUBLE: 4,
    ValueKind.FLOAT: 5,
    ValueKind.BIG_INTEGER: 6,
    ValueKind.LONG: 7,
    ValueKind.NULL: 8,
    ValueKind.SHORT: 9,
    ValueKind.STRING: 10,
    ValueKind.REFERENCE: 11,
    ValueKind.ENUM: 12,
    ValueKind.INT: 14,
}

_VALUE_WRITERS: dict[ValueKind, Callable[[MarshallingContext, Any], None]] = {
    ValueKind.BYTE: MarshallingContext.write_byte,
    ValueKind.CHAR: MarshallingContext.write_char,
    ValueKind.DOUBLE: MarshallingContext.write_double,
    ValueKind.FLOAT: MarshallingContext.write_float,
    ValueKind.BIG_INTEGER: MarshallingContext.write_big_integer,
    ValueKind.LONG: MarshallingContext.write_long,
    ValueKind.NULL: lambda context, payload: None,
    ValueKind.SHORT: MarshallingContext.write_short,
    ValueKind.STRING: MarshallingContext.write_utf,
    ValueKind.REFERENCE: write_storage_reference,
    ValueKind.INT: MarshallingContext.write_int,
}

_VALUE_READERS: dict[int, Callable[[UnmarshallingContext], StorageValue]] = {
    _TRUE: lambda context: StorageValue.of_boolean(True),
    _FALSE: lambda context: StorageValue.of_boolean(False),
    2: lambda context: StorageValue.of_byte(context.read_signed_byte()),
    3: lambda context: StorageValue.of_char(context.read_char()),
    4: lambda context: StorageValue.of_double(context.read_double()),
    5: lambda context: StorageValue.of_float(context.read_float()),
    6: lambda context: StorageValue.of_big_integer(context.read_big_integer()),
    7: lambda context: StorageValue.of_long(context.read_long()),
    8: lambda context: StorageValue.null(),
    9: lambda context: StorageValue.of_short(context.read_short()),
    10: lambda context: StorageValue.of_string(context.read_utf()),
    11: lambda context: StorageValue.of_reference(read_storage_reference(context)),
    12: lambda context: StorageValue.of_enum(context.read_utf(), context.read_utf()),
    _EMPTY_STRING: lambda context: StorageValue.of_string(""),
    14: lambda context: StorageValue.of_int(context.read_int()),
}


def write_value(context: MarshallingContext, value: StorageValue) -> None:
    kind = value.kind
    if kind is ValueKind.BOOLEAN:
        context.write_byte(_TRUE if value.payload else _FALSE)
    elif kind is ValueKind.STRING and value.payload == "":
        context.write_byte(_EMPTY_STRING)
    elif kind is ValueKind.ENUM:
        element: EnumElement = value.payload
        context.write_byte(VALUE_SELECTORS[kind])
        context.write_utf(element.class_name)
        context.write_utf(element.name)
    elif kind in _VALUE_WRITERS:
        context.write_byte(VALUE_SELECTORS[kind])
        _VALUE_WRITERS[kind](context, value.payload)
    else:
        raise EncodingError(f"Unsupported storage value kind: {kind!r}")


def read_value(context: UnmarshallingContext) -> StorageValue:
    selector = context.read_byte()
    reader = _VALUE_READERS.get(selector)
    if reader is None:
        raise EncodingError(f"Unknown storage value selector {selector}")
    return reader(context)


def _write_values(context: MarshallingContext, values: tuple) -> None:
    context.write_compact_int(len(values))
    for value in values:
        write_value(context, value)


def _read_values(context: UnmarshallingContext) -> tuple[StorageValue, ...]:
    return tuple(read_value(context) for _ in range(context.read_compact_int()))


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


def write_update(context: MarshallingContext, update: Update) -> None:
    context.write_byte(update.kind.value)
    write_storage_reference(context, update.object)
    if update.kind is UpdateKind.CLASS_TAG:
        context.write_string_shared(update.class_name)
        write_transaction_reference(context, update.jar)
    else:
        write_field_signature(context, update.field)
        write_value(context, update.value)


def read_update(context: UnmarshallingContext) -> Update:
    selector = context.read_byte()
    obj = read_storage_reference(context)
    if selector == UpdateKind.CLASS_TAG.value:
        class_name = context.read_string_shared()
        return Update.of_class_tag(obj, class_name, read_transaction_reference(context))
    if selector == UpdateKind.FIELD.value:
        field = read_field_signature(context)
        return Update.of_field(obj, field, read_value(context))
    raise EncodingError(f"Unknown update selector {selector}")


def _write_updates(context: MarshallingContext, updates: tuple) -> None:
    context.write_compact_int(len(updates))
    for update in updates:
        write_update(context, update)


def _read_updates(context: UnmarshallingContext) -> tuple[Update, ...]:
    return tuple(read_update(context) for _ in range(context.read_compact_int()))


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


def _write_signed_prefix(context: MarshallingContext, request: rq.SignedTransactionRequest) -> None:
    write_storage_reference(context, request.caller)
    context.write_big_integer(require_non_negative(request.nonce, "nonce"))
    write_transaction_reference(context, request.classpath)
    context.write_big_integer(require_non_negative(request.gas_limit, "gas_limit"))
    context.write_big_integer(require_non_negative(request.gas_price, "gas_price"))


def _read_signed_prefix(context: UnmarshallingContext) -> dict[str, Any]:
    return {
        "caller": read_storage_reference(context),
        "nonce": context.read_big_integer(),
        "classpath": read_transaction_reference(context),
        "gas_limit": context.read_big_integer(),
        "gas_price": context.read_big_integer(),
    }


def _write_jar_store(context: MarshallingContext, request: rq.JarStoreTransactionRequest) -> None:
    _write_signed_prefix(context, request)
    context.write_bytes(request.jar)
    _write_transaction_references(context, request.dependencies)
    context.write_utf(request.chain_id)


def _read_jar_store(context: UnmarshallingContext) -> rq.JarStoreTransactionRequest:
    fields = _read_signed_prefix(context)
    jar = context.read_bytes()
    dependencies = _read_transaction_references(context)
    return rq.JarStoreTransactionRequest(
        **fields, jar=jar, dependencies=dependencies, chain_id=context.read_utf()
    )


def _write_constructor_call(context: MarshallingContext, request: rq.ConstructorCallTransactionRequest) -> None:
    _write_signed_prefix(context, request)
    write_constructor_signature(context, request.constructor)
    _write_values(context, request.actuals)
    context.write_utf(request.chain_id)


def _read_constructor_call(context: UnmarshallingContext) -> rq.ConstructorCallTransactionRequest:
    fields = _read_signed_prefix(context)
    constructor = read_constructor_signature(context)
    actuals = _read_values(context)
    return rq.ConstructorCallTransactionRequest(
        **fields, constructor=constructor, actuals=actuals, chain_id=context.read_utf()
    )


def _write_instance_method_call(context: MarshallingContext, request: rq.InstanceMethodCallTransactionRequest) -> None:
    _write_signed_prefix(context, request)
    write_method_signature(context, request.method)
    _write_values(context, request.actuals)
    write_storage_reference(context, request.receiver)
    context.write_utf(request.chain_id)


def _read_instance_method_call(context: UnmarshallingContext) -> rq.InstanceMethodCallTransactionRequest:
    fields = _read_signed_prefix(context)
    method = read_method_signature(context)
    actuals = _read_values(context)
    receiver = read_storage_reference(context)
    return rq.InstanceMethodCallTransactionRequest(
        **fields, method=method, actuals=actuals, receiver=receiver, chain_id=context.read_utf()
    )


def _write_static_method_call(context: MarshallingContext, request: rq.StaticMethodCallTransactionRequest) -> None:
    _write_signed_prefix(context, request)
    write_method_signature(context, request.method)
    _write_values(context, request.actuals)
    context.write_utf(request.chain_id)


def _read_static_method_call(context: UnmarshallingContext) -> rq.StaticMethodCallTransactionRequest:
    fields = _read_signed_prefix(context)
    method = read_method_signature(context)
    actuals = _read_values(context)
    return rq.StaticMethodCallTransactionRequest(
        **fields, method=method, actuals=actuals, chain_id=context.read_utf()
    )


def _write_jar_store_initial(context: MarshallingContext, request: rq.JarStoreInitialTransactionRequest) -> None:
    context.write_bytes(request.jar)
    _write_transaction_references(context, request.dependencies)


def _read_jar_store_initial(context: UnmarshallingContext) -> rq.JarStoreInitialTransactionRequest:
    jar = context.read_bytes()
    return rq.JarStoreInitialTransactionRequest(jar=jar, dependencies=_read_transaction_references(context))


def _write_gamete_creation(context: MarshallingContext, request: rq.GameteCreationTransactionRequest) -> None:
    write_transaction_reference(context, request.classpath)
    context.write_big_integer(require_non_negative(request.initial_amount, "initial_amount"))
    context.write_utf(request.public_key)


def _read_gamete_creation(context: UnmarshallingContext) -> rq.GameteCreationTransactionRequest:
    classpath = read_transaction_reference(context)
    initial_amount = context.read_big_integer()
    return rq.GameteCreationTransactionRequest(
        classpath=classpath, initial_amount=initial_amount, public_key=context.read_utf()
    )


def _write_red_green_gamete_creation(
    context: MarshallingContext, request: rq.RedGreenGameteCreationTransactionRequest
) -> None:
    write_transaction_reference(context, request.classpath)
    context.write_big_integer(require_non_negative(request.initial_amount, "initial_amount"))
    context.write_big_integer(require_non_negative(request.red_initial_amount, "red_initial_amount"))
    context.write_utf(request.public_key)


def _read_red_green_gamete_creation(context: UnmarshallingContext) -> rq.RedGreenGameteCreationTransactionRequest:
    classpath = read_transaction_reference(context)
    initial_amount = context.read_big_integer()
    red_initial_amount = context.read_big_integer()
    return rq.RedGreenGameteCreationTransactionRequest(
        classpath=classpath,
        initial_amount=initial_amount,
        red_initial_amount=red_initial_amount,
        public_key=context.read_utf(),
    )


def _write_initialization(context: MarshallingContext, request: rq.InitializationTransactionRequest) -> None:
    write_transaction_reference(context, request.classpath)
    write_storage_reference(context, request.manifest)


def _read_initialization(context: UnmarshallingContext) -> rq.InitializationTransactionRequest:
    classpath = read_transaction_reference(context)
    return rq.InitializationTransactionRequest(classpath=classpath, manifest=read_storage_reference(context))


_REQUEST_CODECS: dict[rq.RequestKind, tuple[Callable[..., None], Callable[[UnmarshallingContext], Any]]] = {
    rq.RequestKind.JAR_STORE_INITIAL: (_write_jar_store_initial, _read_jar_store_initial),
    rq.RequestKind.GAMETE_CREATION: (_write_gamete_creation, _read_gamete_creation),
    rq.RequestKind.RED_GREEN_GAMETE_CREATION: (_write_red_green_gamete_creation, _read_red_green_gamete_creation),
    rq.RequestKind.INITIALIZATION: (_write_initialization, _read_initialization),
    rq.RequestKind.JAR_STORE: (_write_jar_store, _read_jar_store),
    rq.RequestKind.CONSTRUCTOR_CALL: (_write_constructor_call, _read_constructor_call),
    rq.RequestKind.INSTANCE_METHOD_CALL: (_write_instance_method_call, _read_instance_method_call),
    rq.RequestKind.STATIC_METHOD_CALL: (_write_static_method_call, _read_static_method_call),
}

_REQUEST_KINDS_BY_SELECTOR = {kind.selector: kind for kind in rq.RequestKind}


def selector(kind: rq.RequestKind | rs.ResponseKind) -> int:
    return kind.selector


def _request_writer(request: rq.TransactionRequest) -> Callable[..., None]:
    codec = _REQUEST_CODECS.get(getattr(request, "KIND", None))
    if codec is None:
        raise EncodingError(f"Unsupported request: {type(request).__name__}")
    return codec[0]


def encode_body(request: rq.TransactionRequest) -> bytes:
    """Encode ``request`` without its selector: the exact bytes that get signed."""
    context = MarshallingContext()
    _request_writer(request)(context, request)
    return context.to_bytes()


def encode_full(request: rq.TransactionRequest) -> bytes:
    """Encode ``request`` as its selector followed by its body."""
    write = _request_writer(request)
    context = MarshallingContext()
    context.write_byte(request.KIND.selector)
    write(context, request)
    return context.to_bytes()


def encode_signed(request: rq.TransactionRequest) -> bytes:
    """Encode ``request`` in full, followed by its signature when it is a signed request."""
    context = MarshallingContext()
    context.write_raw(encode_full(request))
    if request.KIND.signed:
        context.write_bytes(request.signature)
    return context.to_bytes()


def reference_of(request: rq.TransactionRequest) -> TransactionReference:
    """Compute locally the reference the node will assign to ``request``."""
    return TransactionReference(sha256_hex(encode_signed(request)))


def decode_request(data: bytes) -> rq.TransactionRequest:
    """Decode the output of ``encode_full``; the result carries no signature."""
    context = UnmarshallingContext(data)
    value = context.read_byte()
    kind = _REQUEST_KINDS_BY_SELECTOR.get(value)
    if kind is None:
        raise EncodingError(f"Unknown request selector {value}")
    request = _REQUEST_CODECS[kind][1](context)
    context.expect_end()
    return request


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


def _write_non_initial(context: MarshallingContext, response: rs.NonInitialTransactionResponse) -> None:
    _write_updates(context, response.updates)
    context.write_big_integer(response.gas_consumed_for_cpu)
    context.write_big_integer(response.gas_consumed_for_ram)
    context.write_big_integer(response.gas_consumed_for_storage)


def _read_non_initial(context: UnmarshallingContext) -> dict[str, Any]:
    return {
        "updates": _read_updates(context),
        "gas_consumed_for_cpu": context.read_big_integer(),
        "gas_consumed_for_ram": context.read_big_integer(),
        "gas_consumed_for_storage": context.read_big_integer(),
    }


def _write_failure(context: MarshallingContext, response: rs.FailedTransactionResponse) -> None:
    _write_non_initial(context, response)
    context.write_big_integer(response.gas_consumed_for_penalty)
    context.write_utf(response.class_name_of_cause)
    context.write_utf(response.message_of_cause)


def _read_failure(context: UnmarshallingContext) -> dict[str, Any]:
    fields = _read_non_initial(context)
    fields["gas_consumed_for_penalty"] = context.read_big_integer()
    fields["class_name_of_cause"] = context.read_utf()
    fields["message_of_cause"] = context.read_utf()
    return fields


def _write_code_failure(context: MarshallingContext, response: Any) -> None:
    _write_failure(context, response)
    context.write_utf(response.where)


def _read_code_failure(context: UnmarshallingContext) -> dict[str, Any]:
    fields = _read_failure(context)
    fields["where"] = context.read_utf()
    return fields


def _write_code_exception(context: MarshallingContext, response: Any) -> None:
    _write_code_failure(context, response)
    _write_storage_references(context, response.events)


def _read_code_exception(context: UnmarshallingContext) -> dict[str, Any]:
    fields = _read_code_failure(context)
    fields["events"] = _read_storage_references(context)
    return fields


def _write_code_execution(context: MarshallingContext, response: rs.CodeExecutionTransactionResponse) -> None:
    _write_non_initial(context, response)
    _write_storage_references(context, response.events)


def _read_code_execution(context: UnmarshallingContext) -> dict[str, Any]:
    fields = _read_non_initial(context)
    fields["events"] = _read_storage_references(context)
    return fields


def _write_jar(context: MarshallingContext, response: Any) -> None:
    context.write_bytes(response.instrumented_jar)
    _write_transaction_references(context, response.dependencies)


def _read_jar(context: UnmarshallingContext) -> dict[str, Any]:
    jar = context.read_bytes()
    return {"instrumented_jar": jar, "dependencies": _read_transaction_references(context)}


def _nothing(context: MarshallingContext, response: Any) -> None:
    return None


def _write_rejected(context: MarshallingContext, response: rs.RejectedResponse) -> None:
    context.write_utf(response.cause)


def _write_gamete_creation_response(context: MarshallingContext, response: rs.GameteCreationTransactionResponse) -> None:
    _write_updates(context, response.updates)
    write_storage_reference(context, response.gamete)


def _read_gamete_creation_response(context: UnmarshallingContext) -> dict[str, Any]:
    updates = _read_updates(context)
    return {"updates": updates, "gamete": read_storage_reference(context)}


def _write_jar_store_successful(context: MarshallingContext, response: Any) -> None:
    _write_non_initial(context, response)
    _write_jar(context, response)


def _read_jar_store_successful(context: UnmarshallingContext) -> dict[str, Any]:
    fields = _read_non_initial(context)
    fields.update(_read_jar(context))
    return fields


def _write_constructor_successful(context: MarshallingContext, response: Any) -> None:
    _write_code_execution(context, response)
    write_storage_reference(context, response.new_object)


def _read_constructor_successful(context: UnmarshallingContext) -> dict[str, Any]:
    fields = _read_code_execution(context)
    fields["new_object"] = read_storage_reference(context)
    return fields


def _write_method_successful(context: MarshallingContext, response: Any) -> None:
    _write_code_execution(context, response)
    write_value(context, response.result)


def _read_method_successful(context: UnmarshallingContext) -> dict[str, Any]:
    fields = _read_code_execution(context)
    fields["result"] = read_value(context)
    return fields


_RESPONSE_CODECS: dict[rs.ResponseKind, tuple[Callable[..., None], Callable[[UnmarshallingContext], dict]]] = {
    rs.ResponseKind.PENDING: (_nothing, lambda context: {}),
    rs.ResponseKind.REJECTED: (_write_rejected, lambda context: {"cause": context.read_utf()}),
    rs.ResponseKind.JAR_STORE_INITIAL: (_write_jar, _read_jar),
    rs.ResponseKind.GAMETE_CREATION: (_write_gamete_creation_response, _read_gamete_creation_response),
    rs.ResponseKind.INITIALIZATION: (_nothing, lambda context: {}),
    rs.ResponseKind.JAR_STORE_SUCCESSFUL: (_write_jar_store_successful, _read_jar_store_successful),
    rs.ResponseKind.JAR_STORE_FAILED: (_write_failure, _read_failure),
    rs.ResponseKind.CONSTRUCTOR_CALL_SUCCESSFUL: (_write_constructor_successful, _read_constructor_successful),
    rs.ResponseKind.CONSTRUCTOR_CALL_EXCEPTION: (_write_code_exception, _read_code_exception),
    rs.ResponseKind.CONSTRUCTOR_CALL_FAILED: (_write_code_failure, _read_code_failure),
    rs.ResponseKind.METHOD_CALL_SUCCESSFUL: (_write_method_successful, _read_method_successful),
    rs.ResponseKind.VOID_METHOD_CALL_SUCCESSFUL: (_write_code_execution, _read_code_execution),
    rs.ResponseKind.METHOD_CALL_EXCEPTION: (_write_code_exception, _read_code_exception),
    rs.ResponseKind.METHOD_CALL_FAILED: (_write_code_failure, _read_code_failure),
}

_RESPONSE_KINDS_BY_SELECTOR = {kind.selector: kind for kind in rs.ResponseKind}


def encode_response(response: rs.TransactionResponse) -> bytes:
    codec = _RESPONSE_CODECS.get(getattr(response, "KIND", None))
    if codec is None:
        raise EncodingError(f"Unsupported response: {type(response).__name__}")
    context = MarshallingContext()
    context.write_byte(response.KIND.selector)
    codec[0](context, response)
    return context.to_bytes()


def decode_response(data: bytes) -> rs.TransactionResponse:
    context = UnmarshallingContext(data)
    value = context.read_byte()
    kind = _RESPONSE_KINDS_BY_SELECTOR.get(value)
    if kind is None:
        raise EncodingError(f"Unknown response selector {value}")
    fields = _RESPONSE_CODECS[kind][1](context)
    context.expect_end()
    return rs.RESPONSE_CLASSES[kind](**fields)
