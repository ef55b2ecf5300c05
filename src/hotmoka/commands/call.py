"""
Call - run a method in the node without persisting its effects.

Arguments are given as ``TYPE=VALUE``: basic types (``int=13``),
``java.math.BigInteger=1000``, ``java.lang.String=hello``, or a class name
followed by a storage reference (``io.takamaka.code.lang.Contract=<hash>#0``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ..beans import requests as rq
from ..beans.references import StorageReference, TransactionReference
from ..beans.signatures import MethodSignature
from ..beans.types import BasicType, ClassType, StorageType, parse_type
from ..beans.values import StorageValue, ValueKind
from ..crypto.keys import load_private_key
from ..crypto.signer import Signer
from ..errors import HotmokaError
from ..network import models

_VALUE_TYPES = {ValueKind.BIG_INTEGER.value, ValueKind.STRING.value}


def parse_argument(text: str) -> tuple[StorageType, StorageValue]:
    """Turn ``TYPE=VALUE`` into the formal type and the actual value of an argument."""
    type_, sep, value = text.partition("=")
    if not sep or not type_:
        raise click.BadParameter(f"expected TYPE=VALUE, got {text!r}")
    formal = parse_type(type_)
    try:
        if isinstance(formal, BasicType) or type_ in _VALUE_TYPES:
            actual = models.storage_value_from_json({"type": type_, "value": value})
        elif value == "null":
            actual = StorageValue.null()
        else:
            actual = StorageValue.of_reference(StorageReference.parse(value))
    except (HotmokaError, ValueError) as exc:
        raise click.BadParameter(f"invalid {type_} value {value!r}: {exc}") from exc
    return formal, actual


@click.command()
@click.option("--class", "class_name", required=True, help="Class defining the method")
@click.option("--method", "method_name", required=True, help="Method name")
@click.option("--returns", "return_type", default="void", show_default=True, help="Return type")
@click.option("--receiver", default=None, help="Receiver object (omit for a static method)")
@click.option("--caller", default=None, help="Caller account (default: receiver, or the gamete)")
@click.option("--arg", "args", multiple=True, help="Argument as TYPE=VALUE (repeatable)")
@click.option("--classpath", default=None, help="Classpath transaction (default: takamaka code)")
@click.option("--gas-limit", type=int, default=100_000, show_default=True)
@click.option("--key", "key_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="Private key of the caller (default: unsigned)")
@click.pass_context
def call(
    ctx: click.Context,
    class_name: str,
    method_name: str,
    return_type: str,
    receiver: Optional[str],
    caller: Optional[str],
    args: tuple[str, ...],
    classpath: Optional[str],
    gas_limit: int,
    key_path: Optional[Path],
) -> None:
    """Run a method and print its result."""
    from ..cli import open_node, run_guarded

    parsed = [parse_argument(arg) for arg in args]
    method = MethodSignature(
        ClassType(class_name),
        method_name,
        tuple(formal for formal, _ in parsed),
        None if return_type == "void" else parse_type(return_type),
    )
    actuals = tuple(actual for _, actual in parsed)

    def action() -> None:
        with open_node(ctx) as node:
            config = node.config
            signer = Signer(config.signature, load_private_key(key_path)) if key_path else Signer.empty()
            receiver_ref = StorageReference.parse(receiver) if receiver else None
            if caller:
                caller_ref = StorageReference.parse(caller)
            else:
                caller_ref = receiver_ref or node.get_gamete()
            common = dict(
                caller=caller_ref,
                nonce=node.get_nonce(caller_ref) if key_path else 0,
                classpath=TransactionReference(classpath) if classpath else node.get_takamaka_code(),
                gas_limit=gas_limit,
                gas_price=0,
                chain_id=config.chain_id,
                method=method,
                actuals=actuals,
            )
            if receiver_ref is not None:
                request = rq.InstanceMethodCallTransactionRequest(**common, receiver=receiver_ref)
                result = node.run_instance_method_call_transaction(request, signer=signer)
            else:
                request = rq.StaticMethodCallTransactionRequest(**common)
                result = node.run_static_method_call_transaction(request, signer=signer)
        click.echo("void" if result is None else str(result))

    run_guarded(action)
