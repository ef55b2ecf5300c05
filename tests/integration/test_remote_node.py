"""
RemoteNode against a scripted node.

Covers the full client path for each kind of interaction: views run without a
signature, add blocks until the outcome is known, post hands back a Supplier,
and node-side failures surface as typed exceptions.
"""

from __future__ import annotations

import json

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from hotmoka.beans import requests as rq
from hotmoka.beans import responses as rs
from hotmoka.beans import signatures, types
from hotmoka.beans.references import StorageReference, TransactionReference
from hotmoka.beans.signatures import FieldSignature
from hotmoka.beans.updates import Event, Update
from hotmoka.beans.values import StorageValue
from hotmoka.config import NodeConfig
from hotmoka.crypto.signer import Keyring, Signer
from hotmoka.errors import CodeExecutionFailed, PollTimeout, ProtocolError, TransactionRejected, UnknownReference
from hotmoka.marshalling import encode_body
from hotmoka.network import models
from hotmoka.network.events import EventManager
from hotmoka.network.node import RemoteNode
from hotmoka.network.rest import RestClient
from hotmoka.network.stomp import StompClient

from fakes import GAMETE, GAS_STATION, MANIFEST, OTHER_HASH, TAKAMAKA_CODE, FakeBroker, FakeNode

POSTED = TransactionReference("ee" * 32)
NEW_OBJECT = StorageReference(POSTED, 0)


@pytest.fixture()
def key() -> ed25519.Ed25519PrivateKey:
    return ed25519.Ed25519PrivateKey.generate()


@pytest.fixture()
def signed_node(node_config: NodeConfig, rest: RestClient, key: ed25519.Ed25519PrivateKey) -> RemoteNode:
    raw = key.private_bytes(serialization.Encoding.Raw, serialization.PrivateFormat.Raw, serialization.NoEncryption())
    remote = RemoteNode(node_config, keyring=Keyring(default=Signer("ed25519", raw)), rest=rest)
    yield remote
    remote.close()


def _decode(kind: rq.RequestKind, body: dict) -> rq.TransactionRequest:
    envelope = {"type": models.REQUEST_MODEL_PACKAGE + kind.model_name, "transactionRequestModel": body}
    return models.request_from_envelope(envelope)


def _constructor_request() -> rq.ConstructorCallTransactionRequest:
    return rq.ConstructorCallTransactionRequest(
        caller=GAMETE,
        nonce=3,
        classpath=TAKAMAKA_CODE,
        gas_limit=50_000,
        gas_price=100,
        chain_id="chaintest",
        constructor=signatures.EOA_CONSTRUCTOR,
        actuals=(StorageValue.of_big_integer(10**18), StorageValue.of_string("cHVibGljS2V5")),
    )


def _receive_request(receiver: StorageReference) -> rq.InstanceMethodCallTransactionRequest:
    return rq.InstanceMethodCallTransactionRequest(
        caller=GAMETE,
        nonce=4,
        classpath=TAKAMAKA_CODE,
        gas_limit=50_000,
        gas_price=100,
        chain_id="chaintest",
        method=signatures.RECEIVE_INT,
        actuals=(StorageValue.of_int(500),),
        receiver=receiver,
    )


class TestQueries:
    def test_takamaka_code_and_manifest(self, hotmoka_node: FakeNode, node: RemoteNode) -> None:
        assert node.get_takamaka_code() == TAKAMAKA_CODE
        assert node.get_manifest() == MANIFEST
        assert node.get_signature_algorithm() == "ed25519"

    def test_state(self, fake_node: FakeNode, node: RemoteNode) -> None:
        balance = FieldSignature(types.CONTRACT, "balance", types.BIG_INTEGER)
        updates = [
            Update.of_class_tag(GAMETE, "io.takamaka.code.lang.Gamete", TAKAMAKA_CODE),
            Update.of_field(GAMETE, balance, StorageValue.of_big_integer(10**21)),
        ]
        fake_node.route("/get/state", {"updates": [models.update_to_json(update) for update in updates]})

        state = node.get_state(GAMETE)

        assert state.class_tag().class_name == "io.takamaka.code.lang.Gamete"
        assert state.field_value("balance").payload == 10**21
        assert fake_node.calls_to("/get/state") == [models.storage_reference_to_json(GAMETE)]

    def test_class_tag(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/get/classTag", {
            "className": "io.takamaka.code.lang.Gamete",
            "jar": models.transaction_reference_to_json(TAKAMAKA_CODE),
        })
        assert node.get_class_tag(GAMETE).jar == TAKAMAKA_CODE

    def test_request(self, fake_node: FakeNode, node: RemoteNode) -> None:
        request = _constructor_request()
        fake_node.route("/get/request", models.request_envelope(request))
        assert node.get_request(POSTED) == request

    def test_unknown_object(self, node: RemoteNode) -> None:
        with pytest.raises(UnknownReference):
            node.get_state(StorageReference(POSTED, 9))

    def test_malformed_signature_algorithm(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/get/signatureAlgorithmForRequests", {"algorithm": ""})
        with pytest.raises(ProtocolError):
            node.get_signature_algorithm()

    @pytest.mark.parametrize(
        "reply",
        [{"type": "local", "hash": None}, {"type": "local"}, {"hash": "xyz"}, ["not", "a", "reference"]],
    )
    def test_malformed_takamaka_code(self, fake_node: FakeNode, node: RemoteNode, reply) -> None:
        fake_node.route("/get/takamakaCode", reply)
        with pytest.raises(ProtocolError):
            node.get_takamaka_code()

    def test_malformed_manifest(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/get/manifest", {"transaction": {"hash": 42}, "progressive": "0"})
        with pytest.raises(ProtocolError):
            node.get_manifest()

    def test_polled_response_from_node(self, fake_node: FakeNode, node: RemoteNode) -> None:
        response = rs.ConstructorCallTransactionSuccessfulResponse(new_object=NEW_OBJECT)
        fake_node.route("/get/polledResponse", models.response_envelope(response))
        assert node.get_polled_response_from_node(POSTED) == response
        assert fake_node.calls_to("/get/polledResponse") == [models.transaction_reference_to_json(POSTED)]
        assert fake_node.calls_to("/get/response") == []

    def test_node_gives_up_polling(self, fake_node: FakeNode, node: RemoteNode) -> None:
        message = f"cannot find the response of transaction reference {POSTED}"
        fake_node.route(
            "/get/polledResponse",
            FakeNode.error(500, message, "java.util.concurrent.TimeoutException"),
        )
        with pytest.raises(PollTimeout) as excinfo:
            node.get_polled_response_from_node(POSTED)
        assert str(excinfo.value) == message

    def test_node_side_polling_reports_rejection(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/get/polledResponse", FakeNode.error(
            400, "illegal access to non-whitelisted method", "io.hotmoka.beans.TransactionRejectedException"
        ))
        with pytest.raises(TransactionRejected, match="non-whitelisted"):
            node.get_polled_response_from_node(POSTED)


class TestViews:
    def test_manifest_views(self, hotmoka_node: FakeNode, node: RemoteNode) -> None:
        assert node.get_gamete() == GAMETE
        assert node.get_gas_station() == GAS_STATION
        assert node.get_chain_id() == "chaintest"
        assert node.get_gas_price() == 100
        assert node.ignores_gas_price() is False

    def test_nonce_and_balance(self, hotmoka_node: FakeNode, node: RemoteNode) -> None:
        assert node.get_nonce(GAMETE) == 3
        assert node.get_balance(GAMETE) == 10**21

    def test_view_requests_are_unsigned_calls_by_the_receiver(
        self, hotmoka_node: FakeNode, signed_node: RemoteNode
    ) -> None:
        signed_node.get_nonce(GAMETE)
        body = hotmoka_node.calls_to("/run/instanceMethodCallTransaction")[0]

        assert body["caller"] == models.storage_reference_to_json(GAMETE)
        assert body["receiver"] == body["caller"]
        assert body["gasPrice"] == "0"
        assert body["nonce"] == "0"
        assert body["chainId"] == "chaintest"
        assert body["signature"] == ""
        assert body["classpath"] == models.transaction_reference_to_json(TAKAMAKA_CODE)
        assert body["method"]["methodName"] == "nonce"

    def test_explicit_classpath_skips_lookup(self, hotmoka_node: FakeNode, node: RemoteNode) -> None:
        node.get_nonce(GAMETE, classpath=TransactionReference(OTHER_HASH))
        assert hotmoka_node.calls_to("/get/takamakaCode") == []

    def test_wrong_result_kind(self, hotmoka_node: FakeNode, node: RemoteNode) -> None:
        hotmoka_node.route("/run/instanceMethodCallTransaction", models.storage_value_to_json(StorageValue.of_int(1)))
        with pytest.raises(ProtocolError, match="BigInteger"):
            node.get_balance(GAMETE)

    def test_gamete_must_be_a_reference(self, hotmoka_node: FakeNode, node: RemoteNode) -> None:
        hotmoka_node.route("/run/instanceMethodCallTransaction", models.storage_value_to_json(StorageValue.null()))
        with pytest.raises(ProtocolError, match="getGamete"):
            node.get_gamete()


class TestAdd:
    def test_constructor_call_is_signed_by_caller(
        self, fake_node: FakeNode, signed_node: RemoteNode, key: ed25519.Ed25519PrivateKey
    ) -> None:
        fake_node.route("/add/constructorCallTransaction", models.storage_reference_to_json(NEW_OBJECT))

        assert signed_node.add_constructor_call_transaction(_constructor_request()) == NEW_OBJECT

        body = fake_node.calls_to("/add/constructorCallTransaction")[0]
        sent = _decode(rq.RequestKind.CONSTRUCTOR_CALL, body)
        assert sent == _constructor_request()
        key.public_key().verify(sent.signature, encode_body(sent))

    def test_explicit_signer_wins(self, fake_node: FakeNode, signed_node: RemoteNode) -> None:
        fake_node.route("/add/constructorCallTransaction", models.storage_reference_to_json(NEW_OBJECT))
        signed_node.add_constructor_call_transaction(_constructor_request(), signer=Signer.empty())
        assert fake_node.calls_to("/add/constructorCallTransaction")[0]["signature"] == ""

    def test_instance_method_returning_void(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/add/instanceMethodCallTransaction", httpx.Response(200))
        assert node.add_instance_method_call_transaction(_receive_request(NEW_OBJECT)) is None

    def test_static_method(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route(
            "/add/staticMethodCallTransaction",
            models.storage_value_to_json(StorageValue.of_string("done")),
        )
        request = rq.StaticMethodCallTransactionRequest(
            caller=GAMETE, nonce=5, classpath=TAKAMAKA_CODE, gas_limit=1000, gas_price=1,
            method=signatures.GET_CHAIN_ID,
        )
        assert node.add_static_method_call_transaction(request) == StorageValue.of_string("done")

    def test_jar_store(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/add/jarStoreTransaction", models.transaction_reference_to_json(POSTED))
        request = rq.JarStoreTransactionRequest(
            caller=GAMETE, nonce=6, classpath=TAKAMAKA_CODE, gas_limit=100_000, gas_price=1,
            jar=b"PK\x03\x04", dependencies=(TAKAMAKA_CODE,),
        )
        assert node.add_jar_store_transaction(request) == POSTED
        assert fake_node.calls_to("/add/jarStoreTransaction")[0]["jar"] == "UEsDBA=="

    def test_initial_transactions(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/add/jarStoreInitialTransaction", models.transaction_reference_to_json(TAKAMAKA_CODE))
        fake_node.route("/add/gameteCreationTransaction", models.storage_reference_to_json(GAMETE))
        fake_node.route("/add/initializationTransaction", httpx.Response(200))

        jar = rq.JarStoreInitialTransactionRequest(jar=b"PK\x03\x04")
        gamete = rq.GameteCreationTransactionRequest(classpath=TAKAMAKA_CODE, initial_amount=10**30, public_key="a2V5")
        init = rq.InitializationTransactionRequest(classpath=TAKAMAKA_CODE, manifest=MANIFEST)

        assert node.add_jar_store_initial_transaction(jar) == TAKAMAKA_CODE
        assert node.add_gamete_creation_transaction(gamete) == GAMETE
        assert node.add_initialization_transaction(init) is None
        assert "signature" not in fake_node.calls_to("/add/gameteCreationTransaction")[0]

    def test_rejection_keeps_node_message(self, fake_node: FakeNode, node: RemoteNode) -> None:
        message = "io.hotmoka.beans.TransactionRejectedException: incorrect nonce: the required nonce is 4"
        fake_node.route(
            "/add/constructorCallTransaction",
            FakeNode.error(400, message, "io.hotmoka.beans.TransactionRejectedException"),
        )
        with pytest.raises(TransactionRejected) as excinfo:
            node.add_constructor_call_transaction(_constructor_request())
        assert excinfo.value.message == message

    def test_code_exception(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route(
            "/add/instanceMethodCallTransaction",
            FakeNode.error(400, "java.lang.IllegalStateException: closed", "io.hotmoka.beans.CodeExecutionException"),
        )
        with pytest.raises(CodeExecutionFailed, match="closed"):
            node.add_instance_method_call_transaction(_receive_request(NEW_OBJECT))


class TestRun:
    def test_run_static(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/run/staticMethodCallTransaction", models.storage_value_to_json(StorageValue.of_long(7)))
        request = rq.StaticMethodCallTransactionRequest(
            caller=GAMETE, nonce=0, classpath=TAKAMAKA_CODE, gas_limit=1000, gas_price=0,
            method=signatures.NONCE,
        )
        assert node.run_static_method_call_transaction(request) == StorageValue.of_long(7)

    def test_run_twice_gives_the_same_result(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/run/staticMethodCallTransaction", models.storage_value_to_json(StorageValue.of_long(7)))
        request = rq.StaticMethodCallTransactionRequest(
            caller=GAMETE, nonce=0, classpath=TAKAMAKA_CODE, gas_limit=1000, gas_price=0,
            method=signatures.NONCE,
        )
        first = node.run_static_method_call_transaction(request)
        second = node.run_static_method_call_transaction(request)

        assert first == second == StorageValue.of_long(7)
        sent = fake_node.calls_to("/run/staticMethodCallTransaction")
        assert len(sent) == 2
        assert sent[0] == sent[1]

    def test_malformed_result(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/run/staticMethodCallTransaction", {"type": 5, "value": "7"})
        request = rq.StaticMethodCallTransactionRequest(
            caller=GAMETE, nonce=0, classpath=TAKAMAKA_CODE, gas_limit=1000, gas_price=0,
            method=signatures.NONCE,
        )
        with pytest.raises(ProtocolError):
            node.run_static_method_call_transaction(request)


class TestPost:
    def test_supplier_polls_until_outcome(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/post/constructorCallTransaction", models.transaction_reference_to_json(POSTED))
        fake_node.route_sequence("/get/response", [
            FakeNode.error(404, "unknown transaction", "java.util.NoSuchElementException"),
            models.response_envelope(rs.PendingResponse()),
            models.response_envelope(rs.ConstructorCallTransactionSuccessfulResponse(new_object=NEW_OBJECT)),
        ])

        supplier = node.post_constructor_call_transaction(_constructor_request())
        assert supplier.reference == POSTED
        assert not supplier.done

        assert supplier.get() == NEW_OBJECT
        assert supplier.get() == NEW_OBJECT
        polled = fake_node.calls_to("/get/response")
        assert len(polled) == 3
        assert polled[0] == models.transaction_reference_to_json(POSTED)

    def test_post_returns_before_outcome(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/post/instanceMethodCallTransaction", models.transaction_reference_to_json(POSTED))
        node.post_instance_method_call_transaction(_receive_request(NEW_OBJECT))
        assert fake_node.calls_to("/get/response") == []

    def test_code_exception_is_cached(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/post/instanceMethodCallTransaction", models.transaction_reference_to_json(POSTED))
        failure = rs.MethodCallTransactionExceptionResponse(
            class_name_of_cause="io.takamaka.code.lang.RequirementViolationException",
            message_of_cause="not enough funds",
            where="Shop.java:42",
        )
        fake_node.route("/get/response", models.response_envelope(failure))

        supplier = node.post_instance_method_call_transaction(_receive_request(NEW_OBJECT))
        for _ in range(2):
            with pytest.raises(CodeExecutionFailed, match="not enough funds"):
                supplier.get()
        assert len(fake_node.calls_to("/get/response")) == 1

    def test_rejected_while_polling(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/post/staticMethodCallTransaction", models.transaction_reference_to_json(POSTED))
        fake_node.route("/get/response", FakeNode.error(
            400, "out of gas", "io.hotmoka.beans.TransactionRejectedException"
        ))
        request = rq.StaticMethodCallTransactionRequest(
            caller=GAMETE, nonce=0, classpath=TAKAMAKA_CODE, gas_limit=1, gas_price=0, method=signatures.NONCE,
        )
        with pytest.raises(TransactionRejected, match="out of gas"):
            node.post_static_method_call_transaction(request).get()

    def test_incomplete_classpath_is_rejected(self, fake_node: FakeNode, node: RemoteNode) -> None:
        message = (
            "io.hotmoka.beans.TransactionRejectedException: "
            "io.takamaka.code.verification.IncompleteClasspathError: java.lang.NoClassDefFoundError: lib/Helper"
        )
        fake_node.route("/post/jarStoreTransaction", models.transaction_reference_to_json(POSTED))
        fake_node.route("/get/response", FakeNode.error(400, message, "io.hotmoka.beans.TransactionRejectedException"))
        request = rq.JarStoreTransactionRequest(
            caller=GAMETE, nonce=2, classpath=TAKAMAKA_CODE, gas_limit=100_000, gas_price=1, jar=b"PK\x03\x04",
        )

        supplier = node.post_jar_store_transaction(request)
        with pytest.raises(TransactionRejected) as excinfo:
            supplier.get()
        assert excinfo.value.message == message
        assert "IncompleteClasspathError" in str(excinfo.value)

    def test_timeout(self, fake_node: FakeNode, node: RemoteNode) -> None:
        fake_node.route("/post/jarStoreTransaction", models.transaction_reference_to_json(POSTED))
        fake_node.route("/get/response", models.response_envelope(rs.PendingResponse()))
        request = rq.JarStoreTransactionRequest(
            caller=GAMETE, nonce=1, classpath=TAKAMAKA_CODE, gas_limit=1, gas_price=0, jar=b"jar",
        )
        with pytest.raises(PollTimeout):
            node.post_jar_store_transaction(request).get()
        assert len(fake_node.calls_to("/get/response")) == node.config.polling.max_attempts

    @pytest.mark.parametrize(
        "reply",
        [["not", "a", "reference"], {"type": "local", "hash": None}, {"hash": "ee"}, httpx.Response(200)],
    )
    def test_post_must_return_a_reference(self, fake_node: FakeNode, node: RemoteNode, reply) -> None:
        fake_node.route("/post/jarStoreTransaction", reply)
        request = rq.JarStoreTransactionRequest(
            caller=GAMETE, nonce=1, classpath=TAKAMAKA_CODE, gas_limit=1, gas_price=0, jar=b"jar",
        )
        with pytest.raises(ProtocolError):
            node.post_jar_store_transaction(request)


class TestEvents:
    def test_subscribe_and_publish(self, node_config: NodeConfig, rest: RestClient, eventually) -> None:
        broker = FakeBroker()
        url = node_config.events_url
        events = EventManager(url, client=StompClient(url, timeout=1.0, connector=broker.connect))
        received: list = []

        with RemoteNode(node_config, rest=rest, events=events) as remote:
            watcher = remote.subscribe_to_events(GAMETE, lambda event, creator: received.append((event, creator)))
            remote.publish_event(Event(NEW_OBJECT, GAMETE))
            remote.publish_event(Event(StorageReference(POSTED, 1), MANIFEST))
            assert eventually(lambda: received == [(NEW_OBJECT, GAMETE)])
            watcher.close()

        assert broker.socket.commands()[-1] == "DISCONNECT"

    def test_events_url(self) -> None:
        assert NodeConfig(url="http://node.test:8080/").events_url == "ws://node.test:8080/node"
        assert NodeConfig(url="https://node.test").events_url == "wss://node.test/node"
        assert NodeConfig(websocket_url="ws://elsewhere/stomp").events_url == "ws://elsewhere/stomp"

    def test_published_event_json(self, node_config: NodeConfig, rest: RestClient) -> None:
        broker = FakeBroker()
        url = node_config.events_url
        events = EventManager(url, client=StompClient(url, timeout=1.0, connector=broker.connect))
        with RemoteNode(node_config, rest=rest, events=events) as remote:
            remote.publish_event(Event(NEW_OBJECT, GAMETE))
            send = broker.socket.sent[-1]
        assert json.loads(send.body) == models.event_to_json(Event(NEW_OBJECT, GAMETE))
