"""
Remote node: the typed face of the REST endpoints.

Every signed request goes through the same path: sign the canonical body with
the caller's signer, serialize its JSON model, hit ``/add``, ``/run`` or
``/post`` for its kind, and decode what comes back. ``add`` and ``run`` block
for one round trip; ``post`` returns a ``Supplier`` at once.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from ..beans import requests as rq
from ..beans import signatures
from ..beans.references import StorageReference, TransactionReference
from ..beans.responses import TransactionResponse
from ..beans.updates import ClassTag, Event, State
from ..beans.values import StorageValue, ValueKind
from ..config import NodeConfig
from ..crypto.signer import Keyring, Signer, sign_request
from ..errors import ProtocolError
from . import models
from .events import EventHandler, EventManager, Watcher
from .polling import Poller, Supplier
from .rest import RestClient

logger = logging.getLogger(__name__)

_RUN_GAS_LIMIT = 100_000


class RemoteNode:
    def __init__(
        self,
        config: Optional[NodeConfig] = None,
        keyring: Optional[Keyring] = None,
        rest: Optional[RestClient] = None,
        events: Optional[EventManager] = None,
    ) -> None:
        self.config = config or NodeConfig()
        self.keyring = keyring or Keyring()
        self.rest = rest or RestClient(self.config.url, timeout=self.config.timeout)
        self.poller = Poller(self.get_response, self.config.polling)
        self._events = events
        self._events_lock = threading.Lock()

    # ============ Lifecycle ============

    def close(self) -> None:
        with self._events_lock:
            events, self._events = self._events, None
        try:
            if events is not None:
                events.close()
        finally:
            self.rest.close()

    def __enter__(self) -> "RemoteNode":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ============ Queries ============

    def get_takamaka_code(self) -> TransactionReference:
        return models.transaction_reference_from_reply(self.rest.get("/get/takamakaCode"), self.rest.registry)

    def get_manifest(self) -> StorageReference:
        return models.storage_reference_from_reply(self.rest.get("/get/manifest"), self.rest.registry)

    def get_state(self, reference: StorageReference) -> State:
        body = self.rest.post("/get/state", models.storage_reference_to_json(reference))
        return models.state_from_json(body, self.rest.registry)

    def get_class_tag(self, reference: StorageReference) -> ClassTag:
        body = self.rest.post("/get/classTag", models.storage_reference_to_json(reference))
        return models.class_tag_from_json(body, self.rest.registry)

    def get_request(self, reference: TransactionReference) -> rq.TransactionRequest:
        body = self.rest.post("/get/request", models.transaction_reference_to_json(reference))
        return models.request_from_envelope(body, self.rest.registry)

    def get_response(self, reference: TransactionReference) -> TransactionResponse:
        """
        Fetch the response of a transaction.

        Raises:
            UnknownReference: If the node has no response for ``reference`` yet
            TransactionRejected: If the node rejected the request
        """
        body = self.rest.post("/get/response", models.transaction_reference_to_json(reference))
        return models.response_from_envelope(body, self.rest.registry)

    def get_polled_response(
        self,
        reference: TransactionReference,
        cancel: Optional[threading.Event] = None,
    ) -> TransactionResponse:
        """Poll ``get_response`` until a terminal response shows up (see ``Poller.poll``)."""
        return self.poller.poll(reference, cancel)

    def get_polled_response_from_node(self, reference: TransactionReference) -> TransactionResponse:
        """
        Let the node wait for the response (``/get/polledResponse``).

        Raises:
            PollTimeout: If the node gives up before the response shows up
            TransactionRejected: If the node rejected the request
        """
        body = self.rest.post("/get/polledResponse", models.transaction_reference_to_json(reference))
        return models.response_from_envelope(body, self.rest.registry)

    def get_signature_algorithm(self) -> str:
        body = self.rest.get("/get/signatureAlgorithmForRequests")
        self.rest.registry.validate_instance(body, "signature-algorithm.schema.json")
        return body["algorithm"]

    # ============ Dispatch ============

    def _sign(self, request: rq.TransactionRequest, signer: Optional[Signer]) -> rq.TransactionRequest:
        if signer is not None:
            return sign_request(request, signer)
        return self.keyring.sign(request)

    def _submit(self, action: str, request: rq.TransactionRequest, signer: Optional[Signer] = None) -> Any:
        signed = self._sign(request, signer)
        path = f"/{action}/{request.KIND.endpoint}"
        return self.rest.post(path, models.request_to_json(signed))

    def _value(self, body: Any) -> Optional[StorageValue]:
        return models.storage_value_from_reply(body, self.rest.registry)

    def _transaction_reference(self, body: Any) -> TransactionReference:
        return models.transaction_reference_from_reply(body, self.rest.registry)

    def _storage_reference(self, body: Any) -> StorageReference:
        return models.storage_reference_from_reply(body, self.rest.registry)

    def _supplier(self, body: Any) -> Supplier:
        reference = self._transaction_reference(body)
        logger.debug("Posted transaction %s", reference)
        return Supplier(reference, self.poller)

    # ============ Initial transactions ============

    def add_jar_store_initial_transaction(self, request: rq.JarStoreInitialTransactionRequest) -> TransactionReference:
        return self._transaction_reference(self._submit("add", request))

    def add_gamete_creation_transaction(self, request: rq.GameteCreationTransactionRequest) -> StorageReference:
        return self._storage_reference(self._submit("add", request))

    def add_red_green_gamete_creation_transaction(
        self, request: rq.RedGreenGameteCreationTransactionRequest
    ) -> StorageReference:
        return self._storage_reference(self._submit("add", request))

    def add_initialization_transaction(self, request: rq.InitializationTransactionRequest) -> None:
        self._submit("add", request)

    # ============ Add ============

    def add_jar_store_transaction(
        self, request: rq.JarStoreTransactionRequest, signer: Optional[Signer] = None
    ) -> TransactionReference:
        return self._transaction_reference(self._submit("add", request, signer))

    def add_constructor_call_transaction(
        self, request: rq.ConstructorCallTransactionRequest, signer: Optional[Signer] = None
    ) -> StorageReference:
        return self._storage_reference(self._submit("add", request, signer))

    def add_instance_method_call_transaction(
        self, request: rq.InstanceMethodCallTransactionRequest, signer: Optional[Signer] = None
    ) -> Optional[StorageValue]:
        return self._value(self._submit("add", request, signer))

    def add_static_method_call_transaction(
        self, request: rq.StaticMethodCallTransactionRequest, signer: Optional[Signer] = None
    ) -> Optional[StorageValue]:
        return self._value(self._submit("add", request, signer))

    # ============ Run ============

    def run_instance_method_call_transaction(
        self, request: rq.InstanceMethodCallTransactionRequest, signer: Optional[Signer] = None
    ) -> Optional[StorageValue]:
        return self._value(self._submit("run", request, signer))

    def run_static_method_call_transaction(
        self, request: rq.StaticMethodCallTransactionRequest, signer: Optional[Signer] = None
    ) -> Optional[StorageValue]:
        return self._value(self._submit("run", request, signer))

    # ============ Post ============

    def post_jar_store_transaction(
        self, request: rq.JarStoreTransactionRequest, signer: Optional[Signer] = None
    ) -> Supplier[TransactionReference]:
        return self._supplier(self._submit("post", request, signer))

    def post_constructor_call_transaction(
        self, request: rq.ConstructorCallTransactionRequest, signer: Optional[Signer] = None
    ) -> Supplier[StorageReference]:
        return self._supplier(self._submit("post", request, signer))

    def post_instance_method_call_transaction(
        self, request: rq.InstanceMethodCallTransactionRequest, signer: Optional[Signer] = None
    ) -> Supplier[Optional[StorageValue]]:
        return self._supplier(self._submit("post", request, signer))

    def post_static_method_call_transaction(
        self, request: rq.StaticMethodCallTransactionRequest, signer: Optional[Signer] = None
    ) -> Supplier[Optional[StorageValue]]:
        return self._supplier(self._submit("post", request, signer))

    # ============ Views ============

    def _view(
        self,
        method: signatures.MethodSignature,
        receiver: StorageReference,
        classpath: Optional[TransactionReference] = None,
        caller: Optional[StorageReference] = None,
    ) -> Optional[StorageValue]:
        request = rq.InstanceMethodCallTransactionRequest(
            caller=caller or receiver,
            nonce=0,
            classpath=classpath or self.get_takamaka_code(),
            gas_limit=_RUN_GAS_LIMIT,
            gas_price=0,
            chain_id=self.config.chain_id,
            method=method,
            receiver=receiver,
        )
        return self.run_instance_method_call_transaction(request, signer=Signer.empty())

    def _view_reference(self, method: signatures.MethodSignature, receiver: StorageReference) -> StorageReference:
        value = self._view(method, receiver)
        reference = value.as_reference() if value is not None else None
        if reference is None:
            raise ProtocolError(f"{method.name} returned {value}, not a storage reference")
        return reference

    def get_gamete(self) -> StorageReference:
        return self._view_reference(signatures.GET_GAMETE, self.get_manifest())

    def get_gas_station(self) -> StorageReference:
        return self._view_reference(signatures.GET_GAS_STATION, self.get_manifest())

    def get_gas_price(self) -> int:
        return _expect(self._view(signatures.GET_GAS_PRICE, self.get_gas_station()), ValueKind.BIG_INTEGER)

    def ignores_gas_price(self) -> bool:
        return _expect(self._view(signatures.IGNORES_GAS_PRICE, self.get_gas_station()), ValueKind.BOOLEAN)

    def get_chain_id(self) -> str:
        return _expect(self._view(signatures.GET_CHAIN_ID, self.get_manifest()), ValueKind.STRING)

    def get_nonce(self, account: StorageReference, classpath: Optional[TransactionReference] = None) -> int:
        return _expect(self._view(signatures.NONCE, account, classpath), ValueKind.BIG_INTEGER)

    def get_balance(self, contract: StorageReference) -> int:
        return _expect(self._view(signatures.BALANCE, contract), ValueKind.BIG_INTEGER)

    # ============ Events ============

    @property
    def events(self) -> EventManager:
        with self._events_lock:
            if self._events is None:
                self._events = EventManager(self.config.events_url)
            return self._events

    def subscribe_to_events(self, creator: Optional[StorageReference], handler: EventHandler) -> Watcher:
        """
        Call ``handler(event, creator)`` for events of ``creator``, or for every event if it is None.

        Returns:
            A watcher; close it to stop receiving events
        """
        return self.events.watch(creator, handler)

    def publish_event(self, event: Event) -> None:
        self.events.publish(event)


def _expect(value: Optional[StorageValue], kind: ValueKind) -> Any:
    if value is None or value.kind is not kind:
        raise ProtocolError(f"Expected a {kind.value} result, got {value}")
    return value.payload
