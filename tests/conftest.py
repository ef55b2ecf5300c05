"""Shared fixtures; the fakes they hand out live in ``fakes.py``."""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from hotmoka.beans.references import StorageReference, TransactionReference
from hotmoka.config import NodeConfig
from hotmoka.crypto.signer import Keyring, Signer
from hotmoka.network.node import RemoteNode
from hotmoka.network.polling import PollingPolicy
from hotmoka.network.rest import RestClient

from fakes import BASE_URL, HASH, FakeBroker, FakeNode, script_initialized_node, wait_until


@pytest.fixture()
def transaction() -> TransactionReference:
    return TransactionReference(HASH)


@pytest.fixture()
def account(transaction: TransactionReference) -> StorageReference:
    return StorageReference(transaction, 0)


@pytest.fixture()
def fake_node() -> FakeNode:
    return FakeNode()


@pytest.fixture()
def hotmoka_node(fake_node: FakeNode) -> FakeNode:
    """A fake node already answering the queries of an initialized node."""
    return script_initialized_node(fake_node)


@pytest.fixture()
def rest(fake_node: FakeNode) -> RestClient:
    client = RestClient(BASE_URL, transport=httpx.MockTransport(fake_node.handler))
    yield client
    client.close()


@pytest.fixture()
def node_config() -> NodeConfig:
    return NodeConfig(
        url=BASE_URL,
        chain_id="chaintest",
        polling=PollingPolicy(interval=0.0, backoff=1.0, max_attempts=5),
    )


@pytest.fixture()
def node(node_config: NodeConfig, rest: RestClient) -> RemoteNode:
    remote = RemoteNode(node_config, keyring=Keyring(default=Signer.empty()), rest=rest)
    yield remote
    remote.close()


@pytest.fixture()
def broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture()
def eventually() -> Callable[..., bool]:
    return wait_until
