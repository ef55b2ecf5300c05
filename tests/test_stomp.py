"""Tests for the STOMP framing and client, against an in-memory broker."""

from __future__ import annotations

import json
import threading

import pytest

from hotmoka.errors import ProtocolError, TransportError
from hotmoka.network.stomp import Frame, StompClient, parse_frame

from fakes import FakeBroker, FakeWebSocket

URL = "ws://node.test/node"


class _FailingSocket(FakeWebSocket):
    """Raises an unexpected error when it receives FAILURE."""

    FAILURE = "fail"

    def recv(self, timeout=None) -> str:
        data = super().recv(timeout)
        if data == self.FAILURE:
            raise RuntimeError("socket failure")
        return data


@pytest.fixture()
def client(broker: FakeBroker) -> StompClient:
    stomp = StompClient(URL, timeout=1.0, connector=broker.connect)
    yield stomp
    stomp.disconnect()


class TestFrames:
    def test_encode(self) -> None:
        frame = Frame("SEND", {"destination": "/events"}, '{"a":1}')
        assert frame.encode() == 'SEND\ndestination:/events\n\n{"a":1}\0'

    def test_header_escaping(self) -> None:
        frame = Frame("MESSAGE", {"key:1": "line\nbreak\\"}, "")
        assert "key\\c1:line\\nbreak\\\\" in frame.encode()
        assert parse_frame(frame.encode()) == frame

    def test_connect_headers_are_not_escaped(self) -> None:
        frame = Frame("CONNECT", {"host": "a:b"})
        assert "host:a:b" in frame.encode()
        assert parse_frame(frame.encode()).headers == {"host": "a:b"}

    def test_parse_bytes_and_crlf(self) -> None:
        frame = parse_frame(b"MESSAGE\r\nsubscription:0\r\n\r\nbody\0")
        assert frame == Frame("MESSAGE", {"subscription": "0"}, "body")

    def test_repeated_header(self) -> None:
        frame = parse_frame("MESSAGE\nfoo:first\nfoo:second\n\n\0")
        assert frame.headers["foo"] == "first"

    def test_heartbeat(self) -> None:
        assert parse_frame("\n") is None

    @pytest.mark.parametrize("data", ["MESSAGE\nno-colon\n\n\0", "MESSAGE\nfoo:bar\0"])
    def test_malformed(self, data: str) -> None:
        with pytest.raises(ProtocolError):
            parse_frame(data)


class TestConnection:
    def test_connect(self, client: StompClient, broker: FakeBroker) -> None:
        client.connect()
        assert client.connected
        connect = broker.socket.sent[0]
        assert connect.command == "CONNECT"
        assert connect.headers["accept-version"] == "1.2"
        assert connect.headers["host"] == "node.test"

    def test_connect_twice_opens_one_socket(self, client: StompClient, broker: FakeBroker) -> None:
        client.connect()
        client.connect()
        assert len(broker.sockets) == 1

    def test_refused(self) -> None:
        broker = FakeBroker(refuse=True)
        client = StompClient(URL, timeout=1.0, connector=broker.connect)
        with pytest.raises(TransportError, match="access denied"):
            client.connect()
        assert not client.connected
        assert broker.socket.closed

    def test_unreachable(self) -> None:
        def connector(url: str, timeout: float):
            raise OSError("connection refused")

        with pytest.raises(TransportError, match="Cannot connect"):
            StompClient(URL, connector=connector).connect()

    def test_disconnect(self, client: StompClient, broker: FakeBroker) -> None:
        client.connect()
        client.disconnect()
        assert not client.connected
        assert broker.socket.commands()[-1] == "DISCONNECT"
        assert broker.socket.closed

    def test_disconnect_without_connect(self, client: StompClient) -> None:
        client.disconnect()
        assert not client.connected

    def test_context_manager(self, broker: FakeBroker) -> None:
        with StompClient(URL, timeout=1.0, connector=broker.connect) as client:
            assert client.connected
        assert broker.socket.closed


class TestSubscriptions:
    def test_messages_reach_handler(self, client: StompClient, broker: FakeBroker, eventually) -> None:
        received: list = []
        client.connect()
        client.subscribe("/topic/events", lambda payload: payload["n"], received.append)

        broker.broadcast("/topic/events", json.dumps({"n": 1}))
        broker.broadcast("/topic/events", json.dumps({"n": 2}))
        broker.broadcast("/topic/other", json.dumps({"n": 3}))

        assert eventually(lambda: received == [1, 2])

    def test_subscribe_waits_for_receipt(self, client: StompClient, broker: FakeBroker) -> None:
        client.connect()
        seen: list = []

        def on_subscribed() -> None:
            seen.append(len(broker.subscriptions))

        client.subscribe("/topic/events", dict, lambda payload: None, on_subscribed=on_subscribed)
        subscribe = broker.socket.sent[-1]
        assert subscribe.command == "SUBSCRIBE"
        assert subscribe.headers["receipt"] == f"subscribe-{subscribe.headers['id']}"
        assert seen == [1]

    def test_publish_from_on_subscribed_is_delivered(
        self, client: StompClient, broker: FakeBroker, eventually
    ) -> None:
        received: list = []
        client.connect()
        client.subscribe(
            "/topic/events",
            dict,
            received.append,
            on_subscribed=lambda: client.publish("/events", {"hello": "world"}),
        )
        assert eventually(lambda: received == [{"hello": "world"}])

    def test_missing_receipt_times_out(self) -> None:
        broker = FakeBroker(confirm=False)
        client = StompClient(URL, timeout=0.2, connector=broker.connect)
        client.connect()
        called = threading.Event()
        with pytest.raises(TransportError, match="not confirmed"):
            client.subscribe("/topic/events", dict, lambda payload: None, on_subscribed=called.set)
        assert not called.is_set()
        # the topic is free again
        broker.confirm = True
        client.subscribe("/topic/events", dict, lambda payload: None)
        client.disconnect()

    def test_duplicate_topic(self, client: StompClient) -> None:
        client.connect()
        client.subscribe("/topic/events", dict, lambda payload: None)
        with pytest.raises(ValueError, match="Already subscribed"):
            client.subscribe("/topic/events", dict, lambda payload: None)

    def test_not_connected(self, client: StompClient) -> None:
        with pytest.raises(TransportError, match="Not connected"):
            client.subscribe("/topic/events", dict, lambda payload: None)
        with pytest.raises(TransportError, match="Not connected"):
            client.publish("/events", {})

    def test_handler_errors_are_isolated(self, client: StompClient, broker: FakeBroker, eventually) -> None:
        received: list = []

        def handler(payload: dict) -> None:
            if payload["n"] == 1:
                raise RuntimeError("boom")
            received.append(payload["n"])

        client.connect()
        client.subscribe("/topic/events", dict, handler)
        for n in (1, 2):
            broker.broadcast("/topic/events", json.dumps({"n": n}))
        assert eventually(lambda: received == [2])

    def test_undecodable_messages_are_dropped(self, client: StompClient, broker: FakeBroker, eventually) -> None:
        received: list = []
        client.connect()
        client.subscribe("/topic/events", dict, received.append)
        broker.broadcast("/topic/events", "not json")
        broker.broadcast("/topic/events", json.dumps({"ok": True}))
        assert eventually(lambda: received == [{"ok": True}])

    def test_unsubscribe(self, client: StompClient, broker: FakeBroker) -> None:
        client.connect()
        subscription = client.subscribe("/topic/events", dict, lambda payload: None)
        subscription.close()

        assert broker.socket.commands()[-1] == "UNSUBSCRIBE"
        assert broker.subscriptions == []
        assert not subscription.active

    def test_no_handler_runs_after_disconnect(self, client: StompClient, broker: FakeBroker) -> None:
        received: list = []
        client.connect()
        subscription = client.subscribe("/topic/events", dict, received.append)
        client.disconnect()
        subscription.deliver(json.dumps({"late": True}))
        assert not subscription.active
        assert received == []

    def test_peer_close_stops_subscriptions(self, client: StompClient, broker: FakeBroker, eventually) -> None:
        client.connect()
        subscription = client.subscribe("/topic/events", dict, lambda payload: None)
        broker.socket.close()
        assert eventually(lambda: not client.connected and not subscription.active)

    def test_reader_failure_closes_connection(self, broker: FakeBroker, eventually) -> None:
        def connector(url: str, timeout: float) -> FakeWebSocket:
            socket = _FailingSocket(broker)
            broker.sockets.append(socket)
            return socket

        client = StompClient(URL, timeout=1.0, connector=connector)
        client.connect()
        subscription = client.subscribe("/topic/events", dict, lambda payload: None)
        broker.socket.push_raw(_FailingSocket.FAILURE)

        assert eventually(lambda: not client.connected and not subscription.active)
        assert broker.socket.closed
        # the topic can be subscribed again on a fresh connection
        client.connect()
        client.subscribe("/topic/events", dict, lambda payload: None)
        client.disconnect()

    def test_publish_is_canonical(self, client: StompClient, broker: FakeBroker) -> None:
        client.connect()
        client.publish("/events", {"b": 1, "a": 2})
        send = broker.socket.sent[-1]
        assert send.command == "SEND"
        assert send.headers["destination"] == "/events"
        assert send.body == '{"a":2,"b":1}'
