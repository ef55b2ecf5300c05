"""
Minimal STOMP 1.2 client over a websocket.

The node publishes events through a STOMP broker reachable at ``ws://<host>/node``.
``StompClient`` keeps one websocket open. A reader thread takes frames off the
socket and routes MESSAGE frames to the queue of their ``Subscription``; each
subscription drains its queue on its own dispatch thread, so a slow handler
never holds up the socket.
"""

from __future__ import annotations

import itertools
import json
import logging
import queue
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional
from urllib.parse import urlparse

import rfc8785
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import connect as ws_connect

from ..errors import HotmokaError, ProtocolError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r", ":": "\\c"}
_UNESCAPES = {"\\\\": "\\", "\\n": "\n", "\\r": "\r", "\\c": ":"}
_HEADER_END = re.compile(r"\r?\n\r?\n")


def _escape(value: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def _unescape(value: str) -> str:
    out, i = [], 0
    while i < len(value):
        pair = value[i:i + 2]
        if pair in _UNESCAPES:
            out.append(_UNESCAPES[pair])
            i += 2
        else:
            out.append(value[i])
            i += 1
    return "".join(out)


@dataclass(frozen=True)
class Frame:
    command: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    def encode(self) -> str:
        raw = self.command in ("CONNECT", "CONNECTED")
        lines = [self.command]
        for key, value in self.headers.items():
            lines.append(f"{key}:{value}" if raw else f"{_escape(key)}:{_escape(value)}")
        return "\n".join(lines) + "\n\n" + self.body + "\0"


def parse_frame(data: str | bytes) -> Optional[Frame]:
    """Parse one frame; heart-beats (bare end-of-lines) give None."""
    text = data.decode("utf-8") if isinstance(data, bytes) else data
    text = text.lstrip("\r\n")
    if not text:
        return None
    end = _HEADER_END.search(text)
    if end is None:
        raise ProtocolError(f"Malformed STOMP frame: {text[:80]!r}")
    head, rest = text[:end.start()], text[end.end():]
    lines = head.replace("\r\n", "\n").split("\n")
    command = lines[0]
    raw = command in ("CONNECT", "CONNECTED")
    headers: dict[str, str] = {}
    for line in lines[1:]:
        key, colon, value = line.partition(":")
        if not colon:
            raise ProtocolError(f"Malformed STOMP header: {line!r}")
        # the first occurrence of a repeated header wins
        headers.setdefault(key if raw else _unescape(key), value if raw else _unescape(value))
    body, _, _ = rest.partition("\0")
    return Frame(command, headers, body)


_STOP = object()


class Subscription:
    """
    Handle on one topic subscription.

    It owns a single-consumer queue fed by the client's reader thread and a
    dispatch thread that decodes each payload and hands it to the handler.
    """

    def __init__(
        self,
        client: "StompClient",
        subscription_id: str,
        topic: str,
        decoder: Callable[[Any], Any],
        handler: Callable[[Any], None],
    ) -> None:
        self.client = client
        self.id = subscription_id
        self.topic = topic
        self.decoder = decoder
        self.handler = handler
        self._queue: queue.Queue = queue.Queue()
        self._closed = threading.Event()
        self._thread = threading.Thread(target=self._dispatch, name=f"stomp-{topic}", daemon=True)
        self._thread.start()

    @property
    def active(self) -> bool:
        return not self._closed.is_set()

    def deliver(self, body: str) -> None:
        if not self._closed.is_set():
            self._queue.put(body)

    def _dispatch(self) -> None:
        while True:
            body = self._queue.get()
            if body is _STOP or self._closed.is_set():
                return
            try:
                payload = self.decoder(json.loads(body))
            except (ValueError, HotmokaError) as exc:
                logger.warning("Dropping undecodable message on %s: %s", self.topic, exc)
                continue
            try:
                self.handler(payload)
            except Exception:  # noqa: BLE001
                logger.exception("Handler for %s raised", self.topic)

    def stop(self) -> None:
        """Stop dispatching; queued messages are dropped, a running handler completes."""
        self._closed.set()
        self._queue.put(_STOP)
        if threading.current_thread() is not self._thread:
            self._thread.join()

    def close(self) -> None:
        self.client.unsubscribe(self)


class _Receipt:
    def __init__(self) -> None:
        self.event = threading.Event()
        self.error: Optional[str] = None


def _default_connector(url: str, timeout: float) -> Any:
    return ws_connect(url, open_timeout=timeout, close_timeout=timeout)


class StompClient:
    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        connector: Callable[[str, float], Any] = _default_connector,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._connector = connector
        self._ws: Any = None
        self._reader: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._ids = itertools.count()
        self._by_id: dict[str, Subscription] = {}
        self._by_topic: dict[str, Subscription] = {}
        self._receipts: dict[str, _Receipt] = {}
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    # ============ Connection ============

    def connect(self) -> None:
        """Open the websocket and complete the STOMP handshake.

        Raises:
            TransportError: If the socket cannot be opened or the broker refuses
        """
        with self._lock:
            if self._connected:
                return
            try:
                self._ws = self._connector(self.url, self.timeout)
            except (OSError, TimeoutError, WebSocketException) as exc:
                raise TransportError(f"Cannot connect to {self.url}: {exc}") from exc

            host = urlparse(self.url).hostname or "localhost"
            try:
                self._send(Frame("CONNECT", {"accept-version": "1.2", "host": host, "heart-beat": "0,0"}))
                frame = self._read_handshake()
            except (ConnectionClosed, TimeoutError, ProtocolError) as exc:
                self._ws.close()
                raise TransportError(f"STOMP handshake with {self.url} failed: {exc}") from exc

            if frame.command != "CONNECTED":
                self._ws.close()
                raise TransportError(f"STOMP handshake refused: {frame.headers.get('message', frame.body)}")

            self._connected = True
            self._reader = threading.Thread(target=self._read_loop, name="stomp-reader", daemon=True)
            self._reader.start()
        logger.info("Connected to %s", self.url)

    def _read_handshake(self) -> Frame:
        while True:
            frame = parse_frame(self._ws.recv(timeout=self.timeout))
            if frame is not None:
                return frame

    def _send(self, frame: Frame) -> None:
        logger.debug("> %s %s", frame.command, frame.headers.get("destination", ""))
        with self._send_lock:
            self._ws.send(frame.encode())

    def _read_loop(self) -> None:
        ws = self._ws
        try:
            while True:
                try:
                    data = ws.recv()
                except ConnectionClosed:
                    break
                try:
                    frame = parse_frame(data)
                except ProtocolError as exc:
                    logger.warning("Ignoring frame: %s", exc)
                    continue
                if frame is not None:
                    self._route(frame)
        except Exception:  # noqa: BLE001
            logger.exception("STOMP reader for %s failed", self.url)
        finally:
            self._on_closed(ws)

    def _route(self, frame: Frame) -> None:
        logger.debug("< %s", frame.command)
        if frame.command == "MESSAGE":
            with self._lock:
                subscription = self._by_id.get(frame.headers.get("subscription", ""))
            if subscription is not None:
                subscription.deliver(frame.body)
        elif frame.command == "RECEIPT":
            with self._lock:
                receipt = self._receipts.pop(frame.headers.get("receipt-id", ""), None)
            if receipt is not None:
                receipt.event.set()
        elif frame.command == "ERROR":
            message = frame.headers.get("message") or frame.body
            logger.warning("Broker error: %s", message)
            with self._lock:
                pending = list(self._receipts.values())
                self._receipts.clear()
            for receipt in pending:
                receipt.error = message
                receipt.event.set()

    def _on_closed(self, ws: Any) -> None:
        with self._lock:
            if ws is not self._ws:
                return
            was_connected, self._connected = self._connected, False
            pending = list(self._receipts.values())
            self._receipts.clear()
            subscriptions = list(self._by_id.values())
            self._by_id.clear()
            self._by_topic.clear()
        ws.close()
        for receipt in pending:
            receipt.error = "connection closed"
            receipt.event.set()
        if was_connected:
            logger.info("Connection to %s closed by the peer", self.url)
            for subscription in subscriptions:
                subscription.stop()

    # ============ Subscriptions ============

    def subscribe(
        self,
        topic: str,
        decoder: Callable[[Any], Any],
        handler: Callable[[Any], None],
        on_subscribed: Optional[Callable[[], None]] = None,
    ) -> Subscription:
        """
        Subscribe ``handler`` to ``topic`` and wait until the broker confirms.

        Messages are decoded with ``decoder`` before reaching ``handler``.
        ``on_subscribed`` runs only after the confirmation, so anything it
        publishes is delivered.

        Raises:
            ValueError: If ``topic`` already has a handler
            TransportError: If the broker does not confirm in time
        """
        with self._lock:
            if not self._connected:
                raise TransportError(f"Not connected to {self.url}")
            if topic in self._by_topic:
                raise ValueError(f"Already subscribed to {topic}")
            subscription_id = str(next(self._ids))
            subscription = Subscription(self, subscription_id, topic, decoder, handler)
            receipt_id = f"subscribe-{subscription_id}"
            receipt = _Receipt()
            self._by_id[subscription_id] = subscription
            self._by_topic[topic] = subscription
            self._receipts[receipt_id] = receipt

        try:
            self._send(Frame("SUBSCRIBE", {
                "id": subscription_id,
                "destination": topic,
                "ack": "auto",
                "receipt": receipt_id,
            }))
            if not receipt.event.wait(self.timeout):
                raise TransportError(f"Subscription to {topic} not confirmed within {self.timeout}s")
            if receipt.error is not None:
                raise TransportError(f"Subscription to {topic} failed: {receipt.error}")
        except ConnectionClosed as exc:
            self._abandon(subscription, receipt_id)
            raise TransportError(f"Subscription to {topic} failed: {exc}") from exc
        except TransportError:
            self._abandon(subscription, receipt_id)
            raise

        logger.debug("Subscribed to %s as %s", topic, subscription_id)
        if on_subscribed is not None:
            on_subscribed()
        return subscription

    def _forget(self, subscription: Subscription, receipt_id: Optional[str] = None) -> bool:
        with self._lock:
            if receipt_id is not None:
                self._receipts.pop(receipt_id, None)
            known = self._by_id.pop(subscription.id, None) is not None
            self._by_topic.pop(subscription.topic, None)
        return known

    def _abandon(self, subscription: Subscription, receipt_id: str) -> None:
        self._forget(subscription, receipt_id)
        subscription.stop()

    def unsubscribe(self, subscription: Subscription) -> None:
        if self._forget(subscription) and self._connected:
            try:
                self._send(Frame("UNSUBSCRIBE", {"id": subscription.id}))
            except ConnectionClosed:
                logger.debug("Connection already closed while unsubscribing from %s", subscription.topic)
        subscription.stop()

    def publish(self, destination: str, payload: Any) -> None:
        if not self._connected:
            raise TransportError(f"Not connected to {self.url}")
        body = rfc8785.dumps(payload).decode("utf-8")
        try:
            self._send(Frame("SEND", {"destination": destination, "content-type": "application/json"}, body))
        except ConnectionClosed as exc:
            raise TransportError(f"Cannot publish to {destination}: {exc}") from exc

    def disconnect(self) -> None:
        """
        Stop every subscription and close the connection.

        Handlers already running complete before this returns; none is
        invoked afterwards.
        """
        with self._lock:
            was_connected, self._connected = self._connected, False
            subscriptions = list(self._by_id.values())
            self._by_id.clear()
            self._by_topic.clear()

        for subscription in subscriptions:
            subscription.stop()

        if self._ws is None:
            return
        try:
            if was_connected:
                self._send(Frame("DISCONNECT"))
        except ConnectionClosed:
            logger.debug("Connection already closed")
        finally:
            self._ws.close()
            if self._reader is not None and threading.current_thread() is not self._reader:
                self._reader.join(self.timeout)
        logger.info("Disconnected from %s", self.url)

    def __enter__(self) -> "StompClient":
        self.connect()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.disconnect()
