"""
Per-creator event watchers multiplexed over one STOMP subscription.

The node broadcasts every event on ``/topic/events``. ``EventManager``
subscribes once, on the first watcher, and hands each decoded event to the
watchers whose creator matches; watchers registered without a creator see
every event.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from ..beans.references import StorageReference
from ..beans.updates import Event
from . import models
from .stomp import StompClient, Subscription

logger = logging.getLogger(__name__)

EVENTS_TOPIC = "/topic/events"
EVENTS_DESTINATION = "/events"

EventHandler = Callable[[StorageReference, StorageReference], None]


class Watcher:
    def __init__(self, manager: "EventManager", creator: Optional[StorageReference], handler: EventHandler) -> None:
        self.manager = manager
        self.creator = creator
        self.handler = handler

    def matches(self, event: Event) -> bool:
        return self.creator is None or event.creator == self.creator

    def close(self) -> None:
        self.manager.unwatch(self)

    def __enter__(self) -> "Watcher":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class EventManager:
    def __init__(self, url: str, client: Optional[StompClient] = None) -> None:
        self.client = client or StompClient(url)
        self._lock = threading.Lock()
        self._watchers: list[Watcher] = []
        self._subscription: Optional[Subscription] = None

    def _connect_locked(self) -> None:
        if not self.client.connected:
            self.client.connect()

    def watch(
        self,
        creator: Optional[StorageReference],
        handler: EventHandler,
        on_subscribed: Optional[Callable[[], None]] = None,
    ) -> Watcher:
        """
        Register ``handler`` for the events of ``creator`` (all events if None).

        Args:
            creator: Only events with this creator reach the handler
            handler: Called as ``handler(event, creator)``
            on_subscribed: Runs once the broker has confirmed the subscription

        Returns:
            The watcher, to be closed when no longer needed
        """
        watcher = Watcher(self, creator, handler)
        with self._lock:
            self._watchers.append(watcher)
            try:
                if self._subscription is None or not self._subscription.active or not self.client.connected:
                    self._connect_locked()
                    self._subscription = self.client.subscribe(
                        EVENTS_TOPIC, models.event_from_json, self._dispatch
                    )
            except BaseException:
                self._watchers.remove(watcher)
                raise
        if on_subscribed is not None:
            on_subscribed()
        return watcher

    def unwatch(self, watcher: Watcher) -> None:
        with self._lock:
            if watcher in self._watchers:
                self._watchers.remove(watcher)

    def _dispatch(self, event: Event) -> None:
        with self._lock:
            watchers = [watcher for watcher in self._watchers if watcher.matches(event)]
        for watcher in watchers:
            try:
                watcher.handler(event.event, event.creator)
            except Exception:  # noqa: BLE001
                logger.exception("Event handler for %s raised", watcher.creator or "all creators")

    def publish(self, event: Event) -> None:
        with self._lock:
            self._connect_locked()
        self.client.publish(EVENTS_DESTINATION, models.event_to_json(event))

    def close(self) -> None:
        with self._lock:
            self._watchers.clear()
            self._subscription = None
        self.client.disconnect()
