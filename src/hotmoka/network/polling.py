"""
Outcome resolution for posted transactions.

A post returns as soon as the node has accepted the request; its outcome
appears later. ``Poller`` asks the node for the response at a reference until
a terminal one shows up or its policy runs out, and ``Supplier`` wraps one such
resolution behind a handle that remembers what it found.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from ..beans.references import TransactionReference
from ..beans.responses import TransactionResponse
from ..errors import PollCancelled, PollTimeout, TransactionFailed, TransactionRejected, UnknownReference

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PollingPolicy:
    """
    How long to keep asking for a response.

    Attributes:
        interval: Wait before the second attempt, in seconds
        backoff: Factor applied to the wait after every attempt (1.0 = fixed)
        max_interval: Upper bound of a single wait
        max_attempts: Total number of attempts, the first included
        timeout: Optional bound on the wall-clock duration of the whole loop
    """

    interval: float = 0.5
    backoff: float = 1.2
    max_interval: float = 5.0
    max_attempts: int = 60
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval < 0 or self.backoff < 1.0:
            raise ValueError("interval must be non-negative and backoff at least 1.0")


class Poller:
    def __init__(
        self,
        fetch: Callable[[TransactionReference], TransactionResponse],
        policy: Optional[PollingPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.fetch = fetch
        self.policy = policy or PollingPolicy()
        self.clock = clock

    def poll(
        self,
        reference: TransactionReference,
        cancel: Optional[threading.Event] = None,
    ) -> TransactionResponse:
        """
        Wait for the terminal response of the transaction at ``reference``.

        Args:
            reference: Reference returned by a post
            cancel: Set it from another thread to stop polling

        Returns:
            The first terminal response observed

        Raises:
            PollTimeout: If the policy is exhausted without a terminal response
            PollCancelled: If ``cancel`` is set
            TransactionRejected: If the node reports the request as rejected
        """
        policy = self.policy
        cancel = cancel or threading.Event()
        deadline = None if policy.timeout is None else self.clock() + policy.timeout
        delay = policy.interval
        attempt = 0

        while attempt < policy.max_attempts:
            if cancel.is_set():
                raise PollCancelled(f"Polling of {reference} cancelled")

            attempt += 1
            try:
                response = self.fetch(reference)
            except UnknownReference:
                logger.debug("Attempt %d: no response yet for %s", attempt, reference)
            else:
                if response.category.is_terminal:
                    logger.debug("Attempt %d: %s for %s", attempt, response.kind.type_name, reference)
                    return response
                logger.debug("Attempt %d: %s still pending", attempt, reference)

            if attempt == policy.max_attempts:
                break
            wait = delay
            if deadline is not None:
                remaining = deadline - self.clock()
                if remaining <= 0:
                    break
                wait = min(wait, remaining)
            if cancel.wait(wait):
                raise PollCancelled(f"Polling of {reference} cancelled")
            delay = min(delay * policy.backoff, policy.max_interval)

        raise PollTimeout(f"No response for transaction {reference} after {attempt} attempts")


def _outcome(response: TransactionResponse, reference: TransactionReference) -> Any:
    return response.outcome(reference)


class Supplier(Generic[T]):
    """
    Ticket for a posted transaction.

    ``get()`` polls until the outcome is known and caches it, so later calls
    return the same value (or raise the same failure) without touching the
    node again. Timeouts and cancellations are not cached.
    """

    def __init__(
        self,
        reference: TransactionReference,
        poller: Poller,
        extract: Callable[[TransactionResponse, TransactionReference], T] = _outcome,
    ) -> None:
        self._reference = reference
        self._poller = poller
        self._extract = extract
        self._lock = threading.Lock()
        self._resolved = False
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None

    @property
    def reference(self) -> TransactionReference:
        return self._reference

    @property
    def done(self) -> bool:
        return self._resolved

    def get(self, cancel: Optional[threading.Event] = None) -> T:
        with self._lock:
            if not self._resolved:
                try:
                    response = self._poller.poll(self._reference, cancel)
                    self._value = self._extract(response, self._reference)
                except (TransactionRejected, TransactionFailed) as exc:
                    self._error = exc
                self._resolved = True

        if self._error is not None:
            raise self._error
        return self._value

    def __repr__(self) -> str:
        state = "resolved" if self._resolved else "pending"
        return f"Supplier({self._reference}, {state})"
