"""
Error taxonomy shared by every layer of the client.

Local failures (``EncodingError``, ``UnknownAlgorithm``) are raised before any
network activity. Remote failures are decoded from the node's error envelope
and keep the node's diagnostic text unmodified in ``message``.
"""

from __future__ import annotations

from typing import Optional


class HotmokaError(Exception):
    pass


class EncodingError(HotmokaError, ValueError):
    pass


class UnknownAlgorithm(HotmokaError, LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown signature algorithm: {name}")
        self.name = name


class KeyMaterialError(HotmokaError, ValueError):
    pass


class TransportError(HotmokaError, ConnectionError):
    pass


class ProtocolError(HotmokaError):
    pass


class RemoteError(HotmokaError):
    """A failure reported by the node, carrying its exception class and message."""

    def __init__(self, message: str, exception_class: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.exception_class = exception_class


class TransactionRejected(RemoteError):
    pass


class TransactionFailed(RemoteError):
    pass


class CodeExecutionFailed(TransactionFailed):
    pass


class UnknownReference(RemoteError, LookupError):
    pass


class PollTimeout(HotmokaError, TimeoutError):
    pass


class PollCancelled(HotmokaError):
    pass


# Substrings of the node's exception class names, checked in order.
_REMOTE_ERRORS: tuple[tuple[str, type[HotmokaError]], ...] = (
    ("TransactionRejectedException", TransactionRejected),
    ("CodeExecutionException", CodeExecutionFailed),
    ("TransactionException", TransactionFailed),
    ("NoSuchElementException", UnknownReference),
)


def remote_error(message: str, exception_class: Optional[str]) -> HotmokaError:
    """Map the node's error envelope to a typed exception.

    Args:
        message: Diagnostic text, preserved verbatim.
        exception_class: Fully-qualified class name reported by the node.

    Returns:
        The exception to raise; ``RemoteError`` when nothing matches.
    """
    name = exception_class or ""
    for pattern, error_cls in _REMOTE_ERRORS:
        if pattern in name:
            return error_cls(message, name)
    if "TimeoutException" in name:
        return PollTimeout(message)
    return RemoteError(message, exception_class)


__all__ = [
    "CodeExecutionFailed",
    "EncodingError",
    "HotmokaError",
    "KeyMaterialError",
    "PollCancelled",
    "PollTimeout",
    "ProtocolError",
    "RemoteError",
    "TransactionFailed",
    "TransactionRejected",
    "TransportError",
    "UnknownAlgorithm",
    "UnknownReference",
    "remote_error",
]
