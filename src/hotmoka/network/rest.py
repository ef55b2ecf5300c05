"""
HTTP transport to the node's REST endpoints.

One ``RestClient`` wraps one ``httpx.Client``, which pools connections and is
safe to share between threads. Request bodies are serialized as RFC 8785
canonical JSON. Non-success replies carry the node's error envelope and are
turned into typed exceptions with the node's message unmodified.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
import rfc8785

from ..errors import ProtocolError, TransportError, remote_error
from .schemas import SchemaRegistry, default_registry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class RestClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
        registry: Optional[SchemaRegistry] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.registry = registry or default_registry()
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def get(self, path: str) -> Any:
        return self._send("GET", path)

    def post(self, path: str, payload: Any) -> Any:
        try:
            body = rfc8785.dumps(payload)
        except rfc8785.CanonicalizationError as exc:
            raise ProtocolError(f"Cannot serialize request for {path}: {exc}") from exc
        return self._send("POST", path, content=body)

    def _send(self, method: str, path: str, content: Optional[bytes] = None) -> Any:
        headers = {"Content-Type": "application/json"} if content is not None else None
        logger.debug("%s %s%s", method, self.base_url, path)
        try:
            response = self._client.request(method, path, content=content, headers=headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        if response.is_success:
            return self._json(response, path)
        raise self._error(response, path)

    @staticmethod
    def _json(response: httpx.Response, path: str) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ProtocolError(f"Invalid JSON from {path}: {exc}") from exc

    def _error(self, response: httpx.Response, path: str) -> Exception:
        try:
            envelope = response.json()
            self.registry.validate_instance(envelope, "error.schema.json")
        except (ValueError, ProtocolError):
            return TransportError(f"{path} returned {response.status_code}: {response.text}")
        logger.debug("%s failed: %s (%s)", path, envelope.get("message"), envelope.get("exceptionClassName"))
        return remote_error(envelope.get("message") or "", envelope.get("exceptionClassName"))

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RestClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
