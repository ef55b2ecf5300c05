"""
Client configuration.

Values come from keyword overrides, then the process environment, then
``~/.hotmoka/.env`` (loaded with python-dotenv), then built-in defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from .network.polling import PollingPolicy

HOTMOKA_DIR = Path.home() / ".hotmoka"
HOTMOKA_ENV = HOTMOKA_DIR / ".env"

DEFAULT_URL = "http://localhost:8080"
DEFAULT_TIMEOUT = 30.0
DEFAULT_SIGNATURE = "ed25519"


@dataclass(frozen=True)
class NodeConfig:
    url: str = DEFAULT_URL
    websocket_url: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    chain_id: str = ""
    signature: str = DEFAULT_SIGNATURE
    polling: PollingPolicy = field(default_factory=PollingPolicy)

    def __post_init__(self) -> None:
        object.__setattr__(self, "url", self.url.rstrip("/"))

    @property
    def events_url(self) -> str:
        """The STOMP endpoint of the node, derived from ``url`` unless set explicitly."""
        if self.websocket_url:
            return self.websocket_url
        if self.url.startswith("https://"):
            return "wss://" + self.url[len("https://"):] + "/node"
        if self.url.startswith("http://"):
            return "ws://" + self.url[len("http://"):] + "/node"
        return self.url + "/node"

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None, **overrides: Any) -> "NodeConfig":
        """Build a configuration from the environment.

        Args:
            env_path: Path to a .env file (default: ~/.hotmoka/.env)
            **overrides: Explicit values; ``None`` means "not given".

        Returns:
            The resolved configuration
        """
        env_path = env_path or HOTMOKA_ENV
        if env_path.exists():
            load_dotenv(env_path, override=False)

        polling = PollingPolicy()
        interval = os.environ.get("HOTMOKA_POLL_INTERVAL")
        attempts = os.environ.get("HOTMOKA_POLL_ATTEMPTS")
        if interval or attempts:
            polling = PollingPolicy(
                interval=float(interval) if interval else polling.interval,
                max_attempts=int(attempts) if attempts else polling.max_attempts,
            )

        values: dict[str, Any] = {
            "url": os.environ.get("HOTMOKA_URL", DEFAULT_URL),
            "websocket_url": os.environ.get("HOTMOKA_WS_URL") or None,
            "timeout": float(os.environ.get("HOTMOKA_TIMEOUT", DEFAULT_TIMEOUT)),
            "chain_id": os.environ.get("HOTMOKA_CHAIN_ID", ""),
            "signature": os.environ.get("HOTMOKA_SIGNATURE", DEFAULT_SIGNATURE),
            "polling": polling,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
