"""Connection settings for a Workcraft client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

TRANSPORT_WEBSOCKET: Final = "websocket"
TRANSPORT_SSE: Final = "sse"
CREDENTIAL_JWT: Final = "jwt"
CREDENTIAL_HASHED: Final = "hashed"

API_KEY_HEADER: Final = "WORKCRAFT_API_KEY"

DEFAULT_RECONNECT_DELAY: Final = 5.0
DEFAULT_PROBE_TIMEOUT: Final = 5.0


@dataclass(frozen=True)
class WorkcraftConfig:
    """Stronghold location, API key and realtime channel options.

    Args:
        host: Stronghold host, optionally with an ``http://`` scheme
        port: Stronghold port
        api_key: Shared secret the credentials are derived from
        transport: ``"websocket"`` or ``"sse"``
        credential: ``"jwt"`` or ``"hashed"``
        probe_timeout: Startup connectivity probe deadline (seconds)
        reconnect_delay: Fixed delay before each reconnect attempt (seconds)
        request_timeout: Deadline for one-shot HTTP calls (seconds)
    """

    host: str
    port: int
    api_key: str
    transport: str = TRANSPORT_WEBSOCKET
    credential: str = CREDENTIAL_JWT
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    request_timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.transport not in (TRANSPORT_WEBSOCKET, TRANSPORT_SSE):
            raise ValueError(f"Unknown transport: {self.transport}")
        if self.credential not in (CREDENTIAL_JWT, CREDENTIAL_HASHED):
            raise ValueError(f"Unknown credential strategy: {self.credential}")
        if self.reconnect_delay < 0:
            raise ValueError("reconnect_delay must not be negative")

    @property
    def base_url(self) -> str:
        host = self.host.rstrip("/")
        if "://" not in host:
            host = f"http://{host}"
        return f"{host}:{self.port}"

    @property
    def ws_url(self) -> str:
        base = self.base_url
        if base.startswith("https://"):
            return "wss://" + base.removeprefix("https://")
        return "ws://" + base.removeprefix("http://")
