"""Transport layer for the Workcraft realtime channel.

Components:
- base: normalized channel messages and the Transport protocol
- ws: persistent-socket transport (websockets)
- sse: server-push stream transport (aiohttp)
"""

from __future__ import annotations

from collections.abc import Callable

import aiohttp

from ..config import TRANSPORT_SSE, WorkcraftConfig
from .base import ChannelMessage, ChannelMessageType, Transport
from .sse import CHIEFTAIN_EVENTS_PATH, EventStreamTransport
from .ws import CHIEFTAIN_WS_PATH, WebSocketTransport, connect_websocket


def transport_factory(
    config: WorkcraftConfig, session: aiohttp.ClientSession
) -> Callable[[], Transport]:
    """Return a factory building a fresh transport of the configured kind."""
    if config.transport == TRANSPORT_SSE:
        url = config.base_url + CHIEFTAIN_EVENTS_PATH
        return lambda: EventStreamTransport(session, url)
    url = config.ws_url + CHIEFTAIN_WS_PATH
    return lambda: WebSocketTransport(url)


__all__ = [
    "CHIEFTAIN_EVENTS_PATH",
    "CHIEFTAIN_WS_PATH",
    "ChannelMessage",
    "ChannelMessageType",
    "EventStreamTransport",
    "Transport",
    "WebSocketTransport",
    "connect_websocket",
    "transport_factory",
]
