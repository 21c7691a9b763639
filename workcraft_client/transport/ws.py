"""WebSocket transport for the chieftain endpoint."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    ConnectionClosed,
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)
from websockets.typing import Subprotocol

from ..config import API_KEY_HEADER
from ..errors import (
    WorkcraftConnectionError,
    WorkcraftHandshakeError,
    WorkcraftTimeout,
)
from .base import ChannelMessage, ChannelMessageType

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

CHIEFTAIN_WS_PATH = "/ws/chieftain"


async def connect_websocket(
    url: str,
    token: str,
    *,
    ping_interval: int | None = 20,
    timeout: float = 15.0,
) -> ClientConnection:
    """Connect to a WebSocket endpoint, offering ``token`` as the sub-protocol.

    Args:
        url: Full ws:// or wss:// URL
        token: Credential sent as the Sec-WebSocket-Protocol value
        ping_interval: Interval for ping frames
        timeout: Connection timeout
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                subprotocols=[Subprotocol(token)],
                additional_headers={API_KEY_HEADER: token},
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise WorkcraftTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise WorkcraftHandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise WorkcraftConnectionError("WebSocket connection failed") from err


class WebSocketTransport:
    """Persistent-socket transport built on the websockets library."""

    def __init__(
        self,
        url: str,
        *,
        ping_interval: int = 20,
        timeout: float = 15.0,
    ) -> None:
        self._url = url
        self._ping_interval = ping_interval
        self._timeout = timeout
        self._ws: ClientConnection | None = None

    async def open(self, credential: str) -> None:
        """Connect to the chieftain websocket."""
        self._ws = await connect_websocket(
            self._url,
            credential,
            ping_interval=self._ping_interval,
            timeout=self._timeout,
        )

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            ws, self._ws = self._ws, None
            await ws.close()

    def __aiter__(self) -> AsyncIterator[ChannelMessage]:
        if self._ws is None:
            raise WorkcraftConnectionError("WebSocket is not connected")
        return self._iter_messages(self._ws)

    async def _iter_messages(
        self, ws: ClientConnection
    ) -> AsyncIterator[ChannelMessage]:
        try:
            async for msg in ws:
                normalized = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
        except ConnectionClosed:
            yield ChannelMessage(type=ChannelMessageType.CLOSED)
        except Exception:
            yield ChannelMessage(type=ChannelMessageType.ERROR)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield ChannelMessage(type=ChannelMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: Any) -> ChannelMessage | None:
        """Normalize websocket frames; binary frames are not part of the protocol."""
        if isinstance(msg, bytes):
            return None
        return ChannelMessage(ChannelMessageType.TEXT, str(msg))
