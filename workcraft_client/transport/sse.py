"""Server-sent events transport for the chieftain endpoint."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiohttp

from ..config import API_KEY_HEADER
from ..errors import (
    WorkcraftConnectionError,
    WorkcraftHandshakeError,
    WorkcraftTimeout,
)
from .base import ChannelMessage, ChannelMessageType

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_LOGGER = logging.getLogger(__name__)

CHIEFTAIN_EVENTS_PATH = "/events"

# Silence longer than this on an open stream is treated as a dead peer
DEFAULT_READ_TIMEOUT = 300.0


class EventStreamTransport:
    """Server-push stream transport over a long-lived aiohttp GET."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        url: str,
        *,
        timeout: float = 15.0,
        read_timeout: float | None = DEFAULT_READ_TIMEOUT,
    ) -> None:
        self._session = session
        self._url = url
        self._timeout = timeout
        self._read_timeout = read_timeout
        self._response: aiohttp.ClientResponse | None = None

    async def open(self, credential: str) -> None:
        """Open the event stream, authenticated by header and query parameter."""
        try:
            response = await self._session.get(
                self._url,
                params={"type": "chieftain", "token": credential},
                headers={
                    API_KEY_HEADER: credential,
                    "Accept": "text/event-stream",
                },
                timeout=aiohttp.ClientTimeout(
                    total=None,
                    sock_connect=self._timeout,
                    sock_read=self._read_timeout,
                ),
            )
        except TimeoutError as err:
            raise WorkcraftTimeout("Event stream connection timed out") from err
        except aiohttp.ClientError as err:
            raise WorkcraftConnectionError("Event stream connection failed") from err

        if response.status != 200:
            response.release()
            raise WorkcraftHandshakeError(
                f"Event stream rejected with status {response.status}"
            )
        self._response = response

    async def close(self) -> None:
        """Close the event stream."""
        if self._response is not None:
            response, self._response = self._response, None
            response.close()

    def __aiter__(self) -> AsyncIterator[ChannelMessage]:
        if self._response is None:
            raise WorkcraftConnectionError("Event stream is not connected")
        return self._iter_messages(self._response)

    async def _iter_messages(
        self, response: aiohttp.ClientResponse
    ) -> AsyncIterator[ChannelMessage]:
        data_lines: list[str] = []
        corrupt = False
        try:
            async for raw_line in response.content:
                try:
                    line = raw_line.decode("utf-8").rstrip("\r\n")
                except UnicodeDecodeError as err:
                    # Drop the event this line belongs to; the stream stays up
                    _LOGGER.error("Discarding undecodable event line: %s", err)
                    corrupt = True
                    continue
                if not line:
                    # Blank line terminates an event
                    if data_lines and not corrupt:
                        yield ChannelMessage(
                            ChannelMessageType.TEXT, "\n".join(data_lines)
                        )
                    data_lines = []
                    corrupt = False
                    continue
                event = self._parse_field(line)
                if event is not None:
                    data_lines.append(event)
        except Exception:
            yield ChannelMessage(type=ChannelMessageType.ERROR)
        else:
            yield ChannelMessage(type=ChannelMessageType.CLOSED)

    @staticmethod
    def _parse_field(line: str) -> str | None:
        """Return the value of a ``data:`` field; other fields and comments are ignored."""
        if line.startswith(":"):
            return None
        name, _, value = line.partition(":")
        if name != "data":
            return None
        return value.removeprefix(" ")
