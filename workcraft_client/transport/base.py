"""Normalized realtime channel messages and the transport interface."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class ChannelMessageType(Enum):
    """Normalized realtime message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class ChannelMessage:
    """Normalized realtime message payload."""

    type: ChannelMessageType
    data: str | None = None


class Transport(Protocol):
    """One live connection to the chieftain event stream.

    Iteration yields TEXT messages until the connection ends, then exactly
    one CLOSED (peer closed) or ERROR (transport failure) message.
    """

    async def open(self, credential: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[ChannelMessage]: ...
