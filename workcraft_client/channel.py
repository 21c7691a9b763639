"""Self-healing realtime update channel.

Owns at most one live transport to the chieftain endpoint. The channel:
- opens the transport with the current channel credential
- decodes every TEXT message into an Update and hands it to ``on_update``
- drops malformed messages without touching the connection
- reconnects after a fixed delay whenever the transport fails or the
  stronghold closes it, for as long as the channel is wanted

Only ``close()`` stops reconnection. It cancels a pending reconnect as well
as the live transport, so a scheduled attempt cannot reopen a closed channel.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from .config import DEFAULT_RECONNECT_DELAY
from .errors import DecodeError, WorkcraftClientError
from .models import Update, decode_update
from .transport.base import ChannelMessageType, Transport

_LOGGER = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Realtime channel connection states."""

    CLOSED = "closed"
    CONNECTING = "connecting"
    OPEN = "open"


class UpdateChannel:
    """Single logical connection to the chieftain event stream."""

    def __init__(
        self,
        transport_factory: Callable[[], Transport],
        credential_provider: Callable[[], str],
        on_update: Callable[[Update], Awaitable[None]],
        *,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport_factory = transport_factory
        self._credential_provider = credential_provider
        self._on_update = on_update
        self._reconnect_delay = reconnect_delay
        self._sleep = sleep

        self._transport: Transport | None = None
        self._state = ConnectionState.CLOSED
        self._listen_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._reconnect_attempts = 0
        self._wanted = False
        self._lifecycle_lock = asyncio.Lock()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN

    @property
    def is_active(self) -> bool:
        """True between open() and close(), including while reconnecting."""
        return self._wanted

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def open(self) -> None:
        """Open the channel; a failed first attempt is retried in the background."""
        async with self._lifecycle_lock:
            if self._wanted:
                return
            self._wanted = True
            await self._connect()

    async def close(self) -> None:
        """Close the channel without scheduling a reconnect."""
        # An open() issued while this runs waits and then starts a fresh connection
        async with self._lifecycle_lock:
            await self._shutdown()

    async def _shutdown(self) -> None:
        self._wanted = False

        if self._reconnect_task is not None:
            reconnect_task, self._reconnect_task = self._reconnect_task, None
            reconnect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reconnect_task

        # close() may run inside a subscriber callback on the listener task
        listen_task, self._listen_task = self._listen_task, None
        if listen_task is not None and listen_task is not asyncio.current_task():
            listen_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await listen_task

        if self._transport is not None:
            await self._drop_transport()
            _LOGGER.info("Realtime channel closed")
        self._set_state(ConnectionState.CLOSED)

    # -------------------------------------------------------------------------
    # Internal: Connection State Machine
    # -------------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        if self._state is not state:
            _LOGGER.debug("Channel state: %s → %s", self._state.value, state.value)
            self._state = state

    async def _connect(self) -> bool:
        if not self._wanted:
            return False

        self._set_state(ConnectionState.CONNECTING)
        transport = self._transport_factory()
        try:
            _LOGGER.info(
                "Connecting to chieftain (attempt #%d)", self._reconnect_attempts + 1
            )
            await transport.open(self._credential_provider())
        except WorkcraftClientError as err:
            _LOGGER.warning("Realtime channel connection failed: %s", err)
            self._set_state(ConnectionState.CLOSED)
            self._handle_connection_failure()
            return False

        if not self._wanted:
            # close() ran while the transport was opening
            await transport.close()
            self._set_state(ConnectionState.CLOSED)
            return False

        self._transport = transport
        self._reconnect_attempts = 0
        self._set_state(ConnectionState.OPEN)
        _LOGGER.info("Realtime channel established")
        self._listen_task = asyncio.create_task(self._listen(transport))
        return True

    async def _drop_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            await asyncio.wait_for(transport.close(), timeout=2.0)
        except TimeoutError:
            _LOGGER.warning("Realtime channel close timed out")

    def _handle_connection_failure(self) -> None:
        """Schedule a single reconnect attempt after the fixed delay."""
        if not self._wanted or self._reconnect_task is not None:
            return

        self._reconnect_attempts += 1
        _LOGGER.warning(
            "Reconnecting in %.1fs (attempt %d)",
            self._reconnect_delay,
            self._reconnect_attempts,
        )
        self._reconnect_task = asyncio.create_task(self._reconnect_after_delay())

    async def _reconnect_after_delay(self) -> None:
        try:
            await self._sleep(self._reconnect_delay)
            # Cleared first so a failed attempt can schedule the next one
            self._reconnect_task = None
            await self._connect()
        except asyncio.CancelledError:
            _LOGGER.debug("Reconnect cancelled")
        finally:
            if self._reconnect_task is asyncio.current_task():
                self._reconnect_task = None

    # -------------------------------------------------------------------------
    # Internal: Message Listener
    # -------------------------------------------------------------------------

    async def _listen(self, transport: Transport) -> None:
        message_count = 0
        try:
            async for msg in transport:
                if msg.type is ChannelMessageType.TEXT:
                    message_count += 1
                    try:
                        update = decode_update(msg.data or "")
                    except DecodeError as err:
                        _LOGGER.error("Failed to parse chieftain message: %s", err)
                        continue
                    await self._on_update(update)

                elif msg.type is ChannelMessageType.CLOSED:
                    _LOGGER.info("Realtime channel closed by stronghold")
                    break

                elif msg.type is ChannelMessageType.ERROR:
                    _LOGGER.error("Realtime channel error")
                    break

        except asyncio.CancelledError:
            _LOGGER.debug("Listener cancelled (%d messages)", message_count)
            raise
        except WorkcraftClientError as err:
            _LOGGER.warning("Realtime channel client error: %s", err)
        except Exception as err:
            _LOGGER.exception("Unexpected realtime channel error: %s", err)

        # Anything but close() ending the listener is a fault
        if self._wanted and self._transport is transport:
            if self._listen_task is asyncio.current_task():
                self._listen_task = None
            await self._drop_transport()
            self._set_state(ConnectionState.CLOSED)
            self._handle_connection_failure()
