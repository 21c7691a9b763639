"""Subscriber registry driving the realtime channel lifecycle."""

from __future__ import annotations

import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from .models import Update

if TYPE_CHECKING:
    from .channel import UpdateChannel

_LOGGER = logging.getLogger(__name__)

UpdateCallback = Callable[[Update], Awaitable[None] | None]


class SubscriberRegistry:
    """Map subscription ids to callbacks.

    The channel is opened when the first subscriber is added and closed
    when the last one is removed. Callbacks are notified in registration
    order; a failing callback never affects the others or the channel.
    """

    def __init__(
        self,
        channel: UpdateChannel,
        *,
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    ) -> None:
        self._channel = channel
        self._id_factory = id_factory
        self._subscribers: dict[str, UpdateCallback] = {}

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, subscription_id: object) -> bool:
        return subscription_id in self._subscribers

    async def add(self, callback: UpdateCallback) -> str:
        """Register ``callback`` and return its subscription id."""
        subscription_id = str(self._id_factory())
        while subscription_id in self._subscribers:
            subscription_id = str(self._id_factory())

        self._subscribers[subscription_id] = callback
        _LOGGER.debug("Subscriber %s added (%d total)", subscription_id, len(self))

        if len(self._subscribers) == 1:
            await self._channel.open()
        return subscription_id

    async def remove(self, subscription_id: str) -> bool:
        """Remove a subscription; returns False if it was not registered."""
        if self._subscribers.pop(subscription_id, None) is None:
            return False
        _LOGGER.debug("Subscriber %s removed (%d left)", subscription_id, len(self))

        if not self._subscribers:
            await self._channel.close()
        return True

    async def clear(self) -> None:
        """Remove every subscription and close the channel."""
        self._subscribers.clear()
        await self._channel.close()

    async def dispatch(self, update: Update) -> None:
        """Notify every subscriber of ``update`` once, in registration order."""
        # Snapshot so callbacks may subscribe or unsubscribe while dispatching
        for subscription_id, callback in list(self._subscribers.items()):
            try:
                result = callback(update)
                if inspect.isawaitable(result):
                    await result
            except Exception as err:
                _LOGGER.exception(
                    "Subscriber %s callback error: %s", subscription_id, err
                )
