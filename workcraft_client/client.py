"""High-level Workcraft client.

Usage:
    config = WorkcraftConfig(host="http://localhost", port=6112, api_key="abcd")
    async with WorkcraftClient(config) as client:
        await client.initialize()
        unsubscribe = await client.subscribe(print)
        task = await client.create_task("simple_task", {"task_args": [1, 2]})
        await unsubscribe()
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import Any

import aiohttp

from .channel import ConnectionState, UpdateChannel
from .config import WorkcraftConfig
from .credentials import CredentialManager, CredentialStrategy, strategy_for
from .errors import NotInitializedError, RequestFailedError
from .http import RequestGateway
from .models import Peon, Task, TaskPayload, Update
from .registry import SubscriberRegistry, UpdateCallback
from .transport import Transport, transport_factory

_LOGGER = logging.getLogger(__name__)

HEALTH_PATH = "/api/test"

Unsubscribe = Callable[[], Awaitable[None]]


class WorkcraftClient:
    """Client facade for a Workcraft stronghold."""

    def __init__(
        self,
        config: WorkcraftConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        credential_strategy: CredentialStrategy | None = None,
        transport: Callable[[], Transport] | None = None,
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    ) -> None:
        """Initialize client.

        Args:
            config: Stronghold location and channel options
            session: Shared aiohttp session; if omitted one is created (the
                client must then be constructed inside a running event loop)
                and closed by close()
            credential_strategy: Overrides the strategy named in ``config``
            transport: Overrides the transport factory named in ``config``
            id_factory: Subscription id generator
        """
        self.config = config
        self._owns_session = session is None
        self._session = session if session is not None else aiohttp.ClientSession()
        self._id_factory = id_factory

        self._credentials = CredentialManager(
            credential_strategy or strategy_for(config.credential)
        )
        self._gateway = RequestGateway(
            self._session,
            config.base_url,
            self._credentials,
            timeout=config.request_timeout,
        )
        self._channel = UpdateChannel(
            transport or transport_factory(config, self._session),
            self._credentials.channel_credential,
            self._dispatch,
            reconnect_delay=config.reconnect_delay,
        )
        self._registry = SubscriberRegistry(self._channel, id_factory=id_factory)

    async def __aenter__(self) -> WorkcraftClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def connection_state(self) -> ConnectionState:
        return self._channel.state

    @property
    def subscriber_count(self) -> int:
        return len(self._registry)

    # -------------------------------------------------------------------------
    # Public API: Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """Establish credentials and probe the stronghold (advisory only)."""
        self._credentials.establish(self.config.api_key)
        _LOGGER.info("Checking stronghold at %s", self.config.base_url)
        await self._gateway.probe(HEALTH_PATH, self.config.probe_timeout)

    async def subscribe(self, callback: UpdateCallback) -> Unsubscribe:
        """Register ``callback`` for realtime updates.

        Returns:
            Coroutine function removing exactly this subscription

        Raises:
            NotInitializedError: If initialize() has not been called
        """
        if not self._credentials.is_established:
            raise NotInitializedError("Client must be initialized before subscribing")
        subscription_id = await self._registry.add(callback)

        async def unsubscribe() -> None:
            await self._registry.remove(subscription_id)

        return unsubscribe

    async def disconnect(self) -> None:
        """Drop every subscription and close the channel without reconnecting."""
        await self._registry.clear()

    async def close(self) -> None:
        """Disconnect and release the HTTP session if the client owns it."""
        await self.disconnect()
        if self._owns_session and not self._session.closed:
            await self._session.close()

    async def _dispatch(self, update: Update) -> None:
        await self._registry.dispatch(update)

    # -------------------------------------------------------------------------
    # Public API: Tasks and Peons
    # -------------------------------------------------------------------------

    async def create_task(
        self,
        task_name: str,
        task_payload: dict[str, Any] | None = None,
        *,
        queue: str = "DEFAULT",
        retry_on_failure: bool = False,
        retry_limit: int = 0,
    ) -> Task:
        """Submit a task to the stronghold; missing payload fields default to empty."""
        body = {
            "id": str(self._id_factory()),
            "task_name": task_name,
            "queue": queue,
            "retry_on_failure": retry_on_failure,
            "retry_limit": retry_limit,
            "payload": TaskPayload.from_partial(task_payload).to_dict(),
        }
        response = await self._gateway.request("POST", "/api/task", json=body)
        if response.status != 201:
            raise RequestFailedError(
                response.status, "Failed to create a task", response.body
            )
        return Task.from_dict(response.json())

    async def get_task_by_id(self, task_id: str) -> Task:
        response = await self._gateway.request("GET", f"/api/task/{task_id}")
        if response.status != 200:
            raise RequestFailedError(
                response.status, "Failed to get task by id", response.body
            )
        return Task.from_dict(response.json())

    async def get_peon_by_id(self, peon_id: str) -> Peon:
        response = await self._gateway.request("GET", f"/api/peon/{peon_id}")
        if response.status != 200:
            raise RequestFailedError(
                response.status, "Failed to get peon by id", response.body
            )
        return Peon.from_dict(response.json())

    async def cancel_task(self, task_id: str) -> None:
        response = await self._gateway.request("POST", f"/api/task/{task_id}/cancel")
        if response.status != 200:
            raise RequestFailedError(
                response.status, "Failed to cancel task", response.body
            )
