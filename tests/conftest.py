"""Pytest configuration and fixtures for workcraft_client tests."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from workcraft_client.errors import WorkcraftConnectionError
from workcraft_client.transport.base import ChannelMessage, ChannelMessageType

TASK_JSON: dict[str, Any] = {
    "id": "6f1c0a4e-2b7d-4c1e-9a53-0d8f3b2e7a10",
    "task_name": "simple_task",
    "status": "RUNNING",
    "created_at": "2024-05-01T10:00:00Z",
    "updated_at": "2024-05-01T10:00:05Z",
    "peon_id": "peon-1",
    "queue": "DEFAULT",
    "payload": {"task_args": [1, 2]},
    "result": None,
    "retry_on_failure": False,
    "retry_count": 0,
    "retry_limit": 0,
}

PEON_JSON: dict[str, Any] = {
    "id": "peon-1",
    "status": "WORKING",
    "last_heartbeat": "2024-05-01T10:00:04+00:00",
    "current_task": TASK_JSON["id"],
    "queues": ["DEFAULT", "gpu"],
}


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


def create_mock_response(
    status: int = 200,
    json_data: dict[str, Any] | None = None,
    text_data: str | None = None,
) -> AsyncMock:
    """Create a configured mock response usable as an async context manager.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call
        text_data: Data to return from text() call

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status

    if json_data is not None:
        response.json.return_value = json_data
    response.text.return_value = text_data if text_data is not None else ""

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


async def flush(iterations: int = 10) -> None:
    """Let pending listener and reconnect tasks run."""
    for _ in range(iterations):
        await asyncio.sleep(0)


class FakeTransport:
    """In-memory transport fed by the test."""

    def __init__(self, *, fail_open: bool = False) -> None:
        self.fail_open = fail_open
        self.opened_with: list[str] = []
        self.closed = False
        self._queue: asyncio.Queue[ChannelMessage | None] = asyncio.Queue()

    @property
    def is_live(self) -> bool:
        return bool(self.opened_with) and not self.fail_open and not self.closed

    async def open(self, credential: str) -> None:
        self.opened_with.append(credential)
        if self.fail_open:
            raise WorkcraftConnectionError("Connection refused")

    async def close(self) -> None:
        self.closed = True
        self._queue.put_nowait(None)

    def push(self, text: str) -> None:
        self._queue.put_nowait(ChannelMessage(ChannelMessageType.TEXT, text))

    def drop(self, kind: ChannelMessageType = ChannelMessageType.CLOSED) -> None:
        """Simulate the stronghold closing the connection or a transport error."""
        self._queue.put_nowait(ChannelMessage(kind))

    def __aiter__(self):
        return self._iter_messages()

    async def _iter_messages(self):
        while True:
            msg = await self._queue.get()
            if msg is None:
                yield ChannelMessage(ChannelMessageType.CLOSED)
                return
            yield msg


class FakeTransportFactory:
    """Transport factory recording every transport it builds."""

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.transports: list[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        transport = FakeTransport(fail_open=self.failures > 0)
        if self.failures > 0:
            self.failures -= 1
        self.transports.append(transport)
        return transport

    @property
    def current(self) -> FakeTransport:
        return self.transports[-1]

    @property
    def live(self) -> list[FakeTransport]:
        return [transport for transport in self.transports if transport.is_live]


class ManualSleep:
    """Reconnect timer released explicitly by the test."""

    def __init__(self) -> None:
        self.delays: list[float] = []
        self._waiters: list[asyncio.Future[None]] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter

    @property
    def pending(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    def fire(self) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)


@pytest.fixture
def transports() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def manual_sleep() -> ManualSleep:
    return ManualSleep()
