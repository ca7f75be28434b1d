"""Fake BLE transport shared by the unit tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterable

import pytest

from toio.exceptions import ConnectError, TransportError
from toio.models.advertisement import Advertisement, Peripheral
from toio.protocol import SERVICE_UUID
from toio.transport.base import Connection, Transport

CUBE_ADDRESS = "AA:BB:CC:DD:EE:FF"

_CLOSED = object()

Responder = Callable[[str, bytes], Iterable[tuple[str, bytes]]]


class FakeConnection(Connection):
    """In-memory connection.

    Writes are recorded; ``responder`` may answer a write with notifications.
    """

    def __init__(self, responder: Responder | None = None):
        self.responder = responder
        self.written: list[tuple[str, bytes]] = []
        self.subscribed: list[str] = []
        self.values: dict[str, bytes] = {}
        self.write_error: Exception | None = None
        self.subscribe_error: Exception | None = None
        self.disconnect_calls = 0
        self._connected = True
        self._queue: asyncio.Queue[object] = asyncio.Queue()

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def write(self, characteristic: str, data: bytes, response: bool = True) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.written.append((characteristic, bytes(data)))
        if self.responder is not None:
            for item in self.responder(characteristic, bytes(data)):
                self._queue.put_nowait(item)

    async def read(self, characteristic: str) -> bytes:
        if characteristic not in self.values:
            raise TransportError(f"No value for {characteristic}")
        return self.values[characteristic]

    async def subscribe(
        self, characteristics: Iterable[str]
    ) -> AsyncIterator[tuple[str, bytes]]:
        if self.subscribe_error is not None:
            raise self.subscribe_error
        self.subscribed.extend(characteristics)
        return self._notifications()

    async def _notifications(self) -> AsyncIterator[tuple[str, bytes]]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]
            self._queue.task_done()

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.drop()

    # Test helpers

    async def notify(self, characteristic: str, data: bytes) -> None:
        """Push a notification and wait until the session has handled it."""
        self._queue.put_nowait((characteristic, bytes(data)))
        await self._queue.join()

    def drop(self) -> None:
        """Simulate the link going down."""
        if self._connected:
            self._connected = False
            self._queue.put_nowait(_CLOSED)


class FakeTransport(Transport):
    """Transport returning canned advertisements and a FakeConnection."""

    def __init__(
        self,
        advertisements: list[Advertisement] | None = None,
        connection: FakeConnection | None = None,
    ):
        self.advertisements = advertisements or []
        self.connection = connection or FakeConnection()
        self.connect_error: Exception | None = None
        self.connect_calls = 0
        self.scans: list[tuple[list[str] | None, float]] = []

    async def scan(
        self,
        service_uuids: Iterable[str] | None,
        timeout: float,
    ) -> AsyncIterator[Advertisement]:
        self.scans.append((list(service_uuids) if service_uuids else None, timeout))
        for advertisement in self.advertisements:
            yield advertisement

    async def connect(self, peripheral: Peripheral) -> FakeConnection:
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        if not self.connection.is_connected:
            # Reconnect after a drop
            self.connection = FakeConnection(self.connection.responder)
        return self.connection


def advertisement(
    address: str,
    rssi: int,
    name: str | None = "toio Core Cube",
    service_uuids: tuple[str, ...] = (SERVICE_UUID,),
) -> Advertisement:
    return Advertisement(address=address, name=name, rssi=rssi, service_uuids=service_uuids)


@pytest.fixture
def peripheral() -> Peripheral:
    return Peripheral(address=CUBE_ADDRESS, name="toio Core Cube", rssi=-50)


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def transport(connection: FakeConnection) -> FakeTransport:
    return FakeTransport(connection=connection)


@pytest.fixture
def failing_transport() -> FakeTransport:
    fake = FakeTransport()
    fake.connect_error = ConnectError("Device AA:BB:CC:DD:EE:FF not found during scan")
    return fake
