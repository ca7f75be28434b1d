"""BLE transport built on bleak and bleak-retry-connector."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from functools import partial
from typing import TYPE_CHECKING

from bleak import BleakClient, BleakScanner
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..exceptions import ConnectError, DisconnectedError, TransportError
from ..models.advertisement import Advertisement, Peripheral
from .base import Connection, Transport

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice
    from bleak.backends.scanner import AdvertisementData

_LOGGER = logging.getLogger(__name__)

# Marks the end of the notification stream
_DISCONNECTED = object()


class BLEConnection(Connection):
    """Manages a BLE connection to one cube.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    - Context manager for automatic cleanup
    - Notification queue shared by every subscribed characteristic
    """

    def __init__(
            self,
            mac_address: str,
            ble_device: BLEDevice | None = None,
            timeout: float = 10.0,
            max_attempts: int = 4,
            use_services_cache: bool = True,
    ):
        """Initialize BLE connection manager.

        Args:
            mac_address: Device MAC address
            ble_device: Optional BLEDevice found by a scan
            timeout: Connection timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 4)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
        """
        self.mac_address = mac_address
        self.ble_device = ble_device
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache

        self._client: BleakClient | None = None
        self._notification_queue: asyncio.Queue[object] = asyncio.Queue()

    async def __aenter__(self) -> BLEConnection:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        """Establish BLE connection to the cube.

        Raises:
            ConnectError: If the cube is not found or the connection fails
        """
        if self._client and self._client.is_connected:
            return

        _LOGGER.debug(
            "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
            self.mac_address,
            self.max_attempts,
        )

        try:
            device = self.ble_device
            if device is None:
                device = await BleakScanner.find_device_by_address(
                    self.mac_address,
                    timeout=self.timeout,
                )
            if device is None:
                raise ConnectError(f"Device {self.mac_address} not found during scan")

            client = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=device,
                name=device.name or self.mac_address,
                disconnected_callback=self._on_disconnected,
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=self.timeout,
            )
        except ConnectError:
            raise
        except asyncio.TimeoutError as e:
            raise ConnectError(f"Connection timeout after {self.timeout}s") from e
        except Exception as e:
            raise ConnectError(f"Failed to connect: {e}") from e

        # Fresh queue so nothing reported by failed attempts ends the new stream
        self._notification_queue = asyncio.Queue()
        self._client = client
        _LOGGER.debug("Connected to %s", self.mac_address)

    async def disconnect(self) -> None:
        """Disconnect from the cube."""
        client, self._client = self._client, None
        if client and client.is_connected:
            try:
                _LOGGER.debug("Disconnecting from %s", self.mac_address)
                await client.disconnect()
            except Exception as e:
                _LOGGER.warning("Error during disconnect: %s", e)
        # Also ends the stream when bleak never reports the disconnect
        self._notification_queue.put_nowait(_DISCONNECTED)

    def _on_disconnected(self, client: BleakClient) -> None:
        if client is not self._client:
            # A retry attempt that failed, or a client already disconnected
            _LOGGER.debug("Ignoring disconnect of stale client for %s", self.mac_address)
            return
        _LOGGER.debug("Link to %s closed", self.mac_address)
        self._notification_queue.put_nowait(_DISCONNECTED)

    def _notification_callback(self, characteristic: str, sender, data: bytearray) -> None:
        self._notification_queue.put_nowait((characteristic, bytes(data)))

    def _require_client(self) -> BleakClient:
        if not self._client or not self._client.is_connected:
            raise DisconnectedError("Not connected")
        return self._client

    async def write(self, characteristic: str, data: bytes, response: bool = True) -> None:
        """Write bytes to a characteristic.

        Raises:
            DisconnectedError: If not connected
            TransportError: If the write fails
        """
        client = self._require_client()
        try:
            await client.write_gatt_char(characteristic, data, response=response)
        except Exception as e:
            raise TransportError(f"Write failed: {e}") from e

    async def read(self, characteristic: str) -> bytes:
        """Read a characteristic value.

        Raises:
            DisconnectedError: If not connected
            TransportError: If the read fails
        """
        client = self._require_client()
        try:
            return bytes(await client.read_gatt_char(characteristic))
        except Exception as e:
            raise TransportError(f"Read failed: {e}") from e

    async def subscribe(
        self, characteristics: Iterable[str]
    ) -> AsyncIterator[tuple[str, bytes]]:
        """Enable notifications on characteristics.

        Returns:
            Iterator of (characteristic, data) pairs that ends on disconnect

        Raises:
            DisconnectedError: If not connected
            ConnectError: If a characteristic cannot be subscribed
        """
        client = self._require_client()
        for uuid in characteristics:
            try:
                await client.start_notify(uuid, partial(self._notification_callback, uuid))
            except Exception as e:
                raise ConnectError(f"Failed to subscribe to {uuid}: {e}") from e
        _LOGGER.debug("Notifications started")
        return self._notifications()

    async def _notifications(self) -> AsyncIterator[tuple[str, bytes]]:
        while True:
            item = await self._notification_queue.get()
            if item is _DISCONNECTED:
                return
            yield item  # type: ignore[misc]

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to the cube."""
        return self._client is not None and self._client.is_connected


class BleakTransport(Transport):
    """Transport backed by the host's Bluetooth adapter through bleak."""

    def __init__(
            self,
            timeout: float = 10.0,
            max_attempts: int = 4,
            use_services_cache: bool = True,
    ):
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache

    async def scan(
        self,
        service_uuids: Iterable[str] | None,
        timeout: float,
    ) -> AsyncIterator[Advertisement]:
        """Scan for ``timeout`` seconds and yield each advertisement seen."""
        queue: asyncio.Queue[Advertisement] = asyncio.Queue()

        def callback(device: BLEDevice, advertisement_data: AdvertisementData) -> None:
            queue.put_nowait(
                Advertisement(
                    address=device.address,
                    name=advertisement_data.local_name or device.name,
                    rssi=advertisement_data.rssi,
                    service_uuids=tuple(advertisement_data.service_uuids),
                    device=device,
                )
            )

        uuids = list(service_uuids) if service_uuids else None
        scanner = BleakScanner(detection_callback=callback, service_uuids=uuids)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        try:
            await scanner.start()
        except Exception as e:
            raise TransportError(f"Scan failed: {e}") from e

        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                try:
                    yield await asyncio.wait_for(queue.get(), timeout=remaining)
                except asyncio.TimeoutError:
                    break
        finally:
            await scanner.stop()

    async def connect(self, peripheral: Peripheral) -> BLEConnection:
        connection = BLEConnection(
            peripheral.address,
            ble_device=peripheral.device,
            timeout=self.timeout,
            max_attempts=self.max_attempts,
            use_services_cache=self.use_services_cache,
        )
        await connection.connect()
        return connection
