"""BLE transport layer."""

from .base import Connection, Transport
from .connection import BleakTransport, BLEConnection

__all__ = ["BLEConnection", "BleakTransport", "Connection", "Transport"]
