"""Interface between the cube session and a BLE stack."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable

from ..models.advertisement import Advertisement, Peripheral


class Connection(ABC):
    """An open link to one peripheral."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the link is still up."""

    @abstractmethod
    async def write(self, characteristic: str, data: bytes, response: bool = True) -> None:
        """Write bytes to a characteristic.

        Raises:
            TransportError: If not connected or the write fails
        """

    @abstractmethod
    async def read(self, characteristic: str) -> bytes:
        """Read the current value of a characteristic.

        Raises:
            TransportError: If not connected or the read fails
        """

    @abstractmethod
    async def subscribe(
        self, characteristics: Iterable[str]
    ) -> AsyncIterator[tuple[str, bytes]]:
        """Enable notifications on characteristics.

        Returns:
            Iterator of (characteristic, data) pairs that ends when the link
            goes down

        Raises:
            ConnectError: If a characteristic cannot be subscribed
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the link; no-op if already closed."""


class Transport(ABC):
    """Factory for scans and connections."""

    @abstractmethod
    def scan(
        self,
        service_uuids: Iterable[str] | None,
        timeout: float,
    ) -> AsyncIterator[Advertisement]:
        """Yield advertisements observed during a bounded scan window."""

    @abstractmethod
    async def connect(self, peripheral: Peripheral) -> Connection:
        """Open a connection.

        Raises:
            ConnectError: If the connection cannot be established
        """
