"""Find nearby cubes and rank them nearest-first."""

from __future__ import annotations

import logging

from .exceptions import NotFoundError
from .models.advertisement import Peripheral
from .protocol.base import SERVICE_UUID
from .transport.base import Transport
from .transport.connection import BleakTransport

_LOGGER = logging.getLogger(__name__)

DEFAULT_SEARCH_TIMEOUT = 3.0


def rank(peripherals: list[Peripheral]) -> list[Peripheral]:
    """Sort by descending RSSI; ties keep first-observed order."""
    return sorted(peripherals, key=lambda p: (-p.rssi, p.order))


class Searcher:
    """Scans for cubes advertising the toio service.

    Example:
        >>> searcher = Searcher(BleakTransport())
        >>> cubes = await searcher.search(timeout=5)
    """

    def __init__(
            self,
            transport: Transport | None = None,
            timeout: float = DEFAULT_SEARCH_TIMEOUT,
            service_uuid: str = SERVICE_UUID,
    ):
        """Initialize the searcher.

        Args:
            transport: BLE transport (default: a new BleakTransport)
            timeout: Default scan window in seconds (default: 3)
            service_uuid: Service a cube must advertise (default: toio service)
        """
        self.transport = transport if transport is not None else BleakTransport()
        self.timeout = timeout
        self.service_uuid = service_uuid.lower()

    async def search(self, timeout: float | None = None) -> list[Peripheral]:
        """Scan for a bounded window and return cubes nearest-first.

        Repeated advertisements from one address refresh its RSSI and name.

        Args:
            timeout: Scan window in seconds (default: the searcher's timeout)

        Returns:
            Peripherals sorted by descending RSSI, possibly empty

        Raises:
            ValueError: If timeout is not positive
            TransportError: If the scan cannot be started
        """
        if timeout is None:
            timeout = self.timeout
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        found: dict[str, Peripheral] = {}
        ignored = 0
        async for advertisement in self.transport.scan([self.service_uuid], timeout):
            if not advertisement.advertises(self.service_uuid):
                ignored += 1
                continue
            peripheral = found.get(advertisement.address)
            if peripheral is None:
                found[advertisement.address] = Peripheral.from_advertisement(
                    advertisement, order=len(found)
                )
                _LOGGER.debug(
                    "Found cube %s (%s) rssi=%d",
                    advertisement.address,
                    advertisement.name,
                    advertisement.rssi,
                )
            else:
                peripheral.refresh(advertisement)

        ranked = rank(list(found.values()))
        _LOGGER.info(
            "Discovery finished: %d cube(s) found, %d other advertisement(s) ignored",
            len(ranked),
            ignored,
        )
        return ranked

    async def nearest(self, timeout: float | None = None) -> Peripheral:
        """Scan and return the cube with the strongest signal.

        Raises:
            NotFoundError: If no cube was seen
        """
        peripherals = await self.search(timeout)
        if not peripherals:
            raise NotFoundError(
                f"No toio cube found within {timeout if timeout is not None else self.timeout}s"
            )
        return peripherals[0]


async def discover_cubes(
        timeout: float = DEFAULT_SEARCH_TIMEOUT,
        transport: Transport | None = None,
) -> list[Peripheral]:
    """Scan for cubes and return them nearest-first.

    Args:
        timeout: Scan window in seconds (default: 3)
        transport: BLE transport (default: a new BleakTransport)

    Returns:
        Peripherals sorted by descending RSSI

    Example:
        >>> cubes = await discover_cubes()
        >>> for cube in cubes:
        ...     print(cube.address, cube.rssi)
    """
    return await Searcher(transport, timeout=timeout).search()
