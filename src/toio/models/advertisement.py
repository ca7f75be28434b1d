"""BLE advertisement and discovered peripheral models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Log-distance path loss defaults; both depend on the environment.
DEFAULT_MEASURED_POWER = -59  # RSSI at 1 m
DEFAULT_PATH_LOSS_EXPONENT = 2.0


def estimate_distance(
        rssi: int,
        measured_power: int = DEFAULT_MEASURED_POWER,
        path_loss_exponent: float = DEFAULT_PATH_LOSS_EXPONENT,
) -> float:
    """Estimate distance in metres from RSSI with the log-distance model.

    Args:
        rssi: Received signal strength in dBm
        measured_power: Expected RSSI at 1 m (default: -59)
        path_loss_exponent: 2.0 in free space, 2.7-4.0 indoors (default: 2.0)

    Returns:
        Estimated distance in metres
    """
    if path_loss_exponent <= 0:
        raise ValueError(f"path_loss_exponent must be positive, got {path_loss_exponent}")
    return 10 ** ((measured_power - rssi) / (10 * path_loss_exponent))


@dataclass(frozen=True)
class Advertisement:
    """One advertisement observation reported by a scan.

    Attributes:
        address: Platform identifier (MAC address, or UUID on macOS)
        name: Advertised local name, if any
        rssi: Received signal strength in dBm (higher = closer)
        service_uuids: Service UUIDs listed in the advertisement
        device: Platform device object needed to connect (e.g. bleak BLEDevice)
    """
    address: str
    name: str | None
    rssi: int
    service_uuids: tuple[str, ...] = ()
    device: Any = field(default=None, compare=False, repr=False)

    def advertises(self, service_uuid: str) -> bool:
        """Check whether the advertisement lists a service UUID."""
        wanted = service_uuid.lower()
        return any(uuid.lower() == wanted for uuid in self.service_uuids)


@dataclass
class Peripheral:
    """A cube seen during discovery.

    Refreshed in place when the same address is observed again; ``order``
    keeps the position of the first observation so ranking ties are stable.
    """
    address: str
    name: str | None
    rssi: int
    order: int = 0
    device: Any = field(default=None, compare=False, repr=False)

    @classmethod
    def from_advertisement(cls, advertisement: Advertisement, order: int = 0) -> Peripheral:
        return cls(
            address=advertisement.address,
            name=advertisement.name,
            rssi=advertisement.rssi,
            order=order,
            device=advertisement.device,
        )

    def refresh(self, advertisement: Advertisement) -> None:
        """Take the latest RSSI, name and device handle from a new observation."""
        self.rssi = advertisement.rssi
        if advertisement.name:
            self.name = advertisement.name
        if advertisement.device is not None:
            self.device = advertisement.device

    def distance(
            self,
            measured_power: int = DEFAULT_MEASURED_POWER,
            path_loss_exponent: float = DEFAULT_PATH_LOSS_EXPONENT,
    ) -> float:
        """Estimated distance in metres, see estimate_distance()."""
        return estimate_distance(self.rssi, measured_power, path_loss_exponent)
