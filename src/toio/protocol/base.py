"""Frame base classes and protocol constants for the toio BLE protocol."""

from __future__ import annotations

import math
from typing import ClassVar, Final

# Service and characteristic UUIDs
SERVICE_UUID: Final = "10b20100-5b3b-4571-9508-cf3efcd7bbae"
ID_READER_UUID: Final = "10b20101-5b3b-4571-9508-cf3efcd7bbae"
MOTOR_UUID: Final = "10b20102-5b3b-4571-9508-cf3efcd7bbae"
LIGHT_UUID: Final = "10b20103-5b3b-4571-9508-cf3efcd7bbae"
SOUND_UUID: Final = "10b20104-5b3b-4571-9508-cf3efcd7bbae"
MOTION_UUID: Final = "10b20106-5b3b-4571-9508-cf3efcd7bbae"
BUTTON_UUID: Final = "10b20107-5b3b-4571-9508-cf3efcd7bbae"
BATTERY_UUID: Final = "10b20108-5b3b-4571-9508-cf3efcd7bbae"
CONFIG_UUID: Final = "10b201ff-5b3b-4571-9508-cf3efcd7bbae"

# Characteristics the cube pushes notifications on
NOTIFY_UUIDS: Final = (
    ID_READER_UUID,
    MOTOR_UUID,
    MOTION_UUID,
    BUTTON_UUID,
    BATTERY_UUID,
    CONFIG_UUID,
)

# Hardware limits
MAX_MOTOR_SPEED: Final = 115
DURATION_UNIT_MS: Final = 10  # Durations on the wire count 10 ms steps
MAX_DURATION_UNITS: Final = 0xFF
MAX_TARGETS: Final = 29
MAX_LIGHT_STEPS: Final = 29
MAX_SOUND_STEPS: Final = 59


def check_range(name: str, value: int, low: int, high: int) -> None:
    """Raise ValueError unless low <= value <= high."""
    if not low <= value <= high:
        raise ValueError(f"{name} out of range: {value} (must be {low}-{high})")


def check_u8(name: str, value: int) -> None:
    check_range(name, value, 0, 0xFF)


def check_u16(name: str, value: int) -> None:
    check_range(name, value, 0, 0xFFFF)


class Frame:
    """One message on a toio characteristic.

    Subclasses are frozen dataclasses that declare the characteristic they
    travel on, their leading type tag (None for the untagged battery frame)
    and the minimum payload length following the tag.
    """

    __slots__ = ()

    characteristic: ClassVar[str]
    tag: ClassVar[int | None]
    min_size: ClassVar[int] = 0

    def payload(self) -> bytes:
        """Serialize the fields that follow the type tag."""
        return b""

    @classmethod
    def from_payload(cls, payload: bytes) -> Frame:
        """Build the frame from the bytes that follow the type tag.

        The codec has already checked ``len(payload) >= min_size``.
        """
        return cls()

    def to_bytes(self) -> bytes:
        """Serialize to the on-wire byte sequence, tag included."""
        if self.tag is None:
            return self.payload()
        return bytes([self.tag]) + self.payload()


class CommandFrame(Frame):
    """Frame written by the host.

    ``response_type`` names the frame the cube answers with, for commands
    that are acknowledged.
    """

    __slots__ = ()

    response_type: ClassVar[type[ResponseFrame] | None] = None

    @property
    def token(self) -> int | None:
        """Correlation token carried in the frame, if any."""
        return None


class ResponseFrame(Frame):
    """Frame sent by the cube in answer to a specific command."""

    __slots__ = ()

    @property
    def token(self) -> int | None:
        """Correlation token echoed from the command, if any."""
        return None


class EventFrame(Frame):
    """Unsolicited frame sent by the cube."""

    __slots__ = ()


def seconds_to_units(seconds: float) -> int:
    """Convert seconds to 10 ms wire units, rounding up.

    The intermediate value is rounded first so that e.g. 0.1 s is exactly
    10 units rather than 11 after float error.
    """
    return math.ceil(round(seconds * 1000 / DURATION_UNIT_MS, 6))


def duration_to_units(seconds: float) -> int:
    """Convert a positive duration to 10 ms units, never less than one unit.

    0 units means "stop" or "no limit" on the wire, so a positive duration
    shorter than the resolution still has to run for one unit.
    """
    return max(1, seconds_to_units(seconds))
