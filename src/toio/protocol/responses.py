"""Frames sent by the cube: command responses and notifications."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, TypeVar

from ..exceptions import DecodeError
from ..models.enums import ButtonState, ConfigResult, Posture, TargetResult
from .base import (
    BATTERY_UUID,
    BUTTON_UUID,
    CONFIG_UUID,
    ID_READER_UUID,
    MOTION_UUID,
    MOTOR_UUID,
    EventFrame,
    ResponseFrame,
    check_u8,
    check_u16,
)

_E = TypeVar("_E", bound=IntEnum)


def _enum_field(enum_cls: type[_E], value: int, name: str) -> _E:
    """Convert a raw byte into an enum member, raising DecodeError if unknown."""
    try:
        return enum_cls(value)
    except ValueError as e:
        raise DecodeError(f"Invalid {name}: 0x{value:02x}") from e


# ID reader


@dataclass(frozen=True, slots=True)
class IdPosition(EventFrame):
    """Position ID read from the mat under the cube.

    Format: [0x01][cube_x:2][cube_y:2][cube_angle:2][sensor_x:2][sensor_y:2][sensor_angle:2]
    """

    characteristic: ClassVar[str] = ID_READER_UUID
    tag: ClassVar[int] = 0x01
    min_size: ClassVar[int] = 12

    cube_x: int
    cube_y: int
    cube_angle: int
    sensor_x: int
    sensor_y: int
    sensor_angle: int

    def __post_init__(self) -> None:
        check_u16("cube_x", self.cube_x)
        check_u16("cube_y", self.cube_y)
        check_u16("cube_angle", self.cube_angle)
        check_u16("sensor_x", self.sensor_x)
        check_u16("sensor_y", self.sensor_y)
        check_u16("sensor_angle", self.sensor_angle)

    def payload(self) -> bytes:
        return struct.pack(
            "<6H",
            self.cube_x, self.cube_y, self.cube_angle,
            self.sensor_x, self.sensor_y, self.sensor_angle,
        )

    @classmethod
    def from_payload(cls, payload: bytes) -> IdPosition:
        return cls(*struct.unpack_from("<6H", payload))


@dataclass(frozen=True, slots=True)
class IdStandard(EventFrame):
    """Standard ID (card or sticker) read under the cube.

    Format: [0x02][value:4][angle:2]
    """

    characteristic: ClassVar[str] = ID_READER_UUID
    tag: ClassVar[int] = 0x02
    min_size: ClassVar[int] = 6

    value: int
    angle: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= 0xFFFFFFFF:
            raise ValueError(f"value out of range: {self.value} (must fit in 32 bits)")
        check_u16("angle", self.angle)

    def payload(self) -> bytes:
        return struct.pack("<IH", self.value, self.angle)

    @classmethod
    def from_payload(cls, payload: bytes) -> IdStandard:
        return cls(*struct.unpack_from("<IH", payload))


@dataclass(frozen=True, slots=True)
class IdPositionMissed(EventFrame):
    """The cube left the area covered by position IDs."""

    characteristic: ClassVar[str] = ID_READER_UUID
    tag: ClassVar[int] = 0x03


@dataclass(frozen=True, slots=True)
class IdStandardMissed(EventFrame):
    """The cube moved off a standard ID."""

    characteristic: ClassVar[str] = ID_READER_UUID
    tag: ClassVar[int] = 0x04


# Sensors


@dataclass(frozen=True, slots=True)
class MotionDetection(EventFrame):
    """Motion sensor state.

    Format: [0x01][level:1][collision:1][double_tap:1][posture:1][shake:1]

    Firmware before 2.1 omits the shake byte; it decodes as 0.
    """

    characteristic: ClassVar[str] = MOTION_UUID
    tag: ClassVar[int] = 0x01
    min_size: ClassVar[int] = 4

    level: bool
    collision: bool
    double_tap: bool
    posture: Posture
    shake: int = 0

    def __post_init__(self) -> None:
        check_u8("shake", self.shake)

    def payload(self) -> bytes:
        return bytes([
            int(self.level),
            int(self.collision),
            int(self.double_tap),
            self.posture,
            self.shake,
        ])

    @classmethod
    def from_payload(cls, payload: bytes) -> MotionDetection:
        return cls(
            level=payload[0] != 0,
            collision=payload[1] != 0,
            double_tap=payload[2] != 0,
            posture=_enum_field(Posture, payload[3], "posture"),
            shake=payload[4] if len(payload) > 4 else 0,
        )


@dataclass(frozen=True, slots=True)
class ButtonEvent(EventFrame):
    """Function button state change.

    Format: [0x01][state:1]
    """

    characteristic: ClassVar[str] = BUTTON_UUID
    tag: ClassVar[int] = 0x01
    min_size: ClassVar[int] = 1

    state: ButtonState

    @property
    def pressed(self) -> bool:
        return self.state == ButtonState.PRESSED

    def payload(self) -> bytes:
        return bytes([self.state])

    @classmethod
    def from_payload(cls, payload: bytes) -> ButtonEvent:
        return cls(_enum_field(ButtonState, payload[0], "button state"))


@dataclass(frozen=True, slots=True)
class BatteryLevel(EventFrame):
    """Remaining battery in percent.

    The battery characteristic carries a single untagged byte.
    """

    characteristic: ClassVar[str] = BATTERY_UUID
    tag: ClassVar[None] = None
    min_size: ClassVar[int] = 1

    percent: int

    def __post_init__(self) -> None:
        check_u8("percent", self.percent)

    def payload(self) -> bytes:
        return bytes([self.percent])

    @classmethod
    def from_payload(cls, payload: bytes) -> BatteryLevel:
        return cls(payload[0])


# Motor


@dataclass(frozen=True, slots=True)
class MotorTargetResponse(ResponseFrame):
    """Result of a single-target movement request.

    Format: [0x83][request_id:1][result:1]
    """

    characteristic: ClassVar[str] = MOTOR_UUID
    tag: ClassVar[int] = 0x83
    min_size: ClassVar[int] = 2

    request_id: int
    result: TargetResult

    def __post_init__(self) -> None:
        check_u8("request_id", self.request_id)

    @property
    def token(self) -> int:
        return self.request_id

    def payload(self) -> bytes:
        return bytes([self.request_id, self.result])

    @classmethod
    def from_payload(cls, payload: bytes) -> MotorTargetResponse:
        return cls(payload[0], _enum_field(TargetResult, payload[1], "target result"))


@dataclass(frozen=True, slots=True)
class MotorMultiTargetResponse(ResponseFrame):
    """Result of a multi-target movement request.

    Format: [0x84][request_id:1][result:1]
    """

    characteristic: ClassVar[str] = MOTOR_UUID
    tag: ClassVar[int] = 0x84
    min_size: ClassVar[int] = 2

    request_id: int
    result: TargetResult

    def __post_init__(self) -> None:
        check_u8("request_id", self.request_id)

    @property
    def token(self) -> int:
        return self.request_id

    def payload(self) -> bytes:
        return bytes([self.request_id, self.result])

    @classmethod
    def from_payload(cls, payload: bytes) -> MotorMultiTargetResponse:
        return cls(payload[0], _enum_field(TargetResult, payload[1], "target result"))


@dataclass(frozen=True, slots=True)
class MotorSpeed(EventFrame):
    """Wheel speeds reported while motor speed notifications are enabled.

    Format: [0xE0][left:1][right:1]
    """

    characteristic: ClassVar[str] = MOTOR_UUID
    tag: ClassVar[int] = 0xE0
    min_size: ClassVar[int] = 2

    left: int
    right: int

    def __post_init__(self) -> None:
        check_u8("left", self.left)
        check_u8("right", self.right)

    def payload(self) -> bytes:
        return bytes([self.left, self.right])

    @classmethod
    def from_payload(cls, payload: bytes) -> MotorSpeed:
        return cls(payload[0], payload[1])


# Configuration


@dataclass(frozen=True, slots=True)
class ConfigVersionResponse(ResponseFrame):
    """BLE protocol version string.

    Format: [0x81][reserved:1][version:ascii...]
    """

    characteristic: ClassVar[str] = CONFIG_UUID
    tag: ClassVar[int] = 0x81
    min_size: ClassVar[int] = 1

    version: str

    def payload(self) -> bytes:
        return b"\x00" + self.version.encode("ascii")

    @classmethod
    def from_payload(cls, payload: bytes) -> ConfigVersionResponse:
        try:
            version = payload[1:].decode("ascii")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Protocol version is not ASCII: {payload[1:].hex()}") from e
        return cls(version)


@dataclass(frozen=True, slots=True)
class ConfigResponse(ResponseFrame):
    """Shared layout of configuration responses: [tag][reserved:1][result:1]."""

    characteristic: ClassVar[str] = CONFIG_UUID
    min_size: ClassVar[int] = 2

    result: ConfigResult

    @property
    def succeeded(self) -> bool:
        return self.result == ConfigResult.SUCCESS

    def payload(self) -> bytes:
        return bytes([0x00, self.result])

    @classmethod
    def from_payload(cls, payload: bytes) -> ConfigResponse:
        return cls(_enum_field(ConfigResult, payload[1], "config result"))


@dataclass(frozen=True, slots=True)
class IdNotificationResponse(ConfigResponse):
    """Answer to IdNotificationSettings."""

    tag: ClassVar[int] = 0x98


@dataclass(frozen=True, slots=True)
class IdMissedNotificationResponse(ConfigResponse):
    """Answer to IdMissedNotificationSettings."""

    tag: ClassVar[int] = 0x99


@dataclass(frozen=True, slots=True)
class MotorSpeedSettingsResponse(ConfigResponse):
    """Answer to MotorSpeedSettings."""

    tag: ClassVar[int] = 0x9C
