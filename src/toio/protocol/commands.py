"""Frames written to the cube."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar

from ..exceptions import DecodeError, TruncatedError
from ..models.enums import (
    IdNotifyCondition,
    MotorDirection,
    MotorId,
    MotorPriority,
    MoveType,
    Note,
    RotationDirection,
    SoundPresetId,
    SpeedChange,
    TravelDirection,
    WriteOption,
)
from .base import (
    CONFIG_UUID,
    LIGHT_UUID,
    MAX_LIGHT_STEPS,
    MAX_MOTOR_SPEED,
    MAX_SOUND_STEPS,
    MAX_TARGETS,
    MOTOR_UUID,
    SOUND_UUID,
    CommandFrame,
    check_range,
    check_u8,
    check_u16,
)
from .responses import (
    ConfigVersionResponse,
    IdMissedNotificationResponse,
    IdNotificationResponse,
    MotorMultiTargetResponse,
    MotorSpeedSettingsResponse,
    MotorTargetResponse,
)


def _check_speed(name: str, value: int) -> None:
    check_range(name, value, -MAX_MOTOR_SPEED, MAX_MOTOR_SPEED)


def _pack_wheels(left: int, right: int) -> bytes:
    """Pack signed wheel speeds as [id][direction][magnitude] pairs."""
    out = bytearray()
    for motor, speed in ((MotorId.LEFT, left), (MotorId.RIGHT, right)):
        direction = MotorDirection.BACKWARD if speed < 0 else MotorDirection.FORWARD
        out += bytes([motor, direction, abs(speed)])
    return bytes(out)


def _unpack_wheels(payload: bytes) -> tuple[int, int]:
    """Inverse of _pack_wheels; motor blocks may arrive in either order."""
    speeds: dict[int, int] = {}
    for offset in (0, 3):
        motor, direction, magnitude = payload[offset:offset + 3]
        if motor not in (MotorId.LEFT, MotorId.RIGHT):
            raise DecodeError(f"Invalid motor id: 0x{motor:02x}")
        if direction == MotorDirection.FORWARD:
            speeds[motor] = magnitude
        elif direction == MotorDirection.BACKWARD:
            speeds[motor] = -magnitude
        else:
            raise DecodeError(f"Invalid motor direction: 0x{direction:02x}")
    if len(speeds) != 2:
        raise DecodeError("Motor control frame must address both motors")
    return speeds[MotorId.LEFT], speeds[MotorId.RIGHT]


# Motor


@dataclass(frozen=True, slots=True)
class MotorControl(CommandFrame):
    """Run both wheels until the next motor command.

    Format: [0x01][0x01][dir:1][speed:1][0x02][dir:1][speed:1]

    Speeds are signed; negative values drive the wheel backward.
    """

    characteristic: ClassVar[str] = MOTOR_UUID
    tag: ClassVar[int] = 0x01
    min_size: ClassVar[int] = 6

    left: int
    right: int

    def __post_init__(self) -> None:
        _check_speed("left", self.left)
        _check_speed("right", self.right)

    def payload(self) -> bytes:
        return _pack_wheels(self.left, self.right)

    @classmethod
    def from_payload(cls, payload: bytes) -> MotorControl:
        return cls(*_unpack_wheels(payload))


@dataclass(frozen=True, slots=True)
class MotorControlTimed(CommandFrame):
    """Run both wheels for a limited time.

    Format: [0x02][0x01][dir:1][speed:1][0x02][dir:1][speed:1][duration:1]

    duration_units counts 10 ms steps; 0 means no limit.
    """

    characteristic: ClassVar[str] = MOTOR_UUID
    tag: ClassVar[int] = 0x02
    min_size: ClassVar[int] = 7

    left: int
    right: int
    duration_units: int

    def __post_init__(self) -> None:
        _check_speed("left", self.left)
        _check_speed("right", self.right)
        check_u8("duration_units", self.duration_units)

    def payload(self) -> bytes:
        return _pack_wheels(self.left, self.right) + bytes([self.duration_units])

    @classmethod
    def from_payload(cls, payload: bytes) -> MotorControlTimed:
        left, right = _unpack_wheels(payload)
        return cls(left, right, payload[6])


@dataclass(frozen=True, slots=True)
class MotorTarget(CommandFrame):
    """Drive to a position on the mat.

    Format: [0x03][id:1][timeout:1][move_type:1][max_speed:1][speed_change:1]
            [reserved:1][x:2][y:2][angle:2]

    The cube answers with MotorTargetResponse echoing request_id.
    """

    characteristic: ClassVar[str] = MOTOR_UUID
    tag: ClassVar[int] = 0x03
    min_size: ClassVar[int] = 12
    response_type: ClassVar[type[MotorTargetResponse]] = MotorTargetResponse

    request_id: int
    x: int
    y: int
    angle: int
    timeout: int = 0  # Seconds, 0 selects the firmware default of 10 s
    move_type: MoveType = MoveType.CURVE
    max_speed: int = 80
    speed_change: SpeedChange = SpeedChange.CONSTANT

    def __post_init__(self) -> None:
        check_u8("request_id", self.request_id)
        check_u16("x", self.x)
        check_u16("y", self.y)
        check_u16("angle", self.angle)
        check_u8("timeout", self.timeout)
        check_u8("max_speed", self.max_speed)

    @property
    def token(self) -> int:
        return self.request_id

    def payload(self) -> bytes:
        return struct.pack(
            "<6B3H",
            self.request_id, self.timeout, self.move_type, self.max_speed,
            self.speed_change, 0x00, self.x, self.y, self.angle,
        )

    @classmethod
    def from_payload(cls, payload: bytes) -> MotorTarget:
        request_id, timeout, move_type, max_speed, speed_change, _, x, y, angle = (
            struct.unpack_from("<6B3H", payload)
        )
        return cls(
            request_id=request_id,
            x=x,
            y=y,
            angle=angle,
            timeout=timeout,
            move_type=MoveType(move_type),
            max_speed=max_speed,
            speed_change=SpeedChange(speed_change),
        )


@dataclass(frozen=True, slots=True)
class Target:
    """One waypoint of a multi-target movement."""

    x: int
    y: int
    angle: int

    def __post_init__(self) -> None:
        check_u16("x", self.x)
        check_u16("y", self.y)
        check_u16("angle", self.angle)


@dataclass(frozen=True, slots=True)
class MotorMultiTarget(CommandFrame):
    """Visit several positions in order.

    Format: [0x04][id:1][timeout:1][move_type:1][max_speed:1][speed_change:1]
            [reserved:1][write_option:1] then per target [x:2][y:2][angle:2]
    """

    characteristic: ClassVar[str] = MOTOR_UUID
    tag: ClassVar[int] = 0x04
    min_size: ClassVar[int] = 13
    response_type: ClassVar[type[MotorMultiTargetResponse]] = MotorMultiTargetResponse

    request_id: int
    targets: tuple[Target, ...]
    timeout: int = 0
    move_type: MoveType = MoveType.CURVE
    max_speed: int = 80
    speed_change: SpeedChange = SpeedChange.CONSTANT
    write_option: WriteOption = WriteOption.OVERWRITE

    def __post_init__(self) -> None:
        check_u8("request_id", self.request_id)
        check_u8("timeout", self.timeout)
        check_u8("max_speed", self.max_speed)
        check_range("target count", len(self.targets), 1, MAX_TARGETS)

    @property
    def token(self) -> int:
        return self.request_id

    def payload(self) -> bytes:
        header = struct.pack(
            "<7B",
            self.request_id, self.timeout, self.move_type, self.max_speed,
            self.speed_change, 0x00, self.write_option,
        )
        body = b"".join(struct.pack("<3H", t.x, t.y, t.angle) for t in self.targets)
        return header + body

    @classmethod
    def from_payload(cls, payload: bytes) -> MotorMultiTarget:
        request_id, timeout, move_type, max_speed, speed_change, _, write_option = (
            struct.unpack_from("<7B", payload)
        )
        body = payload[7:]
        if len(body) % 6:
            raise DecodeError(f"Target list length {len(body)} is not a multiple of 6")
        targets = tuple(Target(*fields) for fields in struct.iter_unpack("<3H", body))
        return cls(
            request_id=request_id,
            targets=targets,
            timeout=timeout,
            move_type=MoveType(move_type),
            max_speed=max_speed,
            speed_change=SpeedChange(speed_change),
            write_option=WriteOption(write_option),
        )


@dataclass(frozen=True, slots=True)
class MotorAcceleration(CommandFrame):
    """Drive with a translational speed, acceleration and rotation.

    Format: [0x05][speed:1][acceleration:1][rotation_speed:2][rotation_dir:1]
            [travel_dir:1][priority:1][duration:1]
    """

    characteristic: ClassVar[str] = MOTOR_UUID
    tag: ClassVar[int] = 0x05
    min_size: ClassVar[int] = 8

    speed: int
    acceleration: int
    rotation_speed: int = 0  # Degrees per second
    rotation_direction: RotationDirection = RotationDirection.POSITIVE
    travel_direction: TravelDirection = TravelDirection.FORWARD
    priority: MotorPriority = MotorPriority.TRANSLATION
    duration_units: int = 0

    def __post_init__(self) -> None:
        check_range("speed", self.speed, 0, MAX_MOTOR_SPEED)
        check_u8("acceleration", self.acceleration)
        check_u16("rotation_speed", self.rotation_speed)
        check_u8("duration_units", self.duration_units)

    def payload(self) -> bytes:
        return struct.pack(
            "<BBHBBBB",
            self.speed, self.acceleration, self.rotation_speed,
            self.rotation_direction, self.travel_direction, self.priority,
            self.duration_units,
        )

    @classmethod
    def from_payload(cls, payload: bytes) -> MotorAcceleration:
        speed, acceleration, rotation_speed, rotation_dir, travel_dir, priority, duration = (
            struct.unpack_from("<BBHBBBB", payload)
        )
        return cls(
            speed=speed,
            acceleration=acceleration,
            rotation_speed=rotation_speed,
            rotation_direction=RotationDirection(rotation_dir),
            travel_direction=TravelDirection(travel_dir),
            priority=MotorPriority(priority),
            duration_units=duration,
        )


# Light


@dataclass(frozen=True, slots=True)
class LightsOff(CommandFrame):
    """Turn off every light."""

    characteristic: ClassVar[str] = LIGHT_UUID
    tag: ClassVar[int] = 0x01


@dataclass(frozen=True, slots=True)
class LightOff(CommandFrame):
    """Turn off one light.

    Format: [0x02][count:1][light_id:1]
    """

    characteristic: ClassVar[str] = LIGHT_UUID
    tag: ClassVar[int] = 0x02
    min_size: ClassVar[int] = 2

    light_id: int = 1

    def __post_init__(self) -> None:
        check_u8("light_id", self.light_id)

    def payload(self) -> bytes:
        return bytes([0x01, self.light_id])

    @classmethod
    def from_payload(cls, payload: bytes) -> LightOff:
        return cls(payload[1])


@dataclass(frozen=True, slots=True)
class LightStep:
    """One colour held for a duration; also the body of LightOn."""

    red: int
    green: int
    blue: int
    duration_units: int = 0  # 10 ms steps, 0 keeps the light on
    light_id: int = 1

    def __post_init__(self) -> None:
        check_u8("red", self.red)
        check_u8("green", self.green)
        check_u8("blue", self.blue)
        check_u8("duration_units", self.duration_units)
        check_u8("light_id", self.light_id)

    def to_bytes(self) -> bytes:
        return bytes([
            self.duration_units, 0x01, self.light_id,
            self.red, self.green, self.blue,
        ])

    @classmethod
    def from_bytes(cls, data: bytes) -> LightStep:
        duration, _, light_id, red, green, blue = data[:6]
        return cls(red, green, blue, duration, light_id)


@dataclass(frozen=True, slots=True)
class LightOn(CommandFrame):
    """Turn on one light with a colour.

    Format: [0x03][duration:1][count:1][light_id:1][red:1][green:1][blue:1]
    """

    characteristic: ClassVar[str] = LIGHT_UUID
    tag: ClassVar[int] = 0x03
    min_size: ClassVar[int] = 6

    step: LightStep

    def payload(self) -> bytes:
        return self.step.to_bytes()

    @classmethod
    def from_payload(cls, payload: bytes) -> LightOn:
        return cls(LightStep.from_bytes(payload))


@dataclass(frozen=True, slots=True)
class LightSequence(CommandFrame):
    """Play a list of light steps.

    Format: [0x04][repeat:1][count:1] then 6 bytes per step.

    repeat 0 loops forever.
    """

    characteristic: ClassVar[str] = LIGHT_UUID
    tag: ClassVar[int] = 0x04
    min_size: ClassVar[int] = 8

    steps: tuple[LightStep, ...]
    repeat: int = 0

    def __post_init__(self) -> None:
        check_range("step count", len(self.steps), 1, MAX_LIGHT_STEPS)
        check_u8("repeat", self.repeat)

    def payload(self) -> bytes:
        header = bytes([self.repeat, len(self.steps)])
        return header + b"".join(step.to_bytes() for step in self.steps)

    @classmethod
    def from_payload(cls, payload: bytes) -> LightSequence:
        repeat, count = payload[0], payload[1]
        _check_sequence_length(payload, count, 6)
        steps = tuple(
            LightStep.from_bytes(payload[2 + i * 6:8 + i * 6]) for i in range(count)
        )
        return cls(steps, repeat)


def _check_sequence_length(payload: bytes, count: int, step_size: int) -> None:
    """Ensure a [repeat][count] sequence carries every step it announces."""
    needed = 2 + count * step_size
    if len(payload) < needed:
        raise TruncatedError(
            f"Sequence of {count} steps needs {needed} bytes, got {len(payload)}"
        )


# Sound


@dataclass(frozen=True, slots=True)
class SoundStop(CommandFrame):
    """Stop playback."""

    characteristic: ClassVar[str] = SOUND_UUID
    tag: ClassVar[int] = 0x01


@dataclass(frozen=True, slots=True)
class SoundPreset(CommandFrame):
    """Play a built-in sound effect.

    Format: [0x02][preset:1][volume:1]
    """

    characteristic: ClassVar[str] = SOUND_UUID
    tag: ClassVar[int] = 0x02
    min_size: ClassVar[int] = 2

    preset: SoundPresetId
    volume: int = 0xFF

    def __post_init__(self) -> None:
        check_u8("volume", self.volume)

    def payload(self) -> bytes:
        return bytes([self.preset, self.volume])

    @classmethod
    def from_payload(cls, payload: bytes) -> SoundPreset:
        return cls(SoundPresetId(payload[0]), payload[1])


@dataclass(frozen=True, slots=True)
class SoundStep:
    """One note held for a duration."""

    note: Note
    duration_units: int  # 10 ms steps
    volume: int = 0xFF

    def __post_init__(self) -> None:
        check_range("duration_units", self.duration_units, 1, 0xFF)
        check_u8("volume", self.volume)

    def to_bytes(self) -> bytes:
        return bytes([self.duration_units, self.note, self.volume])

    @classmethod
    def from_bytes(cls, data: bytes) -> SoundStep:
        duration, note, volume = data[:3]
        return cls(Note(note), duration, volume)


@dataclass(frozen=True, slots=True)
class SoundSequence(CommandFrame):
    """Play a list of notes.

    Format: [0x03][repeat:1][count:1] then [duration:1][note:1][volume:1] per step.

    repeat 0 loops forever.
    """

    characteristic: ClassVar[str] = SOUND_UUID
    tag: ClassVar[int] = 0x03
    min_size: ClassVar[int] = 5

    steps: tuple[SoundStep, ...]
    repeat: int = 1

    def __post_init__(self) -> None:
        check_range("step count", len(self.steps), 1, MAX_SOUND_STEPS)
        check_u8("repeat", self.repeat)

    def payload(self) -> bytes:
        header = bytes([self.repeat, len(self.steps)])
        return header + b"".join(step.to_bytes() for step in self.steps)

    @classmethod
    def from_payload(cls, payload: bytes) -> SoundSequence:
        repeat, count = payload[0], payload[1]
        _check_sequence_length(payload, count, 3)
        steps = tuple(
            SoundStep.from_bytes(payload[2 + i * 3:5 + i * 3]) for i in range(count)
        )
        return cls(steps, repeat)


# Configuration


@dataclass(frozen=True, slots=True)
class ConfigVersionRequest(CommandFrame):
    """Ask for the BLE protocol version.

    Format: [0x01][reserved:1]
    """

    characteristic: ClassVar[str] = CONFIG_UUID
    tag: ClassVar[int] = 0x01
    min_size: ClassVar[int] = 1
    response_type: ClassVar[type[ConfigVersionResponse]] = ConfigVersionResponse

    def payload(self) -> bytes:
        return b"\x00"


@dataclass(frozen=True, slots=True)
class LevelThreshold(CommandFrame):
    """Tilt angle beyond which the cube reports it is not level.

    Format: [0x05][reserved:1][angle:1]
    """

    characteristic: ClassVar[str] = CONFIG_UUID
    tag: ClassVar[int] = 0x05
    min_size: ClassVar[int] = 2

    angle: int = 45

    def __post_init__(self) -> None:
        check_range("angle", self.angle, 1, 45)

    def payload(self) -> bytes:
        return bytes([0x00, self.angle])

    @classmethod
    def from_payload(cls, payload: bytes) -> LevelThreshold:
        return cls(payload[1])


@dataclass(frozen=True, slots=True)
class CollisionThreshold(CommandFrame):
    """Collision detection sensitivity, 1 (least) to 10 (most).

    Format: [0x06][reserved:1][level:1]
    """

    characteristic: ClassVar[str] = CONFIG_UUID
    tag: ClassVar[int] = 0x06
    min_size: ClassVar[int] = 2

    level: int = 7

    def __post_init__(self) -> None:
        check_range("level", self.level, 1, 10)

    def payload(self) -> bytes:
        return bytes([0x00, self.level])

    @classmethod
    def from_payload(cls, payload: bytes) -> CollisionThreshold:
        return cls(payload[1])


@dataclass(frozen=True, slots=True)
class DoubleTapInterval(CommandFrame):
    """Maximum gap between taps of a double tap, 1 (shortest) to 7.

    Format: [0x17][reserved:1][interval:1]
    """

    characteristic: ClassVar[str] = CONFIG_UUID
    tag: ClassVar[int] = 0x17
    min_size: ClassVar[int] = 2

    interval: int = 5

    def __post_init__(self) -> None:
        check_range("interval", self.interval, 1, 7)

    def payload(self) -> bytes:
        return bytes([0x00, self.interval])

    @classmethod
    def from_payload(cls, payload: bytes) -> DoubleTapInterval:
        return cls(payload[1])


@dataclass(frozen=True, slots=True)
class IdNotificationSettings(CommandFrame):
    """Configure how often position/standard ID readings are pushed.

    Format: [0x18][reserved:1][interval:1][condition:1]

    interval_units counts 10 ms steps.
    """

    characteristic: ClassVar[str] = CONFIG_UUID
    tag: ClassVar[int] = 0x18
    min_size: ClassVar[int] = 3
    response_type: ClassVar[type[IdNotificationResponse]] = IdNotificationResponse

    interval_units: int = 0
    condition: IdNotifyCondition = IdNotifyCondition.ALWAYS

    def __post_init__(self) -> None:
        check_u8("interval_units", self.interval_units)

    def payload(self) -> bytes:
        return bytes([0x00, self.interval_units, self.condition])

    @classmethod
    def from_payload(cls, payload: bytes) -> IdNotificationSettings:
        return cls(payload[1], IdNotifyCondition(payload[2]))


@dataclass(frozen=True, slots=True)
class IdMissedNotificationSettings(CommandFrame):
    """Configure how long an ID must be gone before a missed event is sent.

    Format: [0x19][reserved:1][sensitivity:1]

    sensitivity_units counts 10 ms steps.
    """

    characteristic: ClassVar[str] = CONFIG_UUID
    tag: ClassVar[int] = 0x19
    min_size: ClassVar[int] = 2
    response_type: ClassVar[type[IdMissedNotificationResponse]] = IdMissedNotificationResponse

    sensitivity_units: int = 0

    def __post_init__(self) -> None:
        check_u8("sensitivity_units", self.sensitivity_units)

    def payload(self) -> bytes:
        return bytes([0x00, self.sensitivity_units])

    @classmethod
    def from_payload(cls, payload: bytes) -> IdMissedNotificationSettings:
        return cls(payload[1])


@dataclass(frozen=True, slots=True)
class MotorSpeedSettings(CommandFrame):
    """Enable or disable MotorSpeed notifications.

    Format: [0x1C][reserved:1][enabled:1]
    """

    characteristic: ClassVar[str] = CONFIG_UUID
    tag: ClassVar[int] = 0x1C
    min_size: ClassVar[int] = 2
    response_type: ClassVar[type[MotorSpeedSettingsResponse]] = MotorSpeedSettingsResponse

    enabled: bool = True

    def payload(self) -> bytes:
        return bytes([0x00, int(self.enabled)])

    @classmethod
    def from_payload(cls, payload: bytes) -> MotorSpeedSettings:
        return cls(payload[1] != 0)
