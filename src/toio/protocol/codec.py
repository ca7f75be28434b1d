"""Encode and decode toio frames.

Type tags are only unique per characteristic, so decoding is keyed on the
characteristic UUID together with the leading tag byte.
"""

from __future__ import annotations

from typing import Final

from ..exceptions import DecodeError, TruncatedError, UnknownTypeError
from . import commands, responses
from .base import BATTERY_UUID, Frame

FRAME_TYPES: Final[tuple[type[Frame], ...]] = (
    # Motor
    commands.MotorControl,
    commands.MotorControlTimed,
    commands.MotorTarget,
    commands.MotorMultiTarget,
    commands.MotorAcceleration,
    responses.MotorTargetResponse,
    responses.MotorMultiTargetResponse,
    responses.MotorSpeed,
    # Light
    commands.LightsOff,
    commands.LightOff,
    commands.LightOn,
    commands.LightSequence,
    # Sound
    commands.SoundStop,
    commands.SoundPreset,
    commands.SoundSequence,
    # Configuration
    commands.ConfigVersionRequest,
    commands.LevelThreshold,
    commands.CollisionThreshold,
    commands.DoubleTapInterval,
    commands.IdNotificationSettings,
    commands.IdMissedNotificationSettings,
    commands.MotorSpeedSettings,
    responses.ConfigVersionResponse,
    responses.IdNotificationResponse,
    responses.IdMissedNotificationResponse,
    responses.MotorSpeedSettingsResponse,
    # Sensors
    responses.IdPosition,
    responses.IdStandard,
    responses.IdPositionMissed,
    responses.IdStandardMissed,
    responses.MotionDetection,
    responses.ButtonEvent,
    responses.BatteryLevel,
)

_REGISTRY: Final[dict[tuple[str, int | None], type[Frame]]] = {
    (frame_type.characteristic, frame_type.tag): frame_type for frame_type in FRAME_TYPES
}


def _normalize_uuid(uuid: str) -> str:
    return uuid.lower()


def encode(frame: Frame) -> bytes:
    """Serialize a frame to the bytes written to its characteristic."""
    return frame.to_bytes()


def decode(characteristic: str, data: bytes) -> Frame:
    """Decode bytes received from a characteristic.

    Args:
        characteristic: UUID of the characteristic the bytes came from
        data: Raw notification or read value

    Returns:
        The decoded frame

    Raises:
        UnknownTypeError: If the characteristic/tag pair is not known
        TruncatedError: If data is shorter than the frame layout
        DecodeError: If a field holds a value outside its allowed range
    """
    characteristic = _normalize_uuid(characteristic)
    data = bytes(data)

    if characteristic == BATTERY_UUID:
        tag = None
        payload = data
    else:
        if not data:
            raise TruncatedError(f"Empty frame on {characteristic}")
        tag = data[0]
        payload = data[1:]

    frame_type = _REGISTRY.get((characteristic, tag))
    if frame_type is None:
        tag_text = "untagged" if tag is None else f"0x{tag:02x}"
        raise UnknownTypeError(f"Unknown frame type {tag_text} on {characteristic}")

    if len(payload) < frame_type.min_size:
        raise TruncatedError(
            f"{frame_type.__name__} too short: {len(payload)} bytes "
            f"(need at least {frame_type.min_size})"
        )

    try:
        return frame_type.from_payload(payload)
    except DecodeError:
        raise
    except ValueError as e:
        raise DecodeError(f"Invalid {frame_type.__name__}: {e}") from e
