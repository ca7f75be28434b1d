"""Data models for toio cubes.

Only modules free of protocol imports are re-exported here; the light and
sound builders are imported from ``toio.models.light`` / ``toio.models.sound``.
"""

from .advertisement import (
    DEFAULT_MEASURED_POWER,
    DEFAULT_PATH_LOSS_EXPONENT,
    Advertisement,
    Peripheral,
    estimate_distance,
)
from .enums import (
    ButtonState,
    ConfigResult,
    ConnectionState,
    IdNotifyCondition,
    MotorDirection,
    MotorId,
    MotorPriority,
    MoveType,
    Note,
    Posture,
    RotationDirection,
    SoundPresetId,
    SpeedChange,
    TargetResult,
    TravelDirection,
    WriteOption,
)
from .motion import MotorIntent

__all__ = [
    "Advertisement",
    "Peripheral",
    "estimate_distance",
    "DEFAULT_MEASURED_POWER",
    "DEFAULT_PATH_LOSS_EXPONENT",
    "MotorIntent",
    "ButtonState",
    "ConfigResult",
    "ConnectionState",
    "IdNotifyCondition",
    "MotorDirection",
    "MotorId",
    "MotorPriority",
    "MoveType",
    "Note",
    "Posture",
    "RotationDirection",
    "SoundPresetId",
    "SpeedChange",
    "TargetResult",
    "TravelDirection",
    "WriteOption",
]
