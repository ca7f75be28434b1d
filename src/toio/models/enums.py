from __future__ import annotations

from enum import Enum, IntEnum
from typing import Final


class ConnectionState(Enum):
    """Lifecycle states of a cube session."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


class MotorId(IntEnum):
    """Motor identifiers used in motor control frames."""
    LEFT = 0x01
    RIGHT = 0x02


class MotorDirection(IntEnum):
    """Wheel rotation direction."""
    FORWARD = 0x01
    BACKWARD = 0x02


class MoveType(IntEnum):
    """Path style for target movement."""
    CURVE = 0x00          # Rotate while moving
    FORWARD_ONLY = 0x01   # Rotate while moving, never reverse
    STRAIGHT = 0x02       # Rotate in place first, then drive straight


class SpeedChange(IntEnum):
    """Speed profile for target movement."""
    CONSTANT = 0x00
    ACCELERATE = 0x01
    DECELERATE = 0x02
    ACCELERATE_DECELERATE = 0x03


class WriteOption(IntEnum):
    """How a multi-target request interacts with one already running."""
    OVERWRITE = 0x00
    APPEND = 0x01


class TargetResult(IntEnum):
    """Result codes reported for target movement requests."""
    OK = 0x00
    TIMEOUT = 0x01
    ID_MISSED = 0x02
    INVALID_PARAMETER = 0x03
    INVALID_STATE = 0x04
    OTHER_WRITE = 0x05
    UNSUPPORTED = 0x06
    QUEUE_FULL = 0x07


class RotationDirection(IntEnum):
    """Rotation direction for acceleration control."""
    POSITIVE = 0x00
    NEGATIVE = 0x01


class TravelDirection(IntEnum):
    """Travel direction for acceleration control."""
    FORWARD = 0x00
    BACKWARD = 0x01


class MotorPriority(IntEnum):
    """Which speed wins when translation and rotation conflict."""
    TRANSLATION = 0x00
    ROTATION = 0x01


class Posture(IntEnum):
    """Which face of the cube is pointing up."""
    TOP_UP = 0x01
    BOTTOM_UP = 0x02
    BACK_UP = 0x03
    FRONT_UP = 0x04
    RIGHT_SIDE_UP = 0x05
    LEFT_SIDE_UP = 0x06


class ButtonState(IntEnum):
    """Function button state."""
    RELEASED = 0x00
    PRESSED = 0x80


class SoundPresetId(IntEnum):
    """Built-in sound effects."""
    ENTER = 0
    SELECTED = 1
    CANCEL = 2
    CURSOR = 3
    MAT_IN = 4
    MAT_OUT = 5
    GET_1 = 6
    GET_2 = 7
    GET_3 = 8
    EFFECT_1 = 9
    EFFECT_2 = 10


class IdNotifyCondition(IntEnum):
    """When the cube sends ID reader notifications."""
    ALWAYS = 0x00
    ON_CHANGE = 0x01
    ON_CHANGE_THROTTLED = 0xFF  # On change, at most once every 300 ms


class ConfigResult(IntEnum):
    """Result byte of configuration responses."""
    SUCCESS = 0x00
    FAILURE = 0x01


_NOTE_NAMES: Final[tuple[str, ...]] = ("C", "CS", "D", "DS", "E", "F", "FS", "G", "GS", "A", "AS", "B")

# C0 = 0 through G10 = 127, one member per semitone; 128 is silence.
Note = IntEnum(
    "Note",
    [(f"{name}{octave}", octave * 12 + index)
     for octave in range(11)
     for index, name in enumerate(_NOTE_NAMES)
     if octave * 12 + index <= 127]
    + [("NO_SOUND", 128)],
    module=__name__,
)
Note.__doc__ = "MIDI note numbers accepted by the sound characteristic."
