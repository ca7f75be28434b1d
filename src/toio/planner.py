"""Translate steering intents into wheel speeds and motor frames.

Every function here is pure: the same inputs always give the same intent.
"""

from __future__ import annotations

from .models.motion import MotorIntent
from .protocol.base import MAX_DURATION_UNITS, MAX_MOTOR_SPEED, duration_to_units
from .protocol.commands import MotorControl, MotorControlTimed

STOP = MotorIntent(0, 0)


def clamp_speed(speed: int) -> tuple[int, bool]:
    """Clamp a signed wheel speed to the hardware range, keeping its sign.

    Returns:
        Tuple of (clamped speed, whether clamping happened)
    """
    if speed > MAX_MOTOR_SPEED:
        return MAX_MOTOR_SPEED, True
    if speed < -MAX_MOTOR_SPEED:
        return -MAX_MOTOR_SPEED, True
    return speed, False


def _normalize_duration(duration: float | None) -> tuple[float | None, bool]:
    """Round a duration up to whole 10 ms units within 0.01-2.55 s.

    Raises:
        ValueError: If duration is negative
    """
    if duration is None or duration == 0:
        return duration, False
    if duration < 0:
        raise ValueError(f"duration must not be negative: {duration}")

    units = duration_to_units(duration)
    if units > MAX_DURATION_UNITS:
        return MAX_DURATION_UNITS / 100, True
    return units / 100, False


def plan_wheels(left: int, right: int, duration: float | None = None) -> MotorIntent:
    """Build an intent from direct wheel speeds.

    Args:
        left: Signed left wheel speed
        right: Signed right wheel speed
        duration: Seconds to run; None runs until the next command, 0 stops

    Returns:
        MotorIntent with both speeds clamped to the hardware range

    Raises:
        ValueError: If duration is negative
    """
    norm_duration, duration_clamped = _normalize_duration(duration)
    if norm_duration == 0:
        return MotorIntent(0, 0, 0)

    left, left_clamped = clamp_speed(left)
    right, right_clamped = clamp_speed(right)
    return MotorIntent(
        left,
        right,
        norm_duration,
        clamped=left_clamped or right_clamped or duration_clamped,
    )


def plan(x: float, y: float, speed: int, duration: float | None = None) -> MotorIntent:
    """Steer with a left/right bias pair.

    The stronger bias runs at ``speed`` and the other wheel runs
    proportionally, so ``plan(20, 20, 50)`` drives straight at 50 and
    ``plan(5, 50, 50)`` curves left.

    Args:
        x: Left wheel bias
        y: Right wheel bias
        speed: Speed of the stronger wheel
        duration: Seconds to run; None runs until the next command, 0 stops

    Returns:
        MotorIntent, a stop intent when speed or both biases are zero

    Raises:
        ValueError: If duration is negative
    """
    scale = max(abs(x), abs(y))
    if speed == 0 or scale == 0:
        # Validate the duration even though nothing moves
        norm_duration, _ = _normalize_duration(duration)
        return MotorIntent(0, 0, norm_duration)

    left = round(speed * x / scale)
    right = round(speed * y / scale)
    return plan_wheels(left, right, duration)


def to_command(intent: MotorIntent) -> MotorControl | MotorControlTimed:
    """Build the motor frame that carries out an intent."""
    if intent.is_stop:
        return MotorControl(0, 0)
    if intent.duration is None:
        return MotorControl(intent.left_speed, intent.right_speed)

    units = min(duration_to_units(intent.duration), MAX_DURATION_UNITS)
    return MotorControlTimed(intent.left_speed, intent.right_speed, units)
