"""Wheel-level motion intent."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class MotorIntent:
    """Signed wheel speeds ready to be written to the motor characteristic.

    Attributes:
        left_speed: Left wheel speed, negative = backward
        right_speed: Right wheel speed, negative = backward
        duration: Run time in seconds; None runs until the next command
        clamped: True if a speed or the duration was limited to the hardware range
    """

    left_speed: int
    right_speed: int
    duration: float | None = None
    clamped: bool = False

    @property
    def is_stop(self) -> bool:
        return (self.left_speed == 0 and self.right_speed == 0) or self.duration == 0
