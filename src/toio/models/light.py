"""Typed light patterns for the light characteristic."""

from __future__ import annotations

from dataclasses import dataclass

from ..protocol.base import MAX_DURATION_UNITS, MAX_LIGHT_STEPS, check_u8, duration_to_units
from ..protocol.commands import LightOn, LightSequence, LightStep

MAX_LIGHT_DURATION = MAX_DURATION_UNITS / 100  # 2.55 s


def _check_duration(duration: float | None) -> None:
    if duration is None:
        return
    if not 0 < duration <= MAX_LIGHT_DURATION:
        raise ValueError(
            f"duration out of range: {duration} (must be 0-{MAX_LIGHT_DURATION} s, "
            "or None for no limit)"
        )


@dataclass(frozen=True, slots=True)
class LightOp:
    """One colour shown for a time.

    A duration of None keeps the light on until the next light command.
    """

    red: int
    green: int
    blue: int
    duration: float | None = None

    def __post_init__(self) -> None:
        check_u8("red", self.red)
        check_u8("green", self.green)
        check_u8("blue", self.blue)
        _check_duration(self.duration)

    def to_step(self) -> LightStep:
        units = 0 if self.duration is None else duration_to_units(self.duration)
        return LightStep(self.red, self.green, self.blue, duration_units=units)

    def to_command(self) -> LightOn:
        return LightOn(self.to_step())


@dataclass(frozen=True, slots=True)
class LightPattern:
    """Sequence of colours played by the cube, ``repeat`` times (0 = forever)."""

    ops: tuple[LightOp, ...]
    repeat: int = 0

    def __post_init__(self) -> None:
        if not 1 <= len(self.ops) <= MAX_LIGHT_STEPS:
            raise ValueError(
                f"ops out of range: {len(self.ops)} (must be 1-{MAX_LIGHT_STEPS})"
            )
        check_u8("repeat", self.repeat)

    @classmethod
    def single(
        cls,
        *,
        red: int,
        green: int,
        blue: int,
        duration: float | None = None,
    ) -> LightPattern:
        """Build a one-colour pattern."""
        return cls(ops=(LightOp(red, green, blue, duration),), repeat=1)

    @classmethod
    def blink(
        cls,
        *,
        red: int,
        green: int,
        blue: int,
        on: float = 0.5,
        off: float = 0.5,
        repeat: int = 0,
    ) -> LightPattern:
        """Build an on/off blink pattern."""
        return cls(
            ops=(LightOp(red, green, blue, on), LightOp(0, 0, 0, off)),
            repeat=repeat,
        )

    def to_command(self) -> LightSequence:
        return LightSequence(tuple(op.to_step() for op in self.ops), self.repeat)
