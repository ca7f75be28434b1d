"""Typed melodies for the sound characteristic."""

from __future__ import annotations

from dataclasses import dataclass

from ..protocol.base import MAX_DURATION_UNITS, MAX_SOUND_STEPS, check_u8, duration_to_units
from ..protocol.commands import SoundSequence, SoundStep
from .enums import Note

MAX_NOTE_DURATION = MAX_DURATION_UNITS / 100  # 2.55 s


@dataclass(frozen=True, slots=True)
class SoundOp:
    """One note held for ``duration`` seconds (0.01-2.55)."""

    note: Note
    duration: float
    volume: int = 0xFF

    def __post_init__(self) -> None:
        if not 0 < self.duration <= MAX_NOTE_DURATION:
            raise ValueError(
                f"duration out of range: {self.duration} (must be 0-{MAX_NOTE_DURATION} s)"
            )
        check_u8("volume", self.volume)

    def to_step(self) -> SoundStep:
        return SoundStep(Note(self.note), duration_to_units(self.duration), self.volume)


@dataclass(frozen=True, slots=True)
class Melody:
    """Notes played in order, ``repeat`` times (0 = forever)."""

    ops: tuple[SoundOp, ...]
    repeat: int = 1

    def __post_init__(self) -> None:
        if not 1 <= len(self.ops) <= MAX_SOUND_STEPS:
            raise ValueError(
                f"ops out of range: {len(self.ops)} (must be 1-{MAX_SOUND_STEPS})"
            )
        check_u8("repeat", self.repeat)

    @classmethod
    def single(cls, note: Note, duration: float, volume: int = 0xFF) -> Melody:
        """Build a one-note melody."""
        return cls(ops=(SoundOp(note, duration, volume),))

    def to_command(self) -> SoundSequence:
        return SoundSequence(tuple(op.to_step() for op in self.ops), self.repeat)
