"""Colour value object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True, slots=True)
class RGBAColor:
    """8-bit RGBA colour."""
    r: int
    g: int
    b: int
    a: int = 255

    def __post_init__(self) -> None:
        for channel in (self.r, self.g, self.b, self.a):
            if not 0 <= channel <= 255:
                raise ValueError(f"Colour channel out of range: {channel}")

    @property
    def rgb(self) -> tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)

    @classmethod
    def from_sequence(cls, values: Sequence[int]) -> RGBAColor:
        """Build from an (r, g, b[, a]) sequence such as a numpy pixel."""
        if len(values) == 3:
            return cls(int(values[0]), int(values[1]), int(values[2]))
        return cls(int(values[0]), int(values[1]), int(values[2]), int(values[3]))


WHITE = RGBAColor(255, 255, 255, 255)
