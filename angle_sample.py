"""
Angle value type for a 14-bit absolute encoder.

An angle can be given as a tic count in [0, 16383], as radians in [0, 2π) or
as a point (x, y) on the unit circle; each representation derives the others.
"""

import math
from dataclasses import dataclass

TICS_PER_REV = 16384                 # 2^14
TIC_ANGLE = 2.0 * math.pi / TICS_PER_REV
TWO_PI = 2.0 * math.pi


def wrap_tics(tics: int) -> int:
    """Bring a tic count into [0, TICS_PER_REV)."""
    return int(tics) % TICS_PER_REV


def round_half_up(value: float) -> int:
    """Round a non-negative value to the nearest integer, ties away from zero."""
    return int(math.floor(value + 0.5))


def radians_to_tics(angle: float) -> int:
    # Normalize first so negative and >2π inputs land on the circle
    return round_half_up((angle % TWO_PI) / TIC_ANGLE) % TICS_PER_REV


@dataclass(frozen=True)
class AngleSample:
    """A digitized angle. Use the from_* constructors."""
    tics: int

    def __post_init__(self):
        object.__setattr__(self, "tics", wrap_tics(self.tics))

    @classmethod
    def from_tics(cls, tics: int) -> "AngleSample":
        return cls(tics)

    @classmethod
    def from_radians(cls, angle: float) -> "AngleSample":
        return cls(radians_to_tics(angle))

    @classmethod
    def from_xy(cls, x: float, y: float) -> "AngleSample":
        """Angle of the vector (x, y); the origin maps to tic 0."""
        if x == 0.0 and y == 0.0:
            return cls(0)
        return cls(radians_to_tics(math.atan2(y, x)))

    @property
    def radians(self) -> float:
        return self.tics * TIC_ANGLE

    @property
    def degrees(self) -> float:
        return self.tics * 360.0 / TICS_PER_REV

    @property
    def x(self) -> float:
        return math.cos(self.radians)

    @property
    def y(self) -> float:
        return math.sin(self.radians)

    @property
    def xy(self):
        return self.x, self.y
