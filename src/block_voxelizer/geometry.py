"""
Spatial Primitives

- Axis: the three lattice axes
- Coordinate: hashable integer lattice position, the key of every sparse map
- Bounds: lazily extended min/max box over coordinates
"""

import math
from enum import IntEnum
from typing import Iterable, NamedTuple, Optional, Tuple

import numpy as np


class Axis(IntEnum):
    X = 0
    Y = 1
    Z = 2

    @property
    def others(self) -> Tuple["Axis", "Axis"]:
        """The two axes perpendicular to this one."""
        return Axis((self + 1) % 3), Axis((self + 2) % 3)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties towards +inf."""
    return int(math.floor(value + 0.5))


class Coordinate(NamedTuple):
    """
    Integer lattice position.

    Hash and equality come from the tuple, so two equal coordinates always
    hash equal and coordinates can key dicts and sets directly.
    """

    x: int
    y: int
    z: int

    @classmethod
    def from_point(cls, point: Iterable[float]) -> "Coordinate":
        """Snap a real-valued point to the lattice (round half up)."""
        x, y, z = point
        return cls(round_half_up(x), round_half_up(y), round_half_up(z))

    def offset(self, dx: int, dy: int, dz: int) -> "Coordinate":
        return Coordinate(self.x + dx, self.y + dy, self.z + dz)

    def to_array(self) -> np.ndarray:
        return np.array(self, dtype=np.float64)


# Axis-aligned neighbour offsets, in the order +X, -X, +Y, -Y, +Z, -Z
FACE_OFFSETS: Tuple[Tuple[int, int, int], ...] = (
    (1, 0, 0), (-1, 0, 0),
    (0, 1, 0), (0, -1, 0),
    (0, 0, 1), (0, 0, -1),
)


class Bounds:
    """
    Axis-aligned integer bounds, grown one coordinate at a time.

    An empty Bounds has no meaningful min/max; accessing them raises.
    """

    def __init__(self, min_corner: Optional[Coordinate] = None,
                 max_corner: Optional[Coordinate] = None):
        self._min = min_corner
        self._max = max_corner if max_corner is not None else min_corner

    @classmethod
    def empty(cls) -> "Bounds":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self._min is None

    @property
    def min(self) -> Coordinate:
        if self._min is None:
            raise ValueError("Bounds are empty")
        return self._min

    @property
    def max(self) -> Coordinate:
        if self._max is None:
            raise ValueError("Bounds are empty")
        return self._max

    def extend(self, position: Coordinate) -> "Bounds":
        """Grow the bounds to include a coordinate."""
        if self._min is None:
            self._min = Coordinate(*position)
            self._max = Coordinate(*position)
            return self

        self._min = Coordinate(
            min(self._min.x, position[0]),
            min(self._min.y, position[1]),
            min(self._min.z, position[2]),
        )
        self._max = Coordinate(
            max(self._max.x, position[0]),
            max(self._max.y, position[1]),
            max(self._max.z, position[2]),
        )
        return self

    def union(self, other: "Bounds") -> "Bounds":
        """Return new bounds covering both."""
        result = Bounds(self._min, self._max)
        if not other.is_empty:
            result.extend(other.min).extend(other.max)
        return result

    def contains(self, position: Coordinate) -> bool:
        if self._min is None:
            return False
        return all(lo <= p <= hi for lo, p, hi in zip(self._min, position, self._max))

    @property
    def dimensions(self) -> Tuple[int, int, int]:
        """Inclusive size along each axis, (0, 0, 0) when empty."""
        if self._min is None:
            return (0, 0, 0)
        return tuple(hi - lo + 1 for lo, hi in zip(self._min, self._max))

    def __repr__(self) -> str:
        if self._min is None:
            return "Bounds(empty)"
        return f"Bounds(min={tuple(self._min)}, max={tuple(self._max)})"
