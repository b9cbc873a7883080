"""
Colour Assigners

Before a voxel is matched to a block its colour is binned to the
requested resolution and may be dithered to break up banding. Colours
here are on the 0-255 scale.

- basic: binning only
- ordered-dithering: offset from a 4x4x4 Bayer matrix indexed by position
- random-dithering: uniform random offset per voxel
"""

import math
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np

from .color import RGBA, bin_color
from .config import AssignerKind, DITHER_MAGNITUDE

# 4x4x4 threshold matrix, indexed by x + 4y + 16z
BAYER_MATRIX = np.array([
    0, 16, 2, 18, 48, 32, 50, 34,
    6, 22, 4, 20, 54, 38, 52, 36,
    24, 40, 26, 42, 8, 56, 10, 58,
    30, 46, 28, 44, 14, 62, 12, 60,
    3, 19, 5, 21, 51, 35, 53, 37,
    1, 17, 7, 23, 49, 33, 55, 39,
    27, 43, 29, 45, 11, 59, 13, 61,
    25, 41, 31, 47, 9, 57, 15, 63,
], dtype=np.float64)


class ColorAssigner(ABC):
    """Prepares a voxel colour for block matching."""

    def __init__(self, magnitude: float = DITHER_MAGNITUDE):
        self.magnitude = magnitude

    def final_color(self, color: RGBA, position: Sequence[int], resolution: int) -> RGBA:
        """
        Binned (and possibly dithered) colour, returned in [0, 1].
        """
        binned = bin_color(color, resolution)
        binned[:3] += self.offset(position)
        return RGBA(*np.clip(binned / 255.0, 0.0, 1.0))

    @abstractmethod
    def offset(self, position: Sequence[int]) -> float:
        """Offset added to the RGB channels, on the 0-255 scale."""


class BasicAssigner(ColorAssigner):
    def offset(self, position: Sequence[int]) -> float:
        return 0.0


class OrderedDitheringAssigner(ColorAssigner):
    def offset(self, position: Sequence[int]) -> float:
        x, y, z = (abs(int(math.fmod(c, 4))) for c in position)
        threshold = BAYER_MATRIX[x + 4 * y + 16 * z] / 64.0 - 0.5
        return threshold * self.magnitude


class RandomDitheringAssigner(ColorAssigner):
    def __init__(self, magnitude: float = DITHER_MAGNITUDE, seed: Optional[int] = None):
        super().__init__(magnitude)
        self._rng = np.random.default_rng(seed)

    def offset(self, position: Sequence[int]) -> float:
        return (self._rng.random() - 0.5) * self.magnitude


def create_assigner(kind: AssignerKind, seed: Optional[int] = None) -> ColorAssigner:
    """Instantiate the assigner for a kind (enum member or string id)."""
    kind = AssignerKind(kind)
    if kind is AssignerKind.BASIC:
        return BasicAssigner()
    elif kind is AssignerKind.ORDERED_DITHERING:
        return OrderedDitheringAssigner()
    elif kind is AssignerKind.RANDOM_DITHERING:
        return RandomDitheringAssigner(seed=seed)
    else:
        raise ValueError(f"Unknown block assigner: {kind}")
