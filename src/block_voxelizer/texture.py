"""
Texture Sampling

Textures are stored as float RGBA arrays of shape (H, W, 4), row 0 at the
top of the image. UV (0, 0) is the bottom-left corner.

Supports:
- Nearest and bilinear filtering
- Clamp and repeat wrapping for UVs outside [0, 1]
"""

from enum import Enum
from pathlib import Path
from typing import Union
import math

import numpy as np
from PIL import Image, UnidentifiedImageError

from .color import RGBA
from .config import TextureFiltering
from .errors import AppError


class WrapMode(Enum):
    CLAMP = "clamp"
    REPEAT = "repeat"


def _repeat_texcoord(a: float) -> float:
    if float(a).is_integer():
        return 1.0 if a > 0.5 else 0.0
    frac = abs(a) - math.floor(abs(a))
    return 1.0 - frac if a < 0.0 else frac


class Texture:
    """
    An RGBA image that can be sampled by UV.

    Args:
        pixels: Array of shape (H, W, 4) or (H, W, 3); uint8 values are
            normalized to [0, 1]
    """

    def __init__(self, pixels: np.ndarray):
        pixels = np.asarray(pixels)
        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise AppError(f"Texture must have shape (H, W, 3|4), got {pixels.shape}")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise AppError("Texture is empty")

        if pixels.dtype == np.uint8:
            pixels = pixels.astype(np.float64) / 255.0
        else:
            pixels = pixels.astype(np.float64)

        if pixels.shape[2] == 3:
            alpha = np.ones(pixels.shape[:2] + (1,), dtype=np.float64)
            pixels = np.concatenate([pixels, alpha], axis=2)

        self._pixels = pixels

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Texture":
        """
        Load a texture from an image file.

        Raises:
            AppError: If the file does not exist or is not a readable image
        """
        path = Path(path)
        if not path.exists():
            raise AppError(f"Texture not found: {path}")

        try:
            with Image.open(path) as img:
                rgba = np.array(img.convert("RGBA"), dtype=np.uint8)
        except (UnidentifiedImageError, OSError) as e:
            raise AppError(f"Could not read texture {path.name}: {e}") from e
        return cls(rgba)

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def pixels(self) -> np.ndarray:
        return self._pixels

    def sample(self, u: float, v: float,
               filtering: TextureFiltering = TextureFiltering.LINEAR,
               wrap: WrapMode = WrapMode.REPEAT) -> RGBA:
        """
        Sample the texture at a UV coordinate.

        UVs may lie outside [0, 1]; they are clamped or wrapped first.
        """
        if wrap is WrapMode.CLAMP:
            u = min(max(u, 0.0), 1.0)
            v = min(max(v, 0.0), 1.0)
        elif wrap is WrapMode.REPEAT:
            u = _repeat_texcoord(u)
            v = _repeat_texcoord(v)
        else:
            raise ValueError(f"Unknown wrap mode: {wrap}")

        v = 1.0 - v

        if filtering is TextureFiltering.NEAREST:
            texel = self._nearest(u, v)
        elif filtering is TextureFiltering.LINEAR:
            texel = self._linear(u, v)
        else:
            raise ValueError(f"Unknown texture filtering: {filtering}")

        return RGBA(*(float(c) for c in texel))

    def _texel(self, x: int, y: int) -> np.ndarray:
        x = min(max(x, 0), self.width - 1)
        y = min(max(y, 0), self.height - 1)
        return self._pixels[y, x]

    def _nearest(self, u: float, v: float) -> np.ndarray:
        return self._texel(int(math.floor(u * self.width)), int(math.floor(v * self.height)))

    def _linear(self, u: float, v: float) -> np.ndarray:
        x = u * self.width
        y = v * self.height
        x_left = int(math.floor(x))
        y_up = int(math.floor(y))
        fx = x - x_left
        fy = y - y_up

        top = self._texel(x_left, y_up) * (1.0 - fx) + self._texel(x_left + 1, y_up) * fx
        bottom = self._texel(x_left, y_up + 1) * (1.0 - fx) + self._texel(x_left + 1, y_up + 1) * fx
        return top * (1.0 - fy) + bottom * fy
