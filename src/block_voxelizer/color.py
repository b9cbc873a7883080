"""
Color Management Module

Handles:
- RGBA colour values as used by voxels, textures and palettes
- Colour binning to a fixed resolution before block matching
- sRGB to Linear conversion (numba kernel)
- sRGB to CIE L*a*b* conversion for perceptual colour distance

Colour components are floats in [0, 1] unless stated otherwise. Binned
and dithered colours use the 0-255 scale.
"""

from typing import NamedTuple, Sequence
import numpy as np
from numba import njit, prange

from .config import ALPHA_BIAS

# D65 reference white
_WHITE_X = 0.95047
_WHITE_Y = 1.0
_WHITE_Z = 1.08883

_RGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
])


class RGBA(NamedTuple):
    r: float
    g: float
    b: float
    a: float = 1.0

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> "RGBA":
        """Build from an RGB or RGBA sequence; alpha defaults to 1."""
        if len(values) == 3:
            return cls(float(values[0]), float(values[1]), float(values[2]), 1.0)
        if len(values) == 4:
            return cls(float(values[0]), float(values[1]), float(values[2]), float(values[3]))
        raise ValueError(f"Expected 3 or 4 colour components, got {len(values)}")

    @classmethod
    def from_dict(cls, data: dict) -> "RGBA":
        """Build from a {"r", "g", "b", "a"} mapping as stored in atlas files."""
        return cls(float(data["r"]), float(data["g"]), float(data["b"]), float(data.get("a", 1.0)))

    def to_array(self) -> np.ndarray:
        return np.array(self, dtype=np.float64)


def bin_color(color: RGBA, resolution: int) -> np.ndarray:
    """
    Quantize a colour to `resolution` levels per channel.

    Args:
        color: Colour with components in [0, 1]
        resolution: Levels per channel (1-255)

    Returns:
        Float array of 4 components on the 0-255 scale
    """
    step = 255.0 / resolution
    rgb = np.floor(np.floor(np.asarray(color[:3], dtype=np.float64) * resolution) * step)
    alpha = np.floor(np.ceil(color[3] * resolution) * step)
    return np.append(rgb, alpha)


def squared_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Squared RGBA distance, alpha weighted by ALPHA_BIAS."""
    dr = a[0] - b[0]
    dg = a[1] - b[1]
    db = a[2] - b[2]
    da = a[3] - b[3]
    return dr * dr + dg * dg + db * db + da * da * ALPHA_BIAS


@njit(cache=True)
def _srgb_to_linear_component(c: float) -> float:
    """
    Convert a single sRGB component to Linear.

    The sRGB standard uses a piecewise function:
    - Linear below threshold (0.04045)
    - Gamma curve above threshold
    """
    if c <= 0.04045:
        return c / 12.92
    else:
        return ((c + 0.055) / 1.055) ** 2.4


@njit(cache=True, parallel=True)
def srgb_to_linear(colors: np.ndarray) -> np.ndarray:
    """
    Convert sRGB colors to Linear color space.

    Args:
        colors: Float array of shape (N, 3) or (N, 4) with values in [0, 1]

    Returns:
        Array of same shape with Linear values; alpha is copied unchanged
    """
    n = colors.shape[0]
    channels = colors.shape[1]
    result = np.empty((n, channels), dtype=np.float64)

    for i in prange(n):
        for c in range(min(channels, 3)):  # Only convert RGB, not alpha
            value = max(0.0, min(1.0, colors[i, c]))
            result[i, c] = _srgb_to_linear_component(value)

        if channels == 4:
            result[i, 3] = colors[i, 3]

    return result


def rgb_to_lab(colors: np.ndarray) -> np.ndarray:
    """
    Convert sRGB colours to CIE L*a*b* (D65).

    Args:
        colors: Float array of shape (N, 3) or (N, 4) with values in [0, 1]

    Returns:
        Float array of shape (N, 3) with L in [0, 100]
    """
    colors = np.ascontiguousarray(np.atleast_2d(colors)[:, :3], dtype=np.float64)
    linear = srgb_to_linear(colors)
    xyz = linear @ _RGB_TO_XYZ.T
    xyz /= np.array([_WHITE_X, _WHITE_Y, _WHITE_Z])

    epsilon = 216.0 / 24389.0
    kappa = 24389.0 / 27.0
    f = np.where(xyz > epsilon, np.cbrt(xyz), (kappa * xyz + 16.0) / 116.0)

    lab = np.empty_like(f)
    lab[:, 0] = 116.0 * f[:, 1] - 16.0
    lab[:, 1] = 500.0 * (f[:, 0] - f[:, 1])
    lab[:, 2] = 200.0 * (f[:, 1] - f[:, 2])
    return lab
