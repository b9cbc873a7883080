"""
Ray Generation and Ray/Triangle Intersection

All probe rays are axis-aligned and point along +axis. For a box
[min, max] one ray is cast per integer grid point of the two other axes,
starting one unit before the box so every surface inside it is ahead of
the ray origin.

The intersection test is Möller–Trumbore, compiled with numba. It returns
the ray parameter t of the hit, or -1.0 on a miss.
"""

import math
from typing import Iterator, List, NamedTuple, Optional, Sequence

import numpy as np
from numba import njit

from .config import EPSILON
from .geometry import Axis, Coordinate, round_half_up


class Ray(NamedTuple):
    """Axis-aligned ray travelling in the +axis direction."""

    origin: np.ndarray
    axis: Axis

    @property
    def direction(self) -> np.ndarray:
        direction = np.zeros(3, dtype=np.float64)
        direction[self.axis] = 1.0
        return direction


@njit(cache=True, fastmath=False)
def moller_trumbore(origin: np.ndarray, direction: np.ndarray,
                    v0: np.ndarray, v1: np.ndarray, v2: np.ndarray,
                    epsilon: float) -> float:
    """
    Möller–Trumbore ray/triangle intersection.

    Returns:
        Ray parameter t of the hit, or -1.0 when the ray is near-parallel,
        misses the triangle, or the hit is not ahead of the origin
    """
    e1_x = v1[0] - v0[0]
    e1_y = v1[1] - v0[1]
    e1_z = v1[2] - v0[2]

    e2_x = v2[0] - v0[0]
    e2_y = v2[1] - v0[1]
    e2_z = v2[2] - v0[2]

    # h = direction x e2
    h_x = direction[1] * e2_z - direction[2] * e2_y
    h_y = direction[2] * e2_x - direction[0] * e2_z
    h_z = direction[0] * e2_y - direction[1] * e2_x

    a = e1_x * h_x + e1_y * h_y + e1_z * h_z
    if a > -epsilon and a < epsilon:
        return -1.0

    f = 1.0 / a
    s_x = origin[0] - v0[0]
    s_y = origin[1] - v0[1]
    s_z = origin[2] - v0[2]

    u = f * (s_x * h_x + s_y * h_y + s_z * h_z)
    if u < 0.0 or u > 1.0:
        return -1.0

    # q = s x e1
    q_x = s_y * e1_z - s_z * e1_y
    q_y = s_z * e1_x - s_x * e1_z
    q_z = s_x * e1_y - s_y * e1_x

    v = f * (direction[0] * q_x + direction[1] * q_y + direction[2] * q_z)
    if v < 0.0 or u + v > 1.0:
        return -1.0

    t = f * (e2_x * q_x + e2_y * q_y + e2_z * q_z)
    if t > epsilon:
        return t
    return -1.0


def intersect(ray: Ray, v0: np.ndarray, v1: np.ndarray, v2: np.ndarray) -> Optional[np.ndarray]:
    """
    Intersect a ray with a triangle.

    Returns:
        The exact intersection point, or None on a miss
    """
    t = moller_trumbore(ray.origin, ray.direction,
                        np.asarray(v0, dtype=np.float64),
                        np.asarray(v1, dtype=np.float64),
                        np.asarray(v2, dtype=np.float64),
                        EPSILON)
    if t < 0.0:
        return None
    point = ray.origin.copy()
    point[ray.axis] += t
    return point


def snap_intersection(ray: Ray, point: np.ndarray) -> Coordinate:
    """
    Convert a hit point to a voxel coordinate.

    The two axes perpendicular to the ray are taken from the ray origin,
    which already lies on the integer grid; only the component along the
    ray is rounded.
    """
    components = [round_half_up(c) for c in ray.origin]
    components[ray.axis] = round_half_up(point[ray.axis])
    return Coordinate(*components)


def _rays_over_box(box_min: Sequence[int], box_max: Sequence[int]) -> Iterator[Ray]:
    for axis in Axis:
        a, b = axis.others
        for i in range(box_min[a], box_max[a] + 1):
            for j in range(box_min[b], box_max[b] + 1):
                origin = np.empty(3, dtype=np.float64)
                origin[axis] = box_min[axis] - 1
                origin[a] = i
                origin[b] = j
                yield Ray(origin, axis)


def integer_box(points: np.ndarray):
    """Floor of the minimum and ceil of the maximum of a set of points."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    box_min = [int(math.floor(c)) for c in points.min(axis=0)]
    box_max = [int(math.ceil(c)) for c in points.max(axis=0)]
    return box_min, box_max


def generate_rays(v0: np.ndarray, v1: np.ndarray, v2: np.ndarray) -> List[Ray]:
    """Probe rays covering a triangle's integer bounding box on all three axes."""
    box_min, box_max = integer_box(np.stack([v0, v1, v2]))
    return list(_rays_over_box(box_min, box_max))


def generate_bounds_rays(points_min: np.ndarray, points_max: np.ndarray) -> Iterator[Ray]:
    """Probe rays covering a whole mesh bounding box on all three axes."""
    box_min, box_max = integer_box(np.stack([points_min, points_max]))
    return _rays_over_box(box_min, box_max)
