"""
Unit tests for ray generation, intersection and the BVH.
"""

import sys
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from block_voxelizer.bvh import BVH
from block_voxelizer.errors import AppError
from block_voxelizer.geometry import Axis, Coordinate
from block_voxelizer.ray import (
    Ray,
    generate_bounds_rays,
    generate_rays,
    integer_box,
    intersect,
    snap_intersection,
)


def _barycentric(point, v0, v1, v2):
    e1 = v1 - v0
    e2 = v2 - v0
    d = point - v0
    d11, d12, d22 = e1 @ e1, e1 @ e2, e2 @ e2
    d1, d2 = d @ e1, d @ e2
    denom = d11 * d22 - d12 * d12
    v = (d22 * d1 - d12 * d2) / denom
    w = (d11 * d2 - d12 * d1) / denom
    return 1.0 - v - w, v, w


class TestIntersection(unittest.TestCase):
    """Tests for the ray/triangle test."""

    def setUp(self):
        self.v0 = np.array([0.0, 0.0, 0.0])
        self.v1 = np.array([0.0, 4.0, 0.0])
        self.v2 = np.array([0.0, 0.0, 4.0])

    def test_hit(self):
        """A ray through the interior hits at the plane."""
        ray = Ray(np.array([-1.0, 1.0, 1.0]), Axis.X)
        point = intersect(ray, self.v0, self.v1, self.v2)

        assert point is not None
        np.testing.assert_allclose(point, [0.0, 1.0, 1.0])

    def test_miss_outside(self):
        """A ray passing beside the triangle misses."""
        ray = Ray(np.array([-1.0, 3.0, 3.0]), Axis.X)
        assert intersect(ray, self.v0, self.v1, self.v2) is None

    def test_parallel_ray_misses(self):
        """A ray lying in the triangle's plane is rejected."""
        ray = Ray(np.array([0.0, -1.0, 1.0]), Axis.Y)
        assert intersect(ray, self.v0, self.v1, self.v2) is None

    def test_hit_behind_origin_misses(self):
        """Only hits ahead of the origin count."""
        ray = Ray(np.array([1.0, 1.0, 1.0]), Axis.X)
        assert intersect(ray, self.v0, self.v1, self.v2) is None

    def test_vertex_hit(self):
        """Rays through a vertex are accepted."""
        ray = Ray(np.array([-1.0, 0.0, 0.0]), Axis.X)
        assert intersect(ray, self.v0, self.v1, self.v2) is not None

    def test_hits_lie_inside_triangle(self):
        """Every hit of a generated ray lies on its triangle."""
        rng = np.random.default_rng(7)
        for _ in range(40):
            v0, v1, v2 = rng.uniform(-6.0, 6.0, size=(3, 3))
            normal = np.cross(v1 - v0, v2 - v0)
            if np.linalg.norm(normal) < 1.0:
                continue
            normal /= np.linalg.norm(normal)

            for ray in generate_rays(v0, v1, v2):
                point = intersect(ray, v0, v1, v2)
                if point is None:
                    continue
                assert abs((point - v0) @ normal) < 1e-6
                for weight in _barycentric(point, v0, v1, v2):
                    assert -1e-6 <= weight <= 1.0 + 1e-6


class TestRayGeneration(unittest.TestCase):
    """Tests for probe ray generation."""

    def test_integer_box(self):
        """Box corners are floored and ceiled."""
        box_min, box_max = integer_box(np.array([[0.2, -1.5, 3.0], [2.7, 0.1, 3.0]]))
        assert box_min == [0, -2, 3]
        assert box_max == [3, 1, 3]

    def test_ray_count(self):
        """One ray per grid point of the two other axes, for each axis."""
        v0 = np.array([0.0, 0.0, 0.0])
        v1 = np.array([2.0, 0.0, 0.0])
        v2 = np.array([0.0, 3.0, 1.0])
        rays = generate_rays(v0, v1, v2)

        # Grid points: 3 along x, 4 along y, 2 along z
        assert len(rays) == 4 * 2 + 2 * 3 + 3 * 4

    def test_ray_origins_before_box(self):
        """Ray origins start one unit before the box along the ray."""
        for ray in generate_bounds_rays(np.array([-2.0, -3.0, -4.0]), np.array([2.0, 3.0, 4.0])):
            assert ray.origin[ray.axis] == [-2.0, -3.0, -4.0][ray.axis] - 1

    def test_bounds_ray_count(self):
        rays = list(generate_bounds_rays(np.zeros(3), np.array([1.0, 1.0, 1.0])))
        assert len(rays) == 3 * 4

    def test_snap_keeps_grid_axes(self):
        """Only the component along the ray is rounded."""
        ray = Ray(np.array([2.0, -5.0, 3.0]), Axis.Y)
        assert snap_intersection(ray, np.array([2.0, 1.5, 3.0])) == Coordinate(2, 2, 3)
        assert snap_intersection(ray, np.array([2.0, -1.5, 3.0])) == Coordinate(2, -1, 3)


class TestBVH(unittest.TestCase):
    """Tests for BVH construction and queries."""

    def setUp(self):
        rng = np.random.default_rng(3)
        centers = rng.uniform(-10.0, 10.0, size=(200, 3))
        self.v0 = centers + rng.uniform(-2.0, 2.0, size=(200, 3))
        self.v1 = centers + rng.uniform(-2.0, 2.0, size=(200, 3))
        self.v2 = centers + rng.uniform(-2.0, 2.0, size=(200, 3))

    def test_leaf_capacity(self):
        """Leaves hold at most 8 triangles and cover every triangle once."""
        bvh = BVH.build(self.v0, self.v1, self.v2)
        sizes = bvh.leaf_sizes()

        assert bvh.triangle_count == 200
        assert np.all(sizes <= 8)
        assert sizes.sum() == 200

    def test_depth_is_logarithmic(self):
        bvh = BVH.build(self.v0, self.v1, self.v2)
        assert bvh.depth <= 2 * int(np.ceil(np.log2(200 / 8))) + 2

    def test_matches_brute_force(self):
        """The BVH finds exactly the hits of testing every triangle."""
        bvh = BVH.build(self.v0, self.v1, self.v2)
        lo = np.minimum(np.minimum(self.v0, self.v1), self.v2).min(axis=0)
        hi = np.maximum(np.maximum(self.v0, self.v1), self.v2).max(axis=0)

        checked = 0
        for ray in generate_bounds_rays(lo, hi):
            expected = set()
            for i in range(200):
                if intersect(ray, self.v0[i], self.v1[i], self.v2[i]) is not None:
                    expected.add(i)
            found = {index for index, _ in bvh.intersect_ray(ray)}
            assert found == expected
            checked += 1
            if checked >= 300:
                break

    def test_hit_points(self):
        """Reported points match the direct intersection."""
        bvh = BVH.build(self.v0[:1], self.v1[:1], self.v2[:1])
        centroid = (self.v0[0] + self.v1[0] + self.v2[0]) / 3.0
        origin = centroid.copy()
        origin[Axis.Z] -= 20.0
        ray = Ray(origin, Axis.Z)

        hits = bvh.intersect_ray(ray)
        expected = intersect(ray, self.v0[0], self.v1[0], self.v2[0])
        assert len(hits) == (0 if expected is None else 1)
        if expected is not None:
            np.testing.assert_allclose(hits[0][1], expected)

    def test_empty_build_fails(self):
        with self.assertRaises(AppError):
            BVH.build(np.zeros((0, 3)), np.zeros((0, 3)), np.zeros((0, 3)))

    def test_release(self):
        """Queries after release are rejected."""
        bvh = BVH.build(self.v0, self.v1, self.v2)
        bvh.release()
        with self.assertRaises(RuntimeError):
            bvh.intersect_ray(Ray(np.zeros(3), Axis.X))


if __name__ == "__main__":
    unittest.main(verbosity=2)
