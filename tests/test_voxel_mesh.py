"""
Unit tests for the sparse voxel volume, geometry primitives and occlusion.
"""

import sys
from itertools import permutations
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from block_voxelizer.config import OverlapRule
from block_voxelizer.geometry import Bounds, Coordinate, round_half_up
from block_voxelizer.occlusion import OcclusionCalculator
from block_voxelizer.voxel_mesh import VoxelMesh, neighbour_bit


class TestGeometry(unittest.TestCase):
    """Tests for coordinates and bounds."""

    def test_round_half_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(-0.5) == 0
        assert round_half_up(-1.5) == -1
        assert round_half_up(2.49) == 2

    def test_coordinate_hashing(self):
        """Equal coordinates key the same dict entry."""
        table = {Coordinate(1, 2, 3): "a"}
        assert table[Coordinate.from_point([0.6, 2.0, 2.5])] == "a"

    def test_bounds(self):
        bounds = Bounds.empty()
        assert bounds.is_empty
        assert bounds.dimensions == (0, 0, 0)

        bounds.extend(Coordinate(1, -2, 0)).extend(Coordinate(-1, 3, 0))
        assert bounds.min == Coordinate(-1, -2, 0)
        assert bounds.max == Coordinate(1, 3, 0)
        assert bounds.dimensions == (3, 6, 1)
        assert bounds.contains(Coordinate(0, 0, 0))
        assert not bounds.contains(Coordinate(0, 0, 1))

        merged = bounds.union(Bounds(Coordinate(5, 0, 0)))
        assert merged.max == Coordinate(5, 3, 0)
        assert bounds.max == Coordinate(1, 3, 0)

    def test_empty_bounds_have_no_corners(self):
        with self.assertRaises(ValueError):
            Bounds.empty().min


class TestVoxelMesh(unittest.TestCase):
    """Tests for VoxelMesh."""

    def test_average_two_hits(self):
        """Two hits are averaged channel by channel."""
        volume = VoxelMesh(OverlapRule.AVERAGE)
        volume.add_voxel((1, 2, 3), (1.0, 0.5, 0.25))
        volume.add_voxel((1, 2, 3), (0.0, 0.5, 0.75))

        voxel = volume.get_voxel_at((1, 2, 3))
        np.testing.assert_allclose(voxel.color[:3], [0.5, 0.5, 0.5])
        assert voxel.collisions == 2
        assert len(volume) == 1

    def test_average_is_order_independent(self):
        colors = [(0.9, 0.1, 0.3, 1.0), (0.2, 0.4, 0.6, 1.0), (0.7, 0.8, 0.0, 0.5)]
        results = []
        for order in permutations(colors):
            volume = VoxelMesh(OverlapRule.AVERAGE)
            for color in order:
                volume.add_voxel((0, 0, 0), color)
            results.append(np.array(volume.get_voxel_at((0, 0, 0)).color))

        for result in results[1:]:
            np.testing.assert_allclose(result, results[0])
        np.testing.assert_allclose(results[0], np.mean(colors, axis=0))

    def test_first_keeps_first_colour(self):
        volume = VoxelMesh(OverlapRule.FIRST)
        volume.add_voxel((0, 0, 0), (0.1, 0.2, 0.3))
        volume.add_voxel((0, 0, 0), (0.9, 0.9, 0.9))
        volume.add_voxel((0, 0, 0), (0.5, 0.5, 0.5))

        assert volume.get_voxel_at((0, 0, 0)).color[:3] == (0.1, 0.2, 0.3)

    def test_real_positions_are_rounded(self):
        volume = VoxelMesh()
        volume.add_voxel((0.5, -0.5, 1.4), (1.0, 1.0, 1.0))
        assert volume.is_voxel_at((1, 0, 1))

    def test_transparent_hits_are_ignored(self):
        volume = VoxelMesh()
        assert volume.add_voxel((0, 0, 0), (1.0, 1.0, 1.0, 0.0)) is None
        assert len(volume) == 0
        assert volume.bounds.is_empty

    def test_opacity(self):
        volume = VoxelMesh()
        volume.add_voxel((0, 0, 0), (1.0, 1.0, 1.0, 0.5))
        volume.add_voxel((1, 0, 0), (1.0, 1.0, 1.0, 1.0))

        assert volume.is_voxel_at((0, 0, 0))
        assert not volume.is_opaque_voxel_at((0, 0, 0))
        assert volume.is_opaque_voxel_at((1, 0, 0))

    def test_bounds_grow(self):
        volume = VoxelMesh()
        volume.add_voxel((0, 0, 0), (1.0, 0.0, 0.0))
        volume.add_voxel((2, -1, 4), (1.0, 0.0, 0.0))

        assert volume.bounds.min == Coordinate(0, -1, 0)
        assert volume.bounds.max == Coordinate(2, 0, 4)

    def test_single_neighbour_mask(self):
        """One neighbour at (1, 1, 0) sets exactly bit 25."""
        volume = VoxelMesh(calculate_neighbours=True)
        volume.add_voxel((0, 0, 0), (1.0, 0.0, 0.0))
        volume.add_voxel((1, 1, 0), (1.0, 0.0, 0.0))

        mask = volume.neighbour_mask((0, 0, 0))
        assert mask == 1 << 25
        assert neighbour_bit(1, 1, 0) == 25
        assert volume.has_neighbour((0, 0, 0), (1, 1, 0))
        assert not volume.has_neighbour((0, 0, 0), (-1, -1, 0))

    def test_neighbour_mask_excludes_centre(self):
        volume = VoxelMesh(calculate_neighbours=True)
        volume.add_voxel((0, 0, 0), (1.0, 0.0, 0.0))
        assert volume.neighbour_mask((0, 0, 0)) == 0

    def test_neighbour_mask_refreshes(self):
        """Adding a voxel updates masks that were already computed."""
        volume = VoxelMesh(calculate_neighbours=True)
        volume.add_voxel((0, 0, 0), (1.0, 0.0, 0.0))
        assert volume.neighbour_mask((0, 0, 0)) == 0

        volume.add_voxel((0, 0, -1), (1.0, 0.0, 0.0))
        assert volume.neighbour_mask((0, 0, 0)) == 1 << neighbour_bit(0, 0, -1)

    def test_neighbour_mask_disabled(self):
        volume = VoxelMesh(calculate_neighbours=False)
        volume.add_voxel((0, 0, 0), (1.0, 0.0, 0.0))
        volume.add_voxel((1, 0, 0), (1.0, 0.0, 0.0))

        assert volume.neighbour_mask((0, 0, 0)) is None
        assert volume.has_neighbour((0, 0, 0), (1, 0, 0))

    def test_face_visibility(self):
        volume = VoxelMesh()
        volume.add_voxel((0, 0, 0), (1.0, 0.0, 0.0))
        volume.add_voxel((0, 1, 0), (1.0, 0.0, 0.0))
        volume.add_voxel((1, 0, 0), (1.0, 0.0, 0.0, 0.5))

        # +Y covered by an opaque voxel; +X neighbour is translucent
        assert volume.face_visibility((0, 0, 0)) == 0b111011

    def test_release(self):
        volume = VoxelMesh(calculate_neighbours=True)
        volume.add_voxel((0, 0, 0), (1.0, 0.0, 0.0))
        volume.neighbour_mask((0, 0, 0))
        volume.release()

        assert len(volume) == 0
        assert not volume.is_voxel_at((0, 0, 0))
        assert volume.bounds.is_empty


class TestOcclusion(unittest.TestCase):
    """Tests for ambient occlusion factors."""

    def test_isolated_voxel(self):
        volume = VoxelMesh(calculate_neighbours=True)
        volume.add_voxel((0, 0, 0), (1.0, 0.0, 0.0))

        occlusions = OcclusionCalculator().occlusions((0, 0, 0), volume)
        assert occlusions.shape == (6, 4)
        assert np.all(occlusions == 1.0)

    def test_edge_neighbour_darkens_two_vertices(self):
        volume = VoxelMesh(calculate_neighbours=True)
        volume.add_voxel((0, 0, 0), (1.0, 0.0, 0.0))
        volume.add_voxel((1, 1, 0), (1.0, 0.0, 0.0))

        occlusions = OcclusionCalculator().occlusions((0, 0, 0), volume)
        # +X face: the two vertices on the +Y edge
        np.testing.assert_allclose(occlusions[0], [0.8, 1.0, 0.8, 1.0])
        # -X face is untouched
        np.testing.assert_allclose(occlusions[1], [1.0, 1.0, 1.0, 1.0])

    def test_corner_override(self):
        """Two occupied edges occlude like three neighbours."""
        volume = VoxelMesh(calculate_neighbours=True)
        for position in [(0, 0, 0), (1, 1, 0), (1, 0, 1)]:
            volume.add_voxel(position, (1.0, 0.0, 0.0))

        with_override = OcclusionCalculator(override_corner=True).occlusions((0, 0, 0), volume)
        without_override = OcclusionCalculator(override_corner=False).occlusions((0, 0, 0), volume)

        # +X face vertex 2 has signs (+1, +1) on (Y, Z)
        assert with_override[0, 2] == 1.0 - 0.2 * 3
        assert without_override[0, 2] == 1.0 - 0.2 * 2

    def test_covered_face(self):
        volume = VoxelMesh(calculate_neighbours=True)
        for position in [(0, 0, 0), (1, 0, 0), (1, 1, 0)]:
            volume.add_voxel(position, (1.0, 0.0, 0.0))

        occlusions = OcclusionCalculator().occlusions((0, 0, 0), volume)
        np.testing.assert_allclose(occlusions[0], [1.0, 1.0, 1.0, 1.0])

    def test_without_neighbour_tracking(self):
        """Occupancy is looked up directly when masks are disabled."""
        tracked = VoxelMesh(calculate_neighbours=True)
        untracked = VoxelMesh(calculate_neighbours=False)
        for volume in (tracked, untracked):
            for position in [(0, 0, 0), (0, 1, 1), (-1, 1, 0)]:
                volume.add_voxel(position, (1.0, 0.0, 0.0))

        calculator = OcclusionCalculator()
        np.testing.assert_array_equal(
            calculator.occlusions((0, 0, 0), tracked),
            calculator.occlusions((0, 0, 0), untracked),
        )


if __name__ == "__main__":
    unittest.main(verbosity=2)
