"""
Unit tests for the mesh model and the voxelizers.
"""

import sys
import tempfile
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fixtures import make_cube, make_octahedron

from block_voxelizer.color import RGBA
from block_voxelizer.config import (
    OverlapRule,
    TextureFiltering,
    VoxelizeParams,
    VoxelizerKind,
)
from block_voxelizer.errors import AppError, InvariantError
from block_voxelizer.mesh import Mesh, SolidMaterial, TexturedMaterial, Triangle
from block_voxelizer.status import StatusHandler
from block_voxelizer.texture import Texture, WrapMode
from block_voxelizer.voxelizers import (
    BVHRayVoxelizer,
    NormalCorrectedRayVoxelizer,
    RayVoxelizer,
    create_voxelizer,
)


def _positions(volume):
    return {voxel.position for voxel in volume}


class TestMesh(unittest.TestCase):
    """Tests for mesh validation and sampling."""

    def test_empty_mesh(self):
        with self.assertRaises(AppError):
            Mesh(np.zeros((0, 3)), [Triangle((0, 1, 2))], {})
        with self.assertRaises(AppError):
            Mesh(np.zeros((3, 3)), [], {})

    def test_nan_vertices(self):
        vertices = np.array([[0.0, 0.0, 0.0], [1.0, np.nan, 0.0], [0.0, 1.0, 0.0]])
        with self.assertRaises(AppError):
            Mesh(vertices, [Triangle((0, 1, 2))], {})

    def test_bad_indices(self):
        vertices = np.zeros((3, 3))
        with self.assertRaises(AppError):
            Mesh(vertices, [Triangle((0, 1, 5))], {})
        with self.assertRaises(AppError):
            Mesh(vertices, [Triangle((0, 1))], {})
        with self.assertRaises(AppError):
            Mesh(vertices, [Triangle(("a", 1, 2))], {})

    def test_unknown_material_is_invariant_error(self):
        mesh = Mesh(np.eye(3), [Triangle((0, 1, 2), material="missing")], {})
        with self.assertRaises(InvariantError):
            mesh.get_material("missing")

    def test_face_normal(self):
        mesh = make_cube()
        # First triangle lies on the -X face
        np.testing.assert_allclose(mesh.triangle_normal(0), [-1.0, 0.0, 0.0])

    def test_textured_sampling(self):
        """UVs are interpolated at the sample point."""
        pixels = np.array([
            [[255, 0, 0], [0, 255, 0]],
            [[0, 0, 255], [255, 255, 255]],
        ], dtype=np.uint8)
        vertices = np.array([[0.0, 0.0, 0.0], [4.0, 0.0, 0.0], [0.0, 4.0, 0.0]])
        uvs = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
        mesh = Mesh(
            vertices,
            [Triangle((0, 1, 2), (0, 1, 2), (0, 0, 0), "tex")],
            {"tex": TexturedMaterial(Texture(pixels), WrapMode.CLAMP)},
            uvs=uvs,
        )
        corners = mesh.triangle_vertices()
        corners = (corners[0][0], corners[1][0], corners[2][0])

        # At v0, UV (0, 0) is the bottom-left texel
        color = mesh.sample_material(0, corners[0], corners, TextureFiltering.NEAREST)
        assert color == RGBA(0.0, 0.0, 1.0, 1.0)

        # Near v2, UV (0, 1) is the top-left texel
        color = mesh.sample_material(0, np.array([0.1, 3.8, 0.0]), corners, TextureFiltering.NEAREST)
        assert color == RGBA(1.0, 0.0, 0.0, 1.0)


class TestTexture(unittest.TestCase):
    """Tests for texture sampling."""

    def setUp(self):
        pixels = np.zeros((2, 2, 4))
        pixels[0, 0] = [1.0, 0.0, 0.0, 1.0]
        pixels[0, 1] = [0.0, 1.0, 0.0, 1.0]
        pixels[1, 0] = [0.0, 0.0, 1.0, 1.0]
        pixels[1, 1] = [1.0, 1.0, 1.0, 1.0]
        self.texture = Texture(pixels)

    def test_nearest(self):
        assert self.texture.sample(0.25, 0.75, TextureFiltering.NEAREST) == RGBA(1.0, 0.0, 0.0, 1.0)
        assert self.texture.sample(0.75, 0.25, TextureFiltering.NEAREST) == RGBA(1.0, 1.0, 1.0, 1.0)

    def test_linear_blends(self):
        """Halfway between the two top texels."""
        color = self.texture.sample(0.25, 1.0, TextureFiltering.LINEAR, WrapMode.CLAMP)
        np.testing.assert_allclose(color, [0.5, 0.5, 0.0, 1.0])

    def test_repeat(self):
        a = self.texture.sample(1.25, 0.75, TextureFiltering.NEAREST, WrapMode.REPEAT)
        b = self.texture.sample(0.25, 0.75, TextureFiltering.NEAREST, WrapMode.REPEAT)
        assert a == b

    def test_rgb_gets_alpha(self):
        texture = Texture(np.zeros((1, 1, 3), dtype=np.uint8))
        assert texture.pixels.shape == (1, 1, 4)
        assert texture.pixels[0, 0, 3] == 1.0

    def test_bad_shape(self):
        with self.assertRaises(AppError):
            Texture(np.zeros((4, 4)))

    def test_missing_file(self):
        with self.assertRaises(AppError):
            Texture.from_file("does-not-exist.png")

    def test_unreadable_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "broken.png"
            path.write_bytes(b"not an image")
            with self.assertRaises(AppError):
                Texture.from_file(path)


class TestVoxelizers(unittest.TestCase):
    """Tests for the voxelizer strategies."""

    def test_cube_surface(self):
        """A 9-high cube yields exactly its surface shell."""
        params = VoxelizeParams(voxelizer=VoxelizerKind.BVH_RAY, desired_height=9)
        volume = BVHRayVoxelizer().voxelize(make_cube(), params)

        assert len(volume) == 9 ** 3 - 7 ** 3
        assert volume.bounds.dimensions == (9, 9, 9)
        for position in _positions(volume):
            assert max(abs(c) for c in position) == 4

    def test_ray_and_bvh_coverage_match(self):
        for mesh in (make_cube(), make_octahedron()):
            params = VoxelizeParams(desired_height=9)
            ray_volume = RayVoxelizer().voxelize(mesh, params)
            bvh_volume = BVHRayVoxelizer().voxelize(mesh, params)
            assert _positions(ray_volume) == _positions(bvh_volume)

    def test_even_height_offset(self):
        params = VoxelizeParams(desired_height=10)
        volume = BVHRayVoxelizer().voxelize(make_cube(), params)
        assert volume.bounds.dimensions[1] == 10

    def test_thickness_adds_depth(self):
        params = VoxelizeParams(desired_height=9)
        shell = _positions(BVHRayVoxelizer().voxelize(make_cube(), params))
        thick = _positions(BVHRayVoxelizer(thickness=True).voxelize(make_cube(), params))

        assert shell < thick
        # Extra voxels sit one step inside the shell
        for x, y, z in thick - shell:
            assert max(abs(x), abs(y), abs(z)) == 3

    def test_ncrb(self):
        params = VoxelizeParams(voxelizer=VoxelizerKind.NCRB, desired_height=9)
        volume = NormalCorrectedRayVoxelizer().voxelize(make_cube(), params)

        assert len(volume) > 0
        for x, y, z in _positions(volume):
            assert -5 <= x <= 5 and -5 <= y <= 5 and -5 <= z <= 5

    def test_solid_colour(self):
        params = VoxelizeParams(desired_height=9)
        volume = BVHRayVoxelizer().voxelize(make_cube(color=(0.2, 0.4, 0.6, 1.0)), params)
        for voxel in volume:
            np.testing.assert_allclose(voxel.color, [0.2, 0.4, 0.6, 1.0])

    def test_overlap_counts(self):
        """Edge voxels are hit more than once under averaging."""
        params = VoxelizeParams(desired_height=9, voxel_overlap_rule=OverlapRule.AVERAGE)
        volume = BVHRayVoxelizer().voxelize(make_cube(), params)
        assert volume.get_voxel_at((4, 4, 4)).collisions > 1

    def test_status_summary(self):
        status = StatusHandler()
        params = VoxelizeParams(desired_height=9)
        BVHRayVoxelizer().voxelize(make_cube(), params, status=status)

        assert "Voxel count: 386" in status.infos
        assert "Dimensions: 9 x 9 x 9" in status.infos

    def test_multisample_is_seeded(self):
        pixels = np.random.default_rng(0).integers(0, 255, size=(8, 8, 3), dtype=np.uint8)
        vertices = np.array([[-4.0, -4.0, 0.0], [4.0, -4.0, 0.0], [-4.0, 4.0, 0.0]])
        mesh = Mesh(
            vertices,
            [Triangle((0, 1, 2), (0, 1, 2), (0, 0, 0), "tex")],
            {"tex": TexturedMaterial(Texture(pixels))},
            uvs=np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]]),
        )
        params = VoxelizeParams(desired_height=9, use_multisample_coloring=True, seed=42)

        first = {v.position: v.color for v in BVHRayVoxelizer().voxelize(mesh, params)}
        second = {v.position: v.color for v in BVHRayVoxelizer().voxelize(mesh, params)}
        assert first == second

    def test_create_voxelizer(self):
        assert isinstance(create_voxelizer(VoxelizerKind.RAY_BASED), RayVoxelizer)
        assert isinstance(create_voxelizer("bvh-ray"), BVHRayVoxelizer)
        assert create_voxelizer("bvh-ray-plus-thickness").thickness
        assert isinstance(create_voxelizer("ncrb"), NormalCorrectedRayVoxelizer)

    def test_unknown_voxelizer_name(self):
        with self.assertRaises(AppError):
            VoxelizeParams(voxelizer="marching-cubes")

    def test_invalid_height(self):
        with self.assertRaises(AppError):
            VoxelizeParams(desired_height=0)


if __name__ == "__main__":
    unittest.main(verbosity=2)
