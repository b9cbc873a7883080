"""
Shared test meshes and palettes.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np

from block_voxelizer.block_mesh import BlockMesh
from block_voxelizer.color import RGBA
from block_voxelizer.config import AssignParams
from block_voxelizer.mesh import Mesh, SolidMaterial, Triangle
from block_voxelizer.palette import Atlas, AtlasPalette, Palette
from block_voxelizer.voxel_mesh import VoxelMesh


# Counter-clockwise seen from outside; corner i has x, y, z bits 4, 2, 1
CUBE_FACES = [
    # -X
    (0, 3, 2), (0, 1, 3),
    # +X
    (4, 7, 5), (4, 6, 7),
    # -Y
    (0, 5, 1), (0, 4, 5),
    # +Y
    (2, 7, 6), (2, 3, 7),
    # -Z
    (0, 6, 4), (0, 2, 6),
    # +Z
    (1, 7, 3), (1, 5, 7),
]


def make_cube(half: float = 4.0, color=(1.0, 0.0, 0.0, 1.0), material: str = "solid") -> Mesh:
    """Axis-aligned cube centred on the origin, 2 * half units high."""
    vertices = np.array([
        [x, y, z]
        for x in (-half, half)
        for y in (-half, half)
        for z in (-half, half)
    ], dtype=np.float64)
    triangles = [Triangle(face, (0, 0, 0), (0, 0, 0), material) for face in CUBE_FACES]
    return Mesh(vertices, triangles, {"solid": SolidMaterial(RGBA(*color))})


def make_octahedron(radius: float = 4.0, color=(0.0, 0.0, 1.0, 1.0)) -> Mesh:
    """Octahedron with vertices on the axes."""
    vertices = np.array([
        [radius, 0, 0], [-radius, 0, 0],
        [0, radius, 0], [0, -radius, 0],
        [0, 0, radius], [0, 0, -radius],
    ], dtype=np.float64)
    faces = [
        (0, 2, 4), (2, 1, 4), (1, 3, 4), (3, 0, 4),
        (2, 0, 5), (1, 2, 5), (3, 1, 5), (0, 3, 5),
    ]
    triangles = [Triangle(face, (0, 0, 0), (0, 0, 0), "solid") for face in faces]
    return Mesh(vertices, triangles, {"solid": SolidMaterial(RGBA(*color))})


TEST_COLORS = {
    "minecraft:sand": (0.86, 0.81, 0.63),
    "minecraft:sandstone": (0.85, 0.80, 0.60),
    "minecraft:stone": (0.49, 0.49, 0.49),
    "minecraft:white_wool": (0.92, 0.92, 0.92),
    "minecraft:black_wool": (0.08, 0.08, 0.10),
    "minecraft:red_wool": (0.63, 0.15, 0.13),
    "minecraft:blue_wool": (0.21, 0.22, 0.62),
    "minecraft:grass_block": (0.37, 0.55, 0.22),
    "minecraft:green_wool": (0.33, 0.43, 0.11),
    "minecraft:glass": (0.66, 0.80, 0.82),
    "minecraft:beacon": (0.45, 0.87, 0.84),
    "minecraft:glowstone": (0.67, 0.52, 0.33),
    "minecraft:sea_lantern": (0.67, 0.78, 0.74),
}


def make_atlas(colors=None) -> Atlas:
    return Atlas.from_colors(colors or TEST_COLORS)


def make_palette(names=None) -> Palette:
    return Palette(names or TEST_COLORS.keys())


def make_volume(voxels) -> VoxelMesh:
    """Volume from (position, colour name or RGBA) pairs."""
    volume = VoxelMesh(calculate_neighbours=True)
    for position, color in voxels:
        if isinstance(color, str):
            color = TEST_COLORS[color]
        volume.add_voxel(position, color)
    return volume


def make_block_mesh(voxels, params=None, registry=None, status=None, colors=None,
                    progress=None) -> BlockMesh:
    """Assign blocks to a small volume at full colour resolution."""
    colors = colors or TEST_COLORS
    atlas_palette = AtlasPalette(make_atlas(colors), make_palette(colors.keys()))
    params = params or AssignParams(resolution=255)
    return BlockMesh.create(make_volume(voxels), atlas_palette, params, registry, status, progress)


def filled_box(lo: int, hi: int, color="minecraft:stone"):
    return [((x, y, z), color)
            for x in range(lo, hi + 1)
            for y in range(lo, hi + 1)
            for z in range(lo, hi + 1)]
