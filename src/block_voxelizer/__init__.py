"""
Block Voxelizer
===============

Converts triangle meshes into block structures.

The pipeline rasterizes a textured surface mesh into a sparse voxel volume,
matches every voxel to a block from a palette, and propagates sun and block
light across the result.

Key Features:
- Axis-aligned ray voxelization, per triangle or accelerated by a BVH
- Numba-compiled Möller–Trumbore intersection and BVH traversal
- Sparse voxel storage with neighbour masks and ambient occlusion
- Nearest-colour block matching in RGB or CIE L*a*b* with optional dithering
- Gravity-aware handling of fallable blocks
- Flood-fill sun and block lighting

Example Usage:
    from block_voxelizer import VoxelPipeline, VoxelizeParams, AssignParams

    pipeline = VoxelPipeline(resource_dir="resources")
    block_mesh = pipeline.run(mesh, VoxelizeParams(desired_height=64),
                              AssignParams(block_palette="all"))
    for placement in block_mesh.placements:
        print(placement.position, placement.block_name)
"""

__version__ = "1.0.0"
__author__ = "Block Voxelizer Team"

from .config import AssignParams, VoxelizeParams
from .errors import AppError, InvariantError, JobError
from .geometry import Bounds, Coordinate
from .mesh import Mesh, SolidMaterial, TexturedMaterial, Triangle
from .voxel_mesh import Voxel, VoxelMesh
from .block_mesh import BlockMesh, BlockPlacement
from .lighting import BlockMeshLighting
from .palette import Atlas, AtlasPalette, Palette
from .pipeline import VoxelPipeline

__all__ = [
    "AssignParams",
    "VoxelizeParams",
    "AppError",
    "InvariantError",
    "JobError",
    "Bounds",
    "Coordinate",
    "Mesh",
    "SolidMaterial",
    "TexturedMaterial",
    "Triangle",
    "Voxel",
    "VoxelMesh",
    "BlockMesh",
    "BlockPlacement",
    "BlockMeshLighting",
    "Atlas",
    "AtlasPalette",
    "Palette",
    "VoxelPipeline",
]
