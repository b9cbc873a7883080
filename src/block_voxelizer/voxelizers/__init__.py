"""
Mesh-to-voxel strategies.

Available voxelizers:
- ray-based: per-triangle rays, no acceleration structure
- bvh-ray: bounding-box rays against a BVH (default)
- bvh-ray-plus-thickness: bvh-ray plus one voxel of depth behind each hit
- ncrb: normal-corrected per-triangle rays
"""

from ..config import VoxelizerKind
from .base import BaseVoxelizer
from .ray_voxelizer import RayVoxelizer
from .bvh_ray_voxelizer import BVHRayVoxelizer
from .normal_corrected import NormalCorrectedRayVoxelizer


def create_voxelizer(kind: VoxelizerKind) -> BaseVoxelizer:
    """Instantiate the voxelizer for a kind (enum member or string id)."""
    kind = VoxelizerKind(kind)
    if kind is VoxelizerKind.RAY_BASED:
        return RayVoxelizer()
    elif kind is VoxelizerKind.BVH_RAY:
        return BVHRayVoxelizer()
    elif kind is VoxelizerKind.BVH_RAY_PLUS_THICKNESS:
        return BVHRayVoxelizer(thickness=True)
    elif kind is VoxelizerKind.NCRB:
        return NormalCorrectedRayVoxelizer()
    else:
        raise ValueError(f"Unknown voxelizer: {kind}")


__all__ = [
    "BaseVoxelizer",
    "RayVoxelizer",
    "BVHRayVoxelizer",
    "NormalCorrectedRayVoxelizer",
    "create_voxelizer",
]
