"""
BVH Ray Voxelizer

Builds a BVH over the transformed triangles, then casts one ray per grid
point on each face of the mesh bounding box and collects every triangle
the ray passes through. Ray count scales with the bounding box instead of
the triangle count, so dense meshes voxelize much faster than with the
per-triangle ray voxelizer while producing the same coverage.

The thickness variant also fills the voxel half a unit behind each hit
(along cross(e2, e1) of the triangle) to avoid one-voxel-thin shells.
"""

import logging

import numpy as np

from ..bvh import BVH
from ..config import VoxelizeParams
from ..geometry import Coordinate
from ..mesh import Mesh
from ..progress import ProgressTracker
from ..ray import generate_bounds_rays, snap_intersection
from ..voxel_mesh import VoxelMesh
from .base import BaseVoxelizer

logger = logging.getLogger(__name__)


class BVHRayVoxelizer(BaseVoxelizer):
    """Bounding-box ray voxelizer accelerated by a BVH."""

    def __init__(self, thickness: bool = False):
        super().__init__()
        self.thickness = thickness

    def _voxelize(self, mesh: Mesh, params: VoxelizeParams,
                  volume: VoxelMesh, progress: ProgressTracker) -> None:
        transform = self.transform_for(params)
        v0s, v1s, v2s = mesh.triangle_vertices(transform)

        bvh = BVH.build(v0s, v1s, v2s)
        try:
            bounds_min, bounds_max = mesh.bounds(transform)
            rays = list(generate_bounds_rays(bounds_min, bounds_max))
            logger.debug("Casting %d rays", len(rays))

            for ray_index, ray in enumerate(rays):
                progress.progress(self.task, ray_index / len(rays))
                for index, point in bvh.intersect_ray(ray):
                    corners = (v0s[index], v1s[index], v2s[index])
                    position = snap_intersection(ray, point)
                    color = self.voxel_color(mesh, index, corners, position.to_array(), params)
                    volume.add_voxel(position, color)

                    if self.thickness:
                        depth = self._depth_position(point, corners, params.thickness_offset)
                        if depth is not None and depth != position:
                            volume.add_voxel(depth, color)
        finally:
            bvh.release()

    @staticmethod
    def _depth_position(point: np.ndarray, corners, offset: float):
        v0, v1, v2 = corners
        normal = np.cross(v2 - v0, v1 - v0)
        length = np.linalg.norm(normal)
        if length == 0.0:
            return None
        return Coordinate.from_point(point + normal / length * offset)
