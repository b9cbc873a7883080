"""
Ray Voxelizer

Casts axis-aligned rays through the bounding box of each triangle and
tests them against that triangle only. No acceleration structure is
built, which makes this the cheaper choice for meshes with few, large
triangles.
"""

from ..config import VoxelizeParams
from ..mesh import Mesh
from ..progress import ProgressTracker
from ..ray import generate_rays, intersect, snap_intersection
from ..voxel_mesh import VoxelMesh
from .base import BaseVoxelizer


class RayVoxelizer(BaseVoxelizer):
    """Per-triangle ray voxelizer."""

    def _voxelize(self, mesh: Mesh, params: VoxelizeParams,
                  volume: VoxelMesh, progress: ProgressTracker) -> None:
        v0s, v1s, v2s = mesh.triangle_vertices(self.transform_for(params))
        num_triangles = mesh.triangle_count

        for index in range(num_triangles):
            progress.progress(self.task, index / num_triangles)
            corners = (v0s[index], v1s[index], v2s[index])

            for ray in generate_rays(*corners):
                point = intersect(ray, *corners)
                if point is None:
                    continue
                position = snap_intersection(ray, point)
                color = self.voxel_color(mesh, index, corners, position.to_array(), params)
                volume.add_voxel(position, color)
