"""
Voxelizer Base Class

Shared behaviour of every voxelizer:
- Placement of the normalized mesh in voxel space (scale and parity offset)
- Colour lookup for a surface hit, optionally multisampled
- Status messages summarizing the produced volume
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np

from ..color import RGBA
from ..config import MESH_DESIRED_HEIGHT, MULTISAMPLE_COUNT, VoxelizeParams
from ..mesh import Mesh, SolidMaterial, Transform
from ..progress import ProgressTracker
from ..status import StatusHandler
from ..voxel_mesh import VoxelMesh

logger = logging.getLogger(__name__)

Corners = Tuple[np.ndarray, np.ndarray, np.ndarray]


class BaseVoxelizer(ABC):
    """
    Converts a mesh into a sparse voxel volume.

    Subclasses implement _voxelize(); voxelize() wraps it with the shared
    setup and reporting.
    """

    #: Progress task name
    task = "Voxelizing"

    def __init__(self):
        self._rng = np.random.default_rng()

    def voxelize(self, mesh: Mesh, params: VoxelizeParams,
                 progress: Optional[ProgressTracker] = None,
                 status: Optional[StatusHandler] = None) -> VoxelMesh:
        """
        Voxelize a mesh.

        Args:
            mesh: Normalized input mesh
            params: Voxelization parameters
            progress: Optional progress tracker
            status: Optional status handler receiving summary messages

        Returns:
            The populated voxel volume
        """
        self._rng = np.random.default_rng(params.seed)
        if progress is None:
            progress = ProgressTracker()
        volume = VoxelMesh(params.voxel_overlap_rule, params.calculate_neighbours)

        logger.info("Voxelizing %d triangles with %s at height %d",
                    mesh.triangle_count, type(self).__name__, params.desired_height)
        progress.start(self.task)
        self._voxelize(mesh, params, volume, progress)
        progress.end(self.task)

        if status is not None:
            status.info(f"Voxel count: {volume.voxel_count}")
            x, y, z = volume.bounds.dimensions
            status.info(f"Dimensions: {x} x {y} x {z}")
        return volume

    @abstractmethod
    def _voxelize(self, mesh: Mesh, params: VoxelizeParams,
                  volume: VoxelMesh, progress: ProgressTracker) -> None:
        """Populate the volume."""

    @staticmethod
    def transform_for(params: VoxelizeParams) -> Transform:
        """
        Placement of the mesh in voxel space.

        The mesh is scaled so its height spans desired_height voxels; even
        heights are shifted half a voxel so the lattice stays centred.
        """
        scale = (params.desired_height - 1) / MESH_DESIRED_HEIGHT
        offset = (0.0, 0.5, 0.0) if params.desired_height % 2 == 0 else (0.0, 0.0, 0.0)
        return Transform(scale, offset)

    def voxel_color(self, mesh: Mesh, index: int, corners: Corners,
                    location: np.ndarray, params: VoxelizeParams) -> RGBA:
        """
        Colour of a triangle at a voxel location.

        With multisampling, MULTISAMPLE_COUNT points jittered within the
        voxel are sampled and averaged.
        """
        material = mesh.get_material(mesh.material_name(index))
        if isinstance(material, SolidMaterial) or not params.use_multisample_coloring:
            return mesh.sample_material(index, location, corners, params.texture_filtering)

        offsets = self._rng.random((MULTISAMPLE_COUNT, 3)) - 0.5
        samples = [
            mesh.sample_material(index, location + offset, corners, params.texture_filtering)
            for offset in offsets
        ]
        return RGBA(*np.mean(np.asarray(samples), axis=0))
