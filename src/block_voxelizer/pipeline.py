"""
Main VoxelPipeline Class

This is the primary interface for a voxelization job.
It orchestrates:
1. Mesh voxelization
2. Block assignment (palette / atlas lookup, fallable handling)
3. Lighting
4. Occlusion queries and statistics for downstream consumers

Example Usage:
    pipeline = VoxelPipeline(resource_dir="resources")
    pipeline.load_mesh(mesh)
    pipeline.voxelize(VoxelizeParams(desired_height=64))
    pipeline.assign(AssignParams(block_palette="all", calculate_lighting=True))
    stats = pipeline.get_stats()
    pipeline.release()
"""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np

from .block_mesh import BlockMesh
from .blocks import BlockRegistry
from .config import AssignParams, VoxelizeParams
from .errors import AppError, JobError
from .lighting import BlockMeshLighting
from .mesh import Mesh
from .occlusion import OcclusionCalculator
from .palette import Atlas, AtlasPalette, Palette
from .progress import ProgressCallback, ProgressTracker
from .status import StatusHandler
from .voxel_mesh import VoxelMesh
from .voxelizers import create_voxelizer

logger = logging.getLogger(__name__)


class VoxelPipeline:
    """
    Owns the state of one voxelization job.

    Everything the job creates (voxel volume, block mesh, light values) is
    owned by the pipeline and dropped by release().

    Attributes:
        status: Non-fatal messages collected during the job
        occlusion: Ambient occlusion service for the job's volume
    """

    def __init__(
        self,
        resource_dir: Optional[Union[str, Path]] = None,
        registry: Optional[BlockRegistry] = None,
        progress: Optional[ProgressCallback] = None
    ):
        """
        Initialize the pipeline.

        Args:
            resource_dir: Directory holding .atlas / .palette files and
                optional *_blocks.json block lists
            registry: Block property sets; loaded from resource_dir (or the
                defaults) when omitted
            progress: Optional callback(task, fraction)
        """
        self.resource_dir = Path(resource_dir) if resource_dir is not None else None
        if registry is None:
            registry = (BlockRegistry.from_directory(self.resource_dir)
                        if self.resource_dir is not None else BlockRegistry())
        self.registry = registry
        self.status = StatusHandler()
        self.occlusion = OcclusionCalculator()
        self._progress = ProgressTracker(progress)

        self._mesh: Optional[Mesh] = None
        self._volume: Optional[VoxelMesh] = None
        self._block_mesh: Optional[BlockMesh] = None

    def load_mesh(self, mesh: Mesh) -> "VoxelPipeline":
        """Set the mesh to voxelize."""
        self._mesh = mesh
        return self

    def voxelize(self, params: Optional[VoxelizeParams] = None) -> "VoxelPipeline":
        """
        Voxelize the loaded mesh.

        Args:
            params: Voxelization parameters (defaults if omitted)

        Returns:
            self for chaining
        """
        if self._mesh is None:
            raise RuntimeError("No mesh loaded. Call load_mesh() first.")

        params = params or VoxelizeParams()
        voxelizer = create_voxelizer(params.voxelizer)
        self._volume = voxelizer.voxelize(self._mesh, params, self._progress, self.status)
        self._block_mesh = None
        return self

    def load_atlas(self, name: str) -> Atlas:
        return Atlas.load(name, self._require_resources())

    def load_palette(self, name: str) -> Palette:
        return Palette.load(name, self._require_resources())

    def _require_resources(self) -> Path:
        if self.resource_dir is None:
            raise AppError("No resource directory configured for loading atlases and palettes")
        return self.resource_dir

    def assign(
        self,
        params: Optional[AssignParams] = None,
        atlas: Optional[Atlas] = None,
        palette: Optional[Palette] = None
    ) -> "VoxelPipeline":
        """
        Assign blocks to the voxel volume, and light them if requested.

        Args:
            params: Assignment parameters (defaults if omitted)
            atlas: Atlas to use instead of loading params.texture_atlas
            palette: Palette to use instead of loading params.block_palette

        Returns:
            self for chaining
        """
        if self._volume is None:
            raise RuntimeError("No voxel volume. Call voxelize() first.")

        params = params or AssignParams()
        atlas = atlas if atlas is not None else self.load_atlas(params.texture_atlas)
        palette = palette if palette is not None else self.load_palette(params.block_palette)

        atlas_palette = AtlasPalette(atlas, palette, self.status)
        self._block_mesh = BlockMesh.create(
            self._volume, atlas_palette, params, self.registry, self.status, self._progress
        )
        return self

    def run(
        self,
        mesh: Mesh,
        voxelize_params: Optional[VoxelizeParams] = None,
        assign_params: Optional[AssignParams] = None,
        atlas: Optional[Atlas] = None,
        palette: Optional[Palette] = None
    ) -> BlockMesh:
        """
        Run a whole job: voxelize, assign and light.

        Any failure discards the partial state and is re-raised as a
        JobError whose `known` flag tells user errors from internal ones.

        Returns:
            The finished block mesh
        """
        stage = "voxelize"
        try:
            self.load_mesh(mesh)
            self.voxelize(voxelize_params)
            stage = "assign"
            self.assign(assign_params, atlas, palette)
        except AppError as e:
            self.release()
            raise JobError(str(e), known=True, stage=stage) from e
        except Exception as e:
            self.release()
            logger.exception("Unexpected failure during %s", stage)
            raise JobError(f"Unexpected error during {stage}: {e}", known=False, stage=stage) from e
        return self._block_mesh

    @property
    def mesh(self) -> Optional[Mesh]:
        return self._mesh

    @property
    def volume(self) -> Optional[VoxelMesh]:
        return self._volume

    @property
    def block_mesh(self) -> Optional[BlockMesh]:
        return self._block_mesh

    @property
    def lighting(self) -> Optional[BlockMeshLighting]:
        return self._block_mesh.lighting if self._block_mesh is not None else None

    @property
    def voxel_count(self) -> int:
        return self._volume.voxel_count if self._volume is not None else 0

    @property
    def block_count(self) -> int:
        return len(self._block_mesh.placements) if self._block_mesh is not None else 0

    def occlusions(self, position) -> np.ndarray:
        """Ambient occlusion factors (6, 4) of a voxel."""
        if self._volume is None:
            raise RuntimeError("No voxel volume. Call voxelize() first.")
        return self.occlusion.occlusions(position, self._volume)

    def get_stats(self) -> dict:
        """
        Summary of the job.

        Returns:
            Dictionary with counts, dimensions and the used block types
        """
        stats = {
            "voxel_count": self.voxel_count,
            "dimensions": self._volume.bounds.dimensions if self._volume is not None else (0, 0, 0),
            "block_count": self.block_count,
            "blocks_used": self._block_mesh.blocks_used if self._block_mesh is not None else [],
            "warnings": self.status.warnings,
        }
        lighting = self.lighting
        if lighting is not None:
            stats["light_updates"] = lighting.updates
            stats["light_skips"] = lighting.skips
        return stats

    def release(self) -> None:
        """Drop the voxel volume and block mesh."""
        if self._volume is not None:
            self._volume.release()
        self._volume = None
        self._block_mesh = None
        self._mesh = None
