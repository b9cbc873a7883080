"""
Block Assignment

Turns every voxel of a volume into a block from the palette:

1. The voxel colour is binned and optionally dithered (see assigners)
2. The nearest palette block in the configured colour space is chosen
3. Fallable blocks are handled according to the fallable behaviour
4. Grass-like blocks covered by an opaque block are replaced

Placements are kept in voxel insertion order. Lighting, when requested,
is computed over the finished placements.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .assigners import create_assigner
from .blocks import BlockRegistry
from .color import RGBA, squared_distance
from .config import AssignParams, FallableBehaviour
from .errors import AppError, check
from .geometry import Coordinate, FACE_OFFSETS
from .lighting import BlockMeshLighting
from .palette import ALL_FACES, AtlasPalette
from .progress import ProgressTracker
from .status import StatusHandler
from .voxel_mesh import Voxel, VoxelMesh

logger = logging.getLogger(__name__)

STRING_BLOCK = "minecraft:string"


@dataclass
class BlockPlacement:
    voxel: Voxel
    block_name: str

    @property
    def position(self) -> Coordinate:
        return self.voxel.position


@dataclass
class _GrassCandidate:
    position: Coordinate
    color: RGBA
    face_visibility: int


class BlockMesh:
    """
    Block placements for a voxel volume.

    Use BlockMesh.create() to assign blocks.
    """

    def __init__(self, volume: VoxelMesh, atlas_palette: AtlasPalette,
                 registry: Optional[BlockRegistry] = None):
        self._volume = volume
        self._atlas_palette = atlas_palette
        self._registry = registry if registry is not None else BlockRegistry()
        self._placements: Dict[Coordinate, BlockPlacement] = {}
        self._blocks_used: Dict[str, None] = {}
        self._string_positions: List[Coordinate] = []
        self._falling_count = 0
        self._lighting: Optional[BlockMeshLighting] = None

    @classmethod
    def create(cls, volume: VoxelMesh, atlas_palette: AtlasPalette, params: AssignParams,
               registry: Optional[BlockRegistry] = None,
               status: Optional[StatusHandler] = None,
               progress: Optional[ProgressTracker] = None) -> "BlockMesh":
        """
        Assign a block to every voxel and, if requested, compute lighting.

        Args:
            volume: The voxel volume to convert
            atlas_palette: Block colour lookup
            params: Assignment parameters
            registry: Block property sets
            status: Receives non-fatal warnings
            progress: Optional progress tracker

        Returns:
            The populated block mesh
        """
        block_mesh = cls(volume, atlas_palette, registry)
        block_mesh._assign_blocks(
            params,
            status if status is not None else StatusHandler(),
            progress if progress is not None else ProgressTracker(),
        )

        if params.calculate_lighting:
            block_mesh.calculate_lighting(params.light_threshold)
        return block_mesh

    def _assign_blocks(self, params: AssignParams, status: StatusHandler,
                       progress: ProgressTracker) -> None:
        assigner = create_assigner(params.block_assigner, params.seed)
        fallable = self._registry.fallable
        policy = params.fallable
        grass_candidates: List[_GrassCandidate] = []

        voxels = self._volume.voxels
        progress.start("Assigning")
        for index, voxel in enumerate(voxels):
            progress.progress("Assigning", index / max(len(voxels), 1))

            color = assigner.final_color(voxel.color, voxel.position, params.resolution)
            visibility = (self._volume.face_visibility(voxel.position)
                          if params.contextual_averaging else ALL_FACES)
            block = self._atlas_palette.get_block(color, params.color_space, frozenset(), visibility)

            is_fallable = block.name in fallable
            below = voxel.position.offset(0, -1, 0)
            is_supported = self._volume.is_voxel_at(below)

            if is_fallable and not is_supported:
                self._falling_count += 1

            if policy is FallableBehaviour.REPLACE_FALLABLE:
                replace = is_fallable
            elif policy is FallableBehaviour.REPLACE_FALLING:
                replace = is_fallable and not is_supported
            elif policy is FallableBehaviour.PLACE_STRING:
                replace = False
                if is_fallable and not is_supported:
                    self._string_positions.append(below)
            elif policy is FallableBehaviour.DO_NOTHING:
                replace = False
            else:
                raise ValueError(f"Unknown fallable behaviour: {policy}")

            if replace:
                block = self._atlas_palette.get_block(color, params.color_space, fallable, visibility)

            if self._registry.is_grass_like(block.name):
                grass_candidates.append(_GrassCandidate(voxel.position, color, visibility))

            self._placements[voxel.position] = BlockPlacement(voxel, block.name)
            self._blocks_used.setdefault(block.name, None)

        progress.end("Assigning")
        self._replace_covered_grass(grass_candidates, params, progress)

        if self._string_positions:
            self._blocks_used.setdefault(STRING_BLOCK, None)

        if policy is FallableBehaviour.DO_NOTHING and self._falling_count > 0:
            status.warning(f"{self._falling_count} blocks will fall under gravity when this structure is placed")
        logger.info("Assigned %d blocks using %d block types",
                    len(self._placements), len(self._blocks_used))

    def _replace_covered_grass(self, candidates: List[_GrassCandidate], params: AssignParams,
                               progress: ProgressTracker) -> None:
        if not candidates:
            return

        exclude = self._registry.grass_like
        progress.start("Correcting grass")
        for index, candidate in enumerate(candidates):
            progress.progress("Correcting grass", index / len(candidates))
            placement = self._placements.get(candidate.position)
            check(placement is not None, "Missing grass-like block placement")

            above = self._placements.get(candidate.position.offset(0, 1, 0))
            if above is not None and not self._registry.is_transparent(above.block_name):
                block = self._atlas_palette.get_block(
                    candidate.color, params.color_space, exclude, candidate.face_visibility
                )
                placement.block_name = block.name
                self._blocks_used.setdefault(block.name, None)
        progress.end("Correcting grass")

    def calculate_lighting(self, light_threshold: int = 0) -> BlockMeshLighting:
        """Run light propagation over the placements."""
        self._lighting = BlockMeshLighting(self)
        self._lighting.init()
        self._lighting.add_sun_light_values()
        self._lighting.add_emissive_blocks()
        self._lighting.add_light_to_darkness(light_threshold)
        self._lighting.dump_info()
        return self._lighting

    @property
    def lighting(self) -> Optional[BlockMeshLighting]:
        return self._lighting

    def set_emissive_block(self, position: Sequence[int]) -> str:
        """
        Replace the block at a position with the closest emissive block.

        Returns:
            The new block name

        Raises:
            AppError: If the atlas has none of the known emissive blocks
        """
        placement = self._placements.get(Coordinate(*position))
        check(placement is not None, "Setting emissive block of block that doesn't exist")

        best_name, best_error = None, float("inf")
        for name in sorted(self._registry.emissive):
            block = self._atlas_palette.atlas.get_block(name)
            if block is None:
                continue
            error = squared_distance(block.color, placement.voxel.color)
            if error < best_error:
                best_name, best_error = name, error

        if best_name is None:
            raise AppError("Block palette contains no light blocks to place")

        placement.block_name = best_name
        self._blocks_used.setdefault(best_name, None)
        return best_name

    def block_at(self, position: Sequence[int]) -> Optional[BlockPlacement]:
        return self._placements.get(Coordinate(*position))

    def is_emissive(self, placement: BlockPlacement) -> bool:
        return self._registry.is_emissive(placement.block_name)

    def is_transparent(self, placement: BlockPlacement) -> bool:
        return self._registry.is_transparent(placement.block_name)

    def block_lighting(self, position: Sequence[int]) -> List[int]:
        """
        Light level in front of each face of a block.

        Returns:
            Six max(sun, block) values in +X, -X, +Y, -Y, +Z, -Z order
        """
        check(self._lighting is not None, "Lighting has not been calculated")
        position = Coordinate(*position)
        return [self._lighting.get_max_light_level(position.offset(*offset)) for offset in FACE_OFFSETS]

    @property
    def placements(self) -> List[BlockPlacement]:
        return list(self._placements.values())

    @property
    def blocks_used(self) -> List[str]:
        return list(self._blocks_used)

    @property
    def string_positions(self) -> List[Coordinate]:
        """Positions below unsupported fallable blocks (place-string policy)."""
        return list(self._string_positions)

    @property
    def falling_count(self) -> int:
        return self._falling_count

    @property
    def volume(self) -> VoxelMesh:
        return self._volume

    @property
    def atlas_palette(self) -> AtlasPalette:
        return self._atlas_palette

    @property
    def registry(self) -> BlockRegistry:
        return self._registry
