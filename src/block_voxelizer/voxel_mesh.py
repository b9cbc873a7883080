"""
Sparse Voxel Volume

Voxels are stored in a dict keyed by Coordinate, so memory scales with
the surface area of the mesh rather than with its bounding box. The
volume only grows: voxels are created on the first hit at a coordinate
and updated in place by later hits according to the overlap rule.

Neighbour masks cover the 3x3x3 block around a voxel with
bit = 9 * (dx + 1) + 3 * (dy + 1) + (dz + 1). The centre bit (13) is
never set. Masks are computed on first query and cached; adding a voxel
invalidates the cached masks of the 26 coordinates around it.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence

from .color import RGBA
from .config import OverlapRule
from .geometry import Bounds, Coordinate, FACE_OFFSETS

NEIGHBOUR_OFFSETS = [
    (dx, dy, dz)
    for dx in (-1, 0, 1)
    for dy in (-1, 0, 1)
    for dz in (-1, 0, 1)
    if (dx, dy, dz) != (0, 0, 0)
]


def neighbour_bit(dx: int, dy: int, dz: int) -> int:
    """Bit index of a neighbour offset in a neighbour mask."""
    return 9 * (dx + 1) + 3 * (dy + 1) + (dz + 1)


@dataclass
class Voxel:
    position: Coordinate
    color: RGBA
    collisions: int = 1


class VoxelMesh:
    """
    Sparse voxel volume.

    Args:
        overlap_rule: How repeated hits on one coordinate are merged
        calculate_neighbours: Enable neighbour mask queries
    """

    def __init__(self, overlap_rule: OverlapRule = OverlapRule.AVERAGE,
                 calculate_neighbours: bool = False):
        self.overlap_rule = OverlapRule(overlap_rule)
        self.calculate_neighbours = calculate_neighbours
        self._voxels: Dict[Coordinate, Voxel] = {}
        self._neighbours: Dict[Coordinate, int] = {}
        self._bounds = Bounds.empty()

    def add_voxel(self, position: Sequence[float], color: Sequence[float]) -> Optional[Voxel]:
        """
        Record a surface hit.

        Args:
            position: Lattice coordinate, or a real point that is rounded
            color: RGB or RGBA in [0, 1]

        Returns:
            The voxel at the coordinate, or None if the colour was fully
            transparent and nothing was recorded
        """
        color = RGBA.from_sequence(color)
        if color.a == 0.0:
            return None

        position = position if isinstance(position, Coordinate) else Coordinate.from_point(position)
        voxel = self._voxels.get(position)

        if voxel is None:
            voxel = Voxel(position, color, 1)
            self._voxels[position] = voxel
            if self._neighbours:
                self._invalidate_neighbours(position)
        elif self.overlap_rule is OverlapRule.AVERAGE:
            n = voxel.collisions
            voxel.color = RGBA(*((old * n + new) / (n + 1) for old, new in zip(voxel.color, color)))
            voxel.collisions = n + 1
        elif self.overlap_rule is OverlapRule.FIRST:
            pass
        else:
            raise ValueError(f"Unknown overlap rule: {self.overlap_rule}")

        self._bounds.extend(position)
        return voxel

    def _invalidate_neighbours(self, position: Coordinate) -> None:
        for dx, dy, dz in NEIGHBOUR_OFFSETS:
            self._neighbours.pop(position.offset(dx, dy, dz), None)

    def is_voxel_at(self, position: Sequence[int]) -> bool:
        return Coordinate(*position) in self._voxels

    def is_opaque_voxel_at(self, position: Sequence[int]) -> bool:
        voxel = self._voxels.get(Coordinate(*position))
        return voxel is not None and voxel.color.a == 1.0

    def get_voxel_at(self, position: Sequence[int]) -> Optional[Voxel]:
        """The voxel at a coordinate, or None when the cell is empty."""
        return self._voxels.get(Coordinate(*position))

    def neighbour_mask(self, position: Sequence[int]) -> Optional[int]:
        """
        Occupancy of the 26 cells around a coordinate.

        Returns:
            27-bit mask, or None when neighbour tracking is disabled
        """
        if not self.calculate_neighbours:
            return None

        position = Coordinate(*position)
        mask = self._neighbours.get(position)
        if mask is None:
            mask = 0
            for dx, dy, dz in NEIGHBOUR_OFFSETS:
                if position.offset(dx, dy, dz) in self._voxels:
                    mask |= 1 << neighbour_bit(dx, dy, dz)
            self._neighbours[position] = mask
        return mask

    def has_neighbour(self, position: Sequence[int], offset: Sequence[int]) -> bool:
        """Whether the cell at position + offset is occupied."""
        mask = self.neighbour_mask(position)
        if mask is None:
            x, y, z = position
            dx, dy, dz = offset
            return Coordinate(x + dx, y + dy, z + dz) in self._voxels
        return bool(mask & (1 << neighbour_bit(*offset)))

    def face_visibility(self, position: Sequence[int]) -> int:
        """
        Faces not covered by an opaque neighbour.

        Returns:
            6-bit mask in FACE_OFFSETS order (+X, -X, +Y, -Y, +Z, -Z)
        """
        position = Coordinate(*position)
        visibility = 0
        for face, (dx, dy, dz) in enumerate(FACE_OFFSETS):
            if not self.is_opaque_voxel_at(position.offset(dx, dy, dz)):
                visibility |= 1 << face
        return visibility

    @property
    def voxels(self) -> List[Voxel]:
        """All voxels in insertion order."""
        return list(self._voxels.values())

    def __iter__(self) -> Iterator[Voxel]:
        return iter(self._voxels.values())

    def __len__(self) -> int:
        return len(self._voxels)

    @property
    def voxel_count(self) -> int:
        return len(self._voxels)

    @property
    def bounds(self) -> Bounds:
        return self._bounds

    def release(self) -> None:
        """Drop all voxel and neighbour storage."""
        self._voxels = {}
        self._neighbours = {}
        self._bounds = Bounds.empty()
