"""
Ambient Occlusion

Per-vertex occlusion factors for the six faces of a voxel, derived from
its neighbour mask. Each face vertex looks at the two edge neighbours and
the corner neighbour in front of the face:

    factor = 1.0 - 0.2 * occupied

When both edges are occupied the corner counts as occupied too. Faces
covered by a neighbour keep a factor of 1.0 at every vertex.
"""

from typing import List, Sequence, Tuple

import numpy as np

from .geometry import Axis, FACE_OFFSETS
from .voxel_mesh import VoxelMesh, neighbour_bit

OCCLUSION_STEP = 0.2

# Vertex sign pairs along the face's two tangent axes
_VERTEX_SIGNS = ((1, -1), (-1, -1), (1, 1), (-1, 1))


def _build_vertex_neighbours() -> List[List[Tuple[int, int, int]]]:
    """[face][vertex] -> (edge bit, edge bit, corner bit)"""
    table = []
    for normal in FACE_OFFSETS:
        axis = Axis(next(i for i, c in enumerate(normal) if c != 0))
        a, b = axis.others
        face = []
        for sign_a, sign_b in _VERTEX_SIGNS:
            edge_a = list(normal)
            edge_a[a] = sign_a
            edge_b = list(normal)
            edge_b[b] = sign_b
            corner = list(normal)
            corner[a] = sign_a
            corner[b] = sign_b
            face.append((neighbour_bit(*edge_a), neighbour_bit(*edge_b), neighbour_bit(*corner)))
        table.append(face)
    return table


class OcclusionCalculator:
    """
    Computes ambient occlusion for voxels of a volume.

    Constructed once per job and passed to whatever needs occlusion values.

    Args:
        override_corner: Treat the corner as occupied when both edges are
    """

    def __init__(self, override_corner: bool = True):
        self.override_corner = override_corner
        self._vertex_neighbours = _build_vertex_neighbours()
        self._face_bits = [neighbour_bit(*normal) for normal in FACE_OFFSETS]

    def _mask(self, position: Sequence[int], volume: VoxelMesh) -> int:
        mask = volume.neighbour_mask(position)
        if mask is not None:
            return mask
        mask = 0
        x, y, z = position
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                for dz in (-1, 0, 1):
                    if (dx, dy, dz) != (0, 0, 0) and volume.is_voxel_at((x + dx, y + dy, z + dz)):
                        mask |= 1 << neighbour_bit(dx, dy, dz)
        return mask

    def occlusions(self, position: Sequence[int], volume: VoxelMesh) -> np.ndarray:
        """
        Occlusion factors of a voxel.

        Returns:
            Array of shape (6, 4); faces in +X, -X, +Y, -Y, +Z, -Z order
        """
        mask = self._mask(position, volume)
        result = np.ones((6, 4), dtype=np.float64)

        for face, face_bit in enumerate(self._face_bits):
            if mask & (1 << face_bit):
                continue
            for vertex, (edge_a, edge_b, corner) in enumerate(self._vertex_neighbours[face]):
                count = ((mask >> edge_a) & 1) + ((mask >> edge_b) & 1)
                if count == 2 and self.override_corner:
                    count += 1
                else:
                    count += (mask >> corner) & 1
                result[face, vertex] = 1.0 - OCCLUSION_STEP * count

        return result
