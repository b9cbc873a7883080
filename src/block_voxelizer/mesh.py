"""
Read-only Triangle Mesh

The mesh arrives from an importer already centred and normalized to a
height of MESH_DESIRED_HEIGHT. It is never modified: voxelizers describe
how to place it in voxel space with a Transform, and transformed vertex
arrays are computed on demand.

This module provides:
- Triangle: vertex / UV / normal indices plus a material name
- SolidMaterial, TexturedMaterial
- Transform: uniform scale followed by an offset
- Mesh: validation, transformed geometry and material sampling
"""

from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np

from .color import RGBA
from .config import TextureFiltering
from .errors import AppError, check
from .texture import Texture, WrapMode


class Triangle(NamedTuple):
    positions: Tuple[int, int, int]
    texcoords: Tuple[int, int, int] = (0, 0, 0)
    normals: Tuple[int, int, int] = (0, 0, 0)
    material: str = ""


@dataclass(frozen=True)
class SolidMaterial:
    color: RGBA


@dataclass(frozen=True)
class TexturedMaterial:
    texture: Texture
    wrap: WrapMode = WrapMode.REPEAT


Material = Union[SolidMaterial, TexturedMaterial]


@dataclass(frozen=True)
class Transform:
    """Maps mesh space to voxel space: point * scale + offset."""

    scale: float = 1.0
    offset: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    def apply(self, points: np.ndarray) -> np.ndarray:
        return np.asarray(points, dtype=np.float64) * self.scale + np.asarray(self.offset)


def _index_triple(values, what: str, index: int) -> Tuple[int, int, int]:
    try:
        triple = tuple(int(v) for v in values)
    except (TypeError, ValueError):
        raise AppError(f"Triangle {index} has malformed {what} indices: {values!r}") from None
    if len(triple) != 3:
        raise AppError(f"Triangle {index} must reference 3 {what} indices, got {len(triple)}")
    return triple


class Mesh:
    """
    Triangle mesh with UVs, normals and named materials.

    Args:
        vertices: Array-like of shape (N, 3)
        triangles: Sequence of Triangle
        materials: Mapping of material name to SolidMaterial/TexturedMaterial
        uvs: Optional array-like of shape (M, 2)
        normals: Optional array-like of shape (K, 3); face normals are
            computed from the geometry when omitted

    Raises:
        AppError: If the mesh is empty, contains non-finite values or
            references indices that do not exist
    """

    def __init__(self, vertices, triangles: Sequence[Triangle],
                 materials: Dict[str, Material],
                 uvs=None, normals=None):
        self._vertices = self._as_array(vertices, 3, "vertices")
        if len(self._vertices) == 0:
            raise AppError("Mesh has no vertices")
        if len(triangles) == 0:
            raise AppError("Mesh has no triangles")

        self._uvs = self._as_array(uvs if uvs is not None else np.zeros((0, 2)), 2, "UVs")
        self._normals = self._as_array(normals if normals is not None else np.zeros((0, 3)), 3, "normals")

        positions, texcoords, normal_indices, names = [], [], [], []
        for i, tri in enumerate(triangles):
            tri = Triangle(*tri)
            positions.append(_index_triple(tri.positions, "vertex", i))
            texcoords.append(_index_triple(tri.texcoords, "UV", i))
            normal_indices.append(_index_triple(tri.normals, "normal", i))
            names.append(str(tri.material))

        self._positions = np.asarray(positions, dtype=np.int64)
        self._texcoords = np.asarray(texcoords, dtype=np.int64)
        self._normal_indices = np.asarray(normal_indices, dtype=np.int64)
        self._material_names = names
        self._materials = dict(materials)

        self._check_range(self._positions, len(self._vertices), "vertex")
        if len(self._uvs) > 0:
            self._check_range(self._texcoords, len(self._uvs), "UV")
        if len(self._normals) > 0:
            self._check_range(self._normal_indices, len(self._normals), "normal")

    @staticmethod
    def _as_array(values, width: int, what: str) -> np.ndarray:
        try:
            array = np.asarray(values, dtype=np.float64)
        except (TypeError, ValueError):
            raise AppError(f"Mesh {what} are not numeric") from None
        if array.size == 0:
            return np.zeros((0, width), dtype=np.float64)
        if array.ndim != 2 or array.shape[1] != width:
            raise AppError(f"Mesh {what} must have shape (N, {width}), got {array.shape}")
        if not np.all(np.isfinite(array)):
            raise AppError(f"Mesh {what} contain NaN or infinite values")
        return array

    @staticmethod
    def _check_range(indices: np.ndarray, size: int, what: str) -> None:
        bad = np.argwhere((indices < 0) | (indices >= size))
        if len(bad) > 0:
            tri = int(bad[0][0])
            raise AppError(f"Triangle {tri} references a {what} index outside 0..{size - 1}")

    @property
    def vertex_count(self) -> int:
        return len(self._vertices)

    @property
    def triangle_count(self) -> int:
        return len(self._positions)

    def bounds(self, transform: Optional[Transform] = None) -> Tuple[np.ndarray, np.ndarray]:
        """Real-valued (min, max) corners of the vertices, optionally transformed."""
        vertices = self._vertices if transform is None else transform.apply(self._vertices)
        return vertices.min(axis=0), vertices.max(axis=0)

    def triangle_vertices(self, transform: Optional[Transform] = None
                          ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Corner arrays of every triangle.

        Returns:
            (v0, v1, v2), each of shape (T, 3), in voxel space if a
            transform is given
        """
        vertices = self._vertices if transform is None else transform.apply(self._vertices)
        return (vertices[self._positions[:, 0]],
                vertices[self._positions[:, 1]],
                vertices[self._positions[:, 2]])

    def triangle_uvs(self, index: int) -> np.ndarray:
        """UVs of a triangle's corners, shape (3, 2); zeros when the mesh has none."""
        if len(self._uvs) == 0:
            return np.zeros((3, 2), dtype=np.float64)
        return self._uvs[self._texcoords[index]]

    def triangle_normal(self, index: int) -> np.ndarray:
        """Unit normal of a triangle's first corner, or its face normal."""
        if len(self._normals) > 0:
            normal = self._normals[self._normal_indices[index, 0]]
        else:
            v0, v1, v2 = self._vertices[self._positions[index]]
            normal = np.cross(v1 - v0, v2 - v0)
        length = np.linalg.norm(normal)
        if length == 0.0:
            return np.zeros(3, dtype=np.float64)
        return normal / length

    def material_name(self, index: int) -> str:
        return self._material_names[index]

    def get_material(self, name: str) -> Material:
        material = self._materials.get(name)
        check(material is not None, f"Triangle references unknown material '{name}'")
        return material

    def sample_material(self, index: int, location: np.ndarray,
                        corners: Tuple[np.ndarray, np.ndarray, np.ndarray],
                        filtering: TextureFiltering) -> RGBA:
        """
        Colour of a triangle at a point.

        Solid materials return their colour. Textured materials interpolate
        the corner UVs with area-based barycentric weights of `location`.

        Args:
            index: Triangle index
            location: Point in the same space as `corners`
            corners: The triangle's (v0, v1, v2), usually transformed
            filtering: Texture filtering mode
        """
        material = self.get_material(self._material_names[index])
        if isinstance(material, SolidMaterial):
            return material.color

        v0, v1, v2 = corners
        area01 = 0.5 * np.linalg.norm(np.cross(v1 - v0, location - v0))
        area12 = 0.5 * np.linalg.norm(np.cross(v2 - v1, location - v1))
        area20 = 0.5 * np.linalg.norm(np.cross(v0 - v2, location - v2))
        total = area01 + area12 + area20
        if total == 0.0:
            weights = np.full(3, 1.0 / 3.0)
        else:
            weights = np.array([area12, area20, area01]) / total

        uv = weights @ self.triangle_uvs(index)
        return material.texture.sample(float(uv[0]), float(uv[1]), filtering, material.wrap)
