"""
Bounding Volume Hierarchy

A BVH over the triangles of one mesh, built once per voxelization and
queried with axis-aligned probe rays. Nodes are stored in flat arrays:

- node_min / node_max: (N, 3) bounding boxes
- left / right: child indices, -1 for leaves
- start / count: range of a leaf in the permuted triangle arrays

Construction splits at the median centroid along the longest axis of the
node's bounding box, so the build is O(n log n) and the tree depth is
O(log n). Traversal runs in a numba kernel with an explicit stack.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np
from numba import njit

from .config import EPSILON, MAX_TRIANGLES_PER_NODE
from .errors import AppError
from .ray import Ray, moller_trumbore

logger = logging.getLogger(__name__)

_STACK_SIZE = 128


@njit(cache=True, fastmath=False)
def _traverse_axis_ray(node_min, node_max, left, right, start, count,
                       tri_v0, tri_v1, tri_v2,
                       origin, axis, epsilon, out_index, out_t):
    """
    Collect every triangle hit by a +axis ray.

    Returns:
        Number of hits written to out_index / out_t
    """
    direction = np.zeros(3)
    direction[axis] = 1.0
    a = (axis + 1) % 3
    b = (axis + 2) % 3

    stack = np.empty(_STACK_SIZE, dtype=np.int64)
    stack[0] = 0
    top = 1
    hits = 0

    while top > 0:
        top -= 1
        node = stack[top]

        # Slab test specialised for an axis-aligned ray
        if origin[a] < node_min[node, a] or origin[a] > node_max[node, a]:
            continue
        if origin[b] < node_min[node, b] or origin[b] > node_max[node, b]:
            continue
        if node_max[node, axis] < origin[axis]:
            continue

        if left[node] < 0:
            first = start[node]
            for i in range(first, first + count[node]):
                t = moller_trumbore(origin, direction, tri_v0[i], tri_v1[i], tri_v2[i], epsilon)
                if t >= 0.0:
                    out_index[hits] = i
                    out_t[hits] = t
                    hits += 1
        else:
            stack[top] = left[node]
            top += 1
            stack[top] = right[node]
            top += 1

    return hits


class BVH:
    """
    Ray query acceleration structure over a fixed set of triangles.

    Use BVH.build() to construct; the tree is immutable afterwards.
    """

    def __init__(self, node_min: np.ndarray, node_max: np.ndarray,
                 left: np.ndarray, right: np.ndarray,
                 start: np.ndarray, count: np.ndarray,
                 permutation: np.ndarray,
                 v0: np.ndarray, v1: np.ndarray, v2: np.ndarray):
        self._node_min = node_min
        self._node_max = node_max
        self._left = left
        self._right = right
        self._start = start
        self._count = count
        self._permutation = permutation
        # Triangle vertices in leaf order
        self._v0 = np.ascontiguousarray(v0[permutation])
        self._v1 = np.ascontiguousarray(v1[permutation])
        self._v2 = np.ascontiguousarray(v2[permutation])
        self._out_index: Optional[np.ndarray] = np.empty(len(permutation), dtype=np.int64)
        self._out_t: Optional[np.ndarray] = np.empty(len(permutation), dtype=np.float64)

    @classmethod
    def build(cls, v0: np.ndarray, v1: np.ndarray, v2: np.ndarray,
              max_triangles_per_node: int = MAX_TRIANGLES_PER_NODE) -> "BVH":
        """
        Build a BVH from per-triangle vertex arrays.

        Args:
            v0, v1, v2: Arrays of shape (T, 3) with the triangle corners
            max_triangles_per_node: Leaf capacity

        Returns:
            The built hierarchy
        """
        v0 = np.ascontiguousarray(v0, dtype=np.float64)
        v1 = np.ascontiguousarray(v1, dtype=np.float64)
        v2 = np.ascontiguousarray(v2, dtype=np.float64)
        n = v0.shape[0]
        if n == 0:
            raise AppError("Cannot build a BVH over zero triangles")
        if max_triangles_per_node < 1:
            raise ValueError("max_triangles_per_node must be positive")

        tri_min = np.minimum(np.minimum(v0, v1), v2)
        tri_max = np.maximum(np.maximum(v0, v1), v2)
        centroids = (v0 + v1 + v2) / 3.0

        node_min: List[np.ndarray] = []
        node_max: List[np.ndarray] = []
        left: List[int] = []
        right: List[int] = []
        start: List[int] = []
        count: List[int] = []
        order: List[int] = []

        def add_node(indices: np.ndarray) -> int:
            node = len(node_min)
            node_min.append(tri_min[indices].min(axis=0))
            node_max.append(tri_max[indices].max(axis=0))
            left.append(-1)
            right.append(-1)
            start.append(0)
            count.append(0)

            if len(indices) <= max_triangles_per_node:
                start[node] = len(order)
                count[node] = len(indices)
                order.extend(indices.tolist())
                return node

            axis = int(np.argmax(node_max[node] - node_min[node]))
            ordered = indices[np.argsort(centroids[indices, axis], kind="stable")]
            mid = ordered.size // 2
            left_child = add_node(ordered[:mid])
            right_child = add_node(ordered[mid:])
            left[node] = left_child
            right[node] = right_child
            return node

        add_node(np.arange(n, dtype=np.int64))

        bvh = cls(
            np.asarray(node_min, dtype=np.float64),
            np.asarray(node_max, dtype=np.float64),
            np.asarray(left, dtype=np.int64),
            np.asarray(right, dtype=np.int64),
            np.asarray(start, dtype=np.int64),
            np.asarray(count, dtype=np.int64),
            np.asarray(order, dtype=np.int64),
            v0, v1, v2,
        )
        logger.debug("BVH built: %d triangles, %d nodes, depth %d",
                     n, bvh.node_count, bvh.depth)
        return bvh

    @property
    def node_count(self) -> int:
        return len(self._left)

    @property
    def triangle_count(self) -> int:
        return len(self._permutation)

    @property
    def depth(self) -> int:
        """Number of levels from the root to the deepest leaf."""
        deepest = 0
        stack = [(0, 1)]
        while stack:
            node, level = stack.pop()
            deepest = max(deepest, level)
            if self._left[node] >= 0:
                stack.append((int(self._left[node]), level + 1))
                stack.append((int(self._right[node]), level + 1))
        return deepest

    def leaf_sizes(self) -> np.ndarray:
        return self._count[self._left < 0]

    def intersect_ray(self, ray: Ray) -> List[Tuple[int, np.ndarray]]:
        """
        Find every triangle the ray passes through.

        Returns:
            List of (triangle index in the original order, exact hit point)
        """
        if self._out_index is None:
            raise RuntimeError("BVH has been released")

        hits = _traverse_axis_ray(
            self._node_min, self._node_max, self._left, self._right,
            self._start, self._count, self._v0, self._v1, self._v2,
            ray.origin, int(ray.axis), EPSILON, self._out_index, self._out_t,
        )

        results = []
        for k in range(hits):
            point = ray.origin.copy()
            point[ray.axis] += self._out_t[k]
            results.append((int(self._permutation[self._out_index[k]]), point))
        return results

    def release(self) -> None:
        """Drop the node and triangle arrays."""
        self._node_min = self._node_max = None
        self._left = self._right = self._start = self._count = None
        self._v0 = self._v1 = self._v2 = None
        self._out_index = self._out_t = None
