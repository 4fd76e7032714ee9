"""
Octree for nearest-neighbour queries over 3D mass points.

A node splits into eight octants while it holds more than
``MAX_POINTS_PER_NODE`` points and is larger than ``MIN_NODE_SIZE``. A query
descends into its own octant first and visits a sibling only when the
squared distance from the query to that sibling's box could still beat the
best match found so far.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

MAX_POINTS_PER_NODE = 8
MIN_NODE_SIZE = 0.1


@dataclass
class OctreeNode:
    center: np.ndarray
    size: float
    items: List[Tuple[int, np.ndarray]] = field(default_factory=list)
    children: List["OctreeNode"] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.children


def _octant(point: np.ndarray, center: np.ndarray) -> int:
    return (
        (1 if point[0] >= center[0] else 0)
        | (2 if point[1] >= center[1] else 0)
        | (4 if point[2] >= center[2] else 0)
    )


def _squared(a: np.ndarray, b: np.ndarray) -> float:
    d = a - b
    return float(d @ d)


def _box_distance_sq(point: np.ndarray, node: OctreeNode) -> float:
    """Squared distance from ``point`` to the node's cube; 0 inside it."""
    half = node.size / 2
    excess = np.maximum(np.abs(point - node.center) - half, 0.0)
    return float(excess @ excess)


class Octree:
    """
    Usage:
        index = Octree.build(points)
        hit = index.nearest_neighbor((x, y, z))   # (index, squared distance) or None
    """

    def __init__(self, root: Optional[OctreeNode] = None):
        self.root = root

    @classmethod
    def build(cls, points: Sequence[Sequence[float]]) -> "Octree":
        arr = np.asarray(points, dtype=float).reshape(-1, 3)
        if arr.shape[0] == 0:
            return cls()
        lo, hi = arr.min(axis=0), arr.max(axis=0)
        root = OctreeNode(
            center=(lo + hi) / 2,
            size=float(np.max(hi - lo)),
            items=[(i, arr[i]) for i in range(arr.shape[0])],
        )
        cls._subdivide(root)
        return cls(root)

    @classmethod
    def _subdivide(cls, node: OctreeNode) -> None:
        if len(node.items) <= MAX_POINTS_PER_NODE or node.size <= MIN_NODE_SIZE:
            return
        quarter = node.size / 4
        for i in range(8):
            offset = np.array([
                quarter if i & 1 else -quarter,
                quarter if i & 2 else -quarter,
                quarter if i & 4 else -quarter,
            ])
            node.children.append(OctreeNode(center=node.center + offset, size=node.size / 2))
        for item in node.items:
            node.children[_octant(item[1], node.center)].items.append(item)
        node.items = []
        for child in node.children:
            if child.items:
                cls._subdivide(child)

    def nearest_neighbor(self, query: Sequence[float]) -> Optional[Tuple[int, float]]:
        """Index of the nearest stored point and its squared distance; None when empty."""
        if self.root is None:
            return None
        q = np.asarray(query, dtype=float)
        best: List = [-1, float("inf")]
        self._search(q, self.root, best)
        return None if best[0] < 0 else (best[0], best[1])

    def _search(self, q: np.ndarray, node: OctreeNode, best: List) -> None:
        for index, point in node.items:
            d = _squared(q, point)
            if d < best[1]:
                best[0], best[1] = index, d
        if node.is_leaf:
            return
        first = _octant(q, node.center)
        self._search(q, node.children[first], best)
        for i, child in enumerate(node.children):
            if i != first and _box_distance_sq(q, child) < best[1]:
                self._search(q, child, best)
