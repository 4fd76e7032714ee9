"""
3D mass symmetry for CAD-grade analysis.

The 2D layout is lifted to 3D point masses (center at half the product
height, mass = product volume). Each cardinal mirror plane through the
center of mass is scored by reflecting every point and looking up the
nearest reflected point in an octree:

    asymmetry = sum(m_i * nearest_i) / (n * total mass)
    plane score = clamp(1 - asymmetry, 0, 1)

    overall = 0.4 xy + 0.4 xz + 0.2 yz

Isotropy compares the three principal moments from a Jacobi
diagonalisation; distribution measures how evenly mass-weighted radii
spread. All scores are in [0, 1].
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import List, Sequence, Tuple

import numpy as np

from moldlayout.balance.distribution.inertia import (
    center_of_mass_3d,
    inertia_tensor_3d,
    principal_components_3d,
)
from moldlayout.balance.distribution.octree import Octree
from moldlayout.errors import DegenerateGeometryError, InvalidInputError
from moldlayout.models import Layout, Product

logger = logging.getLogger(__name__)

# Mirror plane -> the coordinate it flips
PLANE_AXES = {"xy": 2, "xz": 1, "yz": 0}
PLANE_WEIGHTS = {"xy": 0.4, "xz": 0.4, "yz": 0.2}


@dataclass
class Symmetry3DResult:
    xy: float = 1.0
    xz: float = 1.0
    yz: float = 1.0
    overall: float = 1.0
    isotropy: float = 1.0
    distribution: float = 1.0
    principal_moments: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])

    def to_dict(self) -> dict:
        return asdict(self)


def layout_to_3d(layout: Layout, products: Sequence[Product]) -> Tuple[np.ndarray, np.ndarray]:
    """(n x 3 points, n masses) from a packed layout."""
    points = []
    masses = []
    for rect, product in zip(layout.rectangles, products):
        cx, cy = rect.center
        points.append((cx, cy, product.height / 2))
        masses.append(product.effective_volume)
    return np.asarray(points, dtype=float).reshape(-1, 3), np.asarray(masses, dtype=float)


def plane_symmetry(points: np.ndarray, masses: np.ndarray, com: np.ndarray, axis: int) -> float:
    reflected = points.copy()
    reflected[:, axis] = 2 * com[axis] - points[:, axis]
    index = Octree.build(reflected)

    weighted = 0.0
    for point, mass in zip(points, masses):
        hit = index.nearest_neighbor(point)
        weighted += mass * (np.sqrt(hit[1]) if hit else 0.0)
    asymmetry = weighted / (len(points) * float(masses.sum()))
    return float(min(1.0, max(0.0, 1 - asymmetry)))


def isotropy_3d(moments: Sequence[float]) -> float:
    values = np.sort(np.asarray(moments, dtype=float))[::-1]
    avg = float(values.mean())
    if avg <= 0:
        return 1.0
    deviation = float(np.sqrt(np.mean((values - avg) ** 2))) / avg
    return max(0.0, 1 - deviation)


def distribution_3d(points: np.ndarray, masses: np.ndarray, com: np.ndarray) -> float:
    weighted = np.linalg.norm(points - com, axis=1) * masses
    top = float(weighted.max())
    if top == 0:
        return 1.0
    normalized = weighted / top
    return float(min(1.0, max(0.0, 1 - np.sqrt(normalized.var()))))


def score_3d_symmetry(layout: Layout, products: Sequence[Product]) -> Symmetry3DResult:
    """
    Mirror-plane symmetry, isotropy and radial distribution of a layout in 3D.

    Raises:
        InvalidInputError: layout and product counts differ.
    """
    if len(layout.rectangles) != len(products):
        raise InvalidInputError(
            f"Layout has {len(layout.rectangles)} rectangles for {len(products)} products"
        )
    if not products:
        return Symmetry3DResult()

    points, masses = layout_to_3d(layout, products)
    try:
        com = center_of_mass_3d(points, masses)
    except DegenerateGeometryError as exc:
        logger.warning("3D symmetry skipped: %s", exc)
        return Symmetry3DResult(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    planes = {name: plane_symmetry(points, masses, com, axis) for name, axis in PLANE_AXES.items()}
    moments, _ = principal_components_3d(inertia_tensor_3d(points, masses, com))
    return Symmetry3DResult(
        xy=planes["xy"],
        xz=planes["xz"],
        yz=planes["yz"],
        overall=sum(planes[name] * w for name, w in PLANE_WEIGHTS.items()),
        isotropy=isotropy_3d(moments),
        distribution=distribution_3d(points, masses, com),
        principal_moments=moments,
    )
