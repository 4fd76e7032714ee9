"""
Inertia tensors and their principal components.

2D: the symmetric 2x2 tensor is diagonalised in closed form
    I1,2 = (Ixx + Iyy)/2 ± sqrt(((Ixx - Iyy)/2)^2 + Ixy^2)
    theta = atan2(2 Ixy, Ixx - Iyy) / 2

3D: cyclic Jacobi rotations on the 3x3 tensor, always annihilating the
largest off-diagonal element, until the off-diagonal sum of squares drops
below ``JACOBI_TOLERANCE`` or ``JACOBI_MAX_SWEEPS`` rotations have run.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from moldlayout.errors import DegenerateGeometryError

JACOBI_TOLERANCE = 1e-10
JACOBI_MAX_SWEEPS = 100

Axes2D = Tuple[Tuple[float, float], Tuple[float, float]]


@dataclass(frozen=True)
class MassElement:
    """A rectangle reduced to a point mass at its center."""
    x: float
    y: float
    mass: float
    width: float = 0.0
    length: float = 0.0


@dataclass
class InertiaState:
    """Transient inertia summary of one layout."""
    center_of_mass: Tuple[float, float] = (0.0, 0.0)
    tensor: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    moments: Tuple[float, float] = (0.0, 0.0)
    axes: Axes2D = ((1.0, 0.0), (0.0, 1.0))
    gyration_radius: float = 0.0


# ─────────────────────────────────────────────────────────────────────────────
# 2D
# ─────────────────────────────────────────────────────────────────────────────

def center_of_mass(elements: Sequence[MassElement]) -> Tuple[float, float]:
    total = sum(e.mass for e in elements)
    if total == 0:
        return (0.0, 0.0)
    return (
        sum(e.x * e.mass for e in elements) / total,
        sum(e.y * e.mass for e in elements) / total,
    )


def principal_components_2d(ixx: float, iyy: float, ixy: float) -> Tuple[Tuple[float, float], Axes2D]:
    """Principal moments (largest first) and axes of a symmetric 2x2 tensor."""
    avg = (ixx + iyy) / 2
    diff = math.sqrt(((ixx - iyy) / 2) ** 2 + ixy ** 2)
    theta = math.atan2(2 * ixy, ixx - iyy) / 2
    cos, sin = math.cos(theta), math.sin(theta)
    return (avg + diff, avg - diff), ((cos, -sin), (sin, cos))


def gyration_radius(moments: Sequence[float], total_mass: float) -> float:
    if total_mass <= 0:
        return 0.0
    return math.sqrt(max(0.0, sum(moments)) / total_mass)


# ─────────────────────────────────────────────────────────────────────────────
# 3D
# ─────────────────────────────────────────────────────────────────────────────

def center_of_mass_3d(points: np.ndarray, masses: np.ndarray) -> np.ndarray:
    """
    Mass-weighted centroid of ``points`` (n x 3).

    Raises:
        DegenerateGeometryError: empty input, length mismatch, or a
                                 non-positive mass.
    """
    if len(points) == 0 or len(points) != len(masses):
        raise DegenerateGeometryError("Points and masses must be non-empty and of equal length")
    if np.any(masses <= 0) or not np.all(np.isfinite(masses)):
        raise DegenerateGeometryError("All masses must be positive numbers")
    return (points * masses[:, None]).sum(axis=0) / masses.sum()


def inertia_tensor_3d(points: np.ndarray, masses: np.ndarray, com: np.ndarray) -> np.ndarray:
    d = points - com
    dx, dy, dz = d[:, 0], d[:, 1], d[:, 2]
    xx = float(np.sum(masses * (dy * dy + dz * dz)))
    yy = float(np.sum(masses * (dx * dx + dz * dz)))
    zz = float(np.sum(masses * (dx * dx + dy * dy)))
    xy = -float(np.sum(masses * dx * dy))
    xz = -float(np.sum(masses * dx * dz))
    yz = -float(np.sum(masses * dy * dz))
    return np.array([[xx, xy, xz], [xy, yy, yz], [xz, yz, zz]])


def _off_diagonal_sum(a: np.ndarray) -> float:
    return float(np.sum(a * a) - np.sum(np.diag(a) ** 2))


def jacobi_eigen(matrix: np.ndarray, tolerance: float = JACOBI_TOLERANCE,
                 max_sweeps: int = JACOBI_MAX_SWEEPS) -> Tuple[np.ndarray, np.ndarray]:
    """
    Eigenvalues and eigenvectors (as columns) of a symmetric 3x3 matrix.

    The input is not modified. Eigenvalues come back in diagonal order,
    unsorted.
    """
    a = np.array(matrix, dtype=float)
    n = a.shape[0]
    v = np.eye(n)

    sweeps = 0
    while _off_diagonal_sum(a) > tolerance and sweeps < max_sweeps:
        upper = np.abs(np.triu(a, k=1))
        p, q = np.unravel_index(int(np.argmax(upper)), upper.shape)
        app, aqq, apq = a[p, p], a[q, q], a[p, q]

        theta = (aqq - app) / (2 * apq)
        t = (1.0 if theta >= 0 else -1.0) / (abs(theta) + math.sqrt(1 + theta * theta))
        c = 1 / math.sqrt(1 + t * t)
        s = c * t

        for i in range(n):
            if i != p and i != q:
                aip, aiq = a[i, p], a[i, q]
                a[i, p] = a[p, i] = c * aip - s * aiq
                a[i, q] = a[q, i] = s * aip + c * aiq
        a[p, p] = app - t * apq
        a[q, q] = aqq + t * apq
        a[p, q] = a[q, p] = 0.0

        vp, vq = v[:, p].copy(), v[:, q].copy()
        v[:, p] = c * vp - s * vq
        v[:, q] = s * vp + c * vq
        sweeps += 1

    return np.diag(a).copy(), v


def principal_components_3d(tensor: np.ndarray) -> Tuple[List[float], List[Tuple[float, float, float]]]:
    values, vectors = jacobi_eigen(tensor)
    axes = [tuple(float(x) for x in vectors[:, i]) for i in range(3)]
    return [float(x) for x in values], axes
