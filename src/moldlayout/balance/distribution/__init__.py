"""Distribution sub-score: inertia, occupancy, volume balance and 3D symmetry."""

from .inertia import (
    InertiaState,
    MassElement,
    center_of_mass,
    jacobi_eigen,
    principal_components_2d,
    principal_components_3d,
)
from .octree import Octree
from .physics import PatternInfo, PhysicsCalculator, PhysicsResult
from .scorer import DistributionScore, DistributionScorer, LayoutPattern
from .spatial import SpatialResult, calculate_spatial
from .symmetry3d import Symmetry3DResult, score_3d_symmetry
from .volume import VolumeBalance, calculate_volume_balance, symmetry_score

__all__ = [
    # Scorer
    "DistributionScorer",
    "DistributionScore",
    "LayoutPattern",
    # Parts
    "PhysicsCalculator",
    "PhysicsResult",
    "PatternInfo",
    "SpatialResult",
    "calculate_spatial",
    "VolumeBalance",
    "calculate_volume_balance",
    "symmetry_score",
    # Numerics
    "InertiaState",
    "MassElement",
    "center_of_mass",
    "principal_components_2d",
    "principal_components_3d",
    "jacobi_eigen",
    "Octree",
    # 3D
    "Symmetry3DResult",
    "score_3d_symmetry",
]
