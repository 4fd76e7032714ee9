"""Balance scoring of packed layouts: geometry, flow and distribution."""

from .complexity import LayoutComplexity, calculate_injection_point, calculate_layout_complexity
from .distribution import DistributionScore, DistributionScorer, Symmetry3DResult, score_3d_symmetry
from .flow import FlowScore, FlowScorer
from .geometry import GeometryScore, GeometryScorer
from .scorer import BalanceScorer, score_layout

__all__ = [
    "BalanceScorer",
    "score_layout",
    "GeometryScorer",
    "GeometryScore",
    "FlowScorer",
    "FlowScore",
    "DistributionScorer",
    "DistributionScore",
    "Symmetry3DResult",
    "score_3d_symmetry",
    "LayoutComplexity",
    "calculate_injection_point",
    "calculate_layout_complexity",
]
