"""Partition search: grouping enumeration, evaluation and mold distribution."""

from .combinations import generate_combinations, iter_combinations
from .distribution import (
    DistributionResult,
    DistributionSolution,
    FeasibilityCheck,
    GroupingResult,
    MoldAssignment,
    WeightSplit,
    check_color_and_material,
    check_volume_utilization,
    find_optimal_distribution,
    find_optimal_groups,
)
from .evaluation import SchemeEvaluator, plan_schemes
from .grouping import can_add_to_group, enumerate_schemes, group_by_color_material, iter_groupings
from .pricing import PricingCollaborator, TablePricing
from .weight_rules import (
    GroupingCheck,
    get_max_weight_ratio,
    get_weight_diff,
    group_weight,
    is_valid_grouping,
    normalize_grouping,
)

__all__ = [
    # Grouping
    "enumerate_schemes",
    "iter_groupings",
    "can_add_to_group",
    "group_by_color_material",
    # Evaluation
    "SchemeEvaluator",
    "plan_schemes",
    "PricingCollaborator",
    "TablePricing",
    # Mold distribution
    "find_optimal_distribution",
    "find_optimal_groups",
    "check_volume_utilization",
    "check_color_and_material",
    "DistributionResult",
    "DistributionSolution",
    "MoldAssignment",
    "GroupingResult",
    "WeightSplit",
    "FeasibilityCheck",
    # Weight rules
    "GroupingCheck",
    "is_valid_grouping",
    "get_weight_diff",
    "get_max_weight_ratio",
    "group_weight",
    "normalize_grouping",
    # Combinations
    "generate_combinations",
    "iter_combinations",
]
