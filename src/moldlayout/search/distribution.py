"""
Mold-distribution search and per-mold feasibility checks.

``find_optimal_distribution`` spreads an order over any number of molds.
Each candidate mold must split its products into at most two weight-balanced
sub-groups (``find_optimal_groups``). Structurally identical distributions are
deduplicated by their sorted-index-set key. Solutions come back with the
fewest molds first.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from moldlayout.config import LookupTables, SearchConfig, load_lookup_tables
from moldlayout.errors import EnumerationOverflowError
from moldlayout.models import Product
from moldlayout.packing import LayoutPacker
from moldlayout.search.combinations import generate_combinations, iter_combinations
from moldlayout.search.weight_rules import GroupingCheck, group_weight, is_valid_grouping

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class WeightSplit:
    """One way to split a mold's products into weight-balanced sub-groups."""
    groups: List[List[Product]]
    check: Optional[GroupingCheck] = None

    @property
    def weights(self) -> List[float]:
        return [group_weight(g) for g in self.groups]

    def describe(self) -> str:
        parts = [
            "[" + ", ".join(p.name or str(p.id) for p in g) + f"] {w:g}"
            for g, w in zip(self.groups, self.weights)
        ]
        return " | ".join(parts)


@dataclass
class GroupingResult:
    """Feasible weight splits of one mold."""
    splits: List[WeightSplit] = field(default_factory=list)
    message: str = ""

    @property
    def total_solutions(self) -> int:
        return len(self.splits)


@dataclass
class MoldAssignment:
    mold_id: int
    products: List[Product]
    grouping: GroupingResult


@dataclass
class DistributionSolution:
    solution_id: int
    molds: List[MoldAssignment]

    @property
    def mold_count(self) -> int:
        return len(self.molds)


@dataclass
class DistributionResult:
    solutions: List[DistributionSolution] = field(default_factory=list)
    message: str = ""
    truncated: bool = False

    @property
    def total_solutions(self) -> int:
        return len(self.solutions)


@dataclass(frozen=True)
class FeasibilityCheck:
    can_group: bool
    message: str = ""
    utilization_ratio: float = 0.0


# ─────────────────────────────────────────────────────────────────────────────
# Per-mold checks
# ─────────────────────────────────────────────────────────────────────────────

def find_optimal_groups(products: Sequence[Product],
                        tables: Optional[LookupTables] = None) -> GroupingResult:
    """
    Weight-balanced splits of one mold's products into at most two groups.

    Products without a known weight are left out. A single product is
    trivially feasible.
    """
    tables = tables or load_lookup_tables()
    weighed = [p for p in products if p.effective_weight is not None]
    if len(weighed) == 1:
        return GroupingResult([WeightSplit([weighed])], "Single product mold")

    combos = generate_combinations(
        weighed,
        validate=lambda groups: is_valid_grouping(groups, tables),
        max_groups=2,
        min_items_per_group=1,
    )
    if not combos:
        return GroupingResult([], "No weight-balanced grouping found")
    splits = [WeightSplit(groups, check) for groups, check in combos]
    return GroupingResult(splits, f"Found {len(splits)} weight-balanced groupings")


def check_volume_utilization(products: Sequence[Product],
                             tables: Optional[LookupTables] = None) -> FeasibilityCheck:
    """Product volume over packed bounding volume must reach the configured minimum."""
    tables = tables or load_lookup_tables()
    if not products:
        return FeasibilityCheck(False, "No products to group")
    if not all(p.length and p.width and p.height for p in products):
        return FeasibilityCheck(False, "Product dimensions are incomplete")

    layout = LayoutPacker(tables=tables).pack([p.footprint for p in products])
    max_height = max(p.height for p in products)
    product_volume = sum(p.length * p.width * p.height for p in products)
    ratio = product_volume / (layout.area * max_height)
    if ratio >= tables.min_volume_utilization:
        return FeasibilityCheck(True, f"Volume utilization {ratio:.1%} is acceptable", ratio)
    return FeasibilityCheck(False, f"Volume utilization {ratio:.1%} is too low to group", ratio)


def check_color_and_material(products: Sequence[Product]) -> FeasibilityCheck:
    if not products:
        return FeasibilityCheck(False, "No products to group")
    reference = products[0]
    if any(p.color != reference.color or p.material != reference.material for p in products):
        return FeasibilityCheck(False, "Products differ in color or material")
    return FeasibilityCheck(True, "Products share color and material")


# ─────────────────────────────────────────────────────────────────────────────
# Distribution search
# ─────────────────────────────────────────────────────────────────────────────

def _validate_distribution(groups: List[List[Product]], tables: LookupTables):
    results = []
    for products in groups:
        grouping = find_optimal_groups(products, tables)
        if grouping.total_solutions == 0:
            return None
        results.append(grouping)
    return results


def find_optimal_distribution(products: Sequence[Product],
                              skip_validation: bool = False,
                              config: Optional[SearchConfig] = None,
                              tables: Optional[LookupTables] = None) -> DistributionResult:
    """
    All feasible ways to spread ``products`` over molds, fewest molds first.

    Raises:
        EnumerationOverflowError: strict mode and more than
                                  ``config.max_schemes`` distributions.
    """
    config = config or SearchConfig()
    tables = tables or load_lookup_tables()
    validate = None if skip_validation else (lambda groups: _validate_distribution(groups, tables))

    candidates = iter_combinations(
        list(products), validate=validate, max_groups=len(products), min_items_per_group=1,
    )
    found = list(itertools.islice(candidates, config.max_schemes + 1))
    truncated = len(found) > config.max_schemes
    if truncated:
        if config.strict:
            raise EnumerationOverflowError(
                f"More than {config.max_schemes} distributions", produced=config.max_schemes,
            )
        found = found[:config.max_schemes]
        logger.warning("Distribution search truncated at %d solutions", config.max_schemes)

    solutions = []
    for index, (groups, groupings) in enumerate(found, start=1):
        if groupings is None:
            groupings = [GroupingResult([WeightSplit([g])]) for g in groups]
        molds = [
            MoldAssignment(mold_id, g, grouping)
            for mold_id, (g, grouping) in enumerate(zip(groups, groupings), start=1)
        ]
        solutions.append(DistributionSolution(index, molds))
    solutions.sort(key=lambda s: s.mold_count)

    if not solutions:
        return DistributionResult([], "No feasible mold distribution found", truncated)
    logger.info("Found %d mold distributions for %d products", len(solutions), len(products))
    return DistributionResult(
        solutions, f"Found {len(solutions)} feasible mold distributions", truncated,
    )
