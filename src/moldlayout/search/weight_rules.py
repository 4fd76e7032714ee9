"""
Weight-balance rules for splitting one mold's products into sub-groups.

Both allowances are keyed by the heaviest product in the candidate split:

    heaviest   <100   <400   <700   <1000   >=1000
    max diff     50    100    150     200        0
    max ratio     5    2.5      2     1.5        1

Anything at or above ``separate_mold_weight`` needs a mold of its own.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import List, Optional, Sequence

from moldlayout.config import LookupTables, load_lookup_tables
from moldlayout.models import Product

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupingCheck:
    valid: bool
    reason: str = ""
    weight_diff: float = 0.0
    allowed_weight_diff: float = 0.0
    weight_ratio: float = 0.0
    allowed_weight_ratio: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def product_weight(product: Product) -> float:
    return product.effective_weight or 0.0


def get_weight_diff(max_weight: float, tables: Optional[LookupTables] = None) -> float:
    """Allowed weight difference between sub-groups."""
    return (tables or load_lookup_tables()).weight_difference.lookup(max_weight)


def get_max_weight_ratio(max_weight: float, tables: Optional[LookupTables] = None) -> float:
    """Allowed heavy / light sub-group weight ratio."""
    return (tables or load_lookup_tables()).weight_ratio.lookup(max_weight)


def group_weight(group: Sequence[Product]) -> float:
    return sum(product_weight(p) for p in group)


def is_valid_grouping(groups: Sequence[Sequence[Product]],
                      tables: Optional[LookupTables] = None) -> GroupingCheck:
    """Check that a split into sub-groups is weight-balanced."""
    tables = tables or load_lookup_tables()
    if len(groups) < 2:
        return GroupingCheck(False, "At least two groups are required")

    weights = [product_weight(p) for group in groups for p in group]
    if not weights:
        return GroupingCheck(False, "Groups are empty")
    heaviest = max(weights)
    if heaviest >= tables.separate_mold_weight:
        return GroupingCheck(
            False, f"Product weighing {heaviest:g} needs separate molds",
        )

    totals = [group_weight(g) for g in groups]
    high, low = max(totals), min(totals)
    allowed_diff = get_weight_diff(heaviest, tables)
    allowed_ratio = get_max_weight_ratio(heaviest, tables)
    diff = high - low
    ratio = high / low if low > 0 else float("inf")

    if ratio > allowed_ratio:
        return GroupingCheck(
            False,
            f"Group weight ratio {ratio:.2f} exceeds allowed {allowed_ratio:g}",
            diff, allowed_diff, ratio, allowed_ratio,
        )
    if diff > allowed_diff:
        return GroupingCheck(
            False,
            f"Group weight difference {diff:g} exceeds allowed {allowed_diff:g}",
            diff, allowed_diff, ratio, allowed_ratio,
        )
    return GroupingCheck(True, "", diff, allowed_diff, ratio, allowed_ratio)


def normalize_grouping(groups: Sequence[Sequence[Product]]) -> str:
    """Canonical key of a grouping: ids sorted inside each group, groups sorted."""
    keys: List[List[int]] = sorted(sorted(p.id for p in g) for g in groups)
    return "|".join(",".join(str(i) for i in key) for key in keys)
