"""
Tests for the mold-distribution search and per-mold feasibility checks.

Covers:
- find_optimal_groups: single product, balanced pair, infeasible pair
- find_optimal_distribution: ordering by mold count, dedup, skip_validation
- Distribution caps and strict mode
- Volume utilization and color / material checks
"""

import pytest

from moldlayout.config import SearchConfig
from moldlayout.errors import EnumerationOverflowError
from moldlayout.search import (
    check_color_and_material,
    check_volume_utilization,
    find_optimal_distribution,
    find_optimal_groups,
)
from moldlayout.search.weight_rules import normalize_grouping


def test_single_product_mold_is_feasible(product_factory):
    result = find_optimal_groups([product_factory(1, weight=500)])
    assert result.total_solutions == 1


def test_balanced_pair_splits_once(product_factory):
    result = find_optimal_groups([product_factory(1, weight=60), product_factory(2, weight=50)])
    assert result.total_solutions == 1
    split = result.splits[0]
    assert sorted(split.weights) == [50, 60]
    assert split.check.valid
    assert "P1" in split.describe()


def test_unbalanced_pair_has_no_split(product_factory):
    result = find_optimal_groups([product_factory(1, weight=800), product_factory(2, weight=50)])
    assert result.total_solutions == 0


def test_products_without_weight_are_ignored(product_factory):
    products = [product_factory(1, weight=60), product_factory(2), product_factory(3, weight=50)]
    result = find_optimal_groups(products)
    assert result.total_solutions == 1
    assert sorted(p.id for g in result.splits[0].groups for p in g) == [1, 3]


def test_distribution_prefers_fewer_molds(product_factory):
    products = [product_factory(1, weight=60), product_factory(2, weight=50)]
    result = find_optimal_distribution(products)
    assert result.total_solutions == 2
    assert [s.mold_count for s in result.solutions] == [1, 2]


def test_unbalanced_pair_needs_two_molds(product_factory):
    products = [product_factory(1, weight=800), product_factory(2, weight=50)]
    result = find_optimal_distribution(products)
    assert result.total_solutions == 1
    assert result.solutions[0].mold_count == 2


def test_distributions_are_deduplicated(product_factory):
    products = [product_factory(i, weight=50) for i in range(1, 5)]
    result = find_optimal_distribution(products, skip_validation=True)
    assert result.total_solutions == 15
    keys = {normalize_grouping([m.products for m in s.molds]) for s in result.solutions}
    assert len(keys) == 15


def test_skip_validation_accepts_everything(product_factory):
    products = [product_factory(1, weight=800), product_factory(2, weight=50)]
    result = find_optimal_distribution(products, skip_validation=True)
    assert result.total_solutions == 2
    assert all(m.grouping.total_solutions == 1 for s in result.solutions for m in s.molds)


def test_no_products_no_solutions():
    result = find_optimal_distribution([])
    assert result.total_solutions == 0
    assert "No feasible" in result.message


def test_distribution_cap(product_factory):
    products = [product_factory(i, weight=50) for i in range(1, 4)]
    result = find_optimal_distribution(products, skip_validation=True, config=SearchConfig(max_schemes=2))
    assert result.truncated
    assert result.total_solutions == 2
    with pytest.raises(EnumerationOverflowError):
        find_optimal_distribution(
            products, skip_validation=True, config=SearchConfig(max_schemes=2, strict=True),
        )


# ---------------------------------------------------------------------------
# Feasibility helpers
# ---------------------------------------------------------------------------

def test_volume_utilization_empty():
    assert not check_volume_utilization([]).can_group


def test_volume_utilization_incomplete_dimensions(product_factory):
    check = check_volume_utilization([product_factory(1, height=0)])
    assert not check.can_group
    assert "incomplete" in check.message


def test_volume_utilization_similar_heights(product_factory):
    check = check_volume_utilization([product_factory(1, 100, 100, 50), product_factory(2, 100, 100, 50)])
    assert check.can_group
    assert check.utilization_ratio >= 0.6


def test_volume_utilization_mixed_heights(product_factory):
    check = check_volume_utilization([product_factory(1, 100, 100, 100), product_factory(2, 100, 100, 10)])
    assert not check.can_group
    assert check.utilization_ratio < 0.6


def test_color_and_material(product_factory):
    assert check_color_and_material([product_factory(1), product_factory(2)]).can_group
    assert not check_color_and_material([product_factory(1), product_factory(2, color="red")]).can_group
    assert not check_color_and_material([product_factory(1), product_factory(2, material="PP")]).can_group
    assert not check_color_and_material([]).can_group
