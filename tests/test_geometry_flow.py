"""
Tests for the geometry and flow sub-scores.

Covers:
- Geometry short-circuits: empty, single, identical products
- Geometry prefers similar products over dissimilar ones
- Flow: single product, symmetric layouts, manual flow length overrides
- Complexity signal and injection point
"""

import pytest

from moldlayout.balance import FlowScorer, GeometryScorer, calculate_injection_point, calculate_layout_complexity
from moldlayout.balance.flow import PATTERN_SYMMETRIC, flow_lengths
from moldlayout.models import PlacedRectangle


def _grid(size=100.0, gap=20.0):
    """Four equal rectangles in a 2x2 grid."""
    step = size + gap
    return [
        PlacedRectangle(x=i * step, y=j * step, width=size, length=size, original_index=2 * j + i)
        for j in range(2) for i in range(2)
    ]


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

def test_geometry_empty_is_zero():
    assert GeometryScorer().score([]).total == 0


def test_geometry_single_product_is_perfect(product_factory):
    assert GeometryScorer().score([product_factory(1)]).total == 100


def test_geometry_identical_products_are_perfect(identical_products):
    assert GeometryScorer().score(identical_products).total == 100


def test_geometry_prefers_similar_products(product_factory):
    similar = [product_factory(1, 100, 80, 30), product_factory(2, 105, 82, 30)]
    dissimilar = [product_factory(1, 100, 80, 30), product_factory(2, 400, 40, 90)]
    scorer = GeometryScorer()
    assert scorer.score(similar).total > scorer.score(dissimilar).total


def test_geometry_bounds(mixed_products):
    result = GeometryScorer().score(mixed_products)
    assert 0 <= result.total <= 100
    assert set(result.to_dict()) == {"total", "shape", "dimension", "efficiency"}


# ---------------------------------------------------------------------------
# Flow
# ---------------------------------------------------------------------------

def test_flow_single_product_above_90(product_factory):
    rect = PlacedRectangle(x=0, y=0, width=100, length=80)
    result = FlowScorer().score([rect], [product_factory(1)], rect.center)
    assert result.total > 90


def test_flow_empty_input():
    assert FlowScorer().score([], [], (0, 0)).total == 0


def test_flow_symmetric_grid(identical_products):
    rects = _grid()
    point = calculate_injection_point(rects)
    assert point == pytest.approx((110.0, 110.0))
    result = FlowScorer().score(rects, identical_products, point)
    assert result.pattern == PATTERN_SYMMETRIC
    assert result.total > 90


def test_flow_off_center_injection_scores_lower(identical_products):
    rects = _grid()
    centered = FlowScorer().score(rects, identical_products, calculate_injection_point(rects))
    corner = FlowScorer().score(rects, identical_products, (0.0, 0.0))
    assert corner.flow_path_balance < centered.flow_path_balance
    assert 0 <= corner.total <= 100


def test_manual_flow_length_overrides_distance(product_factory):
    rects = _grid()[:2]
    products = [
        product_factory(1, flow_data={"manualFlowLength": 42.0}),
        product_factory(2, flow_data={"calculated_flow_path": {"length": 17.0}}),
    ]
    assert flow_lengths(rects, products, (0.0, 0.0)) == [42.0, 17.0]


def test_complexity_grows_with_size():
    rects = _grid()
    flows = [1.0] * 4
    small = calculate_layout_complexity(rects[:2], flows[:2], (0, 0))
    large = calculate_layout_complexity(rects, flows, (0, 0))
    assert small.size == 2
    assert large.overall >= small.overall
