"""
Tests for the distribution sub-score and its numeric helpers.

Covers:
- 2x2 closed-form and 3x3 Jacobi eigendecomposition
- Octree nearest-neighbour search against brute force
- Mirror invariance of center deviation, symmetry and row patterns
- Row level clustering on rectangle centers
- Occupancy grid, single-product special cases, score bounds
- 3D mirror-plane symmetry, declared volume as mass, degenerate fallback
"""

import numpy as np
import pytest

from moldlayout.balance import DistributionScorer, score_3d_symmetry
from moldlayout.balance.distribution import (
    MassElement,
    Octree,
    PhysicsCalculator,
    calculate_spatial,
    center_of_mass,
    jacobi_eigen,
    principal_components_2d,
    symmetry_score,
)
from moldlayout.balance.distribution.physics import cluster_levels
from moldlayout.balance.distribution.scorer import detect_layout_pattern
from moldlayout.balance.distribution.symmetry3d import layout_to_3d
from moldlayout.errors import InvalidInputError
from moldlayout.models import Layout, PlacedRectangle


def _scattered():
    """Equal rectangles with distinct rows and columns (no detected pattern)."""
    spots = [(0, 0), (130, 90), (260, 20), (50, 200)]
    return [
        PlacedRectangle(x=x, y=y, width=100, length=60, original_index=i)
        for i, (x, y) in enumerate(spots)
    ]


def _two_rows():
    """Four items centred on y=50 over two centred on y=200, lengths mixed within each row."""
    spots = [
        (0, 0, 100), (120, 20, 60), (240, 10, 80), (360, 0, 100),
        (60, 160, 80), (240, 180, 40),
    ]
    return [
        PlacedRectangle(x=x, y=y, width=100, length=length, original_index=i)
        for i, (x, y, length) in enumerate(spots)
    ]


def _mirror(rects):
    min_x = min(r.x for r in rects)
    min_y = min(r.y for r in rects)
    max_x = max(r.x_max for r in rects)
    max_y = max(r.y_max for r in rects)
    cx, cy = (min_x + max_x) / 2, (min_y + max_y) / 2
    return [r.mirrored(cx, cy) for r in rects]


# ---------------------------------------------------------------------------
# Eigen solvers
# ---------------------------------------------------------------------------

def test_principal_components_2d_diagonal():
    (m1, m2), axes = principal_components_2d(4.0, 1.0, 0.0)
    assert (m1, m2) == pytest.approx((4.0, 1.0))
    assert axes[0] == pytest.approx((1.0, 0.0))


def test_principal_components_2d_matches_numpy():
    ixx, iyy, ixy = 3.0, 2.0, 0.7
    (m1, m2), _ = principal_components_2d(ixx, iyy, ixy)
    expected = np.linalg.eigvalsh(np.array([[ixx, ixy], [ixy, iyy]]))
    assert sorted((m1, m2)) == pytest.approx(sorted(expected))


def test_jacobi_matches_numpy():
    matrix = np.array([[4.0, 1.0, -2.0], [1.0, 2.0, 0.5], [-2.0, 0.5, 3.0]])
    original = matrix.copy()
    values, vectors = jacobi_eigen(matrix)
    assert sorted(values) == pytest.approx(sorted(np.linalg.eigvalsh(matrix)), abs=1e-6)
    for i in range(3):
        assert matrix @ vectors[:, i] == pytest.approx(values[i] * vectors[:, i], abs=1e-6)
    assert vectors.T @ vectors == pytest.approx(np.eye(3), abs=1e-9)
    np.testing.assert_array_equal(matrix, original)


def test_jacobi_diagonal_input_is_returned_unchanged():
    values, vectors = jacobi_eigen(np.diag([3.0, 2.0, 1.0]))
    assert list(values) == [3.0, 2.0, 1.0]
    np.testing.assert_array_equal(vectors, np.eye(3))


def test_jacobi_equal_diagonal_entries():
    matrix = np.array([[2.0, 1.0, 0.0], [1.0, 2.0, 0.0], [0.0, 0.0, 5.0]])
    values, _ = jacobi_eigen(matrix)
    assert sorted(values) == pytest.approx([1.0, 3.0, 5.0])


def test_center_of_mass_weighted():
    elements = [MassElement(0, 0, 1), MassElement(10, 0, 3)]
    assert center_of_mass(elements) == pytest.approx((7.5, 0.0))
    assert center_of_mass([MassElement(5, 5, 0)]) == (0.0, 0.0)


# ---------------------------------------------------------------------------
# Octree
# ---------------------------------------------------------------------------

def test_octree_empty():
    assert Octree.build([]).nearest_neighbor((0, 0, 0)) is None


def test_octree_matches_brute_force():
    rng = np.random.default_rng(3)
    points = rng.uniform(-50, 50, size=(200, 3))
    index = Octree.build(points)
    for query in rng.uniform(-60, 60, size=(25, 3)):
        found, dist_sq = index.nearest_neighbor(query)
        brute = np.sum((points - query) ** 2, axis=1)
        assert dist_sq == pytest.approx(float(brute.min()))
        assert brute[found] == pytest.approx(float(brute.min()))


def test_octree_exact_hit():
    points = [(0, 0, 0), (1, 1, 1), (5, 5, 5)]
    assert Octree.build(points).nearest_neighbor((1, 1, 1)) == (1, 0.0)


# ---------------------------------------------------------------------------
# 2D distribution
# ---------------------------------------------------------------------------

def test_mirror_invariance_of_center_deviation_and_symmetry():
    rects = _scattered()
    mirrored = _mirror(rects)
    calc = PhysicsCalculator()
    before = calc.center_deviation_score(rects, calc.detect_patterns(rects))
    after = calc.center_deviation_score(mirrored, calc.detect_patterns(mirrored))
    assert after == pytest.approx(before, abs=1e-6)
    assert symmetry_score(mirrored) == pytest.approx(symmetry_score(rects), abs=1e-6)


def test_mirror_invariance_with_row_hierarchy(product_factory):
    rects = _two_rows()
    mirrored = _mirror(rects)
    calc = PhysicsCalculator()
    patterns = calc.detect_patterns(rects)
    mirrored_patterns = calc.detect_patterns(mirrored)

    assert patterns.is_hierarchical and mirrored_patterns.is_hierarchical
    assert mirrored_patterns.hierarchy_quality == pytest.approx(patterns.hierarchy_quality)
    assert mirrored_patterns.is_gradient == patterns.is_gradient
    assert mirrored_patterns.is_aligned == patterns.is_aligned
    before = calc.center_deviation_score(rects, patterns)
    after = calc.center_deviation_score(mirrored, mirrored_patterns)
    assert after == pytest.approx(before, abs=1e-6)

    products = [product_factory(i, 100, r.length, 30) for i, r in enumerate(rects)]
    pattern = detect_layout_pattern(rects, products)
    assert pattern == detect_layout_pattern(mirrored, products)
    assert pattern.is_hierarchical


def test_cluster_levels_merges_close_values():
    levels = cluster_levels([50.0, 200.0, 50.004, 49.999, 200.0, 120.0])
    assert [count for _, count in levels] == [3, 1, 2]
    assert levels[0][0] == pytest.approx(50.001)


def test_single_product_physics_defaults(product_factory):
    result = PhysicsCalculator().calculate([PlacedRectangle(0, 0, 100, 80)], [product_factory(1)])
    assert result.isotropy == 100
    assert result.center_deviation == 0


def test_spatial_grid_is_fully_occupied_for_touching_grid():
    rects = [
        PlacedRectangle(x=i * 100, y=j * 100, width=100, length=100, original_index=2 * j + i)
        for j in range(2) for i in range(2)
    ]
    result = calculate_spatial(rects)
    assert result.occupied_cells == result.grid_cells
    assert 0 < result.uniformity <= 100


def test_distribution_empty_is_perfect():
    assert DistributionScorer().score([], []).total == 100


def test_distribution_bounds(identical_products):
    result = DistributionScorer().score(_scattered(), identical_products)
    assert 0 <= result.total <= 100
    assert "physics" in result.to_dict()


# ---------------------------------------------------------------------------
# 3D symmetry
# ---------------------------------------------------------------------------

def test_3d_symmetry_of_mirrored_pair(product_factory):
    products = [product_factory(1, 100, 80, 30), product_factory(2, 100, 80, 30)]
    layout = Layout(rectangles=[
        PlacedRectangle(0, 0, 100, 80, original_index=0),
        PlacedRectangle(130, 0, 100, 80, original_index=1),
    ], width=230, length=80)
    result = score_3d_symmetry(layout, products)
    assert result.xy == pytest.approx(1.0)
    assert result.xz == pytest.approx(1.0)
    assert result.yz == pytest.approx(1.0)
    assert result.overall == pytest.approx(1.0)
    assert 0 <= result.isotropy <= 1
    assert 0 <= result.distribution <= 1


def test_3d_mass_uses_declared_volume(product_factory):
    products = [
        product_factory(1, 100, 80, 30, volume=12000),
        product_factory(2, 100, 80, 30),
    ]
    layout = Layout(rectangles=[
        PlacedRectangle(0, 0, 100, 80, original_index=0),
        PlacedRectangle(130, 0, 100, 80, original_index=1),
    ])
    points, masses = layout_to_3d(layout, products)
    assert masses.tolist() == [12000.0, 240000.0]
    assert points[0].tolist() == [50.0, 40.0, 15.0]


def test_3d_symmetry_empty_layout():
    assert score_3d_symmetry(Layout(), []).overall == 1.0


def test_3d_symmetry_count_mismatch(product_factory):
    with pytest.raises(InvalidInputError):
        score_3d_symmetry(Layout(rectangles=[PlacedRectangle(0, 0, 10, 10)]), [])


def test_3d_symmetry_zero_mass_falls_back(product_factory):
    products = [product_factory(1, 100, 80, 0), product_factory(2, 100, 80, 0)]
    layout = Layout(rectangles=[
        PlacedRectangle(0, 0, 100, 80, original_index=0),
        PlacedRectangle(130, 0, 100, 80, original_index=1),
    ])
    assert score_3d_symmetry(layout, products).overall == 0.0
