"""
Geometry sub-score: how alike the products in a group are.

    total = 0.2 * shape + 0.2 * dimension consistency
          + 0.6 * (0.35 * planar density + 0.35 * volume utilization
                   + 0.3 * height distribution)

Shape similarity compares every pair on aspect ratio, volume and surface
area. Aspect-ratio mismatch is punished superlinearly and anything beyond
3:1 is capped low. Dimension scores use coefficients of variation across
the group. Empty input scores 0; a single product or a set of identical
products scores 100.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from itertools import combinations
from typing import List, Optional, Sequence

from moldlayout.balance.numeric import (
    coefficient_of_variation,
    nonlinear_mapping,
    numbers_equal,
    sigmoid,
)
from moldlayout.config import GeometryConfig
from moldlayout.models import Product

# Dimension normalisation: floor for tiny values, log-compress huge ones
MIN_DIMENSION = 0.05
HUGE_DIMENSION = 1_000_000
SIGMOID_MIDPOINT = 0.5


@dataclass(frozen=True)
class NormalizedProduct:
    length: float
    width: float
    height: float
    volume: float
    surface_area: float

    @property
    def is_valid(self) -> bool:
        return self.volume > 0 and self.length > 0 and self.width > 0 and self.height > 0


@dataclass
class ShapeScore:
    aspect_ratio: float = 0.0


@dataclass
class DimensionScore:
    size_variation: float = 0.0
    scale_ratio: float = 0.0
    consistency: float = 0.0


@dataclass
class EfficiencyScore:
    planar_density: float = 0.0
    volume_utilization: float = 0.0
    height_distribution: float = 0.0


@dataclass
class GeometryScore:
    total: float = 0.0
    shape: ShapeScore = field(default_factory=ShapeScore)
    dimension: DimensionScore = field(default_factory=DimensionScore)
    efficiency: EfficiencyScore = field(default_factory=EfficiencyScore)

    @classmethod
    def zero(cls) -> "GeometryScore":
        return cls()

    @classmethod
    def perfect(cls) -> "GeometryScore":
        return cls(
            total=100.0,
            shape=ShapeScore(100.0),
            dimension=DimensionScore(100.0, 100.0, 100.0),
            efficiency=EfficiencyScore(100.0, 100.0, 100.0),
        )

    def to_dict(self) -> dict:
        return asdict(self)


def _normalize(value: float) -> float:
    if value <= MIN_DIMENSION:
        return MIN_DIMENSION
    if value > HUGE_DIMENSION:
        return math.log10(value) / math.log10(HUGE_DIMENSION)
    return value


def normalize_product(product: Product) -> NormalizedProduct:
    """Dimensions, volume and surface area with tiny / huge values tamed."""
    length, width, height = product.length, product.width, product.height
    if product.cad_data is not None and product.cad_data.surface_area > 0:
        surface = product.cad_data.surface_area
    else:
        surface = 2 * (length * width + length * height + width * height)
    return NormalizedProduct(
        length=_normalize(length),
        width=_normalize(width),
        height=_normalize(height),
        volume=_normalize(product.effective_volume),
        surface_area=_normalize(surface),
    )


class GeometryScorer:
    """
    Pairwise shape / dimension similarity plus packing efficiency.

    Usage:
        score = GeometryScorer().score(products)
        score.total   # 0..100
    """

    def __init__(self, config: Optional[GeometryConfig] = None):
        self.config = config or GeometryConfig()

    def score(self, products: Sequence[Product]) -> GeometryScore:
        if not products:
            return GeometryScore.zero()
        valid = [p for p in (normalize_product(p) for p in products) if p.is_valid]
        if not valid:
            return GeometryScore.zero()
        if len(valid) == 1 or self.all_identical(valid):
            return GeometryScore.perfect()

        cfg = self.config
        shape = self.shape_score(valid)
        dimension = self.dimension_score(valid)
        efficiency = self.efficiency_score(valid)
        total = (
            shape.aspect_ratio * cfg.shape_weight
            + dimension.consistency * cfg.dimension_weight
            + (
                efficiency.planar_density * cfg.planar_density_weight
                + efficiency.volume_utilization * cfg.volume_utilization_weight
                + efficiency.height_distribution * cfg.height_distribution_weight
            ) * cfg.efficiency_weight
        )
        return GeometryScore(
            total=float(min(100, max(0, round(total)))),
            shape=shape,
            dimension=dimension,
            efficiency=efficiency,
        )

    def all_identical(self, products: Sequence[NormalizedProduct]) -> bool:
        first = products[0]
        tol = self.config.tolerance_minimum
        return all(
            abs(p.length - first.length) < tol
            and abs(p.width - first.width) < tol
            and abs(p.height - first.height) < tol
            and abs(p.volume - first.volume) < tol
            for p in products[1:]
        )

    # ── Similarity ──────────────────────────────────────────────────────────

    def ratio_similarity(self, a: float, b: float) -> float:
        cfg = self.config
        if numbers_equal(a, b, cfg.tolerance_ratio, cfg.tolerance_minimum):
            return 1.0
        if a <= 0 or b <= 0:
            return 0.0
        ratio = min(a, b) / max(a, b)
        if ratio > cfg.near_perfect_threshold:
            t = cfg.near_perfect_threshold
            return min(1.0, t + (ratio - t) * 10)
        base = sigmoid((ratio - SIGMOID_MIDPOINT) * cfg.slope_factor)
        return base ** cfg.base_penalty_exponent

    def shape_similarity(self, a: NormalizedProduct, b: NormalizedProduct) -> float:
        cfg = self.config
        ar_a = max(a.length, a.width) / min(a.length, a.width)
        ar_b = max(b.length, b.width) / min(b.length, b.width)
        ar_score = min(ar_a, ar_b) / max(ar_a, ar_b)
        ar_diff = abs(ar_a - ar_b)
        max_ar = max(ar_a, ar_b)

        if max_ar > cfg.extreme_aspect_ratio:
            extreme = (max_ar / cfg.extreme_aspect_ratio) ** 2
            return min(0.25, 1 / (extreme * (ar_diff + 1) ** 1.5))
        if ar_diff > cfg.max_aspect_difference:
            return min(0.35, 1 / (((ar_diff / cfg.max_aspect_difference) ** 2) * 2))

        surface_a = 2 * (a.length * a.width + a.length * a.height + a.width * a.height)
        surface_b = 2 * (b.length * b.width + b.length * b.height + b.width * b.height)
        weights = cfg.aspect_ratio_weight + cfg.volume_similarity_weight + cfg.area_similarity_weight
        weighted = (
            ar_score * cfg.aspect_ratio_weight
            + self.ratio_similarity(a.volume, b.volume) * cfg.volume_similarity_weight
            + self.ratio_similarity(surface_a, surface_b) * cfg.area_similarity_weight
        ) / weights
        mapped = nonlinear_mapping(weighted, cfg.base_penalty_exponent * 1.8)
        return mapped / (1 + ar_diff / 4)

    def shape_score(self, products: Sequence[NormalizedProduct]) -> ShapeScore:
        pairs = [self.shape_similarity(a, b) for a, b in combinations(products, 2)]
        avg = sum(pairs) / len(pairs) if pairs else 1.0
        return ShapeScore(aspect_ratio=float(round(nonlinear_mapping(avg, self.config.base_penalty_exponent) * 100)))

    # ── Dimensions ──────────────────────────────────────────────────────────

    def dimension_score(self, products: Sequence[NormalizedProduct]) -> DimensionScore:
        axes = [
            [p.length for p in products],
            [p.width for p in products],
            [p.height for p in products],
        ]
        cvs = [coefficient_of_variation(values) for values in axes]

        max_cv = max(cvs)
        size_variation = 100 * math.exp(-max_cv * 2)
        if max_cv < 0.1:
            size_variation += (100 - size_variation) * 0.8
        size_variation = round(size_variation)

        ratio_cvs = [
            coefficient_of_variation([p.length / p.width for p in products]),
            coefficient_of_variation([p.length / p.height for p in products]),
            coefficient_of_variation([p.width / p.height for p in products]),
        ]
        max_ratio_cv = max(ratio_cvs)
        scale_ratio = 100 * math.exp(-max_ratio_cv * 1.5)
        if max_ratio_cv < 0.1:
            scale_ratio += (100 - scale_ratio) * 0.95
        elif max_ratio_cv < 0.2:
            scale_ratio += (100 - scale_ratio) * 0.7
        scale_ratio = round(scale_ratio)

        avg_cv = sum(cvs) / len(cvs)
        consistency = 100 * math.exp(-avg_cv * 2)
        if avg_cv < 0.1:
            consistency += (100 - consistency) * 0.9
        consistency = round(consistency)
        if size_variation > 90 and scale_ratio > 90 and consistency > 90:
            consistency = min(100.0, consistency + (100 - consistency) * 0.8)

        return DimensionScore(
            size_variation=float(size_variation),
            scale_ratio=float(scale_ratio),
            consistency=float(consistency),
        )

    # ── Efficiency ──────────────────────────────────────────────────────────

    def efficiency_score(self, products: Sequence[NormalizedProduct]) -> EfficiencyScore:
        return EfficiencyScore(
            planar_density=float(self.planar_density(products)),
            volume_utilization=float(round(self.volume_utilization(products) * 100)),
            height_distribution=float(round(self.height_distribution(products) * 100)),
        )

    def planar_density(self, products: Sequence[NormalizedProduct]) -> int:
        """
        Footprint area over a side-by-side bounding strip, 0..95.

        Non-uniform widths inflate the strip by 10%. Densities above 1 mean
        overlap and are penalised quadratically.
        """
        if len(products) == 1:
            return 100
        total_area = sum(p.length * p.width for p in products)
        total_length = sum(p.length for p in products)
        max_width = max(p.width for p in products)
        uniform = all(abs(p.width - max_width) <= 0.1 for p in products)
        bounding = total_length * max_width * (1.0 if uniform else 1.1)
        if bounding == 0:
            return 0

        density = total_area / bounding
        if density > 1:
            score = max(0.0, 100 - (density - 1) ** 2 * 150)
        else:
            score = density ** 3 * 100
            if density >= 0.9:
                score = min(100.0, score * 1.2)
            elif density >= 0.7:
                score *= 0.95
            elif density >= 0.5:
                score *= 0.8
            else:
                score *= density ** 0.6
            if density >= 0.9:
                score = min(100.0, score * 1.1)
            score = min(95.0, score)
        return round(score)

    def volume_utilization(self, products: Sequence[NormalizedProduct]) -> float:
        total = sum(p.volume for p in products)
        box = max(p.length for p in products) * max(p.width for p in products) * max(p.height for p in products)
        if box == 0:
            return 0.0
        utilization = total / box
        if utilization < 0.2:
            return 0.1
        return nonlinear_mapping(utilization, self.config.volume_exponent)

    def height_distribution(self, products: Sequence[NormalizedProduct]) -> float:
        heights: List[float] = [p.height for p in products if p.height > 0]
        if not heights:
            return 0.0
        cv = coefficient_of_variation(heights)
        if cv > 0.5:
            return 0.2
        return nonlinear_mapping(1 - cv, self.config.height_exponent)
