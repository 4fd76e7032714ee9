"""
Distribution sub-score: physics, spatial occupancy and volume balance.

    base  = 0.3 physics + 0.3 spatial uniformity + 0.4 volume
    total = min(100, base + balance bonus + pattern bonus)

The balance bonus (+5) applies when all three parts exceed 70 and lie within
20 points of each other. The pattern bonus rewards a width gradient or a
row hierarchy with up to 20 points for its quality and up to 5 more for
even spacing / balanced rows.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Optional, Sequence

from moldlayout.balance.distribution.physics import PhysicsCalculator, PhysicsResult, cluster_levels
from moldlayout.balance.distribution.spatial import SpatialResult, calculate_spatial
from moldlayout.balance.distribution.volume import VolumeBalance, calculate_volume_balance
from moldlayout.balance.numeric import clamp, safe_divide
from moldlayout.config import DistributionConfig
from moldlayout.models import PlacedRectangle, Product

logger = logging.getLogger(__name__)


@dataclass
class LayoutPattern:
    is_gradient: bool = False
    is_hierarchical: bool = False
    quality: float = 0.0


@dataclass
class DistributionScore:
    total: float = 100.0
    physics: PhysicsResult = field(default_factory=PhysicsResult)
    spatial: SpatialResult = field(default_factory=SpatialResult)
    volume: VolumeBalance = field(default_factory=VolumeBalance)
    pattern: LayoutPattern = field(default_factory=LayoutPattern)

    def to_dict(self) -> dict:
        return asdict(self)


def detect_layout_pattern(rectangles: Sequence[PlacedRectangle], products: Sequence[Product]) -> LayoutPattern:
    """Width gradient across the product order, or 2+ row levels (at most n/2)."""
    widths = [p.width for p in products]
    diffs = [safe_divide(abs(b - a), a) for a, b in zip(widths, widths[1:])]
    avg_diff = safe_divide(sum(diffs), len(diffs))
    is_gradient = bool(diffs) and all(d <= 0.5 for d in diffs)

    levels = len(cluster_levels([r.center[1] for r in rectangles]))
    is_hierarchical = 2 <= levels <= len(products) / 2

    if is_gradient:
        quality = 1 - avg_diff
    elif is_hierarchical:
        quality = min(1.0, levels / 4)
    else:
        quality = 0.0
    return LayoutPattern(is_gradient, is_hierarchical, quality)


def _pattern_weight(pattern: LayoutPattern) -> float:
    """Weight of the primary term (isotropy / base volume score); the rest goes to the secondary."""
    q = pattern.quality
    if pattern.is_gradient:
        return 0.8 * q + 0.7 * (1 - q)
    if pattern.is_hierarchical:
        return 0.6 * q + 0.7 * (1 - q)
    return 0.7


def physical_score(physics: PhysicsResult, pattern: LayoutPattern) -> float:
    w = _pattern_weight(pattern)
    isotropy = physics.isotropy if physics.isotropy > 80 else physics.isotropy * 0.95
    deviation = max(65.0, physics.center_deviation)
    return isotropy * w + deviation * (1 - w)


def volume_score(volume: VolumeBalance, pattern: LayoutPattern) -> float:
    w = _pattern_weight(pattern)
    symmetry = volume.symmetry if volume.symmetry > 75 else volume.symmetry * 0.95
    base = volume.score if volume.score > 80 else volume.score * 0.95
    return base * w + symmetry * (1 - w)


def pattern_bonus(pattern: LayoutPattern, rectangles: Sequence[PlacedRectangle],
                  config: DistributionConfig) -> float:
    bonus = 0.0
    if pattern.is_gradient:
        bonus += config.pattern_bonus * pattern.quality
        xs = [r.center[0] for r in rectangles]
        gaps = [abs(b - a) for a, b in zip(xs, xs[1:])]
        if gaps:
            avg = sum(gaps) / len(gaps)
            spread = sum(abs(g - avg) for g in gaps) / len(gaps)
            bonus += config.spacing_bonus * clamp(1 - safe_divide(spread, avg, fallback=1.0), 0.0, 1.0)
    if pattern.is_hierarchical:
        bonus += config.pattern_bonus * pattern.quality
        counts = [count for _, count in cluster_levels([r.center[1] for r in rectangles])]
        largest = max(counts)
        bonus += config.spacing_bonus * sum(c / largest for c in counts) / len(counts)
    return bonus


class DistributionScorer:
    """
    Usage:
        result = DistributionScorer().score(layout.rectangles, products)
        result.total   # 0..100
    """

    def __init__(self, config: Optional[DistributionConfig] = None):
        self.config = config or DistributionConfig()
        self.physics = PhysicsCalculator(self.config)

    def score(self, rectangles: Sequence[PlacedRectangle], products: Sequence[Product]) -> DistributionScore:
        if not products:
            return DistributionScore()
        cfg = self.config

        physics = self.physics.calculate(rectangles, products)
        spatial = calculate_spatial(rectangles)
        volume = calculate_volume_balance(
            rectangles, products, physics.isotropy, physics.center_deviation, cfg,
        )
        pattern = detect_layout_pattern(rectangles, products)

        phys = physical_score(physics, pattern)
        vol = volume_score(volume, pattern)
        parts = (phys, spatial.uniformity, vol)
        base = phys * cfg.physics_weight + spatial.uniformity * cfg.spatial_weight + vol * cfg.volume_weight

        balance = 0.0
        if min(parts) > cfg.balance_bonus_min and max(parts) - min(parts) < cfg.balance_bonus_spread:
            balance = cfg.balance_bonus
        total = clamp(base + balance + pattern_bonus(pattern, rectangles, cfg))

        logger.debug(
            "Distribution %.2f (physics %.1f, spatial %.1f, volume %.1f)",
            total, phys, spatial.uniformity, vol,
        )
        return DistributionScore(total=total, physics=physics, spatial=spatial, volume=volume, pattern=pattern)
