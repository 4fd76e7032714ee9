"""
Physics part of the distribution sub-score: inertia isotropy and center deviation.

Products become point masses at their rectangle centers (mass = weight, or 1
when unknown). The 2D inertia tensor is built about the center of mass and
normalised by ``total mass x characteristic length^2``; when the layout is
strongly stretched along one axis (spread ratio > 1.5) the lever-arm terms
are damped by ``0.8 + 0.2 x mass continuity``.

Three layout patterns raise the scores:
  gradient      areas step down by steady ratios, optionally along x
  hierarchical  2+ row levels of rectangle centers, at most one level per two items
  aligned       centers share rows or columns
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import List, Optional, Sequence, Tuple

from moldlayout.balance.distribution.inertia import (
    Axes2D,
    InertiaState,
    MassElement,
    center_of_mass,
    gyration_radius,
    principal_components_2d,
)
from moldlayout.balance.numeric import clamp, distance, safe_divide
from moldlayout.config import DistributionConfig
from moldlayout.models import PlacedRectangle, Product

logger = logging.getLogger(__name__)

# Row and column centers closer than this belong to the same level
LEVEL_TOLERANCE = 0.01


@dataclass
class PatternInfo:
    is_gradient: bool = False
    gradient_quality: float = 0.0
    is_hierarchical: bool = False
    hierarchy_quality: float = 0.0
    is_aligned: bool = False
    alignment_quality: float = 0.0


@dataclass
class PhysicsResult:
    isotropy: float = 100.0
    center_deviation: float = 0.0
    principal_moments: Tuple[float, float] = (0.0, 0.0)
    principal_axes: Axes2D = ((1.0, 0.0), (0.0, 1.0))
    gyration_radius: float = 0.0
    patterns: Optional[PatternInfo] = None

    def to_dict(self) -> dict:
        return asdict(self)


def layout_bounds(rectangles: Sequence[PlacedRectangle]) -> Tuple[float, float, float, float]:
    return (
        min(r.x for r in rectangles),
        min(r.y for r in rectangles),
        max(r.x_max for r in rectangles),
        max(r.y_max for r in rectangles),
    )


def mass_elements(rectangles: Sequence[PlacedRectangle], products: Sequence[Product]) -> List[MassElement]:
    elements = []
    for rect, product in zip(rectangles, products):
        cx, cy = rect.center
        weight = product.effective_weight
        elements.append(MassElement(
            x=cx, y=cy, mass=weight if weight else 1.0, width=rect.width, length=rect.length,
        ))
    return elements


def mass_continuity(elements: Sequence[MassElement]) -> float:
    """1 minus the mean mass step between neighbours ordered by distance from the center of mass."""
    if len(elements) <= 1:
        return 1.0
    cx, cy = center_of_mass(elements)
    ordered = sorted(elements, key=lambda e: (math.hypot(e.x - cx, e.y - cy), e.mass))
    steps = [abs(b.mass - a.mass) for a, b in zip(ordered, ordered[1:])]
    return 1 - (sum(steps) / len(steps)) / (max(steps) + 1)


def cluster_levels(values: Sequence[float], tolerance: float = LEVEL_TOLERANCE) -> List[Tuple[float, int]]:
    """
    Distinct coordinate levels as ``(position, count)``, lowest first.

    Sorted values closer than ``tolerance`` to their predecessor share a level.
    """
    levels: List[List[float]] = []
    for value in sorted(values):
        if levels and value - levels[-1][-1] <= tolerance:
            levels[-1].append(value)
        else:
            levels.append([value])
    return [(sum(level) / len(level), len(level)) for level in levels]


def _spacing_quality(positions: Sequence[float]) -> float:
    if len(positions) <= 1:
        return 0.0
    gaps = [abs(b - a) for a, b in zip(positions, positions[1:])]
    avg = sum(gaps) / len(gaps)
    var = sum((g - avg) ** 2 for g in gaps) / len(gaps)
    return 1 - min(1.0, safe_divide(var, avg * avg, fallback=1.0))


class PhysicsCalculator:

    def __init__(self, config: Optional[DistributionConfig] = None):
        self.config = config or DistributionConfig()

    def calculate(self, rectangles: Sequence[PlacedRectangle], products: Sequence[Product]) -> PhysicsResult:
        if len(products) <= 1:
            return PhysicsResult()

        patterns = self.detect_patterns(rectangles)
        elements = mass_elements(rectangles, products)
        inertia = self.inertia(elements)
        isotropy = self.isotropy_score(inertia, patterns)
        deviation = self.center_deviation_score(rectangles, patterns)

        for flag, quality in (
            (patterns.is_gradient, patterns.gradient_quality),
            (patterns.is_hierarchical, patterns.hierarchy_quality),
        ):
            if flag:
                isotropy = max(self.config.min_pattern_score, isotropy * (1 + quality * 0.3))
                deviation *= 1 + quality * 0.2
        if patterns.is_aligned:
            isotropy *= 1 + patterns.alignment_quality * 0.2
            deviation *= 1 + patterns.alignment_quality * 0.1

        return PhysicsResult(
            isotropy=min(100.0, isotropy),
            center_deviation=clamp(deviation),
            principal_moments=inertia.moments,
            principal_axes=inertia.axes,
            gyration_radius=inertia.gyration_radius,
            patterns=patterns,
        )

    # ── Inertia ─────────────────────────────────────────────────────────────

    def inertia(self, elements: Sequence[MassElement]) -> InertiaState:
        com = center_of_mass(elements)
        total_mass = sum(e.mass for e in elements)
        xs = [e.x for e in elements]
        ys = [e.y for e in elements]
        x_spread, y_spread = max(xs) - min(xs), max(ys) - min(ys)
        characteristic = math.hypot(x_spread, y_spread)

        ratio = self.config.dominance_ratio
        correction = 1.0
        if y_spread > x_spread * ratio or x_spread > y_spread * ratio:
            correction = 0.8 + mass_continuity(elements) * 0.2

        ixx = iyy = ixy = 0.0
        for e in elements:
            dx, dy = e.x - com[0], e.y - com[1]
            ixx += e.mass * (dy * dy * correction + e.length ** 2 / 12)
            iyy += e.mass * (dx * dx * correction + e.width ** 2 / 12)
            ixy += e.mass * dx * dy * correction

        norm = safe_divide(1.0, total_mass * characteristic * characteristic)
        ixx, iyy, ixy = ixx * norm, iyy * norm, ixy * norm
        moments, axes = principal_components_2d(ixx, iyy, ixy)
        return InertiaState(
            center_of_mass=com,
            tensor=(ixx, iyy, ixy),
            moments=moments,
            axes=axes,
            gyration_radius=gyration_radius(moments, total_mass) * characteristic,
        )

    # ── Isotropy ────────────────────────────────────────────────────────────

    def isotropy_score(self, inertia: InertiaState, patterns: PatternInfo) -> float:
        cfg = self.config
        m1, m2 = inertia.moments
        eps = cfg.degenerate_moment
        if abs(m1) < eps and abs(m2) < eps:
            return cfg.degenerate_isotropy
        if abs(m1) < eps or abs(m2) < eps:
            return cfg.single_axis_isotropy

        largest = max(abs(m1), abs(m2))
        n1, n2 = m1 / largest, m2 / largest
        ratio = min(n1 / n2, n2 / n1)
        score = max(0.0, ratio) ** 0.3 * 100

        factor = self.distribution_factor(inertia)
        if factor > 0.8:
            score = max(score, 90.0)
        elif factor > 0.6:
            score = max(score, 80.0)
        if patterns.is_gradient or patterns.is_hierarchical:
            bonus = max(patterns.gradient_quality, patterns.hierarchy_quality) * 0.2
            score = max(score, 80 + bonus * 20)
        score *= 1 + max(0.0, factor - 0.5) * 0.2
        return min(100.0, score)

    @staticmethod
    def distribution_factor(inertia: InertiaState) -> float:
        """Weighted blend of principal-axis angle, moment ratio and axis orthogonality, 0..1."""
        (a00, a01), (a10, a11) = inertia.axes
        angle_factor = abs(math.cos(2 * math.atan2(a01, a00)))
        m1, m2 = inertia.moments
        moment_ratio = safe_divide(min(m1, m2), max(m1, m2))
        moment_factor = max(0.0, moment_ratio) ** 0.3
        symmetry_factor = 1 - abs(a00 * a10 + a01 * a11)
        return angle_factor * 0.4 + moment_factor * 0.4 + symmetry_factor * 0.2

    # ── Center deviation ────────────────────────────────────────────────────

    def center_deviation_score(self, rectangles: Sequence[PlacedRectangle], patterns: PatternInfo) -> float:
        if not rectangles:
            return 100.0
        min_x, min_y, max_x, max_y = layout_bounds(rectangles)
        max_dimension = max(max_x - min_x, max_y - min_y)
        if max_dimension == 0:
            return 100.0
        center = ((min_x + max_x) / 2, (min_y + max_y) / 2)
        total_area = sum(r.area for r in rectangles)

        radii = [distance(r.center, center) for r in rectangles]
        avg_radius = sum(radii) / len(radii)
        if patterns.is_gradient:
            avg_radius *= 0.8 + patterns.gradient_quality * 0.2
        elif patterns.is_hierarchical:
            avg_radius *= 0.7 + patterns.hierarchy_quality * 0.3

        total_weight = weighted = 0.0
        for rect, radius in zip(rectangles, radii):
            weight = rect.area / total_area if total_area > 0 else 1.0
            if patterns.is_gradient:
                weight *= 0.7 + patterns.gradient_quality * 0.3
            elif patterns.is_hierarchical:
                weight *= 0.6 + patterns.hierarchy_quality * 0.4
            weighted += weight * max(0.0, radius - avg_radius)
            total_weight += weight
        if total_weight == 0:
            return 100.0

        score = 100 * (1 - weighted / (max_dimension * total_weight))
        if patterns.is_gradient:
            score = max(self.config.min_pattern_score, score * (1 + patterns.gradient_quality * 0.3))
        elif patterns.is_hierarchical:
            score = max(self.config.min_pattern_score, score * (1 + patterns.hierarchy_quality * 0.3))
        if patterns.is_aligned:
            score *= 1 + patterns.alignment_quality * 0.2
        return clamp(score)

    # ── Pattern detection ───────────────────────────────────────────────────

    def detect_patterns(self, rectangles: Sequence[PlacedRectangle]) -> PatternInfo:
        info = PatternInfo()
        info.is_gradient, info.gradient_quality = self.detect_gradient(rectangles)
        info.is_hierarchical, info.hierarchy_quality = self.detect_hierarchy(rectangles)
        info.is_aligned, info.alignment_quality = self.detect_alignment(rectangles)
        return info

    @staticmethod
    def detect_gradient(rectangles: Sequence[PlacedRectangle]) -> Tuple[bool, float]:
        if not rectangles:
            return False, 0.0
        ordered = sorted(rectangles, key=lambda r: -r.area)
        n = len(ordered)

        xs = [r.center[0] for r in ordered]
        rising = sum(1 for a, b in zip(xs, xs[1:]) if b > a)
        falling = sum(1 for a, b in zip(xs, xs[1:]) if b < a)
        spatial = rising >= (n - 1) * 0.6 or falling >= (n - 1) * 0.6

        ratios = [safe_divide(b.area, a.area) for a, b in zip(ordered, ordered[1:])]
        valid = [r for r in ratios if 0.2 <= r <= 0.95]
        run = longest = 0
        for r in ratios:
            run = run + 1 if 0.2 <= r <= 0.95 else 0
            longest = max(longest, run)

        is_gradient = (
            longest >= math.ceil(n * 0.5)
            or len(valid) >= (n - 1) * 0.6
            or (spatial and len(valid) >= (n - 1) * 0.5)
        )
        if not is_gradient or not valid:
            return is_gradient, 0.0

        if len(ratios) > 1:
            up = sum(1 for a, b in zip(ratios, ratios[1:]) if b > a)
            down = sum(1 for a, b in zip(ratios, ratios[1:]) if b < a)
            direction = max(up, down) / (len(ratios) - 1)
        else:
            direction = 0.0
        avg_ratio = sum(valid) / len(valid)
        base = 1 - abs(avg_ratio - 0.65) / 0.45
        quality = base * 0.4 + direction * 0.3 + (1.0 if spatial else 0.7) * 0.3
        return True, max(0.65, quality)

    @staticmethod
    def detect_hierarchy(rectangles: Sequence[PlacedRectangle]) -> Tuple[bool, float]:
        levels = cluster_levels([r.center[1] for r in rectangles])
        if not (2 <= len(levels) <= len(rectangles) / 2):
            return False, 0.0
        sizes = [count for _, count in levels]
        good = sum(1 for a, b in zip(sizes, sizes[1:]) if 0.4 <= min(a, b) / max(a, b) <= 0.6)
        return True, good / (len(sizes) - 1)

    @staticmethod
    def detect_alignment(rectangles: Sequence[PlacedRectangle]) -> Tuple[bool, float]:
        if not rectangles:
            return False, 0.0
        rows = [pos for pos, _ in cluster_levels([r.center[1] for r in rectangles])]
        columns = [pos for pos, _ in cluster_levels([r.center[0] for r in rectangles])]
        horizontal = len(rows) <= len(rectangles) / 2
        vertical = len(columns) <= len(rectangles) / 2
        if not (horizontal or vertical):
            return False, 0.0
        return True, _spacing_quality(rows if horizontal else columns)
