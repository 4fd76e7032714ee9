"""
Volume balance: density, height and mass evenness plus geometric symmetry.

    score = 0.3 isotropy + 0.3 center deviation
          + 0.1 density + 0.1 height + 0.1 mass + 0.1 symmetry

Density, height and mass terms are ``100 - 120 x normalised variance``.
Heights are measured against the tallest product (a short product in a tall
mold wastes steel). Symmetry combines three terms around the layout center:

  axial     each rectangle mirrored across the vertical and horizontal
            center lines should land on another rectangle of similar size
  radial    angular gaps between rectangle centers should be even
  distance  rectangle centers should sit at similar radii
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Optional, Sequence

from moldlayout.balance.numeric import clamp, distance, safe_divide
from moldlayout.config import DistributionConfig
from moldlayout.models import PlacedRectangle, Product


@dataclass
class VolumeBalance:
    score: float = 100.0
    density_variance: float = 100.0
    height_balance: float = 100.0
    mass_distribution: float = 100.0
    symmetry: float = 100.0

    def to_dict(self) -> dict:
        return asdict(self)


def _variance_score(values: Sequence[float], reference: float, penalty: float) -> float:
    if reference == 0:
        return 100.0
    var = sum((v - reference) ** 2 for v in values) / len(values)
    return clamp(100 - var / (reference * reference) * penalty)


def axial_asymmetry(rectangles: Sequence[PlacedRectangle], center, max_radius: float) -> float:
    """Summed best-match mismatch of every rectangle mirrored across both center lines."""
    cx, cy = center
    total = 0.0
    for r1 in rectangles:
        c1 = r1.center
        radius1 = distance(c1, center) / max_radius
        for mirror in ((2 * cx - c1[0], c1[1]), (c1[0], 2 * cy - c1[1])):
            best = math.inf
            for r2 in rectangles:
                if r2 is r1:
                    continue
                c2 = r2.center
                dist = distance(c2, mirror) / max_radius
                size_diff = safe_divide(abs(r1.area - r2.area), (r1.area + r2.area) / 2)
                radius_gap = abs(radius1 - distance(c2, center) / max_radius)
                position_weight = min(0.9, max(0.7, 1 - radius_gap))
                adjusted = size_diff * min(1.0, radius_gap * 1.2)
                asym = min(
                    dist * position_weight + adjusted * (1 - position_weight),
                    math.sqrt(dist * adjusted),
                ) * 0.95
                best = min(best, asym)
            total += best
    return total


def symmetry_score(rectangles: Sequence[PlacedRectangle]) -> float:
    n = len(rectangles)
    if n <= 1:
        return 100.0
    min_x = min(r.x for r in rectangles)
    min_y = min(r.y for r in rectangles)
    max_x = max(r.x_max for r in rectangles)
    max_y = max(r.y_max for r in rectangles)
    center = ((min_x + max_x) / 2, (min_y + max_y) / 2)
    max_radius = math.hypot(max_x - min_x, max_y - min_y) / 2
    if max_radius == 0:
        return 100.0

    axial = 100 * max(0.0, 1 - axial_asymmetry(rectangles, center, max_radius) / (2 * n)) ** 0.8

    angles = sorted(math.atan2(r.center[1] - center[1], r.center[0] - center[0]) for r in rectangles)
    ideal = 2 * math.pi / n
    angle_var = 0.0
    for i, angle in enumerate(angles):
        gap = angles[(i + 1) % n] - angle
        if gap < 0:
            gap += 2 * math.pi
        angle_var += (abs(gap - ideal) / math.pi) ** 1.5
    radial = 100 * max(0.0, 1 - math.sqrt(angle_var / n)) ** 1.2

    radii = [distance(r.center, center) for r in rectangles]
    avg = sum(radii) / n
    dist_var = sum((abs(d - avg) / max_radius) ** 1.5 for d in radii)
    spread = 100 * max(0.0, 1 - math.sqrt(dist_var / n)) ** 1.2

    return clamp(axial ** 1.2 * 0.4 + radial ** 1.1 * 0.35 + spread * 0.25)


def calculate_volume_balance(rectangles: Sequence[PlacedRectangle], products: Sequence[Product],
                             isotropy: float, center_deviation: float,
                             config: Optional[DistributionConfig] = None) -> VolumeBalance:
    cfg = config or DistributionConfig()
    if len(products) <= 1:
        return VolumeBalance()
    penalty = cfg.variance_penalty

    volumes = [p.effective_volume for p in products]
    density = _variance_score(volumes, sum(volumes) / len(volumes), penalty)
    heights = [p.height for p in products]
    height = _variance_score(heights, max(heights), penalty)
    masses = [p.effective_weight or 1.0 for p in products]
    mass = _variance_score(masses, sum(masses) / len(masses), penalty)
    symmetry = symmetry_score(rectangles)

    weights = (
        cfg.isotropy_weight, cfg.center_deviation_weight, cfg.density_weight,
        cfg.height_weight, cfg.mass_weight, cfg.symmetry_weight,
    )
    parts = (isotropy, center_deviation, density, height, mass, symmetry)
    score = safe_divide(sum(w * p for w, p in zip(weights, parts)), sum(weights))
    return VolumeBalance(
        score=clamp(score),
        density_variance=density,
        height_balance=height,
        mass_distribution=mass,
        symmetry=symmetry,
    )
