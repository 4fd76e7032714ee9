"""
Layout complexity signal used to widen or narrow pattern thresholds.

overall = 0.4 * size complexity + 0.6 * mean(spatial CV, shape CV, flow CV)
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

from moldlayout.balance.numeric import coefficient_of_variation, distance
from moldlayout.models import PlacedRectangle

# Item-count brackets: <= SMALL -> 0, <= MEDIUM -> 0.5, <= LARGE -> 0.75, else 1
SIZE_SMALL = 2
SIZE_MEDIUM = 4
SIZE_LARGE = 6


@dataclass(frozen=True)
class LayoutComplexity:
    size: int = 0
    spatial_variation: float = 0.0
    shape_variation: float = 0.0
    flow_variation: float = 0.0
    overall: float = 0.0


def size_complexity(size: int) -> float:
    if size <= SIZE_SMALL:
        return 0.0
    if size <= SIZE_MEDIUM:
        return 0.5
    if size <= SIZE_LARGE:
        return 0.75
    return 1.0


def calculate_injection_point(rectangles: Sequence[PlacedRectangle]) -> Tuple[float, float]:
    """Area-weighted centroid of rectangle centers; origin for an empty layout."""
    total_area = sum(r.area for r in rectangles)
    if total_area <= 0:
        return (0.0, 0.0)
    cx = sum(r.center[0] * r.area for r in rectangles) / total_area
    cy = sum(r.center[1] * r.area for r in rectangles) / total_area
    return (cx, cy)


def calculate_layout_complexity(rectangles: Sequence[PlacedRectangle], flow_paths: Sequence[float],
                                center: Tuple[float, float]) -> LayoutComplexity:
    size = len(rectangles)
    if not size:
        return LayoutComplexity()

    spatial = coefficient_of_variation([distance(center, r.center) for r in rectangles])
    shape = coefficient_of_variation([r.width / r.length if r.length else 0.0 for r in rectangles])
    flow = coefficient_of_variation(flow_paths)
    overall = 0.4 * size_complexity(size) + 0.6 * (spatial + shape + flow) / 3

    return LayoutComplexity(
        size=size,
        spatial_variation=spatial,
        shape_variation=shape,
        flow_variation=flow,
        overall=overall,
    )
