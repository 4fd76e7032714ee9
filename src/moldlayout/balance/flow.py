"""
Flow sub-score: melt flow balance from a single injection point.

Each product's flow length is the distance from the injection point to its
rectangle center, unless the product carries a flow length override. The
set of flow lengths is classified as

  * symmetric  : every length within a complexity-adjusted band (nominally
                  15%) of the mean, or
  * progressive: sorted lengths step up in even increments,

and those layouts get much smaller range / variance penalties than an
unpatterned one. Flow-path balance is then blended with surface-area and
volume balance, and a recognised pattern earns a final boost.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import List, Optional, Sequence, Tuple

from moldlayout.balance.complexity import calculate_layout_complexity
from moldlayout.balance.numeric import clamp, distance, safe_divide
from moldlayout.config import FlowConfig
from moldlayout.models import PlacedRectangle, Product

logger = logging.getLogger(__name__)

MIN_AVERAGE = 0.001
COMPLEXITY_PENALTY_FACTOR = 0.3

PATTERN_SYMMETRIC = "symmetric"
PATTERN_PROGRESSIVE = "progressive"
PATTERN_NONE = "none"


@dataclass
class FlowScore:
    flow_path_balance: float = 0.0
    surface_area_balance: float = 0.0
    volume_balance: float = 0.0
    total: float = 0.0
    pattern: str = PATTERN_NONE
    complexity: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def flow_lengths(rectangles: Sequence[PlacedRectangle], products: Sequence[Product],
                 injection_point: Tuple[float, float]) -> List[float]:
    lengths = []
    for rect, product in zip(rectangles, products):
        override = product.flow_data.flow_length if product.flow_data else None
        lengths.append(override if override is not None else distance(injection_point, rect.center))
    return lengths


def _max_relative_deviation(values: Sequence[float]) -> float:
    avg = safe_divide(sum(values), len(values))
    return max(safe_divide(abs(v - avg), max(avg, MIN_AVERAGE)) for v in values)


def _surface_area(product: Product) -> float:
    if product.cad_data is not None and product.cad_data.surface_area > 0:
        return product.cad_data.surface_area
    l, w, h = product.length, product.width, product.height
    return 2 * (l * w + l * h + w * h)


class FlowScorer:
    """
    Usage:
        score = FlowScorer().score(layout.rectangles, products, (cx, cy))
    """

    def __init__(self, config: Optional[FlowConfig] = None):
        self.config = config or FlowConfig()

    def score(self, rectangles: Sequence[PlacedRectangle], products: Sequence[Product],
              injection_point: Tuple[float, float]) -> FlowScore:
        if not rectangles or len(rectangles) != len(products):
            return FlowScore()
        cfg = self.config

        flows = flow_lengths(rectangles, products, injection_point)
        complexity = calculate_layout_complexity(rectangles, flows, injection_point)
        c = complexity.overall

        max_flow, min_flow = max(flows), min(flows)
        avg_flow = safe_divide(sum(flows), len(flows))
        flow_var = safe_divide(sum((f - avg_flow) ** 2 for f in flows), len(flows))
        norm_var = safe_divide(flow_var, avg_flow * avg_flow)

        # ── Pattern detection ───────────────────────────────────────────────
        symmetric_threshold = clamp(cfg.symmetric_threshold * (1 + c), cfg.symmetric_min, cfg.symmetric_max)
        is_symmetric = _max_relative_deviation(flows) < symmetric_threshold

        ordered = sorted(flows)
        diffs = [safe_divide(b - a, max(max_flow, MIN_AVERAGE)) for a, b in zip(ordered, ordered[1:])]
        avg_diff = safe_divide(sum(diffs), max(len(diffs), 1))
        diff_variation = max(
            [0.0] + [safe_divide(abs(d - avg_diff), max(avg_diff, MIN_AVERAGE)) for d in diffs]
        )
        progressive_threshold = clamp(
            cfg.progressive_threshold * (1 + c), cfg.progressive_min, cfg.progressive_max
        )
        is_progressive = len(flows) <= 2 or (
            0 < avg_diff < progressive_threshold and diff_variation < cfg.max_difference_variation
        )
        progressive_quality = clamp(1 - diff_variation, 0, 1)

        # ── Penalties ───────────────────────────────────────────────────────
        range_penalty = variance_penalty = 0.0
        if max_flow > 0:
            rel_range = safe_divide(max_flow - min_flow, max_flow)
            cf = 1 + c * COMPLEXITY_PENALTY_FACTOR
            exp = cfg.pattern_penalty_exponent
            if is_symmetric:
                reduction = clamp(0.15 * (1 + c), 0.1, 0.25)
                range_penalty = cfg.symmetric_range_penalty * rel_range ** exp * cf * reduction
                variance_penalty = cfg.symmetric_variance_penalty * norm_var ** exp * cf * reduction
            elif is_progressive:
                softening = 1 - progressive_quality * 0.6
                reduction = clamp(0.25 + 0.5 * progressive_quality * (1 - c), 0.2, 0.5)
                range_penalty = cfg.progressive_range_penalty * rel_range ** exp * cf * softening * reduction
                variance_penalty = cfg.progressive_variance_penalty * norm_var ** exp * cf * softening * reduction
            else:
                range_penalty = cfg.range_penalty * rel_range ** cfg.penalty_exponent * cf
                variance_penalty = cfg.variance_penalty * norm_var ** cfg.penalty_exponent * cf

        flow_path_balance = clamp(100 - range_penalty - variance_penalty)
        surface_area_balance = clamp(100 * (1 - _max_relative_deviation([_surface_area(p) for p in products]) / 2))
        volume_balance = clamp(100 * (1 - _max_relative_deviation([p.effective_volume for p in products]) / 2))

        # ── Blend ───────────────────────────────────────────────────────────
        w_flow = clamp(cfg.flow_path_weight + c * 0.1, *cfg.flow_path_range)
        w_area = clamp(cfg.surface_area_weight - c * 0.05, *cfg.surface_area_range)
        w_vol = clamp(cfg.volume_weight - c * 0.05, *cfg.volume_range)
        w_total = w_flow + w_area + w_vol
        final = clamp(
            (w_flow * flow_path_balance + w_area * surface_area_balance + w_vol * volume_balance) / w_total
        )

        if is_symmetric and final > cfg.symmetric_boost_above:
            final = clamp(final * clamp(1.15 - c * 0.1, 1.05, 1.15))
        elif is_progressive and final > cfg.progressive_boost_above:
            final = clamp(final * clamp(1.1 + 0.1 * progressive_quality * (1 - c), 1.05, 1.2))

        pattern = PATTERN_SYMMETRIC if is_symmetric else PATTERN_PROGRESSIVE if is_progressive else PATTERN_NONE
        logger.debug("Flow score %.2f (pattern=%s, complexity=%.3f)", final, pattern, c)
        return FlowScore(
            flow_path_balance=flow_path_balance,
            surface_area_balance=surface_area_balance,
            volume_balance=volume_balance,
            total=final,
            pattern=pattern,
            complexity=c,
        )
