"""
Composite balance score of one packed group.

    total = min(100, 0.3 geometry + 0.4 flow + 0.3 distribution)

Confidence is the share of products whose CAD data is complete (positive
volume, surface area and bounding box). Scoring is a pure function of the
layout, products and injection point.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from moldlayout.balance.complexity import calculate_injection_point
from moldlayout.balance.distribution import DistributionScorer
from moldlayout.balance.flow import FlowScorer
from moldlayout.balance.geometry import GeometryScorer
from moldlayout.balance.numeric import clamp
from moldlayout.config import ScoringConfig
from moldlayout.errors import InvalidInputError
from moldlayout.models import BalanceScore, Layout, Product

logger = logging.getLogger(__name__)


class BalanceScorer:
    """
    Usage:
        scorer = BalanceScorer()
        result = scorer.score(layout, products)          # injection point = area centroid
        result = scorer.score(layout, products, (x, y))
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()
        self.geometry = GeometryScorer(self.config.geometry)
        self.flow = FlowScorer(self.config.flow)
        self.distribution = DistributionScorer(self.config.distribution)

    def score(self, layout: Layout, products: Sequence[Product],
              injection_point: Optional[Tuple[float, float]] = None) -> BalanceScore:
        """
        Raises:
            InvalidInputError: layout and product counts differ.
        """
        if len(layout.rectangles) != len(products):
            raise InvalidInputError(
                f"Layout has {len(layout.rectangles)} rectangles for {len(products)} products"
            )
        if injection_point is None:
            injection_point = calculate_injection_point(layout.rectangles)

        geometry = self.geometry.score(products)
        flow = self.flow.score(layout.rectangles, products, injection_point)
        distribution = self.distribution.score(layout.rectangles, products)

        cfg = self.config
        total = min(
            100.0,
            geometry.total * cfg.geometry_weight
            + flow.total * cfg.flow_weight
            + distribution.total * cfg.distribution_weight,
        )
        complete = sum(1 for p in products if p.has_complete_cad)
        confidence = complete / len(products) if products else 0.0

        logger.debug(
            "Balance %.2f = geometry %.1f / flow %.1f / distribution %.1f",
            total, geometry.total, flow.total, distribution.total,
        )
        return BalanceScore(
            total=clamp(total),
            geometry=clamp(geometry.total),
            flow=clamp(flow.total),
            distribution=clamp(distribution.total),
            confidence=confidence,
            details={
                "injection_point": list(injection_point),
                "geometry": geometry.to_dict(),
                "flow": flow.to_dict(),
                "distribution": distribution.to_dict(),
            },
        )


def score_layout(layout: Layout, products: Sequence[Product],
                 injection_point: Optional[Tuple[float, float]] = None,
                 config: Optional[ScoringConfig] = None) -> BalanceScore:
    """Convenience wrapper around ``BalanceScorer(config).score``."""
    return BalanceScorer(config).score(layout, products, injection_point)
