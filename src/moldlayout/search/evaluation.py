"""
Full evaluation of enumerated schemes.

Per group: pack the footprints, derive the mold block, price the mold and
the products, and (for groups of two or more) grade the layout with the
balance scorer. A scheme's totals are only computed once every group is done.

Schemes are independent, so they fan out one task per scheme over a
ProcessPoolExecutor. Schemes with any group scoring below
``SearchConfig.min_group_score`` are discarded and the rest come back sorted
by total price, cheapest first.
"""

from __future__ import annotations

import logging
import multiprocessing
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import List, Optional, Sequence

from moldlayout.balance import BalanceScorer, calculate_injection_point
from moldlayout.config import LookupTables, PackerConfig, ScoringConfig, SearchConfig, load_lookup_tables
from moldlayout.models import GroupResult, Product, Scheme, SearchResult, parse_products
from moldlayout.packing import LayoutPacker, build_mold_dimensions
from moldlayout.search.grouping import enumerate_schemes
from moldlayout.search.pricing import PricingCollaborator, TablePricing

logger = logging.getLogger(__name__)

CPU_SHARE = 0.70


def default_workers() -> int:
    return max(1, int(multiprocessing.cpu_count() * CPU_SHARE))


class SchemeEvaluator:
    """
    Usage:
        evaluator = SchemeEvaluator()
        ranked = evaluator.evaluate_schemes(enumerate_schemes(products).schemes)
    """

    def __init__(self,
                 search: Optional[SearchConfig] = None,
                 scoring: Optional[ScoringConfig] = None,
                 packer: Optional[PackerConfig] = None,
                 tables: Optional[LookupTables] = None,
                 pricing: Optional[PricingCollaborator] = None):
        self.search = search or SearchConfig()
        self.tables = tables or load_lookup_tables()
        self.packer = LayoutPacker(packer, self.tables)
        self.scorer = BalanceScorer(scoring)
        self.pricing = pricing or TablePricing(self.tables)

    # ── Groups and schemes ──────────────────────────────────────────────────

    def evaluate_group(self, products: Sequence[Product]) -> GroupResult:
        products = list(products)
        layout = self.packer.pack([p.footprint for p in products])
        max_height = max(p.height for p in products)
        material = self.search.mold_material

        mold = build_mold_dimensions(layout, max_height, material, self.tables)
        mold.mold_price = self.pricing.mold_price(material, mold.mold_weight)

        injection_point = calculate_injection_point(layout.rectangles)
        balance = self.scorer.score(layout, products, injection_point)
        score = balance.total if len(products) > 1 else 100.0

        return GroupResult(
            products=products,
            score=score,
            layout=layout,
            balance=balance,
            mold=mold,
            product_prices=self.pricing.product_prices(mold, products),
        )

    def evaluate_scheme(self, scheme: Scheme) -> Scheme:
        groups = [self.evaluate_group(g.products) for g in scheme.groups]
        total_mold = sum(g.mold_price for g in groups)
        total_product = sum(g.product_price for g in groups)
        total = total_mold + total_product
        base_name = scheme.name.split(" - ")[0]
        logger.debug(
            "%s: %d groups, mold %.2f + products %.2f",
            base_name, len(groups), total_mold, total_product,
        )
        return Scheme(
            groups=groups,
            name=f"{base_name} - {total:.2f}",
            score=scheme.score,
            total_mold_price=total_mold,
            total_product_price=total_product,
            total_price=total,
            evaluated=True,
        )

    def is_acceptable(self, scheme: Scheme) -> bool:
        return all(g.score >= self.search.min_group_score for g in scheme.groups)

    def evaluate_schemes(self, schemes: Sequence[Scheme]) -> List[Scheme]:
        """Evaluate, drop schemes with a weak group, sort by total price."""
        schemes = list(schemes)
        workers = self.search.max_workers
        if workers is None:
            workers = default_workers()

        evaluated: List[tuple] = []
        if workers == 0 or len(schemes) <= 1:
            for idx, scheme in enumerate(schemes):
                evaluated.append((idx, self.evaluate_scheme(scheme)))
        else:
            with ProcessPoolExecutor(max_workers=workers) as executor:
                futures = {
                    executor.submit(_evaluate_task, self, scheme): idx
                    for idx, scheme in enumerate(schemes)
                }
                for future in as_completed(futures):
                    evaluated.append((futures[future], future.result()))

        kept = [(idx, s) for idx, s in evaluated if self.is_acceptable(s)]
        kept.sort(key=lambda item: (item[1].total_price, item[0]))
        logger.info(
            "Evaluated %d schemes, %d kept (min group score %.0f)",
            len(schemes), len(kept), self.search.min_group_score,
        )
        return [s for _, s in kept]


def _evaluate_task(evaluator: SchemeEvaluator, scheme: Scheme) -> Scheme:
    return evaluator.evaluate_scheme(scheme)


def plan_schemes(products: Sequence,
                 allow_different_colors: bool = False,
                 allow_different_materials: bool = False,
                 search: Optional[SearchConfig] = None,
                 scoring: Optional[ScoringConfig] = None,
                 packer: Optional[PackerConfig] = None,
                 tables: Optional[LookupTables] = None,
                 pricing: Optional[PricingCollaborator] = None) -> SearchResult:
    """
    Enumerate and fully evaluate schemes for an order.

    Args:
        products: Products or raw mappings (validated into Products).

    Returns:
        SearchResult with the surviving schemes, cheapest first. An order
        with no acceptable scheme gives an empty result.

    Raises:
        InvalidInputError:        malformed product, or a footprint past the
                                  spacing table.
        EnumerationOverflowError: strict mode and a cap was exceeded.
    """
    search = search or SearchConfig()
    products = parse_products(products)
    enumerated = enumerate_schemes(products, allow_different_colors, allow_different_materials, search)
    evaluator = SchemeEvaluator(search, scoring, packer, tables, pricing)
    return SearchResult(
        schemes=evaluator.evaluate_schemes(enumerated.schemes),
        truncated=enumerated.truncated,
        enumerated=enumerated.enumerated,
    )
