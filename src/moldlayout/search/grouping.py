"""
Product grouping: every way to split an order into mold groups.

Products are placed in input order. Each product may join any existing
group whose first member shares its color and material (either check can be
relaxed), or open a new group. Every complete placement is one Scheme.
Unlike the mold-distribution search, structurally identical schemes are not
collapsed here; with the first-member rule each recursion path already gives
a distinct partition.

The enumeration is Bell-number sized, so it is capped by ``SearchConfig``:
past ``max_schemes`` it stops and flags the result as truncated, or raises
EnumerationOverflowError in strict mode.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, Iterator, List, Optional, Sequence

from moldlayout.config import SearchConfig
from moldlayout.errors import EnumerationOverflowError
from moldlayout.models import GroupResult, Product, Scheme, SearchResult

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


def color_material_key(product: Product) -> str:
    return f"{product.color or UNKNOWN}-{product.material or UNKNOWN}"


def group_by_color_material(products: Sequence[Product]) -> Dict[str, List[Product]]:
    """Products bucketed by ``color-material``, in first-seen order."""
    groups: Dict[str, List[Product]] = OrderedDict()
    for product in products:
        groups.setdefault(color_material_key(product), []).append(product)
    return groups


def can_add_to_group(group: Sequence[Product], product: Product,
                     allow_different_colors: bool = False,
                     allow_different_materials: bool = False) -> bool:
    """Compare against the group's first member."""
    if not group:
        return True
    reference = group[0]
    return (
        (allow_different_colors or product.color == reference.color)
        and (allow_different_materials or product.material == reference.material)
    )


def group_score(group: Sequence[Product]) -> float:
    """100 for a singleton; larger groups wait for layout and balance scoring."""
    return 100.0 if len(group) == 1 else 0.0


def iter_groupings(products: Sequence[Product],
                   allow_different_colors: bool = False,
                   allow_different_materials: bool = False) -> Iterator[List[List[Product]]]:
    """Lazily yield each grouping; existing groups are tried before a new one."""
    n = len(products)

    def backtrack(start: int, groups: List[List[Product]]):
        if start == n:
            yield [list(g) for g in groups]
            return
        product = products[start]
        for group in groups:
            if can_add_to_group(group, product, allow_different_colors, allow_different_materials):
                group.append(product)
                yield from backtrack(start + 1, groups)
                group.pop()
        groups.append([product])
        yield from backtrack(start + 1, groups)
        groups.pop()

    if n:
        yield from backtrack(0, [])


def make_scheme(groups: List[List[Product]], index: int) -> Scheme:
    results = [GroupResult(products=g, score=group_score(g)) for g in groups]
    score = float(int(sum(r.score for r in results) / len(results)))
    return Scheme(groups=results, name=f"Scheme {index}", score=score)


def enumerate_schemes(products: Sequence[Product],
                      allow_different_colors: bool = False,
                      allow_different_materials: bool = False,
                      config: Optional[SearchConfig] = None) -> SearchResult:
    """
    Enumerate candidate schemes without evaluating them.

    Raises:
        EnumerationOverflowError: strict mode and the product or scheme cap
                                  was exceeded.
    """
    config = config or SearchConfig()
    if len(products) > config.max_products:
        message = f"{len(products)} products exceed the cap of {config.max_products}"
        if config.strict:
            raise EnumerationOverflowError(message)
        logger.warning("%s; enumeration limited to %d schemes", message, config.max_schemes)

    result = SearchResult()
    for groups in iter_groupings(products, allow_different_colors, allow_different_materials):
        if len(result.schemes) >= config.max_schemes:
            if config.strict:
                raise EnumerationOverflowError(
                    f"More than {config.max_schemes} schemes", produced=len(result.schemes),
                )
            result.truncated = True
            logger.warning("Scheme enumeration truncated at %d schemes", config.max_schemes)
            break
        result.schemes.append(make_scheme(groups, len(result.schemes) + 1))

    result.enumerated = len(result.schemes)
    logger.info(
        "Enumerated %d schemes for %d products%s",
        result.enumerated, len(products), " (truncated)" if result.truncated else "",
    )
    return result
