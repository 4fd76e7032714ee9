"""
Tests for full scheme evaluation.

Covers:
- Group evaluation: layout, mold, prices, singleton score
- Scheme totals equal the sum of their groups
- Ranking by total price and the minimum group score filter
- Custom pricing collaborators
- Process pool and inline evaluation agree
"""

import pytest

from moldlayout.config import SearchConfig
from moldlayout.errors import InvalidInputError
from moldlayout.search import SchemeEvaluator, enumerate_schemes, plan_schemes


class FlatPricing:
    """Collaborator charging a fixed price per mold and nothing per product."""

    def mold_price(self, material, weight):
        return 1000.0

    def product_prices(self, mold, group):
        return []


def test_evaluate_single_product_group(product_factory, inline_search):
    group = SchemeEvaluator(inline_search).evaluate_group([product_factory(1, 120, 80, 25)])
    assert group.score == 100
    assert len(group.layout) == 1
    assert group.mold.mold_weight > 0
    assert group.mold.mold_price > 0
    assert group.mold.mold_material == "NAK80"
    assert len(group.product_prices) == 1
    assert group.balance.geometry == 100


def test_group_score_comes_from_balance(identical_products, inline_search):
    group = SchemeEvaluator(inline_search).evaluate_group(identical_products[:2])
    assert group.score == group.balance.total


def test_plan_ranks_by_total_price(identical_products, inline_search):
    result = plan_schemes(identical_products[:3], search=inline_search)
    assert result.enumerated == 5
    assert len(result) >= 1
    prices = [s.total_price for s in result]
    assert prices == sorted(prices)
    for scheme in result:
        assert scheme.evaluated
        assert " - " in scheme.name
        assert all(g.score >= 50 for g in scheme.groups)
        assert scheme.total_price == pytest.approx(
            sum(g.mold_price + g.product_price for g in scheme.groups)
        )
        assert scheme.total_mold_price == pytest.approx(sum(g.mold_price for g in scheme.groups))


def test_min_group_score_filter(identical_products):
    search = SearchConfig(max_workers=0, min_group_score=101)
    result = plan_schemes(identical_products[:3], search=search)
    # Even singleton groups only reach 100
    assert len(result) == 0
    assert result.enumerated == 5


def test_min_group_score_keeps_singletons(identical_products):
    search = SearchConfig(max_workers=0, min_group_score=100)
    result = plan_schemes(identical_products[:2], search=search)
    assert any(all(len(g.products) == 1 for g in s.groups) for s in result)


def test_custom_pricing_collaborator(identical_products, inline_search):
    result = plan_schemes(identical_products[:2], search=inline_search, pricing=FlatPricing())
    for scheme in result:
        assert scheme.total_product_price == 0
        assert scheme.total_mold_price == pytest.approx(1000.0 * len(scheme.groups))
    # One mold is cheaper than two when it survives the score filter
    assert len(result.schemes[0].groups) <= len(result.schemes[-1].groups)


def test_raw_mappings_are_validated(inline_search):
    with pytest.raises(InvalidInputError):
        plan_schemes([{"id": 1, "length": 100, "width": 80, "height": 30, "weight": -5}], search=inline_search)


def test_empty_order(inline_search):
    result = plan_schemes([], search=inline_search)
    assert len(result) == 0
    assert not result.truncated


def test_truncation_is_reported(identical_products):
    result = plan_schemes(identical_products, search=SearchConfig(max_workers=0, max_schemes=4))
    assert result.truncated
    assert result.enumerated == 4


def test_process_pool_matches_inline(identical_products):
    products = identical_products[:3]
    schemes = enumerate_schemes(products).schemes
    inline = SchemeEvaluator(SearchConfig(max_workers=0)).evaluate_schemes(schemes)
    pooled = SchemeEvaluator(SearchConfig(max_workers=2)).evaluate_schemes(schemes)
    assert [s.name for s in pooled] == [s.name for s in inline]
    assert [s.total_price for s in pooled] == pytest.approx([s.total_price for s in inline])
