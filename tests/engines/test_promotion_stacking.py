"""
Promotion Engine - stacking resolver tests.
Checkout scenarios plus the clamp, cap, minimum-order and idempotence laws.
"""

import logging
from decimal import Decimal

import pytest

from engines.promotion.models import (
    BundleTerms,
    BuyXGetYTerms,
    CartItem,
    CategoryScope,
    FixedTerms,
    PercentageTerms,
    ProductScope,
    Promotion,
    ThresholdTerms,
    cart_subtotal,
)
from engines.promotion.stacking import apply_promotions, order_promotions


def promo(pid, terms, **overrides):
    values = dict(promotion_id=pid, business_id="biz-1", name=f"Promo {pid}", terms=terms)
    values.update(overrides)
    return Promotion(**values)


def evaluate(catalog, cart):
    return apply_promotions(catalog, cart, cart_subtotal(cart))


CART_500 = (
    CartItem(product_id="prod-1", unit_price=100, quantity=2),
    CartItem(product_id="prod-2", unit_price=300, quantity=1),
)


# ══════════════════════════════════════════════════════════════
# CHECKOUT SCENARIOS
# ══════════════════════════════════════════════════════════════

class TestScenarios:
    def test_percentage_of_whole_cart(self):
        result = evaluate([promo("p1", PercentageTerms(percent=10))], CART_500)
        assert result.discount_amount == Decimal("50.00")
        assert result.promotion_ids == ("p1",)

    def test_fixed_scoped_is_flat(self):
        catalog = [promo("p1", FixedTerms(amount=20), scope=ProductScope(product_ids={"prod-1"}))]
        assert evaluate(catalog, CART_500).discount_amount == Decimal("20.00")

    def test_minimum_order_not_met(self):
        catalog = [promo("p1", FixedTerms(amount=100), min_order_amount=1000)]
        result = evaluate(catalog, CART_500)
        assert result.discount_amount == 0
        assert result.applied_promotions == ()

    def test_percentage_capped(self):
        catalog = [promo("p1", PercentageTerms(percent=10), max_discount=30)]
        assert evaluate(catalog, CART_500).discount_amount == Decimal("30")

    def test_buy_two_get_one(self):
        cart = (CartItem(product_id="prod-1", unit_price=100, quantity=3),)
        catalog = [promo("p1", BuyXGetYTerms(buy_qty=2, get_qty=1, get_discount_percent=100))]
        assert evaluate(catalog, cart).discount_amount == Decimal("100.00")

    def test_fixed_then_percentage_on_original_subtotal(self):
        catalog = [
            promo("pct", PercentageTerms(percent=10)),
            promo("fix", FixedTerms(amount=20)),
        ]
        result = evaluate(catalog, CART_500)
        assert result.promotion_ids == ("fix", "pct")
        assert [e.amount for e in result.applied_promotions] == [Decimal("20.00"), Decimal("50.00")]
        assert result.discount_amount == Decimal("70.00")


# ══════════════════════════════════════════════════════════════
# ORDERING
# ══════════════════════════════════════════════════════════════

class TestOrdering:
    def test_flat_types_before_percentages_then_value_desc(self):
        ordered = order_promotions([
            promo("a", PercentageTerms(percent=5)),
            promo("b", PercentageTerms(percent=15)),
            promo("c", FixedTerms(amount=5)),
            promo("d", ThresholdTerms(amount=50)),
            promo("e", BundleTerms(bundle_price=10)),
            promo("f", BuyXGetYTerms(buy_qty=1, get_qty=1, get_discount_percent=100)),
        ])
        assert [p.promotion_id for p in ordered] == ["f", "d", "e", "c", "b", "a"]

    def test_ties_broken_by_id(self):
        ordered = order_promotions([promo("z", FixedTerms(amount=5)), promo("a", FixedTerms(amount=5))])
        assert [p.promotion_id for p in ordered] == ["a", "z"]


# ══════════════════════════════════════════════════════════════
# LAWS
# ══════════════════════════════════════════════════════════════

class TestClamp:
    def test_total_clamped_to_subtotal_and_sum_preserved(self):
        cart = (CartItem(product_id="a", unit_price=30),)
        catalog = [
            promo("f1", FixedTerms(amount=20)),
            promo("f2", FixedTerms(amount=15)),
            promo("pct", PercentageTerms(percent=50)),
        ]
        result = evaluate(catalog, cart)
        assert result.discount_amount == Decimal("30.00")
        assert [(e.promotion_id, e.amount) for e in result.applied_promotions] == [
            ("f1", Decimal("20.00")), ("f2", Decimal("10.00")),
        ]
        assert sum(e.amount for e in result.applied_promotions) == result.discount_amount

    def test_free_cart_gets_no_discount(self):
        cart = (CartItem(product_id="a", unit_price=0, quantity=2),)
        result = evaluate([promo("f1", FixedTerms(amount=5))], cart)
        assert result.discount_amount == 0
        assert result.applied_promotions == ()


class TestLaws:
    CATALOG = [
        promo("f1", FixedTerms(amount=20), max_discount=15),
        promo("pct", PercentageTerms(percent=25), scope=CategoryScope(category="tea")),
        promo("bx", BuyXGetYTerms(buy_qty=1, get_qty=1), max_discount=12),
        promo("min", ThresholdTerms(amount=40), min_order_amount=10_000),
    ]
    CART = (
        CartItem(product_id="a", unit_price="12.40", quantity=3, category_id="Tea"),
        CartItem(product_id="b", unit_price="7.99", quantity=2, category_id="coffee"),
    )

    def test_caps_respected(self):
        amounts = {e.promotion_id: e.amount for e in evaluate(self.CATALOG, self.CART).applied_promotions}
        assert amounts["f1"] <= 15
        assert amounts["bx"] <= 12

    def test_minimum_order_excludes(self):
        assert "min" not in evaluate(self.CATALOG, self.CART).promotion_ids

    def test_clamp_law(self):
        subtotal = cart_subtotal(self.CART)
        result = evaluate(self.CATALOG, self.CART)
        assert result.discount_amount == sum(e.amount for e in result.applied_promotions)
        assert result.discount_amount <= subtotal

    def test_idempotent(self):
        assert evaluate(self.CATALOG, self.CART) == evaluate(self.CATALOG, self.CART)

    def test_zero_contributions_not_listed(self):
        catalog = [promo("x", FixedTerms(amount=5), scope=ProductScope(product_ids={"nope"}))]
        assert evaluate(catalog, self.CART).applied_promotions == ()


class TestMisconfiguredPromotion:
    def test_bad_scope_skipped_rest_applied(self, caplog):
        class WarehouseScope:
            kind = "WAREHOUSE"

        broken = promo("broken", FixedTerms(amount=99))
        object.__setattr__(broken, "scope", WarehouseScope())
        catalog = [broken, promo("ok", FixedTerms(amount=5))]

        with caplog.at_level(logging.WARNING, logger="promotion.stacking"):
            result = evaluate(catalog, CART_500)

        assert result.promotion_ids == ("ok",)
        assert "broken" in caplog.text

    def test_unknown_terms_skipped_rest_applied(self, caplog):
        broken = promo("loyalty", FixedTerms(amount=99))
        object.__setattr__(broken, "terms", {"type": "LOYALTY"})
        catalog = [broken, promo("ok", FixedTerms(amount=5))]

        with caplog.at_level(logging.WARNING, logger="promotion.stacking"):
            result = evaluate(catalog, CART_500)

        assert result.promotion_ids == ("ok",)
        assert "loyalty" in caplog.text


@pytest.mark.parametrize("percent,expected", [(0, "0"), (33, "165.00"), (100, "500.00")])
def test_percentage_range(percent, expected):
    result = evaluate([promo("p", PercentageTerms(percent=percent))], CART_500)
    assert result.discount_amount == Decimal(expected)
