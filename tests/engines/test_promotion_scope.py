"""
Promotion Engine - scope matching tests.
"""

from decimal import Decimal

import pytest

from engines.promotion.errors import ScopeConfigurationError
from engines.promotion.models import AllItems, CartItem, CategoryScope, ProductScope
from engines.promotion.scope import match_scope

CART = (
    CartItem(product_id="prod-1", unit_price=100, quantity=2, category_id="Beverages"),
    CartItem(product_id="prod-2", unit_price=300, quantity=1, category_id="snacks"),
    CartItem(product_id="prod-3", unit_price="2.50", quantity=4),
)


class TestMatchScope:
    def test_all_items(self):
        match = match_scope(AllItems(), CART)
        assert match.eligible_items == CART
        assert match.eligible_subtotal == Decimal("510.00")
        assert match.eligible_quantity == Decimal("7")

    def test_category_is_case_insensitive(self):
        match = match_scope(CategoryScope(category="BEVERAGES"), CART)
        assert [i.product_id for i in match.eligible_items] == ["prod-1"]
        assert match.eligible_subtotal == Decimal("200.00")

    def test_category_is_exact_not_prefix(self):
        assert match_scope(CategoryScope(category="Bev"), CART).is_empty

    def test_items_without_category_never_match(self):
        match = match_scope(CategoryScope(category="snacks"), CART)
        assert [i.product_id for i in match.eligible_items] == ["prod-2"]

    def test_products(self):
        match = match_scope(ProductScope(product_ids={"prod-2", "prod-3"}), CART)
        assert match.eligible_subtotal == Decimal("310.00")

    def test_no_match_is_zero(self):
        match = match_scope(ProductScope(product_ids={"other"}), CART)
        assert match.is_empty
        assert match.eligible_subtotal == 0

    def test_empty_cart(self):
        assert match_scope(AllItems(), ()).is_empty

    def test_unknown_scope_raises(self):
        class RegionScope:
            kind = "REGION"

        with pytest.raises(ScopeConfigurationError, match="REGION"):
            match_scope(RegionScope(), CART)
