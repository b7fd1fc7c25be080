"""
Promotion Engine - Scope Matching
===================================
Which cart lines a promotion may discount, and their subtotal.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Tuple

from engines.promotion.errors import ScopeConfigurationError
from engines.promotion.models import (
    ZERO,
    AllItems,
    CartItem,
    CategoryScope,
    ProductScope,
    PromotionScope,
    cart_subtotal,
)


@dataclass(frozen=True)
class ScopeMatch:
    eligible_items: Tuple[CartItem, ...] = ()
    eligible_subtotal: Decimal = ZERO

    @property
    def eligible_quantity(self) -> Decimal:
        return sum((item.quantity for item in self.eligible_items), ZERO)

    @property
    def is_empty(self) -> bool:
        return not self.eligible_items


def _category_matches(item: CartItem, category: str) -> bool:
    if item.category_id is None:
        return False
    return str(item.category_id).casefold() == category.casefold()


def match_scope(scope: PromotionScope, cart: Iterable[CartItem]) -> ScopeMatch:
    """
    Raises ScopeConfigurationError for anything that is not one of the
    three known scope variants.
    """
    cart = tuple(cart)
    if isinstance(scope, AllItems):
        eligible = cart
    elif isinstance(scope, CategoryScope):
        eligible = tuple(item for item in cart if _category_matches(item, scope.category))
    elif isinstance(scope, ProductScope):
        eligible = tuple(item for item in cart if item.product_id in scope.product_ids)
    else:
        kind = getattr(scope, "kind", type(scope).__name__)
        raise ScopeConfigurationError(f"Unrecognized scope kind '{kind}'.")

    if not eligible:
        return ScopeMatch()
    return ScopeMatch(eligible_items=eligible, eligible_subtotal=cart_subtotal(eligible))
