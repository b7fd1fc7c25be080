"""
Promotion Engine - Discount Calculator
========================================
Pure per-type discount computation.

compute_discount() turns one promotion plus its scope match into a
candidate amount: the raw per-type figure, clamped to what the type may
take from its eligible lines, capped by max_discount, quantized to
cents and never negative.

Percentages are always taken from the original (undiscounted) eligible
subtotal. Promotions never compound on each other's output.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_FLOOR, Decimal
from typing import Iterable

from engines.promotion.errors import PromotionConfigurationError
from engines.promotion.models import (
    CENT,
    HUNDRED,
    ZERO,
    BundleTerms,
    BuyXGetYTerms,
    CartItem,
    FixedTerms,
    PercentageTerms,
    Promotion,
    ThresholdTerms,
    quantize_money,
)


def _percentage(terms: PercentageTerms, items, eligible_subtotal: Decimal) -> Decimal:
    return min(eligible_subtotal * terms.percent / HUNDRED, eligible_subtotal)


def _fixed(terms: FixedTerms, items, eligible_subtotal: Decimal) -> Decimal:
    # Flat, once per promotion: not per eligible line or unit.
    if eligible_subtotal <= ZERO:
        return ZERO
    return terms.amount


def _buy_x_get_y(terms: BuyXGetYTerms, items, eligible_subtotal: Decimal) -> Decimal:
    quantity = sum((item.quantity for item in items), ZERO)
    if quantity <= ZERO:
        return ZERO
    groups = (quantity / terms.group_size).to_integral_value(rounding=ROUND_FLOOR)
    free_units = groups * terms.get_qty
    average_unit_price = eligible_subtotal / quantity
    return free_units * average_unit_price * terms.get_discount_percent / HUNDRED


def _bundle(terms: BundleTerms, items, eligible_subtotal: Decimal) -> Decimal:
    if not items:
        return ZERO
    return min(max(ZERO, eligible_subtotal - terms.bundle_price), eligible_subtotal)


def _threshold(terms: ThresholdTerms, items, eligible_subtotal: Decimal) -> Decimal:
    if eligible_subtotal <= ZERO:
        return ZERO
    return terms.amount


CALCULATORS = {
    PercentageTerms: _percentage,
    FixedTerms: _fixed,
    BuyXGetYTerms: _buy_x_get_y,
    BundleTerms: _bundle,
    ThresholdTerms: _threshold,
}


def compute_discount(
    promotion: Promotion,
    eligible_items: Iterable[CartItem],
    eligible_subtotal: Decimal,
    overall_subtotal: Decimal,
) -> Decimal:
    """
    Candidate discount for one promotion, >= 0.

    min_order_amount is a universal gate; the stacking resolver checks it
    before calling here, and it is re-checked so a direct call obeys the
    same rule.
    """
    calculator = CALCULATORS.get(type(promotion.terms))
    if calculator is None:
        raise PromotionConfigurationError(
            f"Unsupported promotion terms {type(promotion.terms).__name__}.",
            promotion_id=promotion.promotion_id,
        )
    if overall_subtotal < promotion.min_order_amount:
        return ZERO

    amount = quantize_money(calculator(promotion.terms, tuple(eligible_items), eligible_subtotal))
    if promotion.max_discount is not None:
        # Cap rounded down so the result is whole cents and never above it.
        amount = min(amount, promotion.max_discount.quantize(CENT, rounding=ROUND_DOWN))
    return max(ZERO, amount)
