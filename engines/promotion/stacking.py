"""
Promotion Engine - Stacking Resolver
======================================
Applies every eligible promotion to a cart, cumulatively.

Resolution flow:
    1. Drop promotions whose min_order_amount exceeds the subtotal
    2. Order: flat-amount types first, then percentages; higher value
       first within each group; promotion_id breaks remaining ties
    3. Scope match + compute each; keep the ones worth more than zero
    4. Clamp the total to the subtotal

There is no exclusivity: all matched promotions stack.
A promotion whose configuration cannot be evaluated is logged and
skipped; the rest of the catalog is still applied.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List, Sequence

from engines.promotion.calculator import CALCULATORS, compute_discount
from engines.promotion.errors import PromotionConfigurationError
from engines.promotion.models import (
    PROMOTION_PERCENTAGE,
    ZERO,
    AppliedPromotion,
    CartItem,
    DiscountResult,
    Promotion,
)
from engines.promotion.policies import minimum_order_policy
from engines.promotion.scope import match_scope

logger = logging.getLogger("promotion.stacking")


def _ordering_key(promotion: Promotion):
    is_percentage = promotion.promotion_type == PROMOTION_PERCENTAGE
    return (is_percentage, -promotion.value, promotion.promotion_id)


def order_promotions(promotions: Iterable[Promotion]) -> List[Promotion]:
    return sorted(promotions, key=_ordering_key)


def _clamp_to_subtotal(
    applied: Sequence[AppliedPromotion], subtotal: Decimal,
) -> List[AppliedPromotion]:
    # Trim in application order so the amounts still sum to the total.
    clamped = []
    remaining = subtotal
    for entry in applied:
        if remaining <= ZERO:
            logger.debug(f"Dropped {entry.promotion_id}: subtotal already fully discounted")
            break
        if entry.amount > remaining:
            entry = AppliedPromotion(entry.promotion_id, entry.name, remaining)
        clamped.append(entry)
        remaining -= entry.amount
    return clamped


def apply_promotions(
    catalog: Iterable[Promotion],
    cart: Sequence[CartItem],
    subtotal: Decimal,
) -> DiscountResult:
    candidates = []
    for promotion in catalog:
        if type(promotion.terms) not in CALCULATORS:
            logger.warning(
                f"Skipping promotion {promotion.promotion_id}: "
                f"unsupported terms {type(promotion.terms).__name__}"
            )
            continue
        reason = minimum_order_policy(promotion, subtotal)
        if reason is not None:
            logger.debug(f"Excluded {promotion.promotion_id}: {reason.message}")
            continue
        candidates.append(promotion)

    applied: List[AppliedPromotion] = []
    for promotion in order_promotions(candidates):
        try:
            match = match_scope(promotion.scope, cart)
            amount = compute_discount(
                promotion, match.eligible_items, match.eligible_subtotal, subtotal,
            )
        except PromotionConfigurationError as exc:
            logger.warning(f"Skipping promotion {promotion.promotion_id}: {exc}")
            continue
        if amount > ZERO:
            applied.append(AppliedPromotion(promotion.promotion_id, promotion.name, amount))

    applied = _clamp_to_subtotal(applied, subtotal)
    return DiscountResult(
        discount_amount=sum((entry.amount for entry in applied), ZERO),
        applied_promotions=tuple(applied),
    )
